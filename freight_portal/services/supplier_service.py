from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import asdict
from typing import Any

from freight_portal.records import Supplier, SupplierDraft
from freight_portal.services.repositories import QuoteRepositories

logger = logging.getLogger(__name__)

SAMPLE_SUPPLIERS = (
    SupplierDraft(
        name='Shanghai Electronics Co.',
        address='123 Huaihai Road, Shanghai',
        city='Shanghai',
        country='China',
        contact_name='Li Wei',
        contact_phone='+86 21 1234 5678',
    ),
    SupplierDraft(
        name='Guangzhou Manufacturing Ltd.',
        address='456 Pearl River Avenue',
        city='Guangzhou',
        country='China',
        contact_name='Chen Ming',
        contact_phone='+86 20 8765 4321',
    ),
    SupplierDraft(
        name='Shenzhen Tech Solutions',
        address='789 Innovation Park',
        city='Shenzhen',
        country='China',
        contact_name='Wang Xiaoming',
        contact_phone='+86 755 9876 5432',
    ),
)


async def list_suppliers(repos: QuoteRepositories) -> list[Supplier]:
    return await repos.suppliers.list()


async def get_supplier(repos: QuoteRepositories, supplier_id: str) -> Supplier | None:
    return await repos.suppliers.get(supplier_id)


async def create_supplier(repos: QuoteRepositories, *, draft: SupplierDraft) -> Supplier:
    draft.validate()
    now = repos.timestamp()
    supplier = Supplier(id=await repos.ids.allocate('supplier'), created_at=now, updated_at=now, **asdict(draft))
    await repos.suppliers.append([supplier])
    return supplier


async def update_supplier(repos: QuoteRepositories, supplier_id: str, changes: Mapping[str, Any]) -> Supplier | None:
    suppliers = await repos.suppliers.list()
    for index, existing in enumerate(suppliers):
        if existing.id != supplier_id:
            continue
        updated = existing.with_changes(changes, updated_at=repos.timestamp())
        SupplierDraft(name=updated.name, address=updated.address).validate()
        suppliers[index] = updated
        await repos.suppliers.replace_all(suppliers)
        return updated
    return None


async def seed_sample_suppliers(repos: QuoteRepositories) -> list[Supplier]:
    if await repos.suppliers.list():
        return []
    created = [await create_supplier(repos, draft=draft) for draft in SAMPLE_SUPPLIERS]
    logger.info('Seeded %d sample suppliers', len(created))
    return created
