import asyncio

from freight_portal.logging_config import setup_logging
from freight_portal.records import AssignmentSpec, DestinationDraft, QuoteRequestDraft
from freight_portal.services.dimension_math_service import build_carton_config_draft
from freight_portal.services.provider_factory import get_repositories
from freight_portal.services.quote_request_service import create_quote_request
from freight_portal.services.supplier_service import list_suppliers, seed_sample_suppliers


async def seed() -> None:
    repos = get_repositories()
    await seed_sample_suppliers(repos)
    if await repos.quote_requests.list():
        return

    supplier = (await list_suppliers(repos))[0]
    await create_quote_request(
        repos,
        request=QuoteRequestDraft(
            customer_id='customer-demo',
            service_type='Sea Freight',
            requested_date='2026-01-05',
            due_by='2026-01-12',
            product_description='Wireless earbuds',
        ).with_supplier(supplier),
        destinations=[
            DestinationDraft(is_amazon=True, fba_warehouse_code='ONT8', fba_warehouse_name='Moreno Valley'),
            DestinationDraft(custom_address='1200 Harbor Blvd, Long Beach, CA'),
        ],
        carton_configs=[
            build_carton_config_draft(nickname='Small', carton_weight=8, length=40, width=30, height=30),
            build_carton_config_draft(nickname='Large', carton_weight=15, length=60, width=45, height=45),
        ],
        assignments=[
            AssignmentSpec(destination_index=0, config_index=0, quantity=20),
            AssignmentSpec(destination_index=0, config_index=1, quantity=5),
            AssignmentSpec(destination_index=1, config_index=1, quantity=12),
        ],
    )


if __name__ == '__main__':
    setup_logging()
    asyncio.run(seed())
    print('Seed data inserted/verified.')
