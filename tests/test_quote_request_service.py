from __future__ import annotations

import unittest
from unittest.mock import patch

from freight_portal.errors import ReferentialInconsistencyError
from freight_portal.models import QuoteRequestStatus
from freight_portal.records import AssignmentSpec, DestinationDraft
from freight_portal.services.quote_request_service import (
    add_assignment,
    create_quote_request,
    get_quote_request,
    list_assignments_for_destination,
    list_quote_requests,
    list_quote_requests_for_customer,
    set_assignment_quantity,
    update_quote_request,
)
from quote_fixtures import config_draft, memory_repositories, request_draft, two_config_scenario


class CreateQuoteRequestTests(unittest.IsolatedAsyncioTestCase):
    async def asyncSetUp(self) -> None:
        self.store, self.repos = memory_repositories()

    async def test_creates_exactly_one_graph_with_resolvable_keys(self) -> None:
        detail = await create_quote_request(
            self.repos,
            request=request_draft(),
            destinations=[DestinationDraft(fba_warehouse_code='ONT8'), DestinationDraft(fba_warehouse_code='LGB3')],
            carton_configs=[config_draft('A', 2, 1.5), config_draft('B', 5, 6), config_draft('C', 1, 1)],
            assignments=[
                AssignmentSpec(destination_index=0, config_index=0, quantity=10),
                AssignmentSpec(destination_index=1, config_index=1, quantity=4),
                AssignmentSpec(destination_index=1, config_index=2, quantity=7),
                AssignmentSpec(destination_index=0, config_index=2, quantity=1),
            ],
        )

        self.assertEqual(len(await self.repos.quote_requests.list()), 1)
        self.assertEqual(len(await self.repos.carton_configs.list()), 3)
        self.assertEqual(len(await self.repos.destinations.list()), 2)
        assignments = await self.repos.assignments.list()
        self.assertEqual(len(assignments), 4)

        destination_ids = {row.id for row in detail.destinations}
        config_ids = {row.id for row in detail.carton_configurations}
        for assignment in assignments:
            self.assertIn(assignment.destination_id, destination_ids)
            self.assertIn(assignment.carton_config_id, config_ids)
        for row in detail.destinations + detail.carton_configurations:
            self.assertEqual(row.quote_request_id, detail.id)

    async def test_display_order_follows_input_position(self) -> None:
        detail = await create_quote_request(
            self.repos,
            request=request_draft(),
            destinations=[DestinationDraft(custom_address=f'Dock {n}') for n in range(4)],
            carton_configs=[],
            assignments=[],
        )
        self.assertEqual([row.display_order for row in detail.destinations], [0, 1, 2, 3])
        self.assertEqual([row.custom_address for row in detail.destinations], ['Dock 0', 'Dock 1', 'Dock 2', 'Dock 3'])

    async def test_created_graph_already_carries_derived_totals(self) -> None:
        detail = await create_quote_request(self.repos, **two_config_scenario())

        destination = detail.destinations[0]
        self.assertEqual(destination.total_cartons, 14)
        self.assertEqual(destination.gross_weight, 40)
        self.assertEqual(destination.volumetric_weight, 39)
        self.assertEqual(destination.chargeable_weight, 40)
        self.assertEqual(detail.request.total_carton_count, 14)
        self.assertEqual(detail.request.total_chargeable_weight, 40)
        self.assertEqual(detail.request.total_cbm, 39 / 167)

    async def test_destination_without_assignments_has_zero_totals(self) -> None:
        detail = await create_quote_request(
            self.repos,
            request=request_draft(),
            destinations=[DestinationDraft(custom_address='Dock 1')],
            carton_configs=[config_draft('A', 2, 1.5)],
            assignments=[],
        )
        destination = detail.destinations[0]
        self.assertEqual(destination.total_cartons, 0)
        self.assertEqual(destination.gross_weight, 0)
        self.assertEqual(destination.volumetric_weight, 0)
        self.assertEqual(destination.chargeable_weight, 0)

    async def test_round_trip_returns_same_children(self) -> None:
        created = await create_quote_request(self.repos, **two_config_scenario())

        loaded = await get_quote_request(self.repos, created.id)

        self.assertEqual(loaded, created)
        self.assertEqual(loaded.to_record(), created.to_record())

    async def test_children_are_written_before_the_request(self) -> None:
        written: list[str] = []
        original_replace = self.store.replace

        async def recording_replace(entity_type, records):
            written.append(entity_type)
            await original_replace(entity_type, records)

        with patch.object(self.store, 'replace', side_effect=recording_replace):
            await create_quote_request(self.repos, **two_config_scenario())

        self.assertEqual(written, ['carton_configs', 'destinations', 'carton_assignments', 'quote_requests'])

    async def test_out_of_range_destination_index_rejects_before_any_write(self) -> None:
        scenario = two_config_scenario()
        scenario['assignments'] = [AssignmentSpec(destination_index=1, config_index=0, quantity=3)]

        with self.assertRaises(ReferentialInconsistencyError):
            await create_quote_request(self.repos, **scenario)
        self.assertEqual(self.store.blobs, {})

    async def test_negative_config_index_is_not_treated_as_python_indexing(self) -> None:
        scenario = two_config_scenario()
        scenario['assignments'] = [AssignmentSpec(destination_index=0, config_index=-1, quantity=3)]

        with self.assertRaises(ReferentialInconsistencyError):
            await create_quote_request(self.repos, **scenario)
        self.assertEqual(self.store.blobs, {})

    async def test_missing_required_field_rejects_before_any_write(self) -> None:
        scenario = two_config_scenario()
        scenario['request'] = request_draft(customer_id='  ')

        with self.assertRaises(ValueError):
            await create_quote_request(self.repos, **scenario)
        self.assertEqual(self.store.blobs, {})


class QuoteRequestReadAndUpdateTests(unittest.IsolatedAsyncioTestCase):
    async def asyncSetUp(self) -> None:
        self.store, self.repos = memory_repositories()
        self.first = await create_quote_request(self.repos, **two_config_scenario())
        second = two_config_scenario()
        second['request'] = request_draft('cust-2')
        self.second = await create_quote_request(self.repos, **second)

    async def test_join_attaches_only_matching_children(self) -> None:
        details = await list_quote_requests(self.repos)

        self.assertEqual([detail.id for detail in details], [self.first.id, self.second.id])
        for detail in details:
            self.assertTrue(all(row.quote_request_id == detail.id for row in detail.destinations))
            self.assertTrue(all(row.quote_request_id == detail.id for row in detail.carton_configurations))
            self.assertEqual(len(detail.carton_configurations), 2)

    async def test_customer_filter(self) -> None:
        details = await list_quote_requests_for_customer(self.repos, 'cust-2')
        self.assertEqual([detail.id for detail in details], [self.second.id])

    async def test_unknown_id_reads_as_none(self) -> None:
        self.assertIsNone(await get_quote_request(self.repos, 'qr-unknown'))

    async def test_status_update(self) -> None:
        updated = await update_quote_request(self.repos, self.first.id, {'status': 'Quoted'})

        self.assertEqual(updated.status, QuoteRequestStatus.QUOTED)
        stored = await self.repos.quote_requests.get(self.first.id)
        self.assertEqual(stored.status, QuoteRequestStatus.QUOTED)
        self.assertEqual(stored.total_carton_count, 14)

    async def test_derived_totals_cannot_be_hand_edited(self) -> None:
        with self.assertRaises(ValueError):
            await update_quote_request(self.repos, self.first.id, {'total_gross_weight': 1})

    async def test_update_of_unknown_request_writes_nothing(self) -> None:
        before = dict(self.store.blobs)
        self.assertIsNone(await update_quote_request(self.repos, 'qr-unknown', {'status': 'Quoted'}))
        self.assertEqual(self.store.blobs, before)


class AssignmentEditTests(unittest.IsolatedAsyncioTestCase):
    async def asyncSetUp(self) -> None:
        self.store, self.repos = memory_repositories()
        self.detail = await create_quote_request(self.repos, **two_config_scenario())
        self.destination = self.detail.destinations[0]
        self.config_a, self.config_b = self.detail.carton_configurations

    async def test_added_assignment_cascades_to_request(self) -> None:
        await add_assignment(
            self.repos,
            destination_id=self.destination.id,
            carton_config_id=self.config_b.id,
            quantity=2,
        )

        destination = await self.repos.destinations.get(self.destination.id)
        self.assertEqual(destination.total_cartons, 16)
        self.assertEqual(destination.gross_weight, 50)
        self.assertEqual(destination.volumetric_weight, 51)
        self.assertEqual(destination.chargeable_weight, 51)

        request = await self.repos.quote_requests.get(self.detail.id)
        self.assertEqual(request.total_carton_count, 16)
        self.assertEqual(request.total_chargeable_weight, 51)
        self.assertEqual(request.total_cbm, 51 / 167)
        self.assertEqual(len(await list_assignments_for_destination(self.repos, self.destination.id)), 3)

    async def test_quantity_change_recomputes(self) -> None:
        assignment = (await list_assignments_for_destination(self.repos, self.destination.id))[0]

        updated = await set_assignment_quantity(self.repos, assignment.id, 0)

        self.assertEqual(updated.quantity, 0)
        destination = await self.repos.destinations.get(self.destination.id)
        self.assertEqual(destination.total_cartons, 4)
        self.assertEqual(destination.gross_weight, 20)
        self.assertEqual(destination.volumetric_weight, 24)
        self.assertEqual(destination.chargeable_weight, 24)

    async def test_quantity_change_on_unknown_assignment_is_none(self) -> None:
        self.assertIsNone(await set_assignment_quantity(self.repos, 'ca-unknown', 3))

    async def test_configuration_from_another_request_is_rejected(self) -> None:
        other = await create_quote_request(self.repos, **two_config_scenario())
        before = dict(self.store.blobs)

        with self.assertRaises(ReferentialInconsistencyError):
            await add_assignment(
                self.repos,
                destination_id=self.destination.id,
                carton_config_id=other.carton_configurations[0].id,
                quantity=1,
            )
        self.assertEqual(self.store.blobs, before)

    async def test_unknown_destination_is_rejected(self) -> None:
        with self.assertRaises(ReferentialInconsistencyError):
            await add_assignment(self.repos, destination_id='dest-x', carton_config_id=self.config_a.id, quantity=1)

    async def test_negative_quantity_is_rejected(self) -> None:
        with self.assertRaises(ValueError):
            await add_assignment(
                self.repos,
                destination_id=self.destination.id,
                carton_config_id=self.config_a.id,
                quantity=-1,
            )


if __name__ == '__main__':
    unittest.main()
