from __future__ import annotations

import unittest
from dataclasses import replace

from freight_portal.records import CartonAssignment, CartonConfiguration, DestinationDraft, QuoteDestination
from freight_portal.services.aggregation_service import (
    CBM_DIVISOR,
    fold_destination_totals,
    fold_request_totals,
    recompute_destination_totals,
    recompute_quote_request_totals,
)
from freight_portal.services.quote_request_service import create_quote_request
from quote_fixtures import memory_repositories, request_draft, two_config_scenario


def _config(config_id: str, carton_weight: float, volumetric_weight: float) -> CartonConfiguration:
    return CartonConfiguration(
        id=config_id,
        quote_request_id='qr-1',
        nickname=config_id,
        carton_weight=carton_weight,
        length=30,
        width=20,
        height=15,
        dimension_unit='cm',
        volumetric_weight=volumetric_weight,
    )


class FoldTests(unittest.TestCase):
    def test_destination_fold_matches_two_config_scenario(self) -> None:
        configs = {'cc-a': _config('cc-a', 2, 1.5), 'cc-b': _config('cc-b', 5, 6)}
        assignments = [
            CartonAssignment(id='ca-1', destination_id='dest-1', carton_config_id='cc-a', quantity=10),
            CartonAssignment(id='ca-2', destination_id='dest-1', carton_config_id='cc-b', quantity=4),
        ]

        totals = fold_destination_totals(assignments, configs)

        self.assertEqual(totals.total_cartons, 14)
        self.assertEqual(totals.gross_weight, 40)
        self.assertEqual(totals.volumetric_weight, 39)
        self.assertEqual(totals.chargeable_weight, 40)

    def test_volumetric_weight_wins_when_heavier(self) -> None:
        configs = {'cc-a': _config('cc-a', 1, 4.5)}
        assignments = [CartonAssignment(id='ca-1', destination_id='dest-1', carton_config_id='cc-a', quantity=2)]

        totals = fold_destination_totals(assignments, configs)

        self.assertEqual(totals.gross_weight, 2)
        self.assertEqual(totals.chargeable_weight, 9)

    def test_no_assignments_folds_to_zero(self) -> None:
        totals = fold_destination_totals([], {})
        self.assertEqual(
            (totals.total_cartons, totals.gross_weight, totals.volumetric_weight, totals.chargeable_weight),
            (0, 0, 0, 0),
        )

    def test_unknown_configuration_still_counts_cartons_but_not_weight(self) -> None:
        configs = {'cc-a': _config('cc-a', 2, 1.5)}
        assignments = [
            CartonAssignment(id='ca-1', destination_id='dest-1', carton_config_id='cc-gone', quantity=3),
            CartonAssignment(id='ca-2', destination_id='dest-1', carton_config_id='cc-a', quantity=4),
        ]
        with self.assertLogs('freight_portal.services.aggregation_service', level='WARNING'):
            totals = fold_destination_totals(assignments, configs)
        self.assertEqual(totals.total_cartons, 7)
        self.assertEqual(totals.gross_weight, 8)
        self.assertEqual(totals.chargeable_weight, 8)

    def test_request_fold_sums_destinations_and_derives_cbm(self) -> None:
        destinations = [
            QuoteDestination(id='dest-1', quote_request_id='qr-1', total_cartons=14, gross_weight=40, volumetric_weight=39, chargeable_weight=40),
            QuoteDestination(id='dest-2', quote_request_id='qr-1', total_cartons=3, gross_weight=6, volumetric_weight=10, chargeable_weight=10),
        ]

        totals = fold_request_totals(destinations)

        self.assertEqual(totals.total_carton_count, 17)
        self.assertEqual(totals.total_gross_weight, 46)
        self.assertEqual(totals.total_volumetric_weight, 49)
        self.assertEqual(totals.total_chargeable_weight, 50)
        self.assertEqual(totals.total_cbm, 49 / CBM_DIVISOR)


class RecomputeCascadeTests(unittest.IsolatedAsyncioTestCase):
    async def asyncSetUp(self) -> None:
        self.store, self.repos = memory_repositories()
        self.detail = await create_quote_request(self.repos, **two_config_scenario())
        self.destination_id = self.detail.destinations[0].id

    async def _zero_out_stored_totals(self) -> None:
        destinations = await self.repos.destinations.list()
        await self.repos.destinations.replace_all(
            [replace(row, total_cartons=0, gross_weight=0.0, volumetric_weight=0.0, chargeable_weight=0.0) for row in destinations]
        )
        requests = await self.repos.quote_requests.list()
        await self.repos.quote_requests.replace_all(
            [
                replace(
                    row,
                    total_carton_count=0,
                    total_gross_weight=0.0,
                    total_volumetric_weight=0.0,
                    total_chargeable_weight=0.0,
                    total_cbm=0.0,
                )
                for row in requests
            ]
        )

    async def test_recompute_restores_destination_and_request_totals(self) -> None:
        await self._zero_out_stored_totals()

        destination = await recompute_destination_totals(self.repos, self.destination_id)

        self.assertEqual(destination.total_cartons, 14)
        self.assertEqual(destination.gross_weight, 40)
        self.assertEqual(destination.volumetric_weight, 39)
        self.assertEqual(destination.chargeable_weight, 40)

        request = await self.repos.quote_requests.get(self.detail.id)
        self.assertEqual(request.total_carton_count, 14)
        self.assertEqual(request.total_gross_weight, 40)
        self.assertEqual(request.total_volumetric_weight, 39)
        self.assertEqual(request.total_chargeable_weight, 40)
        self.assertAlmostEqual(request.total_cbm, 0.233533, places=6)
        self.assertEqual(request.total_cbm, request.total_volumetric_weight / 167)

    async def test_second_pass_is_byte_identical(self) -> None:
        await self._zero_out_stored_totals()
        first = await recompute_destination_totals(self.repos, self.destination_id)
        blobs_after_first = dict(self.store.blobs)

        second = await recompute_destination_totals(self.repos, self.destination_id)

        self.assertEqual(first, second)
        self.assertEqual(self.store.blobs, blobs_after_first)

    async def test_missing_destination_returns_none(self) -> None:
        self.assertIsNone(await recompute_destination_totals(self.repos, 'dest-missing'))

    async def test_missing_request_returns_none(self) -> None:
        self.assertIsNone(await recompute_quote_request_totals(self.repos, 'qr-missing'))

    async def test_request_totals_only_count_its_own_destinations(self) -> None:
        other = await create_quote_request(
            self.repos,
            request=request_draft('cust-2'),
            destinations=[DestinationDraft(custom_address='Dock 4')],
            carton_configs=[],
            assignments=[],
        )

        await recompute_quote_request_totals(self.repos, self.detail.id)
        request = await recompute_quote_request_totals(self.repos, other.id)

        self.assertEqual(request.total_carton_count, 0)
        self.assertEqual(request.total_chargeable_weight, 0)
        self.assertEqual((await self.repos.quote_requests.get(self.detail.id)).total_carton_count, 14)


if __name__ == '__main__':
    unittest.main()
