"""Unit tests for reference-total estimation."""

import pytest

from app.services.estimation import EstimationEngine, proportional_share
from app.services.locations import LocationNode
from app.services.member_metrics import EMPTY_AGGREGATE, ObservedAggregate


def _observed(total, with_status=0):
    return ObservedAggregate(
        total_members=total,
        members_with_status=with_status,
        members_without_status=total - with_status,
    )


@pytest.fixture
def engine():
    return EstimationEngine()


class TestProportionalShare:
    def test_rounds_half_up(self):
        assert proportional_share(10, 1, 4) == 3  # 2.5
        assert proportional_share(10, 1, 3) == 3  # 3.33
        assert proportional_share(10, 2, 3) == 7  # 6.67

    def test_zero_whole_uses_one(self):
        assert proportional_share(100, 0, 0) == 0

    def test_large_totals_are_exact(self):
        assert proportional_share(7060195, 40, 50) == 5648156
        assert proportional_share(7060195, 10, 50) == 1412039


class TestEstimationEngine:
    def test_state_uses_actual_reference(self, engine):
        node = LocationNode.from_path(("Lagos",))

        metrics = engine.estimate(node, _observed(50, 20), _observed(50, 20), 1000)

        assert metrics.reference_total == 1000
        assert metrics.is_estimated is False
        assert metrics.unconverted == 950
        assert metrics.conversion_rate == 5.0
        assert metrics.status_completion_rate == 40.0

    def test_lower_levels_scale_by_state_share(self, engine):
        ward = LocationNode.from_path(("Lagos", "Ikeja", "Ward 3"))

        metrics = engine.estimate(ward, _observed(10), _observed(40), 1000)

        assert metrics.reference_total == 250
        assert metrics.is_estimated is True
        assert metrics.conversion_rate == 4.0

    def test_empty_state_gives_zero_estimates(self, engine):
        lga = LocationNode.from_path(("Kano", "Dala"))

        metrics = engine.estimate(lga, EMPTY_AGGREGATE, EMPTY_AGGREGATE, 5921370)

        assert metrics.reference_total == 0
        assert metrics.unconverted == 0
        assert metrics.conversion_rate == 0.0
        assert metrics.status_completion_rate == 0.0

    def test_conversion_rate_is_not_clamped(self, engine):
        metrics = engine.derive(_observed(30), reference_total=20, is_estimated=True)

        assert metrics.conversion_rate == 150.0
        assert metrics.unconverted == 0

    def test_rates_rounded_to_two_places(self, engine):
        metrics = engine.derive(_observed(3, 1), reference_total=7, is_estimated=False)

        assert metrics.conversion_rate == 42.86
        assert metrics.status_completion_rate == 33.33

    def test_national(self, engine):
        metrics = engine.national(_observed(10, 5), 400)

        assert metrics.reference_total == 400
        assert metrics.conversion_rate == 2.5
        assert metrics.is_estimated is False

    def test_camel_case_dump(self, engine):
        data = engine.derive(_observed(1), 10, True).model_dump(by_alias=True)

        assert set(data) == {
            "referenceTotal",
            "unconverted",
            "conversionRate",
            "statusCompletionRate",
            "isEstimated",
        }
