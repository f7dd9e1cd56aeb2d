"""Reference-total estimation and derived engagement metrics.

Reference totals exist for states only. Below the state, a node's total is
estimated as the state's reference total scaled by the node's share of the
state's observed members. The estimate leans toward areas with more platform
activity and is reported with ``isEstimated = true``.
"""

from pydantic import BaseModel, ConfigDict, NonNegativeInt
from pydantic.alias_generators import to_camel

from app.services.locations import LocationLevel, LocationNode
from app.services.member_metrics import ObservedAggregate


class EstimatedMetrics(BaseModel):
    """Metrics derived from observed counts and an actual or estimated reference total."""

    model_config = ConfigDict(
        frozen=True, alias_generator=to_camel, populate_by_name=True
    )

    reference_total: NonNegativeInt
    unconverted: NonNegativeInt
    conversion_rate: float
    status_completion_rate: float
    is_estimated: bool


def _percentage(part: int, whole: int) -> float:
    if whole <= 0:
        return 0.0
    return round(part / whole * 100, 2)


def proportional_share(total: int, part: int, whole: int) -> int:
    """``round(total * part / max(1, whole))`` with halves rounded up, in integers."""
    denominator = max(1, whole)
    return (2 * total * part + denominator) // (2 * denominator)


class EstimationEngine:
    """Stateless estimator; safe to share across requests."""

    def derive(
        self, observed: ObservedAggregate, reference_total: int, is_estimated: bool
    ) -> EstimatedMetrics:
        # conversion_rate is left unclamped; > 100 flags an under-estimated reference
        return EstimatedMetrics(
            reference_total=reference_total,
            unconverted=max(0, reference_total - observed.total_members),
            conversion_rate=_percentage(observed.total_members, reference_total),
            status_completion_rate=_percentage(
                observed.members_with_status, observed.total_members
            ),
            is_estimated=is_estimated,
        )

    def estimate(
        self,
        node: LocationNode,
        observed: ObservedAggregate,
        state_observed: ObservedAggregate,
        state_reference: int,
    ) -> EstimatedMetrics:
        """
        Metrics for ``node``.

        The ratio always uses the state ancestor's observed total as the
        denominator, never an intermediate LGA or ward.
        """
        if node.level == LocationLevel.STATE:
            return self.derive(observed, state_reference, is_estimated=False)

        reference_total = proportional_share(
            state_reference, observed.total_members, state_observed.total_members
        )
        return self.derive(observed, reference_total, is_estimated=True)

    def national(self, observed: ObservedAggregate, reference_total: int) -> EstimatedMetrics:
        """Country-wide rollup: summed state aggregates against the national reference total."""
        return self.derive(observed, reference_total, is_estimated=False)
