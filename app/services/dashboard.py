"""Role-scoped voter-engagement dashboard.

Combines observed member aggregates with INEC reference totals for the
subtree a viewer is allowed to see: summary metrics for the viewer's root
plus one row per child location.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict

from app.core.logging_config import get_logger
from app.services.estimation import EstimatedMetrics, EstimationEngine
from app.services.locations import (
    LocationLevel,
    LocationNode,
    breadcrumbs,
    normalize_location_name,
    path_slug,
)
from app.services.member_metrics import (
    EMPTY_AGGREGATE,
    LevelAggregates,
    LocationTree,
    ObservedAggregate,
    ObservedMetricsAggregator,
    aggregate_for,
    select_under,
)
from app.services.placeholders import FixedPlaceholderPolicy, PlaceholderPolicy
from app.services.reference_registry import ReferenceRegistry
from app.services.scope import ViewerScope

logger = get_logger(__name__)

_PATH_FIELDS = ("stateName", "lgaName", "wardName", "pollingUnitName")


class NodeStats(BaseModel):
    """One dashboard row: a location, its observed counts and derived metrics."""

    model_config = ConfigDict(frozen=True)

    node: LocationNode | None  # None for the national rollup
    observed: ObservedAggregate
    metrics: EstimatedMetrics
    is_placeholder: bool = False

    @property
    def name(self) -> str:
        return self.node.name if self.node else "National Overview"

    def to_dict(self) -> dict[str, Any]:
        if self.node is None:
            data: dict[str, Any] = {
                "id": "national",
                "name": self.name,
                "level": "national",
                "parentId": None,
            }
        else:
            data = {
                "id": self.node.id,
                "pathId": self.node.path_id,
                "name": self.node.name,
                "level": self.node.level.value,
                "parentId": path_slug(self.node.parent_path) or None,
            }
            for field, value in zip(_PATH_FIELDS, self.node.path):
                data[field] = value

        data.update(self.observed.model_dump(by_alias=True))
        data.update(self.metrics.model_dump(by_alias=True))
        data["inecRegisteredVoters"] = self.metrics.reference_total
        data["isPlaceholder"] = self.is_placeholder
        return data


class DashboardView(BaseModel):
    """Assembled dashboard for one scope."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    scope: ViewerScope
    root: NodeStats
    children: list[NodeStats]
    hierarchy: LocationTree

    @property
    def uses_placeholders(self) -> bool:
        return any(child.is_placeholder for child in self.children)

    def to_dict(self) -> dict[str, Any]:
        return {
            "level": self.scope.view_level,
            "childLevel": self.scope.child_level.value if self.scope.child_level else None,
            "rootStats": self.root.to_dict(),
            "children": [child.to_dict() for child in self.children],
            "breadcrumbs": breadcrumbs(self.scope.root_path),
            "hierarchicalData": self.hierarchy.to_dict(),
        }


class DashboardAssembler:
    """
    Builds ``DashboardView`` objects.

    Per request, the four level queries for the relevant state subtree (the
    whole country for a national view) run concurrently; everything else is
    computed in memory. Either the full merge succeeds or the error propagates.
    """

    def __init__(
        self,
        aggregator: ObservedMetricsAggregator,
        registry: ReferenceRegistry,
        engine: EstimationEngine | None = None,
        placeholder_policy: PlaceholderPolicy | None = None,
    ):
        self.aggregator = aggregator
        self.registry = registry
        self.engine = engine or EstimationEngine()
        self.placeholder_policy = placeholder_policy or FixedPlaceholderPolicy()

    async def assemble(self, scope: ViewerScope) -> DashboardView:
        # Aliased state spellings ("FCT", "Abuja") resolve to the table name
        scope = scope.model_copy(
            update={"root_path": self.registry.canonical_path(scope.root_path)}
        )
        fetched = await self.aggregator.fetch_all_levels(
            self.registry.path_filter(scope.root_path)[:1]
        )
        levels = {level: self._canonical_states(rows) for level, rows in fetched.items()}
        hierarchy = self.aggregator.build_tree(self._within_scope(levels, scope.root_path))

        if scope.is_national:
            root, children = self._national(levels[LocationLevel.STATE])
        else:
            root, children = self._subtree(scope, levels)

        logger.debug(
            f"Assembled {scope.view_level} dashboard for {list(scope.root_path) or 'Nigeria'}: "
            f"{len(children)} child rows, {root.observed.total_members} members"
        )
        return DashboardView(
            scope=scope, root=root, children=children, hierarchy=hierarchy
        )

    def _canonical_states(self, rows: LevelAggregates) -> LevelAggregates:
        """Rows keyed by the registry's state name; alias spellings are summed."""
        result: LevelAggregates = {}
        for path, observed in rows.items():
            key = self.registry.canonical_path(path)
            result[key] = result[key] + observed if key in result else observed
        return result

    @staticmethod
    def _within_scope(
        levels: dict[LocationLevel, LevelAggregates], root_path: tuple[str, ...]
    ) -> dict[LocationLevel, LevelAggregates]:
        """Rows on the root's ancestor chain or underneath the root."""
        return {
            level: select_under(rows, root_path[: level.depth])
            for level, rows in levels.items()
        }

    def _national(self, state_rows: LevelAggregates) -> tuple[NodeStats, list[NodeStats]]:
        # Every state in the reference table is listed, observed or not
        merged: dict[str, ObservedAggregate] = {
            state: EMPTY_AGGREGATE for state in self.registry.states()
        }
        for (state,), observed in state_rows.items():
            merged[state] = merged.get(state, EMPTY_AGGREGATE) + observed

        children = []
        for state in sorted(merged):
            node = LocationNode(level=LocationLevel.STATE, name=state)
            observed = merged[state]
            metrics = self.engine.estimate(
                node, observed, observed, self.registry.total_for(state)
            )
            children.append(NodeStats(node=node, observed=observed, metrics=metrics))

        national_observed = ObservedAggregate.sum(child.observed for child in children)
        root = NodeStats(
            node=None,
            observed=national_observed,
            metrics=self.engine.national(national_observed, self.registry.national_total()),
        )
        return root, children

    def _subtree(
        self, scope: ViewerScope, levels: dict[LocationLevel, LevelAggregates]
    ) -> tuple[NodeStats, list[NodeStats]]:
        root_path = scope.root_path
        state_observed = aggregate_for(levels[LocationLevel.STATE], root_path[:1])
        state_reference = self.registry.total_for(root_path[0])

        root_node = LocationNode.from_path(root_path)
        root_observed = aggregate_for(levels[scope.root_level], root_path)
        root = NodeStats(
            node=root_node,
            observed=root_observed,
            metrics=self.engine.estimate(
                root_node, root_observed, state_observed, state_reference
            ),
        )

        # Polling units are leaves
        if scope.child_level is None:
            return root, []

        child_rows = select_under(levels[scope.child_level], root_path)
        if not child_rows:
            logger.info(
                f"No observed {scope.child_level.value} data under {list(root_path)}; "
                f"using {type(self.placeholder_policy).__name__}"
            )
            return root, self._placeholders(scope, root)

        # Spelling variants of one child ("Ikeja", "ikeja") are merged
        merged: dict[str, tuple[str, ObservedAggregate]] = {}
        for path, observed in child_rows.items():
            key = normalize_location_name(path[-1])
            if key in merged:
                name, existing = merged[key]
                merged[key] = (name, existing + observed)
            else:
                merged[key] = (path[-1], observed)

        children = []
        for name, observed in sorted(merged.values(), key=lambda item: item[0]):
            node = root_node.child(name)
            metrics = self.engine.estimate(node, observed, state_observed, state_reference)
            children.append(NodeStats(node=node, observed=observed, metrics=metrics))
        return root, children

    def _placeholders(self, scope: ViewerScope, root: NodeStats) -> list[NodeStats]:
        children = []
        for placeholder in self.placeholder_policy.children(
            scope.root_path, scope.child_level, root.metrics.reference_total
        ):
            metrics = self.engine.derive(
                EMPTY_AGGREGATE, placeholder.reference_total, is_estimated=True
            )
            children.append(
                NodeStats(
                    node=placeholder.node,
                    observed=EMPTY_AGGREGATE,
                    metrics=metrics,
                    is_placeholder=True,
                )
            )
        return children
