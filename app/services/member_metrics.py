"""Observed member metrics, grouped by voting location.

One grouped query per hierarchy level runs over the ``users`` table. Members
with a blank location key anywhere on the grouping path are left out of that
level: partial location data lowers granularity instead of landing in a wrong
bucket.
"""

import asyncio
from collections.abc import Iterable, Mapping, Sequence
from typing import Any, Protocol

import asyncpg
from pydantic import BaseModel, ConfigDict, Field, NonNegativeInt, model_validator
from pydantic.alias_generators import to_camel

from app.core.exceptions import DataAccessError
from app.core.logging_config import get_logger
from app.services.locations import (
    LEVEL_ORDER,
    LocationLevel,
    LocationNode,
    is_blank,
    names_match,
    normalize_location_name,
    path_within,
)

logger = get_logger(__name__)

LEVEL_COLUMNS = {
    LocationLevel.STATE: '"votingState"',
    LocationLevel.LGA: '"votingLGA"',
    LocationLevel.WARD: '"votingWard"',
    LocationLevel.POLLING_UNIT: '"votingPU"',
}

LEVEL_KEYS = {
    LocationLevel.STATE: "state",
    LocationLevel.LGA: "lga",
    LocationLevel.WARD: "ward",
    LocationLevel.POLLING_UNIT: "polling_unit",
}

# Keys of the raw hierarchy dict, one per level below state
CHILD_COLLECTION_KEYS = {
    LocationLevel.STATE: "lgas",
    LocationLevel.LGA: "wards",
    LocationLevel.WARD: "pollingUnits",
}


class ObservedAggregate(BaseModel):
    """Member counts observed for one location node."""

    model_config = ConfigDict(
        frozen=True, alias_generator=to_camel, populate_by_name=True
    )

    total_members: NonNegativeInt = 0
    members_with_status: NonNegativeInt = 0
    members_without_status: NonNegativeInt = 0
    members_with_contact_a: NonNegativeInt = 0
    members_with_contact_b: NonNegativeInt = 0

    @model_validator(mode="after")
    def _check_counts(self) -> "ObservedAggregate":
        if self.members_with_status + self.members_without_status != self.total_members:
            raise ValueError(
                "members_with_status + members_without_status must equal total_members"
            )
        if max(self.members_with_contact_a, self.members_with_contact_b) > self.total_members:
            raise ValueError("contact counts cannot exceed total_members")
        return self

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "ObservedAggregate":
        return cls(
            total_members=int(row["total_members"] or 0),
            members_with_status=int(row["members_with_status"] or 0),
            members_without_status=int(row["members_without_status"] or 0),
            members_with_contact_a=int(row["members_with_contact_a"] or 0),
            members_with_contact_b=int(row["members_with_contact_b"] or 0),
        )

    @classmethod
    def sum(cls, aggregates: Iterable["ObservedAggregate"]) -> "ObservedAggregate":
        total = cls()
        for aggregate in aggregates:
            total = total + aggregate
        return total

    def __add__(self, other: "ObservedAggregate") -> "ObservedAggregate":
        return ObservedAggregate(
            total_members=self.total_members + other.total_members,
            members_with_status=self.members_with_status + other.members_with_status,
            members_without_status=self.members_without_status
            + other.members_without_status,
            members_with_contact_a=self.members_with_contact_a
            + other.members_with_contact_a,
            members_with_contact_b=self.members_with_contact_b
            + other.members_with_contact_b,
        )


EMPTY_AGGREGATE = ObservedAggregate()

LevelAggregates = dict[tuple[str, ...], ObservedAggregate]

# One location name, or several spellings accepted for the same node
NameFilter = str | Sequence[str]


# ============================================
# RECORD STORE
# ============================================


def normalized_column(column: str) -> str:
    """SQL expression matching ``normalize_location_name`` in Python."""
    return f"btrim(regexp_replace(lower(btrim({column})), '[[:space:]_-]+', '-', 'g'), '-')"


def name_keys(name: NameFilter) -> list[str]:
    """Normalized keys for a name filter, as bound to ``= ANY($n::text[])``."""
    names = [name] if isinstance(name, str) else list(name)
    return sorted({normalize_location_name(value) for value in names})


def build_level_query(
    level: LocationLevel, ancestors: Sequence[NameFilter] = ()
) -> tuple[str, list[list[str]]]:
    """
    Build the grouped count query for one level.

    Groups by the level's column plus every ancestor column. ``ancestors``
    restricts the result to a subtree (state, state+lga, ...); names are
    compared in normalized form so "aba-north" matches "Aba North", and an
    ancestor may list several accepted spellings (e.g. a state and its aliases).
    """
    if len(ancestors) > level.depth:
        raise ValueError(
            f"{level.label} level accepts at most {level.depth} ancestor names"
        )

    path_levels = LEVEL_ORDER[: level.depth]
    select_keys = ",\n            ".join(
        f"btrim({LEVEL_COLUMNS[lvl]}) AS {LEVEL_KEYS[lvl]}" for lvl in path_levels
    )
    conditions = [
        f"{LEVEL_COLUMNS[lvl]} IS NOT NULL AND btrim({LEVEL_COLUMNS[lvl]}) <> ''"
        for lvl in path_levels
    ]
    params: list[list[str]] = []
    for lvl, name in zip(path_levels, ancestors):
        params.append(name_keys(name))
        conditions.append(
            f"{normalized_column(LEVEL_COLUMNS[lvl])} = ANY(${len(params)}::text[])"
        )

    group_by = ", ".join(f"btrim({LEVEL_COLUMNS[lvl]})" for lvl in path_levels)
    where = "\n          AND ".join(conditions)

    query = f"""
        SELECT
            {select_keys},
            COUNT(*) AS total_members,
            COUNT(*) FILTER (WHERE "isVoter" = 'Yes') AS members_with_status,
            COUNT(*) FILTER (WHERE "isVoter" IS DISTINCT FROM 'Yes') AS members_without_status,
            COUNT(*) FILTER (WHERE phone IS NOT NULL AND btrim(phone) <> '') AS members_with_contact_a,
            COUNT(*) FILTER (WHERE email IS NOT NULL AND btrim(email) <> '') AS members_with_contact_b
        FROM users
        WHERE {where}
        GROUP BY {group_by}
        ORDER BY {group_by}
    """
    return query, params


class MemberStore(Protocol):
    """Read-only grouped counts over member records."""

    async def group_counts(
        self, level: LocationLevel, ancestors: Sequence[NameFilter] = ()
    ) -> list[Mapping[str, Any]]: ...


class PostgresMemberStore:
    """Member store backed by the ``users`` table.

    Each call acquires its own pooled connection so that level queries of one
    request can run at the same time. Waiting for a connection is bounded by
    ``acquire_timeout``.
    """

    def __init__(self, pool: asyncpg.Pool, acquire_timeout: float | None = None):
        self.pool = pool
        self.acquire_timeout = acquire_timeout

    async def group_counts(
        self, level: LocationLevel, ancestors: Sequence[NameFilter] = ()
    ) -> list[Mapping[str, Any]]:
        query, params = build_level_query(level, ancestors)
        try:
            async with self.pool.acquire(timeout=self.acquire_timeout) as conn:
                return await conn.fetch(query, *params)
        except TimeoutError as e:
            logger.error(f"Timed out waiting for a connection for the {level.value} query")
            raise DataAccessError() from e
        except (asyncpg.PostgresError, asyncpg.InterfaceError, OSError) as e:
            logger.error(f"Grouped {level.value} query failed: {e}", exc_info=True)
            raise DataAccessError() from e


# ============================================
# AGGREGATION
# ============================================


class ObservedMetricsAggregator:
    """Turns grouped rows into per-node aggregates and a location tree."""

    def __init__(self, store: MemberStore):
        self.store = store

    async def fetch_level(
        self, level: LocationLevel, ancestors: Sequence[NameFilter] = ()
    ) -> LevelAggregates:
        """
        Aggregates for every node at ``level`` under ``ancestors``.

        Keys are full paths, e.g. ``("Lagos", "Ikeja")`` at LGA level. An
        empty result means no observed members, not an error.
        """
        rows = await self.store.group_counts(level, tuple(ancestors))
        path_keys = [LEVEL_KEYS[lvl] for lvl in LEVEL_ORDER[: level.depth]]

        result: LevelAggregates = {}
        skipped = 0
        for row in rows:
            values = [row[key] for key in path_keys]
            if any(is_blank(value) for value in values):
                skipped += 1
                continue
            path = tuple(str(value).strip() for value in values)
            aggregate = ObservedAggregate.from_row(row)
            result[path] = result[path] + aggregate if path in result else aggregate

        if skipped:
            logger.debug(f"Skipped {skipped} {level.value} rows with blank location keys")
        logger.debug(
            f"Fetched {len(result)} {level.value} aggregates under {list(ancestors) or 'all'}"
        )
        return result

    async def fetch_levels(
        self, levels: Iterable[LocationLevel], ancestors: Sequence[NameFilter] = ()
    ) -> dict[LocationLevel, LevelAggregates]:
        """Fetch several levels concurrently; any failure fails the whole call."""
        levels = list(levels)
        results = await asyncio.gather(
            *(self.fetch_level(level, ancestors[: level.depth]) for level in levels)
        )
        return dict(zip(levels, results))

    async def fetch_all_levels(
        self, ancestors: Sequence[NameFilter] = ()
    ) -> dict[LocationLevel, LevelAggregates]:
        return await self.fetch_levels(LEVEL_ORDER, ancestors)

    @staticmethod
    def build_tree(levels: Mapping[LocationLevel, LevelAggregates]) -> "LocationTree":
        tree = LocationTree()
        for level in LEVEL_ORDER:
            for path, aggregate in levels.get(level, {}).items():
                tree.insert(path, aggregate)
        return tree


def select_under(
    aggregates: LevelAggregates, root_path: Sequence[str]
) -> LevelAggregates:
    """Entries of ``aggregates`` whose path lies under ``root_path``."""
    root = tuple(root_path)
    return {
        path: aggregate
        for path, aggregate in aggregates.items()
        if path_within(path, root)
    }


def aggregate_for(
    aggregates: LevelAggregates, path: Sequence[str]
) -> ObservedAggregate:
    """Aggregate at exactly ``path``; spelling variants of the same node are summed."""
    path = tuple(path)
    return ObservedAggregate.sum(
        aggregate
        for key, aggregate in aggregates.items()
        if len(key) == len(path) and all(names_match(a, b) for a, b in zip(key, path))
    )


# ============================================
# RAW HIERARCHY
# ============================================


class LocationTreeNode(BaseModel):
    """A node of the raw observed tree with its children by name."""

    node: LocationNode
    observed: ObservedAggregate = EMPTY_AGGREGATE
    children: dict[str, "LocationTreeNode"] = Field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = self.observed.model_dump(by_alias=True)
        collection = CHILD_COLLECTION_KEYS.get(self.node.level)
        if collection:
            data[collection] = {
                name: child.to_dict() for name, child in sorted(self.children.items())
            }
        return data


class LocationTree:
    """Typed state -> LGA -> ward -> polling unit tree of observed aggregates."""

    def __init__(self) -> None:
        self.states: dict[str, LocationTreeNode] = {}

    def insert(self, path: Sequence[str], observed: ObservedAggregate) -> LocationTreeNode:
        """Attach ``observed`` at ``path``, creating zero-filled ancestors as needed."""
        path = tuple(path)
        if not path or len(path) > len(LEVEL_ORDER):
            raise ValueError(f"Invalid location path: {path}")

        siblings = self.states
        current: LocationTreeNode | None = None
        for depth in range(1, len(path) + 1):
            name = path[depth - 1]
            current = siblings.get(name)
            if current is None:
                current = LocationTreeNode(node=LocationNode.from_path(path[:depth]))
                siblings[name] = current
            siblings = current.children

        current.observed = observed
        return current

    def to_dict(self) -> dict[str, Any]:
        return {name: node.to_dict() for name, node in sorted(self.states.items())}

    def __len__(self) -> int:
        return len(self.states)
