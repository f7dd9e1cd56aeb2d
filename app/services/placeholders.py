"""Fallback children for subtrees with no observed location data.

When no member under a dashboard root has a usable location key at the next
level, the assembler asks a ``PlaceholderPolicy`` for stand-in children so the
dashboard is never empty. Placeholders are always flagged as such.
"""

from abc import ABC, abstractmethod
from collections.abc import Sequence

from pydantic import BaseModel, ConfigDict

from app.services.locations import LocationLevel, LocationNode


class PlaceholderChild(BaseModel):
    model_config = ConfigDict(frozen=True)

    node: LocationNode
    reference_total: int


def split_evenly(total: int, parts: int) -> list[int]:
    """Split ``total`` into ``parts`` integers that sum to it, larger shares first."""
    base, remainder = divmod(total, parts)
    return [base + (1 if index < remainder else 0) for index in range(parts)]


class PlaceholderPolicy(ABC):
    @abstractmethod
    def children(
        self,
        parent_path: Sequence[str],
        child_level: LocationLevel,
        parent_reference_total: int,
    ) -> list[PlaceholderChild]:
        """Stand-in children for ``parent_path``."""


class FixedPlaceholderPolicy(PlaceholderPolicy):
    """
    ``count`` generic children ("Ward 1", "Ward 2", ...) sharing the parent's
    reference total evenly. They carry no observed members.
    """

    def __init__(self, count: int = 5):
        if count < 1:
            raise ValueError("Placeholder count must be at least 1")
        self.count = count

    def children(
        self,
        parent_path: Sequence[str],
        child_level: LocationLevel,
        parent_reference_total: int,
    ) -> list[PlaceholderChild]:
        shares = split_evenly(parent_reference_total, self.count)
        return [
            PlaceholderChild(
                node=LocationNode(
                    level=child_level,
                    name=f"{child_level.label} {index}",
                    parent_path=tuple(parent_path),
                ),
                reference_total=share,
            )
            for index, share in enumerate(shares, start=1)
        ]


class NoPlaceholderPolicy(PlaceholderPolicy):
    """Show an empty breakdown instead of invented children."""

    def children(
        self,
        parent_path: Sequence[str],
        child_level: LocationLevel,
        parent_reference_total: int,
    ) -> list[PlaceholderChild]:
        return []


def placeholder_policy_for(count: int) -> PlaceholderPolicy:
    if count <= 0:
        return NoPlaceholderPolicy()
    return FixedPlaceholderPolicy(count)
