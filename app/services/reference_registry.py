"""Reference totals of registered voters, keyed by state.

The table is shipped with the service and never refreshed at runtime. A
registry is built once and passed to whoever needs it; there is no module
level mutable cache.
"""

import json
from collections.abc import Mapping, Sequence
from functools import lru_cache
from pathlib import Path
from types import MappingProxyType

from app.core.logging_config import get_logger
from app.services.locations import normalize_location_name

logger = get_logger(__name__)

DEFAULT_DATA_PATH = Path(__file__).resolve().parent.parent / "data" / "inec_registered_voters.json"

# Alternative spellings found in member records
STATE_ALIASES = {
    "fct": "Federal Capital Territory",
    "abuja": "Federal Capital Territory",
    "fct-abuja": "Federal Capital Territory",
    "nassarawa": "Nasarawa",
}


class ReferenceRegistry:
    """Immutable state -> eligible population lookup."""

    def __init__(self, totals: Mapping[str, int], source: str | None = None):
        for state, total in totals.items():
            if total < 0:
                raise ValueError(f"Negative reference total for {state}: {total}")
        self._totals = MappingProxyType(dict(totals))
        self._by_key = MappingProxyType(
            {normalize_location_name(state): state for state in totals}
        )
        self.source = source

    @classmethod
    def from_json(cls, path: str | Path) -> "ReferenceRegistry":
        """Load a registry from a ``{"states": {name: total}}`` JSON file."""
        with open(path, encoding="utf-8") as f:
            payload = json.load(f)
        totals = {name: int(total) for name, total in payload["states"].items()}
        logger.info(f"Loaded reference totals for {len(totals)} states from {path}")
        return cls(totals, source=payload.get("source"))

    def canonical_name(self, state: str | None) -> str | None:
        """Name of ``state`` as it appears in the table, or None if unknown."""
        if not state:
            return None
        key = normalize_location_name(state)
        if key in self._by_key:
            return self._by_key[key]
        alias = STATE_ALIASES.get(key)
        if alias and normalize_location_name(alias) in self._by_key:
            return self._by_key[normalize_location_name(alias)]
        return None

    def total_for(self, state: str | None) -> int:
        """Reference total for ``state``; unknown states give 0."""
        name = self.canonical_name(state)
        if name is None:
            return 0
        return self._totals[name]

    def spellings(self, state: str) -> tuple[str, ...]:
        """Every accepted spelling of ``state``: its table name plus known aliases."""
        name = self.canonical_name(state)
        if name is None:
            return (state,)
        aliases = [alias for alias, target in STATE_ALIASES.items() if target == name]
        return (name, *aliases)

    def canonical_path(self, path: Sequence[str]) -> tuple[str, ...]:
        """``path`` with its state replaced by the table name, when known."""
        path = tuple(path)
        if not path:
            return path
        return (self.canonical_name(path[0]) or path[0], *path[1:])

    def path_filter(self, path: Sequence[str]) -> tuple[str | tuple[str, ...], ...]:
        """Name filter for ``path`` that accepts any spelling of its state."""
        path = tuple(path)
        if not path:
            return path
        return (self.spellings(path[0]), *path[1:])

    def states(self) -> list[str]:
        return sorted(self._totals)

    def national_total(self) -> int:
        return sum(self._totals.values())

    def __len__(self) -> int:
        return len(self._totals)


@lru_cache
def load_reference_registry(path: str | None = None) -> ReferenceRegistry:
    """Process-wide registry, loaded on first use."""
    return ReferenceRegistry.from_json(path or DEFAULT_DATA_PATH)
