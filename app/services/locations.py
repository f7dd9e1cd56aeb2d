"""Location hierarchy: State -> LGA -> Ward -> Polling Unit.

Pure reference types and label helpers. Location names are only unique under
their parent, so a node is identified by its full path from the state down.
"""

import re
from enum import Enum

from pydantic import BaseModel, ConfigDict, model_validator


class LocationLevel(str, Enum):
    """Levels of the location hierarchy, broadest first."""

    STATE = "state"
    LGA = "lga"
    WARD = "ward"
    POLLING_UNIT = "pollingUnit"

    @property
    def depth(self) -> int:
        """Number of names in a path that ends at this level."""
        return LEVEL_ORDER.index(self) + 1

    @property
    def child(self) -> "LocationLevel | None":
        index = LEVEL_ORDER.index(self)
        if index + 1 < len(LEVEL_ORDER):
            return LEVEL_ORDER[index + 1]
        return None

    @property
    def label(self) -> str:
        return LEVEL_LABELS[self]

    @classmethod
    def for_depth(cls, depth: int) -> "LocationLevel":
        """Level of the node at the end of a path with ``depth`` names."""
        if depth < 1 or depth > len(LEVEL_ORDER):
            raise ValueError(f"No location level at depth {depth}")
        return LEVEL_ORDER[depth - 1]


LEVEL_ORDER: tuple[LocationLevel, ...] = (
    LocationLevel.STATE,
    LocationLevel.LGA,
    LocationLevel.WARD,
    LocationLevel.POLLING_UNIT,
)

LEVEL_LABELS = {
    LocationLevel.STATE: "State",
    LocationLevel.LGA: "LGA",
    LocationLevel.WARD: "Ward",
    LocationLevel.POLLING_UNIT: "Polling Unit",
}

# Short level names used by the dashboard front end for navigation
VIEW_LEVELS = ("national", "state", "lga", "ward", "pu")

_UPPERCASE_WORDS = {"lga", "fct", "pvc", "inec", "id"}
_SEPARATORS = re.compile(r"[\s\-_]+")


class LocationNode(BaseModel):
    """One node of the hierarchy, tagged with its level."""

    model_config = ConfigDict(frozen=True)

    level: LocationLevel
    name: str
    parent_path: tuple[str, ...] = ()

    @model_validator(mode="after")
    def _check_depth(self) -> "LocationNode":
        if len(self.parent_path) != self.level.depth - 1:
            raise ValueError(
                f"{self.level.label} node needs {self.level.depth - 1} ancestors, "
                f"got {len(self.parent_path)}"
            )
        return self

    @classmethod
    def from_path(cls, path: tuple[str, ...] | list[str]) -> "LocationNode":
        path = tuple(path)
        return cls(
            level=LocationLevel.for_depth(len(path)),
            name=path[-1],
            parent_path=path[:-1],
        )

    @property
    def path(self) -> tuple[str, ...]:
        return self.parent_path + (self.name,)

    @property
    def state(self) -> str:
        return self.path[0]

    @property
    def id(self) -> str:
        return slugify(self.name)

    @property
    def path_id(self) -> str:
        """Slug of the whole path, e.g. ``lagos-ikeja-ward-3``."""
        return path_slug(self.path)

    def child(self, name: str) -> "LocationNode":
        child_level = self.level.child
        if child_level is None:
            raise ValueError("Polling units have no children")
        return LocationNode(level=child_level, name=name, parent_path=self.path)


def slugify(name: str | None) -> str:
    """Convert a location name to a URL-friendly slug ("Aba North" -> "aba-north")."""
    if not name:
        return ""
    return _SEPARATORS.sub("-", name.strip().lower()).strip("-")


def path_slug(path: tuple[str, ...] | list[str]) -> str:
    return "-".join(slugify(part) for part in path)


def format_location_name(name: str | None) -> str:
    """Title-case a location name, keeping abbreviations like LGA and FCT upper case."""
    if not name:
        return ""
    words = [word for word in _SEPARATORS.split(name.strip()) if word]
    formatted = []
    for word in words:
        if word.lower() in _UPPERCASE_WORDS:
            formatted.append(word.upper())
        else:
            formatted.append(word[0].upper() + word[1:].lower())
    return " ".join(formatted)


def normalize_location_name(name: str | None) -> str:
    """Canonical comparison key: lower case with one hyphen between words."""
    return slugify(name)


def names_match(first: str | None, second: str | None) -> bool:
    """Check two location names for equality across slug and title-case forms."""
    if not first or not second:
        return False
    return normalize_location_name(first) == normalize_location_name(second)


def is_blank(value: str | None) -> bool:
    return value is None or not str(value).strip()


def path_within(path: tuple[str, ...], root: tuple[str, ...]) -> bool:
    """True when ``path`` equals ``root`` or lies underneath it."""
    if len(path) < len(root):
        return False
    return all(names_match(a, b) for a, b in zip(path, root))


def breadcrumbs(path: tuple[str, ...]) -> list[dict[str, str]]:
    """Navigation trail from the national overview down to ``path``."""
    trail = [{"level": "national", "name": "National Overview"}]
    for depth in range(1, len(path) + 1):
        trail.append(
            {
                "level": VIEW_LEVELS[depth],
                "name": path[depth - 1],
                "id": path_slug(path[:depth]),
            }
        )
    return trail
