"""Role-scoped access to the location hierarchy.

A viewer's coordinator designation and assigned state / LGA / ward select one
subtree of the hierarchy. ``ScopeResolver`` is the only place that decides
what a viewer may see; it performs no I/O.
"""

from enum import Enum
from typing import Any, Mapping, Sequence

from pydantic import BaseModel, ConfigDict

from app.core.exceptions import (
    ForbiddenError,
    InvalidLocationPathError,
    MissingAssignmentError,
)
from app.services.locations import (
    LEVEL_ORDER,
    VIEW_LEVELS,
    LocationLevel,
    format_location_name,
    is_blank,
    path_slug,
    path_within,
    slugify,
)
from app.services.reference_registry import ReferenceRegistry


class Designation(str, Enum):
    NATIONAL = "National Coordinator"
    STATE = "State Coordinator"
    LGA = "LGA Coordinator"
    WARD = "Ward Coordinator"
    POLLING_UNIT_AGENT = "Polling Unit Agents"
    VOTE_DEFENDER = "Vote Defenders"

    @classmethod
    def parse(cls, value: str | None) -> "Designation | None":
        if not value:
            return None
        try:
            return cls(value.strip())
        except ValueError:
            return None


COORDINATOR_TIERS = (
    Designation.NATIONAL,
    Designation.STATE,
    Designation.LGA,
    Designation.WARD,
)

# Tier reporting directly to each coordinator tier
SUBORDINATE_TIERS = {
    Designation.NATIONAL: (Designation.STATE,),
    Designation.STATE: (Designation.LGA,),
    Designation.LGA: (Designation.WARD,),
    Designation.WARD: (Designation.POLLING_UNIT_AGENT, Designation.VOTE_DEFENDER),
}

_ASSIGNMENT_LABELS = ("state", "LGA", "ward")


class Viewer(BaseModel):
    """Authenticated caller as seen by the dashboard."""

    model_config = ConfigDict(frozen=True)

    user_id: str
    designation: str | None = None
    assigned_state: str | None = None
    assigned_lga: str | None = None
    assigned_ward: str | None = None
    role: str | None = None

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> "Viewer":
        return cls(
            user_id=str(record["id"]),
            designation=record.get("designation"),
            assigned_state=record.get("assignedState"),
            assigned_lga=record.get("assignedLGA"),
            assigned_ward=record.get("assignedWard"),
            role=record.get("role"),
        )


class ViewerScope(BaseModel):
    """Subtree a viewer is confined to and the level listed beneath it.

    ``child_level`` is None for a polling-unit root, which has no children.
    """

    model_config = ConfigDict(frozen=True)

    designation: Designation
    root_path: tuple[str, ...] = ()
    child_level: LocationLevel | None

    @property
    def is_national(self) -> bool:
        return not self.root_path

    @property
    def root_level(self) -> LocationLevel | None:
        if self.is_national:
            return None
        return LocationLevel.for_depth(len(self.root_path))

    @property
    def view_level(self) -> str:
        """Front-end level name of the root ("national", "state", ...)."""
        return VIEW_LEVELS[len(self.root_path)]


class ScopeResolver:
    """Maps designations and assignments onto hierarchy subtrees.

    With a registry, state aliases in assignments and requested paths are
    replaced by the registry's state name before any comparison.
    """

    def __init__(self, registry: ReferenceRegistry | None = None):
        self.registry = registry

    def _canonical(self, path: tuple[str, ...]) -> tuple[str, ...]:
        if self.registry is None:
            return path
        return self.registry.canonical_path(path)

    def resolve(
        self,
        designation: str | None,
        assigned_state: str | None,
        assigned_lga: str | None,
        assigned_ward: str | None,
        is_admin: bool,
    ) -> ViewerScope:
        """
        Resolve a viewer's scope.

        Raises:
            MissingAssignmentError: a coordinator lacks a location its tier needs
            ForbiddenError: the designation has no dashboard tier and the
                viewer is not an admin
        """
        tier = Designation.parse(designation)
        if tier not in COORDINATOR_TIERS:
            if is_admin:
                return ViewerScope(
                    designation=Designation.NATIONAL,
                    child_level=LocationLevel.STATE,
                )
            raise ForbiddenError(
                "Access denied. Only coordinators and admins can access the dashboard."
            )

        depth = COORDINATOR_TIERS.index(tier)
        assignments = (assigned_state, assigned_lga, assigned_ward)[:depth]
        if any(is_blank(value) for value in assignments):
            required = ", ".join(_ASSIGNMENT_LABELS[:depth])
            raise MissingAssignmentError(f"{tier.value} must have assigned {required}")

        root_path = self._canonical(tuple(value.strip() for value in assignments))
        return ViewerScope(
            designation=tier,
            root_path=root_path,
            child_level=LocationLevel.for_depth(depth + 1),
        )

    def resolve_viewer(self, viewer: Viewer) -> ViewerScope:
        return self.resolve(
            viewer.designation,
            viewer.assigned_state,
            viewer.assigned_lga,
            viewer.assigned_ward,
            viewer.is_admin,
        )

    def authorize_path(self, scope: ViewerScope, path: Sequence[str | None]) -> ViewerScope:
        """
        Scope for drilling down to ``path`` from inside ``scope``.

        ``path`` lists state, LGA, ward and polling unit names, outermost first; trailing
        blanks are dropped and an empty path is the viewer's own root.
        Otherwise the path must be at or below the viewer's root.
        """
        names = list(path)
        while names and is_blank(names[-1]):
            names.pop()
        if any(is_blank(name) for name in names):
            raise InvalidLocationPathError(
                "A location path cannot skip a level (e.g. a ward without its LGA)"
            )
        if len(names) > len(LEVEL_ORDER):
            raise InvalidLocationPathError("Drill-down stops at polling unit level")

        requested = self._canonical(tuple(name.strip() for name in names))
        if not requested:
            return scope
        if not path_within(requested, scope.root_path):
            raise ForbiddenError(
                "Access denied. You can only view data within your assigned location."
            )

        # Keep the viewer's own spelling for the part of the path they are assigned to
        resolved = scope.root_path + requested[len(scope.root_path):]
        return ViewerScope(
            designation=scope.designation,
            root_path=resolved,
            child_level=LocationLevel.for_depth(len(resolved)).child,
        )

    def subordinate_designations(self, scope: ViewerScope) -> tuple[Designation, ...]:
        """Designations exactly one tier below the viewer's."""
        return SUBORDINATE_TIERS[scope.designation]

    def allowed_levels(self, scope: ViewerScope) -> list[str]:
        return list(VIEW_LEVELS[len(scope.root_path):])

    def assigned_location(self, scope: ViewerScope) -> dict[str, str] | None:
        """Slug ids and display names of the viewer's root, for navigation."""
        if scope.is_national:
            return None
        location: dict[str, str] = {}
        for depth, key in enumerate(("state", "lga", "ward"), start=1):
            if depth > len(scope.root_path):
                break
            name = scope.root_path[depth - 1]
            location[f"{key}Id"] = path_slug(scope.root_path[:depth])
            location[f"{key}Name"] = format_location_name(name)
            location[f"{key}Slug"] = slugify(name)
        return location
