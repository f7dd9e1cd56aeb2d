"""Role-scoped voter-engagement dashboard routes."""

from typing import Annotated

import asyncpg
from fastapi import APIRouter, Depends, Query

from app.api.deps import (
    get_current_viewer,
    get_dashboard_assembler,
    get_reference_registry,
    get_scope_resolver,
)
from app.core.database import get_db
from app.core.exceptions import ForbiddenError
from app.core.logging_config import get_logger, security_logger
from app.core.responses import success_response
from app.services.dashboard import DashboardAssembler
from app.services.reference_registry import ReferenceRegistry
from app.services.scope import ScopeResolver, Viewer, ViewerScope
from app.services.users import list_subordinates

logger = get_logger(__name__)

router = APIRouter(prefix="/dashboard", tags=["Dashboard"])


def _resolve_scope(resolver: ScopeResolver, viewer: Viewer, resource: str) -> ViewerScope:
    try:
        scope = resolver.resolve_viewer(viewer)
    except ForbiddenError as e:
        security_logger.log_unauthorized_access(
            resource, user_id=viewer.user_id, designation=viewer.designation, reason=e.message
        )
        raise
    security_logger.log_scope_granted(viewer.user_id, viewer.designation, list(scope.root_path))
    return scope


def _viewer_context(viewer: Viewer, scope: ViewerScope) -> dict:
    return {
        # Admins without a coordinator tier are shown the national view
        "userDesignation": scope.designation.value,
        "assignedLocation": {
            "state": viewer.assigned_state,
            "lga": viewer.assigned_lga,
            "ward": viewer.assigned_ward,
        },
    }


@router.get("/data")
async def get_dashboard_data(
    viewer: Annotated[Viewer, Depends(get_current_viewer)],
    resolver: Annotated[ScopeResolver, Depends(get_scope_resolver)],
    assembler: Annotated[DashboardAssembler, Depends(get_dashboard_assembler)],
):
    """
    Get dashboard data for the caller's designation and assigned location.

    - **National Coordinator** (or admin): one row per state
    - **State Coordinator**: LGAs of the assigned state
    - **LGA Coordinator**: wards of the assigned LGA
    - **Ward Coordinator**: polling units of the assigned ward

    Reference totals below state level are estimates (`isEstimated: true`).
    """
    scope = _resolve_scope(resolver, viewer, "dashboard:data")
    view = await assembler.assemble(scope)

    return success_response(
        data={**_viewer_context(viewer, scope), "dashboardData": view.to_dict()}
    )


@router.get("/drilldown")
async def get_drilldown_data(
    viewer: Annotated[Viewer, Depends(get_current_viewer)],
    resolver: Annotated[ScopeResolver, Depends(get_scope_resolver)],
    assembler: Annotated[DashboardAssembler, Depends(get_dashboard_assembler)],
    state: str | None = Query(None, description="State name or slug"),
    lga: str | None = Query(None, description="LGA name or slug"),
    ward: str | None = Query(None, description="Ward name or slug"),
    polling_unit: str | None = Query(
        None, alias="pollingUnit", description="Polling unit name or slug"
    ),
):
    """
    Get dashboard data for a location inside the caller's scope.

    With no parameters this is the caller's own root. Locations outside the
    caller's assigned subtree are rejected with 403. A polling unit is a leaf:
    its view has root stats and no children.
    """
    scope = _resolve_scope(resolver, viewer, "dashboard:drilldown")
    try:
        target = resolver.authorize_path(scope, (state, lga, ward, polling_unit))
    except ForbiddenError as e:
        security_logger.log_unauthorized_access(
            "dashboard:drilldown",
            user_id=viewer.user_id,
            designation=viewer.designation,
            reason=f"{e.message} Requested: {[state, lga, ward, polling_unit]}",
        )
        raise

    view = await assembler.assemble(target)
    return success_response(
        data={**_viewer_context(viewer, scope), "dashboardData": view.to_dict()}
    )


@router.get("/subordinates")
async def get_subordinates(
    viewer: Annotated[Viewer, Depends(get_current_viewer)],
    resolver: Annotated[ScopeResolver, Depends(get_scope_resolver)],
    registry: Annotated[ReferenceRegistry, Depends(get_reference_registry)],
    conn: Annotated[asyncpg.Connection, Depends(get_db)],
):
    """List accounts one designation tier below the caller, within the caller's area."""
    scope = _resolve_scope(resolver, viewer, "dashboard:subordinates")
    designations = resolver.subordinate_designations(scope)

    subordinates = await list_subordinates(
        conn, [d.value for d in designations], registry.path_filter(scope.root_path)
    )
    logger.debug(f"Found {len(subordinates)} subordinates for user {viewer.user_id}")
    return success_response(data=subordinates)


@router.get("/user-level")
async def get_user_level(
    viewer: Annotated[Viewer, Depends(get_current_viewer)],
    resolver: Annotated[ScopeResolver, Depends(get_scope_resolver)],
):
    """Get the caller's dashboard level, assigned location and navigable levels."""
    scope = _resolve_scope(resolver, viewer, "dashboard:user-level")
    return success_response(
        data={
            "userLevel": scope.view_level,
            "assignedLocation": resolver.assigned_location(scope),
            "allowedLevels": resolver.allowed_levels(scope),
            "designation": viewer.designation,
            "role": viewer.role,
        }
    )
