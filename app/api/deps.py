"""API dependencies for authentication and dashboard services."""
# type: ignore

from typing import Annotated
from uuid import UUID

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from app.core.config import Settings, get_settings
from app.core.database import get_db_connection, get_pool
from app.core.exceptions import NotFoundError
from app.core.logging_config import security_logger
from app.core.responses import unauthorized_response
from app.core.security import decode_access_token
from app.services.dashboard import DashboardAssembler
from app.services.member_metrics import (
    MemberStore,
    ObservedMetricsAggregator,
    PostgresMemberStore,
)
from app.services.placeholders import PlaceholderPolicy, placeholder_policy_for
from app.services.reference_registry import ReferenceRegistry, load_reference_registry
from app.services.scope import ScopeResolver, Viewer
from app.services.users import get_dashboard_user

security = HTTPBearer()


async def get_current_viewer(
    credentials: Annotated[HTTPAuthorizationCredentials, Depends(security)],
) -> Viewer:
    """
    Dependency to get the current authenticated viewer.

    Validates the JWT and loads the caller's designation and assignments. The
    lookup connection goes back to the pool before the dependency returns, so a
    request never holds it while its aggregate queries wait for connections.
    """
    payload = decode_access_token(credentials.credentials)
    if payload is None:
        security_logger.log_invalid_token("token could not be decoded")
        raise unauthorized_response()

    user_id = payload.get("sub") or payload.get("userId")
    if user_id is None:
        security_logger.log_invalid_token("token has no subject")
        raise unauthorized_response()

    try:
        user_uuid = UUID(str(user_id))
    except ValueError:
        security_logger.log_invalid_token("token subject is not a UUID")
        raise unauthorized_response() from None

    async with get_db_connection() as conn:
        user = await get_dashboard_user(conn, user_uuid)
    if user is None:
        raise NotFoundError("User not found")

    return Viewer.from_record(user)


def get_member_store(
    settings: Annotated[Settings, Depends(get_settings)],
) -> MemberStore:
    return PostgresMemberStore(get_pool(), acquire_timeout=settings.DB_ACQUIRE_TIMEOUT)


def get_reference_registry(
    settings: Annotated[Settings, Depends(get_settings)],
) -> ReferenceRegistry:
    return load_reference_registry(settings.REFERENCE_DATA_PATH)


def get_placeholder_policy(
    settings: Annotated[Settings, Depends(get_settings)],
) -> PlaceholderPolicy:
    return placeholder_policy_for(settings.PLACEHOLDER_CHILD_COUNT)


def get_scope_resolver(
    registry: Annotated[ReferenceRegistry, Depends(get_reference_registry)],
) -> ScopeResolver:
    return ScopeResolver(registry)


def get_dashboard_assembler(
    store: Annotated[MemberStore, Depends(get_member_store)],
    registry: Annotated[ReferenceRegistry, Depends(get_reference_registry)],
    placeholder_policy: Annotated[PlaceholderPolicy, Depends(get_placeholder_policy)],
) -> DashboardAssembler:
    return DashboardAssembler(
        ObservedMetricsAggregator(store),
        registry,
        placeholder_policy=placeholder_policy,
    )
