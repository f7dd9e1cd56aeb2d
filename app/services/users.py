"""Read-only member lookups used by the dashboard."""

from collections.abc import Sequence
from typing import Any
from uuid import UUID

import asyncpg

from app.core.database import record_to_dict, records_to_list
from app.services.member_metrics import NameFilter, name_keys, normalized_column

_ASSIGNMENT_COLUMNS = ('"assignedState"', '"assignedLGA"', '"assignedWard"')


async def get_dashboard_user(  # type: ignore[no-any-unimported]
    conn: asyncpg.Connection, user_id: UUID
) -> dict[str, Any] | None:
    """Get a user's designation and location assignment by ID."""
    result = await conn.fetchrow(
        """
        SELECT id, name, email, role, designation,
               "assignedState", "assignedLGA", "assignedWard"
        FROM users
        WHERE id = $1
        """,
        str(user_id),
    )
    return record_to_dict(result)


async def list_subordinates(  # type: ignore[no-any-unimported]
    conn: asyncpg.Connection,
    designations: Sequence[str],
    root_path: Sequence[NameFilter] = (),
) -> list[dict[str, Any]]:
    """
    List accounts holding one of ``designations`` inside the ``root_path`` subtree.

    Assignment names are compared in normalized form, so "aba-north" and
    "Aba North" refer to the same LGA. A path entry may list several accepted
    spellings, e.g. a state and its aliases.
    """
    query = """
        SELECT id, name, email, phone, designation,
               "assignedState", "assignedLGA", "assignedWard", "createdAt"
        FROM users
        WHERE designation = ANY($1::text[])
    """
    params: list[Any] = [list(designations)]
    param_num = 2

    for column, name in zip(_ASSIGNMENT_COLUMNS, root_path):
        query += f" AND {normalized_column(column)} = ANY(${param_num}::text[])"
        params.append(name_keys(name))
        param_num += 1

    query += ' ORDER BY "createdAt" DESC'

    subordinates = records_to_list(await conn.fetch(query, *params))
    for subordinate in subordinates:
        subordinate["id"] = str(subordinate["id"])
    return subordinates
