"""Checks for the dashboard index migration."""

import importlib.util
from pathlib import Path
from unittest.mock import patch

import pytest

MIGRATION = (
    Path(__file__).resolve().parents[2]
    / "alembic"
    / "versions"
    / "4c8e1d2a9f30_add_dashboard_location_indexes.py"
)


@pytest.fixture
def migration():
    spec = importlib.util.spec_from_file_location("dashboard_indexes", MIGRATION)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


def _executed_sql(mock_op) -> str:
    return "\n".join(call.args[0] for call in mock_op.execute.call_args_list)


def test_upgrade_indexes_match_query_expressions(migration):
    from app.services.member_metrics import normalized_column

    with patch.object(migration, "op") as mock_op:
        migration.upgrade()

    sql = _executed_sql(mock_op)
    assert "idx_users_voting_path" in sql
    assert normalized_column('"votingState"') in sql
    assert normalized_column('"assignedWard"') in sql


def test_downgrade_drops_every_index(migration):
    with patch.object(migration, "op") as mock_op:
        migration.upgrade()
        created = _executed_sql(mock_op)
        mock_op.reset_mock()
        migration.downgrade()

    dropped = _executed_sql(mock_op)
    for name in (
        "idx_users_voting_path",
        "idx_users_voting_state_normalized",
        "idx_users_voting_lga_normalized",
        "idx_users_designation_assignment",
    ):
        assert name in created
        assert f"DROP INDEX IF EXISTS {name}" in dropped
