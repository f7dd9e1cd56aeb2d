"""add_dashboard_location_indexes

Revision ID: 4c8e1d2a9f30
Revises:
Create Date: 2026-10-19 09:12:44.318507

"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "4c8e1d2a9f30"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _normalized(column: str) -> str:
    return f"btrim(regexp_replace(lower(btrim({column})), '[[:space:]_-]+', '-', 'g'), '-')"


def upgrade() -> None:
    """Add indexes backing the dashboard rollup and subordinate queries."""
    # Grouped member counts: one query per level, grouped by the voting path
    op.execute("""
    CREATE INDEX IF NOT EXISTS idx_users_voting_path
        ON users (btrim("votingState"), btrim("votingLGA"), btrim("votingWard"), btrim("votingPU"));
    """)

    # Subtree filters compare normalized names
    op.execute(f"""
    CREATE INDEX IF NOT EXISTS idx_users_voting_state_normalized
        ON users ({_normalized('"votingState"')});

    CREATE INDEX IF NOT EXISTS idx_users_voting_lga_normalized
        ON users ({_normalized('"votingState"')}, {_normalized('"votingLGA"')});
    """)

    # Subordinate listing: designation + assigned location, newest first
    op.execute(f"""
    CREATE INDEX IF NOT EXISTS idx_users_designation_assignment
        ON users (
            designation,
            {_normalized('"assignedState"')},
            {_normalized('"assignedLGA"')},
            {_normalized('"assignedWard"')},
            "createdAt" DESC
        );
    """)

    op.execute("ANALYZE users;")


def downgrade() -> None:
    """Remove dashboard indexes."""
    op.execute("""
    DROP INDEX IF EXISTS idx_users_designation_assignment;
    DROP INDEX IF EXISTS idx_users_voting_lga_normalized;
    DROP INDEX IF EXISTS idx_users_voting_state_normalized;
    DROP INDEX IF EXISTS idx_users_voting_path;
    """)
