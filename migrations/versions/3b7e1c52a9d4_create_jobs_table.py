"""create jobs table

Revision ID: 3b7e1c52a9d4
Revises:
Create Date: 2026-10-16 10:12:41.318204

"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision: str = "3b7e1c52a9d4"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Upgrade schema."""
    op.create_table(
        "jobs",
        sa.Column("id", sa.UUID(as_uuid=True), primary_key=True),
        sa.Column(
            "created_at",
            sa.TIMESTAMP(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.Column(
            "unlock_at",
            sa.TIMESTAMP(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
            comment="Earliest time the job may be leased",
        ),
        sa.Column(
            "name",
            sa.Text,
            nullable=False,
            comment="Name of the handler that processes the job",
        ),
        sa.Column(
            "payload",
            postgresql.JSONB,
            nullable=False,
            server_default="{}",
            comment="Handler-specific payload",
        ),
        sa.Column(
            "attempts",
            sa.Integer,
            nullable=False,
            server_default="0",
            comment="Number of leases taken",
        ),
    )

    # Lease scan: WHERE unlock_at <= now() ORDER BY unlock_at
    op.create_index("ix_jobs_unlock_at", "jobs", ["unlock_at"])
    op.create_index("ix_jobs_name", "jobs", ["name"])


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_index("ix_jobs_name", table_name="jobs")
    op.drop_index("ix_jobs_unlock_at", table_name="jobs")
    op.drop_table("jobs")
