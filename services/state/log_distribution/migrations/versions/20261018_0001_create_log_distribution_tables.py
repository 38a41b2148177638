"""create log entry and distribution tables"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa

from services.state.log_distribution.component import log_distribution_schema

# revision identifiers, used by Alembic.
revision = "20261018_0001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    """Create the append-only entry table and the acknowledgment table."""
    schema = log_distribution_schema()

    op.create_table(
        "log_entries",
        sa.Column("id", sa.LargeBinary(length=16), primary_key=True, nullable=False),
        sa.Column("plant", sa.String(length=4), nullable=False),
        sa.Column("shop_order", sa.String(length=30), nullable=False),
        sa.Column("step_id", sa.String(length=4), nullable=False),
        sa.Column("split", sa.String(length=3), nullable=False, server_default=""),
        sa.Column("workcenter", sa.String(length=36), nullable=False),
        sa.Column("author_id", sa.String(length=512), nullable=False),
        sa.Column("category_id", sa.String(length=64), nullable=False),
        sa.Column(
            "subject", sa.String(length=1024), nullable=False, server_default=""
        ),
        sa.Column("message", sa.Text(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint("length(id) = 16", name="ck_log_entries_id_ulid_16"),
        schema=schema,
    )
    op.create_index(
        "ix_log_entries_plant_created_at",
        "log_entries",
        ["plant", "created_at"],
        schema=schema,
    )
    op.create_index(
        "ix_log_entries_plant_workcenter_created_at",
        "log_entries",
        ["plant", "workcenter", "created_at"],
        schema=schema,
    )

    op.create_table(
        "distributions",
        sa.Column("log_id", sa.LargeBinary(length=16), nullable=False),
        sa.Column("workcenter", sa.String(length=36), nullable=False),
        sa.Column("read_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("log_id", "workcenter", name="pk_distributions"),
        sa.ForeignKeyConstraint(
            ["log_id"],
            [f"{schema}.log_entries.id"],
            name="fk_distributions_log_id",
            ondelete="CASCADE",
        ),
        sa.CheckConstraint(
            "length(log_id) = 16", name="ck_distributions_log_id_ulid_16"
        ),
        schema=schema,
    )
    op.create_index(
        "ix_distributions_workcenter_log_id",
        "distributions",
        ["workcenter", "log_id"],
        schema=schema,
    )


def downgrade() -> None:
    """Drop tables in dependency order."""
    schema = log_distribution_schema()
    op.drop_index(
        "ix_distributions_workcenter_log_id", table_name="distributions", schema=schema
    )
    op.drop_table("distributions", schema=schema)
    op.drop_index(
        "ix_log_entries_plant_workcenter_created_at",
        table_name="log_entries",
        schema=schema,
    )
    op.drop_index(
        "ix_log_entries_plant_created_at", table_name="log_entries", schema=schema
    )
    op.drop_table("log_entries", schema=schema)
