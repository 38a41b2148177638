"""SQLAlchemy table definitions owned by Log Distribution Service."""

from __future__ import annotations

from sqlalchemy import (
    Column,
    DateTime,
    ForeignKey,
    Index,
    MetaData,
    PrimaryKeyConstraint,
    String,
    Table,
    Text,
)

from packages.shiftbook_shared.ids import ulid_column, ulid_primary_key_column

metadata = MetaData()

log_entries = Table(
    "log_entries",
    metadata,
    ulid_primary_key_column(
        "id", length_constraint_name="ck_log_entries_id_ulid_16"
    ),
    Column("plant", String(4), nullable=False),
    Column("shop_order", String(30), nullable=False),
    Column("step_id", String(4), nullable=False),
    Column("split", String(3), nullable=False, server_default=""),
    Column("workcenter", String(36), nullable=False),
    Column("author_id", String(512), nullable=False),
    Column("category_id", String(64), nullable=False),
    Column("subject", String(1024), nullable=False, server_default=""),
    Column("message", Text, nullable=False),
    Column("created_at", DateTime(timezone=True), nullable=False),
    Index("ix_log_entries_plant_created_at", "plant", "created_at"),
    Index(
        "ix_log_entries_plant_workcenter_created_at",
        "plant",
        "workcenter",
        "created_at",
    ),
)

distributions = Table(
    "distributions",
    metadata,
    ulid_column(
        "log_id",
        ForeignKey("log_entries.id", ondelete="CASCADE"),
        nullable=False,
        length_constraint_name="ck_distributions_log_id_ulid_16",
    ),
    Column("workcenter", String(36), nullable=False),
    Column("read_at", DateTime(timezone=True), nullable=True),
    PrimaryKeyConstraint("log_id", "workcenter", name="pk_distributions"),
    Index("ix_distributions_workcenter_log_id", "workcenter", "log_id"),
)
