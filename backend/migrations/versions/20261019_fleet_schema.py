"""Fleet schema: branches, units, raw sales and daily aggregates

Revision ID: 20261019_fleet_schema
Revises:
Create Date: 2026-10-19
"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "20261019_fleet_schema"
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        "branches",
        sa.Column("id", sa.String(64), nullable=False),
        sa.Column("name", sa.String(120), nullable=True),
        sa.Column("location", sa.String(255), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )

    op.create_table(
        "units",
        sa.Column("device_id", sa.String(64), nullable=False),
        sa.Column("branch_id", sa.String(64), nullable=True),
        sa.Column("alias", sa.String(120), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=False),
        sa.ForeignKeyConstraint(["branch_id"], ["branches.id"]),
        sa.PrimaryKeyConstraint("device_id"),
    )

    with op.batch_alter_table("units", schema=None) as batch_op:
        batch_op.create_index("ix_units_branch_id", ["branch_id"], unique=False)

    op.create_table(
        "sales",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("device_id", sa.String(64), nullable=False),
        sa.Column("coins_1", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("coins_5", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("coins_10", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("coins_20", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("total", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("timestamp", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sqlite_autoincrement=True,
    )

    with op.batch_alter_table("sales", schema=None) as batch_op:
        batch_op.create_index("ix_sales_device_id", ["device_id"], unique=False)
        batch_op.create_index("ix_sales_timestamp", ["timestamp"], unique=False)
        batch_op.create_index("ix_sales_device_timestamp", ["device_id", "timestamp"], unique=False)

    op.create_table(
        "branch_daily_aggregates",
        sa.Column("branch_id", sa.String(64), nullable=False),
        sa.Column("date_id", sa.String(10), nullable=False),
        sa.Column("aggregate_date", sa.Date(), nullable=False),
        sa.Column("total_transactions", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("grand_total", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("coins_1", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("coins_5", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("coins_10", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("coins_20", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("total_coins", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("earliest", sa.DateTime(timezone=True), nullable=True),
        sa.Column("latest", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("processed_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("branch_id", "date_id"),
    )

    with op.batch_alter_table("branch_daily_aggregates", schema=None) as batch_op:
        batch_op.create_index(
            "ix_branch_daily_aggregates_branch_date", ["branch_id", "aggregate_date"], unique=False
        )

    op.create_table(
        "unit_daily_aggregates",
        sa.Column("device_id", sa.String(64), nullable=False),
        sa.Column("date_id", sa.String(10), nullable=False),
        sa.Column("total", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("coins_1", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("coins_5", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("coins_10", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("coins_20", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("sales_count", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("timestamp", sa.DateTime(timezone=True), nullable=True),
        sa.Column("harvested", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("harvested_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("device_id", "date_id"),
    )

    with op.batch_alter_table("unit_daily_aggregates", schema=None) as batch_op:
        batch_op.create_index("ix_unit_daily_aggregates_harvested", ["harvested"], unique=False)
        batch_op.create_index(
            "ix_unit_daily_aggregates_device_harvested", ["device_id", "harvested"], unique=False
        )


def downgrade():
    with op.batch_alter_table("unit_daily_aggregates", schema=None) as batch_op:
        batch_op.drop_index("ix_unit_daily_aggregates_device_harvested")
        batch_op.drop_index("ix_unit_daily_aggregates_harvested")
    op.drop_table("unit_daily_aggregates")

    with op.batch_alter_table("branch_daily_aggregates", schema=None) as batch_op:
        batch_op.drop_index("ix_branch_daily_aggregates_branch_date")
    op.drop_table("branch_daily_aggregates")

    with op.batch_alter_table("sales", schema=None) as batch_op:
        batch_op.drop_index("ix_sales_device_timestamp")
        batch_op.drop_index("ix_sales_timestamp")
        batch_op.drop_index("ix_sales_device_id")
    op.drop_table("sales")

    with op.batch_alter_table("units", schema=None) as batch_op:
        batch_op.drop_index("ix_units_branch_id")
    op.drop_table("units")

    op.drop_table("branches")
