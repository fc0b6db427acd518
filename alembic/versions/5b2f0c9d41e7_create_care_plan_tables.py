"""create care plan tables

Revision ID: 5b2f0c9d41e7
Revises: 
Create Date: 2026-10-19 09:12:31.208114

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '5b2f0c9d41e7'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

# SQLModel persists enum members by name.
profile_role_enum = sa.Enum("ADMIN", "NORMAL", name="profilerole")
plan_status_enum = sa.Enum(
    "PLANNED", "IN_PROGRESS", "COMPLETED", "SUSPENDED", name="planstatus"
)
_FREQUENCIES = (
    "DAILY",
    "WEEKLY",
    "BIWEEKLY",
    "MONTHLY",
    "BIMONTHLY",
    "QUARTERLY",
    "SEMIANNUAL",
    "ANNUAL",
)
frequency_enum = sa.Enum(*_FREQUENCIES, name="evaluationfrequency")
option_type_enum = sa.Enum("AXIS", "CARE_LINE", "SUPPORTER", "CATEGORY", name="optiontype")


def upgrade() -> None:
    """Upgrade schema."""

    op.create_table(
        "profile",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("username", sa.String(length=200), nullable=False),
        sa.Column("full_name", sa.String(length=200), nullable=True),
        sa.Column("unit", sa.String(length=200), nullable=True),
        sa.Column("team", sa.String(length=200), nullable=True),
        sa.Column("micro_area", sa.String(length=200), nullable=True),
        sa.Column("role", profile_role_enum, nullable=False, server_default="NORMAL"),
        sa.Column(
            "created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()
        ),
        sa.Column(
            "updated_at", sa.DateTime(), nullable=False, server_default=sa.func.now()
        ),
    )
    op.create_index("ix_profile_username", "profile", ["username"], unique=True)

    op.create_table(
        "plan",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("owner_id", sa.String(length=36), nullable=False),
        sa.Column("axis", sa.String(length=200), nullable=False),
        sa.Column("care_line", sa.String(length=200), nullable=False),
        sa.Column("status", plan_status_enum, nullable=False, server_default="PLANNED"),
        sa.Column("supporters", sa.JSON(), nullable=False),
        sa.Column("categories", sa.JSON(), nullable=False),
        sa.Column("summary", sa.String(length=2000), nullable=False),
        sa.Column("goal", sa.String(length=500), nullable=False),
        sa.Column("evaluation_frequency", frequency_enum, nullable=False),
        sa.Column("cycle", frequency_enum, nullable=True),
        sa.Column("notes", sa.String(length=2000), nullable=True),
        sa.Column("start_date", sa.Date(), nullable=True),
        sa.Column("end_date", sa.Date(), nullable=True),
        sa.Column(
            "created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()
        ),
        sa.Column(
            "updated_at", sa.DateTime(), nullable=False, server_default=sa.func.now()
        ),
        sa.Column("completed_at", sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(["owner_id"], ["profile.id"], ondelete="CASCADE"),
    )
    op.create_index("ix_plan_axis", "plan", ["axis"], unique=False)
    op.create_index("ix_plan_care_line", "plan", ["care_line"], unique=False)

    op.create_table(
        "config_option",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("type", option_type_enum, nullable=False),
        sa.Column("label", sa.String(length=200), nullable=False),
        sa.Column(
            "created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()
        ),
        sa.UniqueConstraint("type", "label", name="uq_config_option_type_label"),
    )
    op.create_index("ix_config_option_type", "config_option", ["type"], unique=False)

    op.create_table(
        "activity_log",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "timestamp", sa.DateTime(), nullable=False, server_default=sa.func.now()
        ),
        sa.Column("profile_id", sa.String(length=36), nullable=True),
        sa.Column("action", sa.String(length=200), nullable=False),
        sa.Column("entity_type", sa.String(length=100), nullable=False),
        sa.Column("entity_id", sa.String(length=200), nullable=False),
        sa.Column("details", sa.JSON(), nullable=True),
        sa.ForeignKeyConstraint(["profile_id"], ["profile.id"], ondelete="SET NULL"),
    )
    op.create_index("ix_activity_log_action", "activity_log", ["action"], unique=False)


def downgrade() -> None:
    """Downgrade schema."""

    op.drop_index("ix_activity_log_action", table_name="activity_log")
    op.drop_table("activity_log")
    op.drop_index("ix_config_option_type", table_name="config_option")
    op.drop_table("config_option")
    op.drop_index("ix_plan_care_line", table_name="plan")
    op.drop_index("ix_plan_axis", table_name="plan")
    op.drop_table("plan")
    op.drop_index("ix_profile_username", table_name="profile")
    op.drop_table("profile")

    bind = op.get_bind()
    for enum in (option_type_enum, frequency_enum, plan_status_enum, profile_role_enum):
        enum.drop(bind, checkfirst=True)
