"""initial schema

Revision ID: 001
Revises:
Create Date: 2025-08-20
"""
from alembic import op
import sqlalchemy as sa

revision = "001"
down_revision = None
branch_labels = None
depends_on = None

ACTIVE_CREATOR_INDEX = "uq_team_members_active_creator"
_ACTIVE_QUOTA_WHERE = sa.text("status = 'active' AND creator_role = 'user'")


def upgrade() -> None:
    bind = op.get_bind()
    inspector = sa.inspect(bind)
    existing_tables = set(inspector.get_table_names())

    if "team_members" not in existing_tables:
        _create_team_members()
    elif ACTIVE_CREATOR_INDEX not in {ix["name"] for ix in inspector.get_indexes("team_members")}:
        _create_active_creator_index()
    if "registry_documents" not in existing_tables:
        _create_registry_documents()


def _create_team_members() -> None:
    op.create_table(
        "team_members",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("location", sa.String(200), nullable=False),
        sa.Column("timezone", sa.String(64), nullable=False),
        sa.Column("flag", sa.String(32), nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default="active"),
        sa.Column("created_by", sa.String(100), nullable=True),
        sa.Column("creator_role", sa.String(20), nullable=True),
        sa.Column("work_start", sa.String(5), nullable=True),
        sa.Column("work_end", sa.String(5), nullable=True),
        sa.Column("idempotency_key", sa.String(200), nullable=True, unique=True),
        sa.Column("created_at", sa.DateTime(timezone=True)),
    )
    _create_active_creator_index()


def _create_active_creator_index() -> None:
    op.create_index(
        ACTIVE_CREATOR_INDEX,
        "team_members",
        ["created_by"],
        unique=True,
        sqlite_where=_ACTIVE_QUOTA_WHERE,
        postgresql_where=_ACTIVE_QUOTA_WHERE,
    )


def _create_registry_documents() -> None:
    op.create_table(
        "registry_documents",
        sa.Column("name", sa.String(100), primary_key=True),
        sa.Column("payload", sa.Text, nullable=False),
        sa.Column("version", sa.Integer, nullable=False, server_default="1"),
        sa.Column("updated_at", sa.DateTime(timezone=True)),
    )


def downgrade() -> None:
    op.drop_table("registry_documents")
    op.drop_index(ACTIVE_CREATOR_INDEX, table_name="team_members")
    op.drop_table("team_members")
