"""カタログ初期スキーマ"""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op

revision = "0001_initial"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "games",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("external_id", sa.Integer(), unique=True),
        sa.Column("name", sa.String(length=512), nullable=False),
        sa.Column("release_date", sa.Date()),
        sa.Column("followers", sa.Integer()),
        sa.Column("store_url", sa.String(length=1024)),
        sa.Column("image_url", sa.String(length=1024)),
        sa.Column("short_description", sa.Text()),
        sa.Column("windows", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("mac", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("linux", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column(
            "created_at",
            sa.DateTime(),
            nullable=False,
            server_default=sa.text("CURRENT_TIMESTAMP"),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(),
            nullable=False,
            server_default=sa.text("CURRENT_TIMESTAMP"),
        ),
    )
    op.create_index("idx_games_release_date", "games", ["release_date"])

    op.create_table(
        "tags",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(length=128), nullable=False, unique=True),
        sa.Column(
            "created_at",
            sa.DateTime(),
            nullable=False,
            server_default=sa.text("CURRENT_TIMESTAMP"),
        ),
    )

    op.create_table(
        "game_tags",
        sa.Column(
            "game_id",
            sa.String(length=36),
            sa.ForeignKey("games.id", ondelete="CASCADE"),
            primary_key=True,
        ),
        sa.Column(
            "tag_id",
            sa.Integer(),
            sa.ForeignKey("tags.id", ondelete="CASCADE"),
            primary_key=True,
        ),
        sa.Column("position", sa.Integer(), nullable=False, server_default=sa.text("0")),
    )
    op.create_index("idx_game_tags_tag_id", "game_tags", ["tag_id"])


def downgrade() -> None:
    op.drop_index("idx_game_tags_tag_id", table_name="game_tags")
    op.drop_table("game_tags")
    op.drop_table("tags")
    op.drop_index("idx_games_release_date", table_name="games")
    op.drop_table("games")
