"""Add player and duel tables.

Revision ID: 001
Revises:
Create Date: 2026-10-16

Creates players, duels, player_combat_states and duel_log_entries.
duels.live_pair_key is unique and only set while a duel is waiting or
active, so at most one live duel exists per pair of players.
"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "001"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
    ]


def upgrade() -> None:
    # ============================================
    # Create enums
    # ============================================
    duel_status_enum = postgresql.ENUM(
        "waiting",
        "active",
        "finished",
        "declined",
        name="duel_status",
        create_type=False,
    )
    duel_status_enum.create(op.get_bind(), checkfirst=True)

    duel_finish_reason_enum = postgresql.ENUM(
        "respect",
        "fouls",
        "turn_cap",
        "surrender",
        name="duel_finish_reason",
        create_type=False,
    )
    duel_finish_reason_enum.create(op.get_bind(), checkfirst=True)

    # ============================================
    # Create players table
    # ============================================
    op.create_table(
        "players",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("telegram_user_id", sa.BigInteger(), nullable=False),
        sa.Column("display_name", sa.String(100), nullable=False),
        sa.Column("username", sa.String(64), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_players_telegram_user_id", "players", ["telegram_user_id"], unique=True)

    # ============================================
    # Create duels table
    # ============================================
    op.create_table(
        "duels",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("player1_id", sa.Integer(), sa.ForeignKey("players.id"), nullable=False, index=True),
        sa.Column("player2_id", sa.Integer(), sa.ForeignKey("players.id"), nullable=False, index=True),
        sa.Column("status", duel_status_enum, nullable=False, server_default="waiting"),
        sa.Column("current_turn_user_id", sa.Integer(), sa.ForeignKey("players.id"), nullable=True),
        sa.Column("turn_number", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("winner_id", sa.Integer(), sa.ForeignKey("players.id"), nullable=True),
        sa.Column("finish_reason", duel_finish_reason_enum, nullable=True),
        sa.Column("finished_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("live_pair_key", sa.String(64), nullable=True, unique=True),
        *_timestamps(),
    )

    # ============================================
    # Create player_combat_states table
    # ============================================
    op.create_table(
        "player_combat_states",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("player_id", sa.Integer(), sa.ForeignKey("players.id"), nullable=False, index=True),
        sa.Column(
            "duel_id",
            sa.Integer(),
            sa.ForeignKey("duels.id", ondelete="CASCADE"),
            nullable=False,
            index=True,
        ),
        sa.Column("alcometer", sa.Integer(), nullable=False),
        sa.Column("respect", sa.Integer(), nullable=False),
        sa.Column("stomak", sa.Integer(), nullable=False),
        sa.Column("novcanik", sa.Integer(), nullable=False),
        sa.Column("pijani_foulovi", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("action_uses", postgresql.JSONB(), nullable=False, server_default="{}"),
        *_timestamps(),
        sa.UniqueConstraint("player_id", "duel_id", name="uq_combat_state_player_duel"),
    )

    # ============================================
    # Create duel_log_entries table
    # ============================================
    op.create_table(
        "duel_log_entries",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "duel_id",
            sa.Integer(),
            sa.ForeignKey("duels.id", ondelete="CASCADE"),
            nullable=False,
            index=True,
        ),
        sa.Column("turn_number", sa.Integer(), nullable=False),
        sa.Column("player_id", sa.Integer(), sa.ForeignKey("players.id"), nullable=False),
        sa.Column("action_type", sa.String(32), nullable=False),
        sa.Column("flavor_text", sa.Text(), nullable=False),
        *_timestamps(),
    )


def downgrade() -> None:
    op.drop_table("duel_log_entries")
    op.drop_table("player_combat_states")
    op.drop_table("duels")
    op.drop_index("ix_players_telegram_user_id", table_name="players")
    op.drop_table("players")

    sa.Enum(name="duel_finish_reason").drop(op.get_bind(), checkfirst=True)
    sa.Enum(name="duel_status").drop(op.get_bind(), checkfirst=True)
