"""Duel system models."""

from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Integer, String, Text
from sqlalchemy import Enum as SQLEnum
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base, TimestampMixin, enum_values
from .enums import DuelStatus, FinishReason


def make_pair_key(player_a_id: int, player_b_id: int) -> str:
    """Order-independent key for a pair of players."""
    low, high = sorted((player_a_id, player_b_id))
    return f"{low}:{high}"


class Duel(Base, TimestampMixin):
    """A duel between a challenger (player1) and the challenged (player2).

    Tracks status, whose turn it is, the shared turn counter and the winner.
    """

    __tablename__ = "duels"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    player1_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("players.id"), nullable=False, index=True
    )
    player2_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("players.id"), nullable=False, index=True
    )

    status: Mapped[DuelStatus] = mapped_column(
        SQLEnum(DuelStatus, name="duel_status", values_callable=enum_values),
        nullable=False,
        default=DuelStatus.WAITING,
    )
    current_turn_user_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("players.id"), nullable=True
    )
    turn_number: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    winner_id: Mapped[int | None] = mapped_column(Integer, ForeignKey("players.id"), nullable=True)
    finish_reason: Mapped[FinishReason | None] = mapped_column(
        SQLEnum(FinishReason, name="duel_finish_reason", values_callable=enum_values), nullable=True
    )
    finished_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    # Set while waiting/active, cleared once the duel is over.
    # Unique, so at most one live duel exists per pair of players.
    live_pair_key: Mapped[str | None] = mapped_column(String(64), nullable=True, unique=True)

    player1: Mapped["Player"] = relationship(
        "Player", foreign_keys=[player1_id], lazy="joined", innerjoin=True
    )
    player2: Mapped["Player"] = relationship(
        "Player", foreign_keys=[player2_id], lazy="joined", innerjoin=True
    )
    combat_states: Mapped[list["PlayerCombatState"]] = relationship(
        "PlayerCombatState", back_populates="duel", cascade="all, delete-orphan"
    )
    log_entries: Mapped[list["DuelLogEntry"]] = relationship(
        "DuelLogEntry",
        back_populates="duel",
        cascade="all, delete-orphan",
        order_by="DuelLogEntry.id",
    )

    def is_participant(self, player_id: int) -> bool:
        return player_id in (self.player1_id, self.player2_id)

    def opponent_of(self, player_id: int) -> int:
        """Get the other player's ID."""
        if player_id == self.player1_id:
            return self.player2_id
        if player_id == self.player2_id:
            return self.player1_id
        raise ValueError(f"Player {player_id} is not in duel {self.id}")

    def __repr__(self) -> str:
        return f"<Duel(id={self.id}, status={self.status}, turn={self.turn_number})>"


class DuelLogEntry(Base, TimestampMixin):
    """One committed action in a duel. Append-only."""

    __tablename__ = "duel_log_entries"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    duel_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("duels.id", ondelete="CASCADE"), nullable=False, index=True
    )
    turn_number: Mapped[int] = mapped_column(Integer, nullable=False)
    player_id: Mapped[int] = mapped_column(Integer, ForeignKey("players.id"), nullable=False)
    action_type: Mapped[str] = mapped_column(String(32), nullable=False)
    flavor_text: Mapped[str] = mapped_column(Text, nullable=False)

    duel: Mapped["Duel"] = relationship("Duel", back_populates="log_entries")

    def __repr__(self) -> str:
        return f"<DuelLogEntry(duel={self.duel_id}, turn={self.turn_number}, action={self.action_type})>"


# Forward references for type hints
from .players import Player, PlayerCombatState  # noqa: E402, F401
