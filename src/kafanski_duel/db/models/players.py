"""Player and per-duel combat state models."""

from typing import Any

from sqlalchemy import BigInteger, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base, TimestampMixin


class Player(Base, TimestampMixin):
    """A known player.

    Identity comes from Telegram; the core only references it.
    """

    __tablename__ = "players"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    telegram_user_id: Mapped[int] = mapped_column(BigInteger, nullable=False, unique=True, index=True)
    display_name: Mapped[str] = mapped_column(String(100), nullable=False)
    username: Mapped[str | None] = mapped_column(String(64), nullable=True)

    combat_states: Mapped[list["PlayerCombatState"]] = relationship(
        "PlayerCombatState", back_populates="player", cascade="all, delete-orphan"
    )

    def __repr__(self) -> str:
        return f"<Player(id={self.id}, name={self.display_name})>"


class PlayerCombatState(Base, TimestampMixin):
    """Resource stats for one player in one duel.

    Created when the challenge is accepted.
    """

    __tablename__ = "player_combat_states"
    __table_args__ = (
        UniqueConstraint("player_id", "duel_id", name="uq_combat_state_player_duel"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    player_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("players.id"), nullable=False, index=True
    )
    duel_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("duels.id", ondelete="CASCADE"), nullable=False, index=True
    )

    alcometer: Mapped[int] = mapped_column(Integer, nullable=False)
    respect: Mapped[int] = mapped_column(Integer, nullable=False)
    stomak: Mapped[int] = mapped_column(Integer, nullable=False)
    novcanik: Mapped[int] = mapped_column(Integer, nullable=False)
    pijani_foulovi: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    # Times each limited action was used (e.g., {"pesma": 1})
    action_uses: Mapped[dict[str, Any]] = mapped_column(JSONB, nullable=False, default=dict)

    player: Mapped["Player"] = relationship("Player", back_populates="combat_states")
    duel: Mapped["Duel"] = relationship("Duel", back_populates="combat_states")

    def __repr__(self) -> str:
        return (
            f"<PlayerCombatState(player={self.player_id}, respect={self.respect}, "
            f"alco={self.alcometer}, wallet={self.novcanik})>"
        )


# Forward references for type hints
from .duels import Duel  # noqa: E402, F401
