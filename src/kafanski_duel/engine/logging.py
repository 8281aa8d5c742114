"""Turn log - append-only record of every committed action in a duel.

Provides:
- Appending entries as part of the action's transaction
- Truncated recent views for clients
- Full history of finished duels in a readable form
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..db.models.duels import DuelLogEntry
from ..db.models.players import Player

SURRENDER_ACTION = "surrender"


@dataclass
class LogEntry:
    """A single turn log entry as shown to clients."""

    turn_number: int
    player_id: int
    action_type: str
    flavor_text: str
    timestamp: datetime | None = None
    display_name: str = ""

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        result: dict[str, Any] = {
            "turn_number": self.turn_number,
            "user_id": self.player_id,
            "action_type": self.action_type,
            "flavor_text": self.flavor_text,
        }
        if self.timestamp is not None:
            result["timestamp"] = self.timestamp.isoformat()
        if self.display_name:
            result["display_name"] = self.display_name
        return result


@dataclass
class CombatLog:
    """Complete log of a duel."""

    duel_id: int
    entries: list[LogEntry] = field(default_factory=list)

    def format_readable(self) -> str:
        """Format the log in a human-readable format."""
        lines = [f"=== Duel #{self.duel_id} ==="]
        for entry in self.entries:
            lines.append(self._format_entry(entry))
        return "\n".join(lines)

    def _format_entry(self, entry: LogEntry) -> str:
        who = entry.display_name or f"Igrač {entry.player_id}"
        if entry.action_type == SURRENDER_ACTION:
            return f"  [{entry.turn_number}] {who} se predaje. {entry.flavor_text}".rstrip()
        return f"  [{entry.turn_number}] {entry.flavor_text}"


class TurnLogRecorder:
    """Writes and reads the turn log of duels.

    Usage:
        recorder = TurnLogRecorder(session)
        recorder.append(duel_id=1, turn_number=1, player_id=5, action_type="rakija", flavor_text="...")
        await session.commit()

        recent = await recorder.recent(duel_id=1, limit=8)
        print((await recorder.history(duel_id=1)).format_readable())
    """

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    def append(
        self,
        duel_id: int,
        turn_number: int,
        player_id: int,
        action_type: str,
        flavor_text: str,
    ) -> DuelLogEntry:
        """Add an entry to the current transaction. Committed with the turn."""
        entry = DuelLogEntry(
            duel_id=duel_id,
            turn_number=turn_number,
            player_id=player_id,
            action_type=action_type,
            flavor_text=flavor_text,
        )
        self.session.add(entry)
        return entry

    async def recent(self, duel_id: int, limit: int) -> list[LogEntry]:
        """Get the newest ``limit`` entries, oldest first."""
        if limit <= 0:
            return []
        stmt = (
            select(DuelLogEntry, Player.display_name)
            .join(Player, Player.id == DuelLogEntry.player_id)
            .where(DuelLogEntry.duel_id == duel_id)
            .order_by(DuelLogEntry.id.desc())
            .limit(limit)
        )
        result = await self.session.execute(stmt)
        entries = [self._to_entry(row, name) for row, name in result.all()]
        entries.reverse()
        return entries

    async def history(self, duel_id: int) -> CombatLog:
        """Get the full log of a duel."""
        stmt = (
            select(DuelLogEntry, Player.display_name)
            .join(Player, Player.id == DuelLogEntry.player_id)
            .where(DuelLogEntry.duel_id == duel_id)
            .order_by(DuelLogEntry.id)
        )
        result = await self.session.execute(stmt)
        return CombatLog(
            duel_id=duel_id,
            entries=[self._to_entry(row, name) for row, name in result.all()],
        )

    @staticmethod
    def _to_entry(row: DuelLogEntry, display_name: str) -> LogEntry:
        return LogEntry(
            turn_number=row.turn_number,
            player_id=row.player_id,
            action_type=row.action_type,
            flavor_text=row.flavor_text,
            timestamp=row.created_at,
            display_name=display_name,
        )
