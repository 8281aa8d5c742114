"""Player service - player registration and the opponent directory."""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..db.models.players import Player


class PlayerService:
    """Service for player operations."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def get_or_create_player(
        self,
        telegram_user_id: int,
        display_name: str,
        username: str | None = None,
    ) -> Player:
        """Get existing player or register a new one.

        Args:
            telegram_user_id: Verified Telegram user ID
            display_name: Display name from Telegram
            username: Telegram @username, if any

        Returns:
            Player instance
        """
        player = await self.get_player_by_telegram_id(telegram_user_id)

        if player:
            # Keep directory attributes fresh
            if player.display_name != display_name:
                player.display_name = display_name
            if username and player.username != username:
                player.username = username
            return player

        player = Player(
            telegram_user_id=telegram_user_id,
            display_name=display_name,
            username=username,
        )
        self.session.add(player)
        await self.session.flush()
        return player

    async def get_player_by_id(self, player_id: int) -> Player | None:
        """Get player by ID."""
        stmt = select(Player).where(Player.id == player_id)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_player_by_telegram_id(self, telegram_user_id: int) -> Player | None:
        """Get player by Telegram user ID."""
        stmt = select(Player).where(Player.telegram_user_id == telegram_user_id)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def list_opponents(self, player_id: int) -> list[Player]:
        """Get every other known player, ordered by name."""
        stmt = select(Player).where(Player.id != player_id).order_by(Player.display_name, Player.id)
        result = await self.session.execute(stmt)
        return list(result.scalars().all())
