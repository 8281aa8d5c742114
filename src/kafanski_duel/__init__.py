"""Kafanski Duel - turn-based two-player tavern duel for Telegram."""

__version__ = "0.1.0"
