"""Engine error taxonomy.

Cap outcomes are not errors: rate-limited messages come back as a
MessageResult and capped burns simply award zero XP.
"""

from __future__ import annotations


class EngineError(Exception):
    """Base class for all progression engine errors."""


class InvalidAmountError(EngineError, ValueError):
    """Negative or non-finite score, burn or multiplier value. Raised before any mutation."""

    def __init__(self, field: str, value: object) -> None:
        self.field = field
        self.value = value
        super().__init__(f"Invalid {field}: {value!r}")


class SeasonEndedError(EngineError):
    """A burn was reported against a season that is no longer active."""

    def __init__(self, season_id: int, current_season_id: int) -> None:
        self.season_id = season_id
        self.current_season_id = current_season_id
        super().__init__(f"Season {season_id} has ended; current season is {current_season_id}")


class UnknownSeasonError(EngineError, LookupError):
    """A season id that was never created."""

    def __init__(self, season_id: int) -> None:
        self.season_id = season_id
        super().__init__(f"Season {season_id} not found")


class StorageError(EngineError):
    """Ledger read/write failed. The operation's writes were rolled back."""


class UnknownChannelError(EngineError, ValueError):
    """Message channel outside the configured set."""

    def __init__(self, channel: str) -> None:
        self.channel = channel
        super().__init__(f"Unknown message channel: {channel!r}")


class IdempotencyConflictError(EngineError):
    """An idempotency key was reused for a different account."""

    def __init__(self, key: str) -> None:
        self.key = key
        super().__init__(f"Idempotency key {key!r} belongs to another account")


class UnknownEventError(EngineError, LookupError):
    """Score event type not in the catalogue."""

    def __init__(self, event_type: str) -> None:
        self.event_type = event_type
        super().__init__(f"Unknown score event: {event_type!r}")
