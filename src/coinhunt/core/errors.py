"""
Error taxonomy for the hunt core.

Nothing here is fatal to the process:
- `InputRejected`: a malformed sensor tick. The caller logs it and skips the tick;
  engine state is untouched.
- `InvariantViolation`: internal state referenced something that should not be
  possible (e.g., a target that vanished without being removed). Logged and
  self-healed by the engine.
- `CollectionDenied`: a user-facing denial. The core returns `Denied` results
  instead of raising; this exception exists for outer layers (API) that prefer
  to raise.
"""

from __future__ import annotations


class CoinHuntError(Exception):
    """Base class for all errors raised by this package."""


class InputRejected(CoinHuntError, ValueError):
    """A tick input (position, heading, find limit) failed validation."""


class InvariantViolation(CoinHuntError, RuntimeError):
    """Engine state contradicted the coin pool outside the expected removal path."""


class CollectionDenied(CoinHuntError):
    def __init__(self, reason: str, message: str = ""):
        super().__init__(message or reason)
        self.reason = reason
        self.message = message or reason
