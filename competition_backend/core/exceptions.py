# exceptions.py
# Domain errors raised by the competition services.
# Routes never catch these; main.py maps them to HTTP responses.

from typing import Any, Dict, Optional


class CompetitionError(Exception):
    """Base class for all competition engine errors."""

    def __init__(self, message: str, **context: Any):
        super().__init__(message)
        self.message = message
        self.context = {k: v for k, v in context.items() if v is not None}

    def to_dict(self) -> Dict[str, Any]:
        return {"error": type(self).__name__, "message": self.message, **self.context}


class NotFoundError(CompetitionError):
    """A referenced season, match, event, player or suspension does not exist."""


class IntegrityError(CompetitionError):
    """
    Upstream data violates an engine invariant (e.g. a completed match without
    a score, a card for a player not on that team's roster).
    Carries the ids needed to locate the offending row.
    """

    def __init__(
        self,
        message: str,
        match_id: Optional[int] = None,
        event_id: Optional[int] = None,
        player_id: Optional[int] = None,
    ):
        super().__init__(message, match_id=match_id, event_id=event_id, player_id=player_id)
        self.match_id = match_id
        self.event_id = event_id
        self.player_id = player_id


class ConfigurationError(CompetitionError):
    """Ruleset thresholds are missing or invalid. Callers must fail closed."""


class ConcurrentRebuildConflict(CompetitionError):
    """A newer rebuild committed first; the stale result must be discarded."""


class MatchStateError(CompetitionError):
    """A ledger write is not allowed in the match's current status."""


class InvalidEventError(CompetitionError):
    """An event payload is inconsistent (card without card type, team not in match, ...)."""


class SuspensionTransitionError(CompetitionError):
    """Invalid suspension status transition (e.g. served -> cancelled)."""
