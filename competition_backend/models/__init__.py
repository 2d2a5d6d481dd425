# competition_backend/models/__init__.py
# Centralized imports for all database models and schemas

# Teams
from .team_model import Team, SeasonTeam

# Season and ruleset
from .season_model import Season, Ruleset

# Roster
from .player_model import SeasonPlayer, SeasonPlayerRead

# Matches and the event ledger
from .match_model import (
    Match, MatchEvent, MatchStatus, EventType, CardType,
    MatchEventCreate, MatchEventRead, MatchCompleteRequest, VoidEventRequest
)

# Standings cache
from .standings_model import TeamSeasonStatistic, StandingRow

# Suspensions
from .suspension_model import (
    Suspension, SuspensionReason, SuspensionStatus, SuspensionRead, CancelSuspensionRequest
)
