# ruleset_config.py
# Default disciplinary ruleset used when seeding a new competition.
# The engine itself never falls back to these values: a season without a
# valid ruleset is a configuration error.

# Matches banned for a straight red card (or a second yellow in one match)
RED_CARD_BAN_MATCHES = 1

# Unconsumed yellow cards that trigger an accumulation ban
YELLOW_ACCUMULATION_THRESHOLD = 2

# Matches banned once the yellow threshold is reached
YELLOW_BAN_MATCHES = 1

# Keep yellows above the threshold (several in one match) for the next ban
CARRY_OVER_REMAINDER = False

# Reset unconsumed yellows when the competition moves to a new stage
RESET_ACCUMULATION_PER_STAGE = False

DEFAULT_RULESET = {
    "name": "Default league rules",
    "red_card_ban_matches": RED_CARD_BAN_MATCHES,
    "yellow_accumulation_threshold": YELLOW_ACCUMULATION_THRESHOLD,
    "yellow_ban_matches": YELLOW_BAN_MATCHES,
    "carry_over_remainder": CARRY_OVER_REMAINDER,
    "reset_accumulation_per_stage": RESET_ACCUMULATION_PER_STAGE,
}
