# __init__.py
# Imports all seed functions for easy batch seeding.

from .seed_rulesets import seed_rulesets
from .seed_teams import seed_teams
from .seed_season import seed_season
