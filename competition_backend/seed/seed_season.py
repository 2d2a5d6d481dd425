import random
from datetime import datetime, timedelta, timezone

from sqlmodel import Session

from competition_backend.models.player_model import SeasonPlayer
from competition_backend.models.season_model import Season
from competition_backend.models.team_model import SeasonTeam

FIRST_NAMES = ["Alex", "Ben", "Carlos", "Daniel", "Emil", "Felix", "Gustav", "Hugo",
               "Ivan", "Jonas", "Kasper", "Lucas", "Mads", "Nikolai", "Oscar", "Rasmus"]
LAST_NAMES = ["Andersen", "Berg", "Costa", "Dahl", "Eriksen", "Fischer", "Holm", "Jensen",
              "Kristensen", "Larsen", "Moreno", "Nielsen", "Olsen", "Pedersen", "Svensson", "Vidal"]

PLAYERS_PER_TEAM = 16


def seed_season(engine, ruleset_id: int, team_ids, name: str = "Demo League 2026"):
    """
    Seeds one season under the given ruleset, registers the teams and gives
    each a roster with shirt numbers 1..PLAYERS_PER_TEAM.
    Starts on the next Monday (UTC).
    """
    print(f"📅 Seeding season '{name}'...")
    rng = random.Random(2026)

    today = datetime.now(timezone.utc).replace(hour=0, minute=0, second=0, microsecond=0)
    season_start = today + timedelta(days=(7 - today.weekday()) % 7)

    with Session(engine) as session:
        season = Season(name=name, start_date=season_start, ruleset_id=ruleset_id)
        session.add(season)
        session.commit()
        session.refresh(season)

        players = []
        for team_id in team_ids:
            session.add(SeasonTeam(season_id=season.id, team_id=team_id))
            for shirt in range(1, PLAYERS_PER_TEAM + 1):
                players.append(SeasonPlayer(
                    season_id=season.id,
                    team_id=team_id,
                    full_name=f"{rng.choice(FIRST_NAMES)} {rng.choice(LAST_NAMES)}",
                    shirt_number=shirt,
                ))
        session.add_all(players)
        session.commit()

        print(f"✅ Season {season.id} created with {len(team_ids)} teams and {len(players)} players")
        return season.id
