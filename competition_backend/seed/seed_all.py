# seed_all.py
# Orchestrates all seed scripts to populate a demo competition, with detailed logging.

from sqlmodel import Session

from competition_backend.seed.seed_rulesets import seed_rulesets
from competition_backend.seed.seed_season import seed_season
from competition_backend.seed.seed_teams import seed_teams
from competition_backend.services.generate_fixtures import generate_fixtures_for_season


def seed_all(engine=None):
    if engine is None:
        from competition_backend.core.database import engine as default_engine
        engine = default_engine

    print("\n🌱 Starting full database seeding...\n")

    print("➡️  Step 1: Seeding rulesets...")
    ruleset_id = seed_rulesets(engine)

    print("➡️  Step 2: Seeding teams...")
    team_ids = seed_teams(engine)

    print("➡️  Step 3: Seeding season, registrations and rosters...")
    season_id = seed_season(engine, ruleset_id, team_ids)

    print("➡️  Step 4: Generating fixtures...")
    with Session(engine) as session:
        generate_fixtures_for_season(session, season_id)

    print("\n✅ Database seeding complete. Season ready with fixtures.\n")
    return season_id


if __name__ == "__main__":
    from competition_backend.core.database import init_db

    init_db()
    seed_all()
