from sqlmodel import Session, select

from competition_backend.core.ruleset_config import DEFAULT_RULESET
from competition_backend.models.season_model import Ruleset


def seed_rulesets(engine):
    """Seeds the default disciplinary ruleset if no ruleset with that name exists."""
    print("📜 Seeding rulesets...")

    with Session(engine) as session:
        existing = session.exec(select(Ruleset).where(Ruleset.name == DEFAULT_RULESET["name"])).first()
        if existing:
            print(f"✅ Ruleset '{existing.name}' already present.")
            return existing.id

        ruleset = Ruleset(**DEFAULT_RULESET)
        session.add(ruleset)
        session.commit()
        session.refresh(ruleset)
        print(f"✅ Ruleset '{ruleset.name}' created "
              f"(red={ruleset.red_card_ban_matches}, yellows={ruleset.yellow_accumulation_threshold})")
        return ruleset.id
