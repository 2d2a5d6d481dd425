from sqlmodel import Session, select

from competition_backend.models.team_model import Team

# (name, short name)
DEMO_TEAMS = [
    ("Northbridge Rovers", "NBR"),
    ("Eastfield Athletic", "EFA"),
    ("Harbour City", "HBC"),
    ("Kingsmoor United", "KMU"),
    ("Redvale Wanderers", "RVW"),
    ("Southgate Albion", "SGA"),
]


def seed_teams(engine):
    """Seeds the demo teams, skipping names that already exist. Returns all their ids."""
    print("🏟 Seeding teams...")

    with Session(engine) as session:
        existing = {t.name: t for t in session.exec(select(Team)).all()}

        new_teams = []
        for name, short_name in DEMO_TEAMS:
            if name not in existing:
                team = Team(name=name, short_name=short_name)
                session.add(team)
                new_teams.append(team)

        session.commit()
        print(f"✅ {len(new_teams)} new teams created ({len(existing)} already present)")

        return [t.id for t in session.exec(
            select(Team).where(Team.name.in_([name for name, _ in DEMO_TEAMS])).order_by(Team.id)
        ).all()]
