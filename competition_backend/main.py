from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from sqlmodel import select, Session

from competition_backend.core.config import AUTO_SEED
from competition_backend.core.database import init_db, engine
from competition_backend.core.exceptions import (
    CompetitionError,
    ConfigurationError,
    IntegrityError,
    InvalidEventError,
    MatchStateError,
    NotFoundError,
    SuspensionTransitionError,
)
from competition_backend.models.season_model import Season
from competition_backend.seed.seed_all import seed_all

# --- Routers ---
from competition_backend.routes.standings_routes import router as standings_router
from competition_backend.routes.discipline_routes import router as discipline_router
from competition_backend.routes.match_routes import router as match_router


def prepare_database():
    # 1️⃣ Init DB tables
    init_db()

    # 2️⃣ Auto-seed a demo season on an empty database
    if not AUTO_SEED:
        return
    with Session(engine) as session:
        if session.exec(select(Season)).first() is None:
            print("🌱 No seasons found. Auto-seeding database...")
            seed_all(engine)
        else:
            print("✅ Database already seeded. Skipping auto-seed.")


@asynccontextmanager
async def lifespan(app: FastAPI):
    prepare_database()
    yield


app = FastAPI(title="Competition Integrity Engine", lifespan=lifespan)


# ==========================================
# ERROR MAPPING
# ==========================================
STATUS_BY_ERROR = [
    (NotFoundError, 404),
    (ConfigurationError, 422),
    (InvalidEventError, 422),
    (MatchStateError, 409),
    (SuspensionTransitionError, 409),
    (IntegrityError, 500),
]


@app.exception_handler(CompetitionError)
def competition_error_handler(request: Request, exc: CompetitionError):
    status_code = 400
    for error_type, code in STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            status_code = code
            break
    if status_code >= 500:
        print(f"❌ {type(exc).__name__} on {request.url.path}: {exc.message} {exc.context}")
    return JSONResponse(status_code=status_code, content=exc.to_dict())


# Routers
app.include_router(standings_router, prefix="/standings", tags=["Standings"])
app.include_router(discipline_router, prefix="/discipline", tags=["Discipline"])
app.include_router(match_router, prefix="/matches", tags=["Matches"])
