# recalculation.py
# The only writer of suspension rows.
#
# A rebuild reads one snapshot, folds it with no transaction open, then swaps
# the result in a single transaction guarded by Season.disciplinary_version.
# If anything that moves the version (another rebuild, an admin override or a
# card, void, completion or cancellation in the ledger) committed in between,
# the swap is dropped and the run reports superseded=True: last committed wins.

from datetime import datetime, timezone
from typing import List, Optional

from pydantic import BaseModel
from sqlalchemy import update
from sqlmodel import Session

from competition_backend.core.config import TEST_MODE
from competition_backend.core.exceptions import (
    ConcurrentRebuildConflict,
    NotFoundError,
    SuspensionTransitionError,
)
from competition_backend.models.season_model import Season
from competition_backend.models.standings_model import StandingRow
from competition_backend.models.suspension_model import Suspension, SuspensionStatus
from competition_backend.services.disciplinary import (
    REPLACEABLE_STATUSES,
    DisciplinarySnapshot,
    ReplacementPlan,
    fold_cards,
    load_snapshot,
    plan_replacement,
)
from competition_backend.services.event_ledger import bump_disciplinary_version, get_season
from competition_backend.services.standings import LIVE, materialize_standings


class RebuildReport(BaseModel):
    season_id: int
    archived: int = 0
    created: int = 0
    updated: int = 0
    unchanged: int = 0
    errors: List[dict] = []
    superseded: bool = False
    version: Optional[int] = None


class RefreshResult(BaseModel):
    discipline: RebuildReport
    standings: List[StandingRow]


class RecalculationCoordinator:
    """
    Runs disciplinary rebuilds for a season. Each call opens its own sessions
    on the given engine so a rebuild never shares a transaction with the caller.
    """

    def __init__(self, engine=None):
        if engine is None:
            from competition_backend.core.database import engine as default_engine
            engine = default_engine
        self.engine = engine

    # ---------------------------------------------
    # Full rebuild
    # ---------------------------------------------
    def rebuild_season(self, season_id: int) -> RebuildReport:
        print(f"🔄 Rebuilding disciplinary state for season {season_id}...")

        # 1) Snapshot read
        with Session(self.engine) as session:
            snapshot = load_snapshot(session, season_id)

        # 2) Fold and diff, no transaction open
        fold = fold_cards(snapshot)
        plan = plan_replacement(snapshot.existing, fold.suspensions, fold.failed_players)

        report = RebuildReport(
            season_id=season_id,
            archived=len(plan.archive),
            created=len(plan.insert),
            updated=len(plan.update),
            unchanged=len(plan.unchanged),
            errors=fold.errors,
        )

        # 3) Atomic swap
        with Session(self.engine) as session:
            try:
                report.version = self._swap(session, snapshot, plan)
                session.commit()
            except ConcurrentRebuildConflict as exc:
                session.rollback()
                print(f"⚠️ {exc.message} Discarding this result.")
                report.superseded = True
                report.archived = report.created = report.updated = 0
                report.unchanged = 0
                report.version = get_season(session, season_id).disciplinary_version
                return report
            except Exception:
                session.rollback()
                raise

        print(f"✅ Season {season_id} discipline rebuilt (v{report.version}): "
              f"{report.created} created, {report.updated} updated, {report.archived} archived, "
              f"{len(report.errors)} player error(s)")
        return report

    def _swap(self, session: Session, snapshot: DisciplinarySnapshot, plan: ReplacementPlan) -> int:
        """Apply the plan. Raises ConcurrentRebuildConflict if the version moved on."""
        now = datetime.now(timezone.utc)
        new_version = snapshot.version + 1

        result = session.execute(
            update(Season)
            .where(Season.id == snapshot.season_id, Season.disciplinary_version == snapshot.version)
            .values(disciplinary_version=new_version, last_rebuilt_at=now)
        )
        if result.rowcount == 0:
            raise ConcurrentRebuildConflict(
                f"Season {snapshot.season_id} was rebuilt by someone else after version {snapshot.version}.",
                season_id=snapshot.season_id,
            )

        for suspension_id in plan.archive:
            row = session.get(Suspension, suspension_id)
            if not self._replaceable(row):
                continue
            row.status = SuspensionStatus.ARCHIVED
            row.archived_at = now
            row.updated_at = now
            session.add(row)

        for suspension_id, draft in plan.update:
            row = session.get(Suspension, suspension_id)
            if not self._replaceable(row):
                continue
            row.team_id = draft.team_id
            row.trigger_match_id = draft.trigger_match_id
            row.trigger_round = draft.trigger_round
            row.matches_required = draft.matches_required
            row.matches_served = draft.matches_served
            row.served_match_ids = list(draft.served_match_ids)
            row.consumed_event_ids = list(draft.consumed_event_ids)
            row.status = draft.status
            row.updated_at = now
            session.add(row)

        for draft in plan.insert:
            session.add(Suspension(
                season_id=snapshot.season_id,
                player_id=draft.player_id,
                team_id=draft.team_id,
                reason=draft.reason,
                trigger_event_id=draft.trigger_event_id,
                trigger_match_id=draft.trigger_match_id,
                trigger_round=draft.trigger_round,
                matches_required=draft.matches_required,
                matches_served=draft.matches_served,
                served_match_ids=list(draft.served_match_ids),
                consumed_event_ids=list(draft.consumed_event_ids),
                status=draft.status,
                created_at=now,
                updated_at=now,
            ))

        if TEST_MODE:
            print(f"   🗄️ swap v{snapshot.version} -> v{new_version}: archive={plan.archive} "
                  f"update={[sid for sid, _ in plan.update]} insert={len(plan.insert)}")
        return new_version

    @staticmethod
    def _replaceable(row: Suspension) -> bool:
        # Overrides committed after the snapshot are never written over
        if SuspensionStatus(row.status) in REPLACEABLE_STATUSES:
            return True
        print(f"⚠️ Suspension {row.id} is now {SuspensionStatus(row.status).value}; leaving it as it is.")
        return False

    # ---------------------------------------------
    # Administrative override
    # ---------------------------------------------
    def cancel_suspension(self, suspension_id: int, notes: Optional[str] = None) -> Suspension:
        """
        ACTIVE -> CANCELLED. The cards behind the suspension stay consumed.
        Bumps the season version so an in-flight rebuild cannot overwrite the
        override, then rebuilds so later suspensions re-walk their matches.
        """
        with Session(self.engine) as session:
            suspension = session.get(Suspension, suspension_id)
            if not suspension:
                raise NotFoundError(f"Suspension {suspension_id} not found.", suspension_id=suspension_id)
            if SuspensionStatus(suspension.status) != SuspensionStatus.ACTIVE:
                raise SuspensionTransitionError(
                    f"Suspension {suspension_id} is {SuspensionStatus(suspension.status).value}; "
                    f"only active suspensions can be cancelled.",
                    suspension_id=suspension_id,
                )

            now = datetime.now(timezone.utc)
            result = session.execute(
                update(Suspension)
                .where(Suspension.id == suspension_id, Suspension.status == SuspensionStatus.ACTIVE)
                .values(status=SuspensionStatus.CANCELLED, notes=notes, updated_at=now)
            )
            if result.rowcount == 0:
                session.rollback()
                raise SuspensionTransitionError(
                    f"Suspension {suspension_id} changed status before it could be cancelled.",
                    suspension_id=suspension_id,
                )
            bump_disciplinary_version(session, suspension.season_id)

            session.commit()
            session.refresh(suspension)
            season_id = suspension.season_id

        print(f"🛑 Suspension {suspension_id} cancelled" + (f": {notes}" if notes else ""))
        self.rebuild_season(season_id)
        return suspension

    # ---------------------------------------------
    # After a score or event correction
    # ---------------------------------------------
    def refresh_after_correction(self, season_id: int) -> RefreshResult:
        report = self.rebuild_season(season_id)
        with Session(self.engine) as session:
            rows = materialize_standings(session, season_id, LIVE)
        return RefreshResult(discipline=report, standings=rows)


# --- Coordinator dependency (used in routes) ---
def get_coordinator() -> RecalculationCoordinator:
    return RecalculationCoordinator()
