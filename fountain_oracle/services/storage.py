"""Database storage service for oracle state and daily snapshots"""
import logging
from datetime import date
from typing import List, Optional
from sqlalchemy.orm import Session
from sqlalchemy.exc import SQLAlchemyError

from fountain_oracle.models.db import OracleStateRecord, DailySnapshotRecord, AuditPublication
from fountain_oracle.models.snapshot import OracleState, DailySnapshot
from fountain_oracle.models.publication import PublishReceipt

logger = logging.getLogger(__name__)


def _to_state(record: OracleStateRecord) -> OracleState:
    return OracleState(
        date=record.date,
        cumulative_score=record.cumulative_score,
        active_holders=record.active_holders
    )


def _to_snapshot(record: DailySnapshotRecord) -> DailySnapshot:
    return DailySnapshot(
        date=record.date,
        active_holders=record.active_holders,
        new_donors=record.new_donors,
        previous_active_holders=record.previous_active_holders,
        growth_rate=record.growth_rate,
        cumulative_score=record.cumulative_score,
        growth_multiplier=record.growth_multiplier,
        donor_booster=record.donor_booster,
        final_entitlement=record.final_entitlement,
        total_allocated=record.total_allocated,
        computed_at=record.computed_at
    )


class StorageService:
    """Handles all database operations for the oracle"""

    def __init__(self, session: Session):
        if not session:
            raise ValueError("Database session is required")
        self.session = session

    def get_state(self, day: date) -> Optional[OracleState]:
        """Get the state recorded for a day"""
        record = self.session.get(OracleStateRecord, day)
        return _to_state(record) if record else None

    def get_prior_state(self, day: date) -> Optional[OracleState]:
        """Get the most recent state recorded before a day"""
        try:
            record = self.session.query(OracleStateRecord).filter(
                OracleStateRecord.date < day
            ).order_by(OracleStateRecord.date.desc()).first()
            return _to_state(record) if record else None
        except SQLAlchemyError as e:
            logger.error(f"Database error loading prior state for {day}: {e}")
            raise

    def get_snapshot(self, day: date) -> Optional[DailySnapshot]:
        """Get the snapshot recorded for a day"""
        record = self.session.get(DailySnapshotRecord, day)
        return _to_snapshot(record) if record else None

    def get_latest_snapshot(self) -> Optional[DailySnapshot]:
        record = self.session.query(DailySnapshotRecord).order_by(
            DailySnapshotRecord.date.desc()
        ).first()
        return _to_snapshot(record) if record else None

    def get_snapshots_between(self, start: date, end: date) -> List[DailySnapshot]:
        """Get snapshots in an inclusive date range, oldest first"""
        records = self.session.query(DailySnapshotRecord).filter(
            DailySnapshotRecord.date >= start,
            DailySnapshotRecord.date <= end
        ).order_by(DailySnapshotRecord.date.asc()).all()
        return [_to_snapshot(r) for r in records]

    def get_publication(self, day: date) -> Optional[PublishReceipt]:
        """Get the latest publication receipt for a day"""
        record = self.session.query(AuditPublication).filter_by(
            date=day
        ).order_by(AuditPublication.id.desc()).first()
        if not record:
            return None
        return PublishReceipt(
            record_id=record.record_id,
            transaction_id=record.transaction_id,
            sequence_number=record.sequence_number,
            topic_id=record.topic_id,
            message_size=record.message_size,
            published_at=record.published_at
        )

    def put_state(self, state: OracleState) -> None:
        self._write([self._state_record(state)], f"state for {state.date}")

    def put_snapshot(self, snapshot: DailySnapshot) -> None:
        self._write([self._snapshot_record(snapshot)], f"snapshot for {snapshot.date}")

    def record_daily_result(self, snapshot: DailySnapshot, state: OracleState) -> None:
        """Store a day's snapshot and carried state in one transaction"""
        self._write(
            [self._snapshot_record(snapshot), self._state_record(state)],
            f"daily result for {snapshot.date}"
        )
        logger.info(f"Stored daily snapshot and state for {snapshot.date}")

    def record_publication(self, day: date, receipt: PublishReceipt) -> None:
        record = AuditPublication(
            date=day,
            record_id=receipt.record_id,
            transaction_id=receipt.transaction_id,
            sequence_number=receipt.sequence_number,
            topic_id=receipt.topic_id,
            message_size=receipt.message_size,
            published_at=receipt.published_at
        )
        self._write([record], f"publication for {day}")

    def _write(self, records: list, what: str) -> None:
        try:
            self.session.add_all(records)
            self.session.commit()
        except SQLAlchemyError as e:
            self.session.rollback()
            logger.error(f"Database error storing {what}: {e}")
            raise

    @staticmethod
    def _state_record(state: OracleState) -> OracleStateRecord:
        return OracleStateRecord(
            date=state.date,
            cumulative_score=state.cumulative_score,
            active_holders=state.active_holders
        )

    @staticmethod
    def _snapshot_record(snapshot: DailySnapshot) -> DailySnapshotRecord:
        return DailySnapshotRecord(
            date=snapshot.date,
            active_holders=snapshot.active_holders,
            new_donors=snapshot.new_donors,
            previous_active_holders=snapshot.previous_active_holders,
            growth_rate=snapshot.growth_rate,
            cumulative_score=snapshot.cumulative_score,
            growth_multiplier=snapshot.growth_multiplier,
            donor_booster=snapshot.donor_booster,
            final_entitlement=snapshot.final_entitlement,
            total_allocated=snapshot.total_allocated,
            computed_at=snapshot.computed_at
        )
