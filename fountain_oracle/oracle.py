"""Daily entitlement oracle"""
import logging
from datetime import date, datetime, timezone
from typing import Optional, Tuple

from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from fountain_oracle.errors import InputUnavailable, OracleError, PublishFailed
from fountain_oracle.models.snapshot import (
    DailySnapshot, HolderCounts, OracleState, SnapshotResult, SnapshotStatus
)
from fountain_oracle.scoring import EntitlementScorer
from fountain_oracle.services.mirror import MirrorHolderCountSource
from fountain_oracle.services.publisher import AuditPublisher
from fountain_oracle.services.storage import StorageService
from fountain_oracle.utils.json_encoder import utc_now

logger = logging.getLogger(__name__)


def utc_today() -> date:
    return datetime.now(timezone.utc).date()


class DailyEntitlementOracle:
    """Computes and records the per-holder entitlement once per calendar day"""

    def __init__(self, scorer: EntitlementScorer, count_source: MirrorHolderCountSource,
                 storage: StorageService, publisher: Optional[AuditPublisher] = None,
                 allow_manual_snapshots: bool = False):
        self.scorer = scorer
        self.count_source = count_source
        self.storage = storage
        self.publisher = publisher
        self.allow_manual_snapshots = allow_manual_snapshots

    def compute_snapshot(self, snapshot_date: date, counts: HolderCounts,
                         prior_state: Optional[OracleState]) -> Tuple[DailySnapshot, OracleState]:
        """Derive a day's snapshot and carried state from its counts and the prior state"""
        previous_holders = prior_state.active_holders if prior_state else 0
        previous_score = prior_state.cumulative_score if prior_state else 0.0

        growth_rate = self.scorer.compute_growth_rate(counts.active_holders, previous_holders)
        cumulative_score = self.scorer.update_cumulative_score(growth_rate, previous_score)
        growth_multiplier = self.scorer.compute_growth_multiplier(cumulative_score)
        donor_booster = self.scorer.compute_donor_booster(counts.new_donors, counts.active_holders)
        final_entitlement = self.scorer.compute_final_entitlement(donor_booster, growth_multiplier)

        snapshot = DailySnapshot(
            date=snapshot_date,
            active_holders=counts.active_holders,
            new_donors=counts.new_donors,
            previous_active_holders=previous_holders,
            growth_rate=growth_rate,
            cumulative_score=cumulative_score,
            growth_multiplier=growth_multiplier,
            donor_booster=donor_booster,
            final_entitlement=final_entitlement,
            total_allocated=counts.active_holders * final_entitlement,
            computed_at=utc_now()
        )
        state = OracleState(
            date=snapshot_date,
            cumulative_score=cumulative_score,
            active_holders=counts.active_holders
        )
        return snapshot, state

    def _existing_result(self, snapshot: DailySnapshot) -> SnapshotResult:
        logger.info(f"Snapshot already exists for {snapshot.date}")
        return SnapshotResult(
            status=SnapshotStatus.ALREADY_COMPUTED,
            snapshot=snapshot,
            state=self.storage.get_state(snapshot.date),
            publication=self.storage.get_publication(snapshot.date)
        )

    def _fetch_counts(self, snapshot_date: date) -> HolderCounts:
        try:
            counts = self.count_source.get_counts(snapshot_date)
        except InputUnavailable:
            raise
        except Exception as e:
            logger.error(f"Count source failed for {snapshot_date}: {e}")
            raise InputUnavailable(f"Holder counts unavailable for {snapshot_date}: {e}") from e

        for name in ('active_holders', 'new_donors'):
            value = getattr(counts, name)
            if isinstance(value, bool) or not isinstance(value, int) or value < 0:
                raise InputUnavailable(f"Invalid {name} count for {snapshot_date}: {value!r}")
        return counts

    def run_daily_snapshot(self, snapshot_date: Optional[date] = None) -> SnapshotResult:
        """
        Run the snapshot for a day, at most once.

        A day that already has a snapshot returns it unchanged. Otherwise the
        counts are queried, the snapshot and state are stored together, and the
        record is published. Publication failures are reported as warnings.

        Raises:
            InputUnavailable: If counts cannot be obtained; nothing is stored
            OracleError: If the date lies in the future
        """
        snapshot_date = snapshot_date or utc_today()
        logger.info(f"Running daily snapshot for {snapshot_date}")

        if snapshot_date > utc_today():
            raise OracleError(f"Cannot snapshot future date {snapshot_date}")

        existing = self.storage.get_snapshot(snapshot_date)
        if existing:
            return self._existing_result(existing)

        counts = self._fetch_counts(snapshot_date)
        prior_state = self.storage.get_prior_state(snapshot_date)
        if prior_state:
            logger.info(f"Loaded prior state from {prior_state.date}: "
                        f"C={prior_state.cumulative_score}, Nt-1={prior_state.active_holders}")
        else:
            logger.info("No previous state found, starting with defaults")

        snapshot, state = self.compute_snapshot(snapshot_date, counts, prior_state)

        try:
            self.storage.record_daily_result(snapshot, state)
        except IntegrityError:
            # Another run stored this day first
            existing = self.storage.get_snapshot(snapshot_date)
            if existing is None:
                raise
            return self._existing_result(existing)

        result = SnapshotResult(status=SnapshotStatus.COMPUTED, snapshot=snapshot, state=state)
        self._publish(result)

        logger.info(f"Daily snapshot completed: {result.summary()}")
        return result

    def manual_snapshot(self, target_date: date) -> SnapshotResult:
        """Run the snapshot for an explicit date, e.g. to catch up a missed day"""
        if not self.allow_manual_snapshots:
            raise OracleError("Manual snapshots are disabled")
        logger.info(f"Manual snapshot triggered for {target_date}")
        return self.run_daily_snapshot(target_date)

    def _publish(self, result: SnapshotResult) -> None:
        if not self.publisher:
            return

        snapshot = result.snapshot
        try:
            receipt = self.publisher.publish(snapshot)
        except PublishFailed as e:
            logger.warning(f"Failed to publish snapshot for {snapshot.date}: {e}")
            result.warnings.append(f"Publication failed: {e}")
            return
        except Exception as e:
            # Snapshot and state are already committed
            logger.exception(f"Unexpected error publishing snapshot for {snapshot.date}: {e}")
            result.warnings.append(f"Publication failed: {e}")
            return

        result.publication = receipt
        try:
            self.storage.record_publication(snapshot.date, receipt)
        except SQLAlchemyError as e:
            logger.warning(f"Failed to record publication for {snapshot.date}: {e}")
            result.warnings.append(f"Publication receipt not stored: {e}")
