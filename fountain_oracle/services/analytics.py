"""Snapshot history and growth analytics"""
import logging
from datetime import date, timedelta
from typing import List, Optional

from fountain_oracle.config import Settings
from fountain_oracle.models.analytics import (
    EntitlementStats, GrowthAnalytics, HolderGrowth, MultiplierStats, SnapshotHistoryEntry
)
from fountain_oracle.models.snapshot import DailySnapshot
from fountain_oracle.services.storage import StorageService

logger = logging.getLogger(__name__)


class SnapshotAnalytics:
    """Read-only reporting over stored snapshots"""

    def __init__(self, storage: StorageService, settings: Settings):
        self.storage = storage
        self.settings = settings

    def _snapshots_in_window(self, end_date: date, days: int) -> List[DailySnapshot]:
        start_date = end_date - timedelta(days=days - 1)
        return self.storage.get_snapshots_between(start_date, end_date)

    def get_snapshot_history(self, end_date: date, days: int = 7) -> List[SnapshotHistoryEntry]:
        """Snapshots for the `days` days ending at `end_date`, oldest first"""
        history = []
        for snapshot in self._snapshots_in_window(end_date, days):
            publication = self.storage.get_publication(snapshot.date)
            history.append(SnapshotHistoryEntry(
                date=snapshot.date.isoformat(),
                active_holders=snapshot.active_holders,
                new_donors=snapshot.new_donors,
                growth_rate=f"{snapshot.growth_rate * 100:.2f}%",
                growth_multiplier=f"{snapshot.growth_multiplier:.2f}",
                donor_booster=snapshot.donor_booster,
                final_entitlement=snapshot.final_entitlement,
                total_allocated=snapshot.total_allocated,
                transaction_id=publication.transaction_id if publication else None
            ))
        return history

    def get_growth_analytics(self, end_date: date, days: int = 30) -> Optional[GrowthAnalytics]:
        """Growth summary over the window, or None without history"""
        snapshots = self._snapshots_in_window(end_date, days)
        if not snapshots:
            logger.info(f"No snapshot history in the {days} days ending {end_date}")
            return None

        oldest, latest = snapshots[0], snapshots[-1]
        holder_change = latest.active_holders - oldest.active_holders
        holder_rate = (holder_change / oldest.active_holders * 100) if oldest.active_holders > 0 else 0

        entitlements = [s.final_entitlement for s in snapshots]
        multipliers = [s.growth_multiplier for s in snapshots]
        total_allocated = sum(s.total_allocated for s in snapshots)

        state = self.storage.get_state(latest.date)

        return GrowthAnalytics(
            period=f"{oldest.date.isoformat()} to {latest.date.isoformat()}",
            days=len(snapshots),
            holder_count=HolderGrowth(
                start=oldest.active_holders,
                end=latest.active_holders,
                change=holder_change,
                rate=f"{holder_rate:.2f}%"
            ),
            entitlements=EntitlementStats(
                average=f"{sum(entitlements) / len(entitlements):.1f}",
                minimum=min(entitlements),
                maximum=max(entitlements),
                latest=latest.final_entitlement
            ),
            multipliers=MultiplierStats(
                average=f"{sum(multipliers) / len(multipliers):.2f}",
                latest=f"{latest.growth_multiplier:.2f}",
                max_possible=self.settings.MAX_GROWTH_MULTIPLIER
            ),
            total_allocated=total_allocated,
            total_value=f"{total_allocated * self.settings.REWARD_EXCHANGE_RATE:.8f}",
            average_daily_allocation=f"{total_allocated / len(snapshots):.1f}",
            cumulative_score=state.cumulative_score if state else 0.0,
            last_active_holders=state.active_holders if state else 0
        )
