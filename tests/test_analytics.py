"""
tests/test_analytics.py

Tests for snapshot history, growth analytics and health reporting.
"""

from datetime import datetime, timedelta
from unittest.mock import MagicMock

from conftest import DAY
from fountain_oracle.models.snapshot import DailySnapshot
from fountain_oracle.services.analytics import SnapshotAnalytics
from fountain_oracle.services.health import check_health
from fountain_oracle.utils.json_encoder import utc_now


def run_days(oracle, counts, holders):
    days = [DAY - timedelta(days=len(holders) - 1 - i) for i in range(len(holders))]
    for day, n in zip(days, holders):
        counts.set(day, active_holders=n)
        oracle.run_daily_snapshot(day)
    return days


# ============================================================================
# History and growth analytics
# ============================================================================

class TestSnapshotAnalytics:

    def test_history_oldest_first_with_transactions(self, oracle, counts, storage, settings):
        days = run_days(oracle, counts, [10, 11, 12])

        history = SnapshotAnalytics(storage, settings).get_snapshot_history(DAY, days=7)

        assert [entry.date for entry in history] == [d.isoformat() for d in days]
        assert history[1].growth_rate == "10.00%"
        assert history[1].growth_multiplier == "1.10"
        assert history[-1].transaction_id == "0.0.1@3"

    def test_history_window_is_inclusive(self, oracle, counts, storage, settings):
        run_days(oracle, counts, [10, 11, 12])

        history = SnapshotAnalytics(storage, settings).get_snapshot_history(DAY, days=2)

        assert [entry.active_holders for entry in history] == [11, 12]

    def test_growth_analytics(self, oracle, counts, storage, settings):
        run_days(oracle, counts, [10, 11, 12])

        analytics = SnapshotAnalytics(storage, settings).get_growth_analytics(DAY, days=30)

        assert analytics.days == 3
        assert analytics.holder_count.start == 10
        assert analytics.holder_count.end == 12
        assert analytics.holder_count.change == 2
        assert analytics.holder_count.rate == "20.00%"
        assert analytics.entitlements.minimum == 50
        assert analytics.entitlements.maximum == 60
        assert analytics.entitlements.latest == 60
        assert analytics.total_allocated == 500 + 605 + 720
        assert analytics.total_value == "1.82500000"
        assert analytics.multipliers.max_possible == 1.5
        assert analytics.cumulative_score == 0.2
        assert analytics.last_active_holders == 12

    def test_multiplier_average_uses_stored_values(self, storage, settings):
        # Display strings would be 1.01, 1.01, 1.00 and average to 1.01
        for offset, multiplier in enumerate([1.006, 1.006, 1.0]):
            storage.put_snapshot(DailySnapshot(
                date=DAY - timedelta(days=2 - offset), active_holders=10, new_donors=0,
                previous_active_holders=10, growth_rate=0.0, cumulative_score=multiplier - 1,
                growth_multiplier=multiplier, donor_booster=0, final_entitlement=50,
                total_allocated=500, computed_at=datetime(2025, 3, 10)
            ))

        analytics = SnapshotAnalytics(storage, settings).get_growth_analytics(DAY, days=3)

        assert analytics.multipliers.average == "1.00"
        assert analytics.multipliers.latest == "1.00"

    def test_no_history(self, storage, settings):
        assert SnapshotAnalytics(storage, settings).get_growth_analytics(DAY) is None


# ============================================================================
# Health
# ============================================================================

class TestHealth:

    def mirror(self, up=True):
        mirror = MagicMock()
        mirror.ping.return_value = up
        return mirror

    def test_healthy(self, oracle, counts, database, storage):
        counts.set(DAY, active_holders=4)
        result = oracle.run_daily_snapshot(DAY)

        report = check_health(database, storage, self.mirror(), now=result.snapshot.computed_at + timedelta(hours=2))

        assert report.status == "healthy"
        assert report.issues == []
        assert report.components['last_snapshot']['status'] == "current"
        assert report.components['persistent_state']['last_active_holders'] == 4

    def test_no_snapshots_is_degraded(self, database, storage):
        report = check_health(database, storage, self.mirror())

        assert report.status == "degraded"
        assert report.issues == ["No snapshots found"]

    def test_overdue_and_mirror_down_is_unhealthy(self, oracle, counts, database, storage):
        counts.set(DAY, active_holders=4)
        result = oracle.run_daily_snapshot(DAY)

        report = check_health(database, storage, self.mirror(up=False),
                              now=result.snapshot.computed_at + timedelta(hours=30))

        assert report.status == "unhealthy"
        assert report.components['mirror_node'] == "disconnected"
        assert report.components['last_snapshot']['status'] == "overdue"

    def test_database_down_skips_snapshot_lookup(self):
        database = MagicMock()
        database.ping.return_value = False
        storage = MagicMock()

        report = check_health(database, storage, self.mirror(up=False), now=utc_now())

        storage.get_latest_snapshot.assert_not_called()
        assert report.status == "unhealthy"
