"""Shared fixtures for oracle tests"""
from datetime import date

import pytest

from fountain_oracle.config import OracleParameters, Settings
from fountain_oracle.db import Database
from fountain_oracle.errors import PublishFailed
from fountain_oracle.models.publication import PublishReceipt
from fountain_oracle.models.snapshot import HolderCounts
from fountain_oracle.oracle import DailyEntitlementOracle
from fountain_oracle.scoring import EntitlementScorer
from fountain_oracle.services.storage import StorageService
from fountain_oracle.utils.json_encoder import utc_now

DAY = date(2025, 3, 10)


class FakeCountSource:
    """Count source returning preset counts per day"""

    def __init__(self, counts=None, error=None):
        self.counts = counts or {}
        self.error = error
        self.calls = []

    def set(self, day, active_holders, new_donors=0):
        self.counts[day] = HolderCounts(active_holders=active_holders, new_donors=new_donors)

    def get_counts(self, snapshot_date):
        self.calls.append(snapshot_date)
        if self.error:
            raise self.error
        return self.counts[snapshot_date]


class FakePublisher:
    """Publisher recording snapshots, optionally failing"""

    def __init__(self, fail=False):
        self.fail = fail
        self.published = []

    def publish(self, snapshot):
        if self.fail:
            raise PublishFailed("topic unreachable")
        self.published.append(snapshot)
        return PublishReceipt(
            record_id=f"record-{snapshot.date.isoformat()}",
            transaction_id=f"0.0.1@{len(self.published)}",
            sequence_number=len(self.published),
            topic_id="0.0.6591043",
            message_size=100,
            published_at=utc_now()
        )


@pytest.fixture
def params():
    return OracleParameters()


@pytest.fixture
def scorer(params):
    return EntitlementScorer(params)


@pytest.fixture
def settings(tmp_path):
    return Settings(_env_file=None, OUTPUT_DIR=str(tmp_path / "output"))


@pytest.fixture
def database(tmp_path):
    db = Database()
    db.init(f"sqlite:///{tmp_path / 'oracle.db'}")
    yield db
    db.dispose()


@pytest.fixture
def storage(database):
    return StorageService(database.get_session())


@pytest.fixture
def counts():
    return FakeCountSource()


@pytest.fixture
def publisher():
    return FakePublisher()


@pytest.fixture
def oracle(scorer, counts, storage, publisher):
    return DailyEntitlementOracle(scorer, counts, storage, publisher)
