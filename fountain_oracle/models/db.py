"""SQLAlchemy database models for storing oracle state and snapshots"""
from sqlalchemy import Column, Date, DateTime, Float, Integer, String
from sqlalchemy.orm import declarative_base

Base = declarative_base()


class OracleStateRecord(Base):
    """
    Carried-forward state, one row per day.
    Written once together with the day's snapshot.
    """
    __tablename__ = 'oracle_states'

    date = Column(Date, primary_key=True)
    cumulative_score = Column(Float, nullable=False)
    active_holders = Column(Integer, nullable=False)


class DailySnapshotRecord(Base):
    """
    Daily oracle output, one row per day.
    """
    __tablename__ = 'daily_snapshots'

    date = Column(Date, primary_key=True)
    active_holders = Column(Integer, nullable=False)
    new_donors = Column(Integer, nullable=False)
    previous_active_holders = Column(Integer, nullable=False)
    growth_rate = Column(Float, nullable=False)
    cumulative_score = Column(Float, nullable=False)
    growth_multiplier = Column(Float, nullable=False)
    donor_booster = Column(Integer, nullable=False)
    final_entitlement = Column(Integer, nullable=False)
    total_allocated = Column(Integer, nullable=False)
    computed_at = Column(DateTime, nullable=False)


class AuditPublication(Base):
    """
    Receipts of audit records published for a snapshot.
    Links to daily_snapshots through date.
    """
    __tablename__ = 'audit_publications'

    id = Column(Integer, primary_key=True)
    date = Column(Date, nullable=False, index=True)
    record_id = Column(String, nullable=False)
    transaction_id = Column(String, nullable=True)
    sequence_number = Column(Integer, nullable=True)
    topic_id = Column(String, nullable=True)
    message_size = Column(Integer, nullable=False)
    published_at = Column(DateTime, nullable=False)
