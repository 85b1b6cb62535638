"""Audit record and publication receipt models"""
from datetime import datetime
from typing import Dict, Optional
from pydantic import BaseModel


class SnapshotMetrics(BaseModel):
    """Computed metrics published for a snapshot day"""
    totalDripHolders: int
    newDonorsToday: int
    totalWishToAllocate: int
    baseDailyRate: int
    growthRate: float
    cumulativeScore: float
    growthMultiplier: float
    donorBooster: int
    finalEntitlement: int
    exchangeRate: float


class AuditRecord(BaseModel):
    """
    Auditable record of a daily snapshot, serialized as JSON to the audit topic.

    Attributes:
        protocol: Protocol name
        version: Record schema version
        type: Always "daily_snapshot"
        snapshotDate: ISO date the snapshot covers
        timestamp: ISO timestamp of computation
        metrics: Observed counts and derived values
        entitlements: Per-holder entitlement
        formulas: The formulas used, rendered with the configured constants
        tokenAddresses: Token IDs involved
        treasury: Treasury account ID
    """
    protocol: str
    version: str
    type: str = "daily_snapshot"
    snapshotDate: str
    timestamp: str
    metrics: SnapshotMetrics
    entitlements: Dict[str, int]
    formulas: Dict[str, str]
    tokenAddresses: Dict[str, str]
    treasury: str


class PublishReceipt(BaseModel):
    """Result of a successful audit publication"""
    record_id: str
    transaction_id: Optional[str] = None
    sequence_number: Optional[int] = None
    topic_id: Optional[str] = None
    message_size: int
    published_at: datetime
