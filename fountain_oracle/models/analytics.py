"""Reporting models for snapshot history, growth analytics and health"""
from typing import Any, Dict, List, Optional
from pydantic import BaseModel


class SnapshotHistoryEntry(BaseModel):
    date: str
    active_holders: int
    new_donors: int
    growth_rate: str
    growth_multiplier: str
    donor_booster: int
    final_entitlement: int
    total_allocated: int
    transaction_id: Optional[str] = None


class HolderGrowth(BaseModel):
    start: int
    end: int
    change: int
    rate: str


class EntitlementStats(BaseModel):
    average: str
    minimum: int
    maximum: int
    latest: int


class MultiplierStats(BaseModel):
    average: str
    latest: str
    max_possible: float


class GrowthAnalytics(BaseModel):
    """Growth summary over a window of stored snapshots"""
    period: str
    days: int
    holder_count: HolderGrowth
    entitlements: EntitlementStats
    multipliers: MultiplierStats
    total_allocated: int
    total_value: str
    average_daily_allocation: str
    cumulative_score: float
    last_active_holders: int


class HealthReport(BaseModel):
    """Oracle health status"""
    status: str = "healthy"
    timestamp: str
    components: Dict[str, Any] = {}
    issues: List[str] = []
