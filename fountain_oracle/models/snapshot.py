"""Domain models for the daily entitlement snapshot"""
from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from fountain_oracle.models.publication import PublishReceipt


@dataclass(frozen=True)
class OracleState:
    """State carried from one day to the next"""
    date: date
    cumulative_score: float  # C
    active_holders: int      # Nt, becomes Nt-1 for the next day


@dataclass(frozen=True)
class HolderCounts:
    """Counts observed for a snapshot day"""
    active_holders: int  # Nt
    new_donors: int      # Dt


@dataclass(frozen=True)
class DailySnapshot:
    """Oracle output for one calendar day"""
    date: date
    active_holders: int
    new_donors: int
    previous_active_holders: int
    growth_rate: float
    cumulative_score: float
    growth_multiplier: float
    donor_booster: int
    final_entitlement: int
    total_allocated: int
    computed_at: datetime


class SnapshotStatus(Enum):
    COMPUTED = "computed"
    ALREADY_COMPUTED = "already_computed"


@dataclass
class SnapshotResult:
    """Outcome of a daily snapshot run"""
    status: SnapshotStatus
    snapshot: DailySnapshot
    state: Optional[OracleState] = None
    publication: Optional[PublishReceipt] = None
    warnings: List[str] = field(default_factory=list)

    @property
    def already_computed(self) -> bool:
        return self.status == SnapshotStatus.ALREADY_COMPUTED

    def summary(self) -> Dict[str, Any]:
        """Human readable digest of the snapshot"""
        snapshot = self.snapshot
        return {
            'date': snapshot.date.isoformat(),
            'active_members': snapshot.active_holders,
            'new_donors': snapshot.new_donors,
            'daily_entitlement': snapshot.final_entitlement,
            'total_allocated': snapshot.total_allocated,
            'growth_rate': f"{snapshot.growth_rate * 100:.2f}%",
            'multiplier': f"{snapshot.growth_multiplier:.2f}",
            'booster': snapshot.donor_booster,
        }
