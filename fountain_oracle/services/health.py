"""Oracle health checks"""
import logging
from datetime import datetime
from typing import Optional

from fountain_oracle.db import Database
from fountain_oracle.models.analytics import HealthReport
from fountain_oracle.services.mirror import MirrorNodeAPI
from fountain_oracle.services.storage import StorageService
from fountain_oracle.utils.json_encoder import utc_now

logger = logging.getLogger(__name__)


def check_health(database: Database, storage: StorageService, mirror: MirrorNodeAPI,
                 overdue_hours: float = 25, now: Optional[datetime] = None) -> HealthReport:
    """
    Report on the database, the mirror node and snapshot freshness.

    Status is "degraded" with any issue and "unhealthy" with more than one
    critical issue (a disconnected dependency or an overdue snapshot).
    """
    now = now or utc_now()
    report = HealthReport(timestamp=now.isoformat() + 'Z')
    critical = 0

    if database.ping():
        report.components['database'] = 'connected'
    else:
        report.components['database'] = 'disconnected'
        report.issues.append('Database disconnected')
        critical += 1

    if mirror.ping():
        report.components['mirror_node'] = 'connected'
    else:
        report.components['mirror_node'] = 'disconnected'
        report.issues.append('Mirror node disconnected')
        critical += 1

    latest = storage.get_latest_snapshot() if report.components['database'] == 'connected' else None
    if latest:
        hours_since = (now - latest.computed_at).total_seconds() / 3600
        overdue = hours_since > overdue_hours
        report.components['last_snapshot'] = {
            'date': latest.date.isoformat(),
            'hours_ago': round(hours_since, 1),
            'status': 'overdue' if overdue else 'current'
        }
        report.components['persistent_state'] = {
            'cumulative_score': latest.cumulative_score,
            'last_active_holders': latest.active_holders
        }
        if overdue:
            report.issues.append('Daily snapshot is overdue')
            critical += 1
    else:
        report.components['last_snapshot'] = 'none'
        report.issues.append('No snapshots found')

    if critical > 1:
        report.status = 'unhealthy'
    elif report.issues:
        report.status = 'degraded'

    logger.info(f"Health status: {report.status}")
    return report
