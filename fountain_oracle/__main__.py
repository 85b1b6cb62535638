"""Entry point for the daily entitlement snapshot"""
import argparse
import json
import logging
import os
import sys
import traceback
from datetime import date
from typing import Optional

from fountain_oracle.config import Settings, load_settings
from fountain_oracle.db import Database
from fountain_oracle.errors import OracleError
from fountain_oracle.oracle import DailyEntitlementOracle, utc_today
from fountain_oracle.scoring import EntitlementScorer
from fountain_oracle.services.analytics import SnapshotAnalytics
from fountain_oracle.services.health import check_health
from fountain_oracle.services.mirror import MirrorHolderCountSource, MirrorNodeAPI
from fountain_oracle.services.publisher import AuditLogPublisher, AuditPublisher, TopicRelayPublisher
from fountain_oracle.services.storage import StorageService
from fountain_oracle.utils.json_encoder import DateTimeEncoder

logger = logging.getLogger(__name__)


def build_publisher(settings: Settings) -> Optional[AuditPublisher]:
    """Relay when configured, else the local audit log, else nothing"""
    if settings.AUDIT_RELAY_URL:
        return TopicRelayPublisher(
            settings,
            settings.AUDIT_RELAY_URL,
            settings.AUDIT_RELAY_API_KEY or '',
            settings.AUDIT_TOPIC_ID,
            timeout=settings.REQUEST_TIMEOUT
        )
    if settings.AUDIT_LOG_PATH:
        return AuditLogPublisher(settings, settings.AUDIT_LOG_PATH)
    logger.warning("No audit publisher configured, snapshots will not be published")
    return None


def build_oracle(settings: Settings, storage: StorageService, mirror: MirrorNodeAPI) -> DailyEntitlementOracle:
    count_source = MirrorHolderCountSource(
        mirror,
        settings.MEMBERSHIP_TOKEN_ID,
        settings.DONOR_BADGE_TOKEN_ID,
        settings.TREASURY_ACCOUNT_ID
    )
    return DailyEntitlementOracle(
        EntitlementScorer(settings.oracle_parameters),
        count_source,
        storage,
        build_publisher(settings),
        allow_manual_snapshots=settings.ALLOW_MANUAL_SNAPSHOTS
    )


def positive_int(value: str) -> int:
    number = int(value)
    if number < 1:
        raise argparse.ArgumentTypeError(f"must be at least 1, got {number}")
    return number


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description='Run the daily entitlement snapshot')
    parser.add_argument('--date', type=date.fromisoformat, help='Snapshot date (YYYY-MM-DD), requires manual snapshots')
    parser.add_argument('--history', type=positive_int, metavar='DAYS', help='Report growth analytics instead of running')
    parser.add_argument('--health', action='store_true', help='Report oracle health instead of running')
    return parser.parse_args(argv)


def write_output(settings: Settings, name: str, payload: dict) -> str:
    os.makedirs(settings.OUTPUT_DIR, exist_ok=True)
    output_path = os.path.join(settings.OUTPUT_DIR, name)
    with open(output_path, 'w') as f:
        json.dump(payload, f, indent=2, cls=DateTimeEncoder)
    return output_path


def run(argv=None) -> None:
    """Run one oracle invocation."""
    args = parse_args(argv)
    database = Database()
    try:
        settings = load_settings()
        logging.basicConfig(level=settings.LOG_LEVEL, format='%(asctime)s %(levelname)s %(name)s: %(message)s')

        # Log config (excluding sensitive data)
        safe_config = settings.model_dump(exclude={'AUDIT_RELAY_API_KEY', 'DATABASE_URL'})
        logger.info("Using configuration:")
        logger.info(json.dumps(safe_config, indent=2))

        database.init(settings.DATABASE_URL)
        storage = StorageService(database.get_session())
        mirror = MirrorNodeAPI(settings.MIRROR_NODE_URL, settings.REQUEST_TIMEOUT, settings.REQUEST_RETRIES)

        if args.health:
            report = check_health(database, storage, mirror, settings.SNAPSHOT_OVERDUE_HOURS)
            write_output(settings, "health.json", report.model_dump())
            logger.info(f"Health report: {report.model_dump()}")
            return

        if args.history is not None:
            analytics = SnapshotAnalytics(storage, settings).get_growth_analytics(utc_today(), args.history)
            write_output(settings, "analytics.json", analytics.model_dump() if analytics else {})
            logger.info(f"Growth analytics: {analytics.model_dump() if analytics else 'no history'}")
            return

        oracle = build_oracle(settings, storage, mirror)
        if args.date:
            result = oracle.manual_snapshot(args.date)
        else:
            result = oracle.run_daily_snapshot()

        output_path = write_output(settings, "results.json", {
            'status': result.status,
            'snapshot': result.snapshot.__dict__,
            'publication': result.publication.model_dump() if result.publication else None,
            'warnings': result.warnings,
            'summary': result.summary(),
        })
        logger.info(f"Snapshot {result.status.value}, written to {output_path}")

    except OracleError as e:
        logger.error(f"Daily snapshot failed: {e}")
        sys.exit(1)
    except Exception as e:
        logger.error(f"Error during daily snapshot: {e}")
        traceback.print_exc()
        sys.exit(1)
    finally:
        database.dispose()


if __name__ == "__main__":
    run()
