"""Audit publication of daily snapshots"""
import hashlib
import json
import logging
import os
from abc import ABC, abstractmethod

import requests
from pydantic import ValidationError

from fountain_oracle.config import Settings
from fountain_oracle.errors import PublishFailed
from fountain_oracle.models.publication import AuditRecord, PublishReceipt, SnapshotMetrics
from fountain_oracle.models.snapshot import DailySnapshot
from fountain_oracle.utils.json_encoder import utc_now

logger = logging.getLogger(__name__)


def build_audit_record(snapshot: DailySnapshot, settings: Settings) -> AuditRecord:
    """Build the auditable record for a snapshot, including the formulas used"""
    params = settings.oracle_parameters
    return AuditRecord(
        protocol=settings.PROTOCOL_NAME,
        version=settings.SCHEMA_VERSION,
        snapshotDate=snapshot.date.isoformat(),
        timestamp=snapshot.computed_at.isoformat() + 'Z',
        metrics=SnapshotMetrics(
            totalDripHolders=snapshot.active_holders,
            newDonorsToday=snapshot.new_donors,
            totalWishToAllocate=snapshot.total_allocated,
            baseDailyRate=params.base_daily_amount,
            growthRate=snapshot.growth_rate,
            cumulativeScore=snapshot.cumulative_score,
            growthMultiplier=snapshot.growth_multiplier,
            donorBooster=snapshot.donor_booster,
            finalEntitlement=snapshot.final_entitlement,
            exchangeRate=settings.REWARD_EXCHANGE_RATE
        ),
        entitlements={'defaultPerDrip': snapshot.final_entitlement},
        formulas={
            'growthRate': "gt = (Nt - Nt-1) / Nt-1",
            'cumulativeScore': (
                f"C += {params.growth_increment} if gt >= {params.growth_threshold * 100:g}%"
                + (f", else C -= {params.decay_amount}" if params.enable_decay else "")
            ),
            'growthMultiplier': f"Mt = min(1 + C, {params.max_growth_multiplier})",
            'donorBooster': (
                f"Bt = (Dt <= Nt) ? 0 : min(floor({params.booster_multiplier} * ((Dt/Nt) - 1)), "
                f"{params.max_donor_booster})"
            ),
            'finalEntitlement': (
                f"Et = min(floor(({params.base_daily_amount} + Bt) * Mt), {params.max_daily_entitlement})"
            ),
        },
        tokenAddresses={
            'DRIP': settings.MEMBERSHIP_TOKEN_ID,
            'WISH': settings.REWARD_TOKEN_ID,
            'DROP': settings.DONOR_BADGE_TOKEN_ID,
        },
        treasury=settings.TREASURY_ACCOUNT_ID
    )


def encode_record(record: AuditRecord) -> bytes:
    return json.dumps(record.model_dump(), sort_keys=True).encode('utf-8')


class AuditPublisher(ABC):
    """Publishes snapshot records to an append-only audit log"""

    def __init__(self, settings: Settings):
        self.settings = settings

    @abstractmethod
    def publish(self, snapshot: DailySnapshot) -> PublishReceipt:
        """
        Publish a snapshot record.

        Raises:
            PublishFailed: If the record could not be written
        """


class TopicRelayPublisher(AuditPublisher):
    """Submits snapshot records to the audit topic through a relay service"""

    def __init__(self, settings: Settings, relay_url: str, api_key: str, topic_id: str, timeout: float = 30):
        super().__init__(settings)
        self.relay_url = relay_url
        self.api_key = api_key
        self.topic_id = topic_id
        self.timeout = timeout

    def publish(self, snapshot: DailySnapshot) -> PublishReceipt:
        message = encode_record(build_audit_record(snapshot, self.settings))
        payload = {
            'topicId': self.topic_id,
            'message': message.decode('utf-8')
        }
        headers = {
            'Content-Type': 'application/json',
            'x-api-key': self.api_key
        }

        try:
            response = requests.post(self.relay_url, json=payload, headers=headers, timeout=self.timeout)
        except requests.RequestException as e:
            raise PublishFailed(f"Relay request failed: {e}") from e

        if response.status_code == 401:
            raise PublishFailed("Invalid relay API key")

        if response.status_code != 200:
            raise PublishFailed(f"Relay request failed: {response.text}")

        try:
            body = response.json()
        except ValueError as e:
            raise PublishFailed(f"Invalid JSON in relay response: {response.text}") from e

        if not isinstance(body, dict):
            raise PublishFailed(f"Unexpected relay response: {response.text}")

        if body.get('error'):
            raise PublishFailed(f"Relay error: {body.get('error')}")

        try:
            receipt = PublishReceipt(
                record_id=hashlib.sha256(message).hexdigest(),
                transaction_id=body.get('transactionId'),
                sequence_number=body.get('sequenceNumber'),
                topic_id=self.topic_id,
                message_size=len(message),
                published_at=utc_now()
            )
        except ValidationError as e:
            raise PublishFailed(f"Invalid receipt in relay response: {e}") from e

        logger.info(f"Published snapshot for {snapshot.date} to topic {self.topic_id}")
        return receipt


class AuditLogPublisher(AuditPublisher):
    """Appends snapshot records as JSON lines to a local audit log"""

    def __init__(self, settings: Settings, path: str):
        super().__init__(settings)
        self.path = path

    def publish(self, snapshot: DailySnapshot) -> PublishReceipt:
        message = encode_record(build_audit_record(snapshot, self.settings))
        try:
            directory = os.path.dirname(self.path)
            if directory:
                os.makedirs(directory, exist_ok=True)
            with open(self.path, 'ab') as f:
                f.write(message + b'\n')
        except OSError as e:
            raise PublishFailed(f"Could not append to audit log {self.path}: {e}") from e

        logger.info(f"Appended snapshot for {snapshot.date} to {self.path}")
        return PublishReceipt(
            record_id=hashlib.sha256(message).hexdigest(),
            message_size=len(message),
            published_at=utc_now()
        )
