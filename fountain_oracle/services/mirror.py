"""Mirror node API integration service"""
import logging
import time
from datetime import date, datetime, time as dt_time, timedelta, timezone
from typing import Dict, Optional, Set, Tuple

import requests

from fountain_oracle.errors import InputUnavailable
from fountain_oracle.models.snapshot import HolderCounts

logger = logging.getLogger(__name__)


def consensus_timestamp(moment: datetime) -> str:
    """Format a UTC datetime as a mirror node consensus timestamp (seconds.nanos)"""
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    seconds = int(moment.timestamp())
    return f"{seconds}.{moment.microsecond * 1000:09d}"


class MirrorNodeAPI:
    """Handles read-only mirror node queries"""

    def __init__(self, base_url: str, timeout: float = 30, retries: int = 3):
        self.base_url = base_url.rstrip('/')
        self.timeout = timeout
        self.retries = retries

    def _make_request(self, path: str, params: Optional[Dict[str, str]] = None) -> dict:
        """Make request to the mirror node with retries"""
        for attempt in range(self.retries):
            try:
                response = requests.get(
                    f'{self.base_url}{path}',
                    params=params,
                    headers={'Accept': 'application/json'},
                    timeout=self.timeout
                )
                response.raise_for_status()
                return response.json()
            except requests.RequestException as e:
                if attempt == self.retries - 1:  # Last attempt
                    raise
                logger.warning(f"Retrying mirror request after error: {e}")
                time.sleep(1)

    def get_token_holders(self, token_id: str, timestamp: Optional[str] = None) -> Set[str]:
        """Get accounts holding a positive balance of a token, optionally as of a consensus timestamp"""
        params = {'account.balance': 'gt:0', 'limit': '100'}
        if timestamp:
            params['timestamp'] = f'lte:{timestamp}'

        holders = set()
        path = f'/api/v1/tokens/{token_id}/balances'
        while path:
            data = self._make_request(path, params)
            for balance in data.get('balances', []):
                if int(balance.get('balance', 0)) > 0:
                    holders.add(balance['account'])

            # The next link already carries the query string
            path = (data.get('links') or {}).get('next')
            params = None
            time.sleep(0.1)  # Rate limiting

        logger.info(f"Found {len(holders)} holders of {token_id}")
        return holders

    def ping(self) -> bool:
        """Check mirror node connectivity"""
        try:
            response = requests.get(f'{self.base_url}/api/v1/network/nodes', timeout=5)
            return response.ok
        except requests.RequestException as e:
            logger.warning(f"Mirror node ping failed: {e}")
            return False


class MirrorHolderCountSource:
    """Counts membership holders and new donors for a snapshot day"""

    def __init__(self, api: MirrorNodeAPI, membership_token_id: str,
                 donor_badge_token_id: str, treasury_account_id: str):
        self.api = api
        self.membership_token_id = membership_token_id
        self.donor_badge_token_id = donor_badge_token_id
        self.treasury_account_id = treasury_account_id

    def _day_window(self, snapshot_date: date) -> Tuple[datetime, datetime]:
        start = datetime.combine(snapshot_date, dt_time.min, tzinfo=timezone.utc)
        end = min(start + timedelta(days=1), datetime.now(timezone.utc))
        return start, end

    def get_counts(self, snapshot_date: date) -> HolderCounts:
        """
        Count active holders (Nt) and new donors (Dt) for a day.

        Nt is the number of membership holders at the end of the day.
        Dt is the number of donor badge holders at the end of the day
        that held no badge at its start. The treasury is excluded from both.

        Raises:
            InputUnavailable: If the mirror node cannot be queried
        """
        start, end = self._day_window(snapshot_date)
        try:
            members = self.api.get_token_holders(self.membership_token_id, consensus_timestamp(end))
            donors_at_end = self.api.get_token_holders(self.donor_badge_token_id, consensus_timestamp(end))
            donors_at_start = self.api.get_token_holders(self.donor_badge_token_id, consensus_timestamp(start))
        except (requests.RequestException, ValueError, KeyError) as e:
            logger.error(f"Failed to query holder counts for {snapshot_date}: {e}")
            raise InputUnavailable(f"Holder counts unavailable for {snapshot_date}: {e}") from e

        members.discard(self.treasury_account_id)
        new_donors = donors_at_end - donors_at_start
        new_donors.discard(self.treasury_account_id)

        logger.info(f"Counts for {snapshot_date}: {len(members)} holders, {len(new_donors)} new donors")
        return HolderCounts(active_holders=len(members), new_donors=len(new_donors))
