"""
tests/test_mirror.py

Tests for mirror node queries and holder counting, with requests mocked.
"""

from datetime import date, datetime, timezone
from unittest.mock import MagicMock, patch

import pytest
import requests

from fountain_oracle.errors import InputUnavailable
from fountain_oracle.services.mirror import MirrorHolderCountSource, MirrorNodeAPI, consensus_timestamp

MEMBERSHIP = "0.0.6591211"
DONOR_BADGE = "0.0.6590982"
TREASURY = "0.0.6552092"


def mock_response(payload, status=200):
    response = MagicMock()
    response.ok = status == 200
    response.status_code = status
    response.json.return_value = payload
    if status >= 400:
        response.raise_for_status.side_effect = requests.HTTPError(f"{status} error")
    return response


def balances(*accounts, next_link=None):
    return {
        'balances': [{'account': account, 'balance': 1} for account in accounts],
        'links': {'next': next_link}
    }


@pytest.fixture(autouse=True)
def no_sleep():
    with patch('fountain_oracle.services.mirror.time.sleep') as sleep:
        yield sleep


@pytest.fixture
def api():
    return MirrorNodeAPI("https://mirror.example/", timeout=5, retries=3)


class TestConsensusTimestamp:

    def test_midnight(self):
        moment = datetime(2025, 1, 1, tzinfo=timezone.utc)
        assert consensus_timestamp(moment) == "1735689600.000000000"

    def test_naive_is_utc_with_nanos(self):
        assert consensus_timestamp(datetime(2025, 1, 1, 0, 0, 1, 500)) == "1735689601.000500000"


class TestTokenHolders:

    def test_follows_pagination(self, api):
        pages = [
            balances("0.0.1", "0.0.2", next_link="/api/v1/tokens/0.0.5/balances?limit=100&account.id=gt:0.0.2"),
            balances("0.0.3"),
        ]
        with patch('fountain_oracle.services.mirror.requests.get',
                   side_effect=[mock_response(p) for p in pages]) as get:
            holders = api.get_token_holders("0.0.5", "1735689600.000000000")

        assert holders == {"0.0.1", "0.0.2", "0.0.3"}
        first, second = get.call_args_list
        assert first.args[0] == "https://mirror.example/api/v1/tokens/0.0.5/balances"
        assert first.kwargs['params']['timestamp'] == "lte:1735689600.000000000"
        assert first.kwargs['params']['account.balance'] == "gt:0"
        assert second.args[0].endswith("account.id=gt:0.0.2")
        assert second.kwargs['params'] is None

    def test_zero_balances_ignored(self, api):
        payload = {'balances': [{'account': "0.0.1", 'balance': 0}, {'account': "0.0.2", 'balance': 3}]}
        with patch('fountain_oracle.services.mirror.requests.get', return_value=mock_response(payload)):
            assert api.get_token_holders("0.0.5") == {"0.0.2"}

    def test_retries_then_succeeds(self, api, no_sleep):
        responses = [requests.ConnectionError("reset"), mock_response(balances("0.0.1"))]
        with patch('fountain_oracle.services.mirror.requests.get', side_effect=responses) as get:
            assert api.get_token_holders("0.0.5") == {"0.0.1"}

        assert get.call_count == 2
        no_sleep.assert_any_call(1)

    def test_gives_up_after_retries(self, api):
        with patch('fountain_oracle.services.mirror.requests.get',
                   return_value=mock_response({}, status=503)) as get:
            with pytest.raises(requests.HTTPError):
                api.get_token_holders("0.0.5")

        assert get.call_count == 3

    def test_ping(self, api):
        with patch('fountain_oracle.services.mirror.requests.get', return_value=mock_response({})):
            assert api.ping() is True
        with patch('fountain_oracle.services.mirror.requests.get', side_effect=requests.Timeout("slow")):
            assert api.ping() is False


class TestHolderCountSource:

    def make_source(self, holders_by_query):
        api = MagicMock()
        api.get_token_holders.side_effect = lambda token_id, timestamp=None: set(holders_by_query[(token_id, timestamp)])
        return MirrorHolderCountSource(api, MEMBERSHIP, DONOR_BADGE, TREASURY), api

    def test_counts_exclude_treasury(self):
        day = date(2025, 1, 1)
        start, end = "1735689600.000000000", "1735776000.000000000"
        source, api = self.make_source({
            (MEMBERSHIP, end): {"0.0.1", "0.0.2", "0.0.3", TREASURY},
            (DONOR_BADGE, end): {"0.0.1", "0.0.2", "0.0.4", TREASURY},
            (DONOR_BADGE, start): {"0.0.1"},
        })

        counts = source.get_counts(day)

        assert counts.active_holders == 3
        assert counts.new_donors == 2

    def test_mirror_failure_is_input_unavailable(self):
        api = MagicMock()
        api.get_token_holders.side_effect = requests.ConnectionError("mirror down")
        source = MirrorHolderCountSource(api, MEMBERSHIP, DONOR_BADGE, TREASURY)

        with pytest.raises(InputUnavailable, match="2025-01-01"):
            source.get_counts(date(2025, 1, 1))

    def test_malformed_response_is_input_unavailable(self, api):
        source = MirrorHolderCountSource(api, MEMBERSHIP, DONOR_BADGE, TREASURY)
        payload = {'balances': [{'balance': 5}]}
        with patch('fountain_oracle.services.mirror.requests.get', return_value=mock_response(payload)):
            with pytest.raises(InputUnavailable):
                source.get_counts(date(2025, 1, 1))
