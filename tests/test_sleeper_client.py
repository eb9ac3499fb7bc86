"""Tests for the Sleeper API client."""

from unittest.mock import MagicMock, patch

import pytest
import requests
from dynasty_board.data.sleeper_client import SleeperClient, extract_ppr
from dynasty_board.errors import TransientFetchError


def _response(payload=None, status=200, json_error=False):
    response = MagicMock()
    response.status_code = status
    if status >= 400:
        error_response = MagicMock(status_code=status)
        response.raise_for_status.side_effect = requests.exceptions.HTTPError(response=error_response)
    if json_error:
        response.json.side_effect = ValueError("bad json")
    else:
        response.json.return_value = payload
    return response


def _client(*responses, **kwargs):
    session = MagicMock()
    session.get.side_effect = list(responses)
    return SleeperClient(session=session, **kwargs), session


class TestExtractPpr:
    """Test reading PPR points from differently shaped rows."""

    def test_top_level_field_order(self):
        assert extract_ppr({'pts_ppr': 12.5, 'pts': 3}) == 12.5
        assert extract_ppr({'fp_ppr': '8.2'}) == 8.2
        assert extract_ppr({'pts': 4}) == 4.0

    def test_skips_non_numeric_fields(self):
        assert extract_ppr({'pts_ppr': 'n/a', 'ppr': 6}) == 6.0

    def test_nested_container(self):
        assert extract_ppr({'stats': {'pts_ppr': 14.1}}) == 14.1
        assert extract_ppr({'projections': {'fp_ppr': 9}}) == 9.0

    def test_first_nested_container_only(self):
        """Only the first non-empty container is consulted."""
        assert extract_ppr({'stats': {'rec': 5}, 'projections': {'pts_ppr': 9}}) == 0.0

    def test_nothing_numeric(self):
        assert extract_ppr({}) == 0.0
        assert extract_ppr(None) == 0.0
        assert extract_ppr({'stats': {}}) == 0.0


class TestGetJson:
    """Test retries and error mapping."""

    @patch('dynasty_board.data.sleeper_client.time.sleep')
    def test_retries_then_succeeds(self, mock_sleep):
        client, session = _client(_response(status=500), _response({'week': 7}))

        assert client.get_nfl_state() == {'week': 7}

        assert session.get.call_count == 2
        mock_sleep.assert_called_once_with(0.5)

    @patch('dynasty_board.data.sleeper_client.time.sleep')
    def test_exhausted_retries_raise(self, mock_sleep):
        client, session = _client(*[_response(status=503) for _ in range(3)])

        with pytest.raises(TransientFetchError) as exc_info:
            client.get_league("123")

        assert session.get.call_count == 3
        assert [c.args[0] for c in mock_sleep.call_args_list] == [0.5, 1.0]
        assert exc_info.value.feed == "league"
        assert exc_info.value.resource_id == "123"
        assert "HTTP 503" in str(exc_info.value)

    @patch('dynasty_board.data.sleeper_client.time.sleep')
    def test_malformed_json(self, mock_sleep):
        client, _ = _client(_response(json_error=True), max_retries=0)
        with pytest.raises(TransientFetchError, match="malformed JSON"):
            client.get_nfl_state()
        mock_sleep.assert_not_called()

    @patch('dynasty_board.data.sleeper_client.time.sleep')
    def test_connection_error(self, mock_sleep):
        session = MagicMock()
        session.get.side_effect = requests.exceptions.ConnectionError("refused")
        client = SleeperClient(session=session, max_retries=1)

        with pytest.raises(TransientFetchError, match="refused"):
            client.get_users("123")
        assert session.get.call_count == 2


class TestEndpoints:
    """Test endpoint wrappers."""

    def test_draft_picks_not_retried(self):
        client, session = _client(_response(status=404))

        with pytest.raises(TransientFetchError) as exc_info:
            client.get_draft_picks("d1")

        assert session.get.call_count == 1
        assert str(exc_info.value) == "draft picks (d1): HTTP 404"
        assert session.get.call_args[0][0].endswith("/draft/d1/picks")

    def test_draft_picks_must_be_list(self):
        client, _ = _client(_response({'error': 'nope'}))
        with pytest.raises(TransientFetchError, match="expected a list"):
            client.get_draft_picks("d1")

    def test_players_meta_cached(self):
        client, session = _client(_response({'1': {'position': 'WR'}, '2': None}))

        first = client.get_players_meta()
        second = client.get_players_meta()

        assert first == {'1': {'position': 'WR'}}
        assert second is first
        assert session.get.call_count == 1

    def test_empty_lists_for_null_payloads(self):
        client, _ = _client(_response(None), _response(None))
        assert client.get_rosters("1") == []
        assert client.get_users("1") == []

    def test_projection_map(self):
        rows = [
            {'player_id': '10', 'stats': {'pts_ppr': 15.2}},
            {'player_id': '11', 'stats': {'pts_ppr': 0}},
            {'player_id': None, 'stats': {'pts_ppr': 4}},
            {'player_id': 12, 'pts_ppr': 7},
        ]
        client, session = _client(_response(rows))

        assert client.get_projection_map(2025, 5) == {'10': 15.2, '12': 7.0}
        params = session.get.call_args[1]['params']
        assert ('season_type', 'regular') in params
        assert ('position[]', 'WR') in params

    def test_league_scoring(self):
        client, _ = _client(_response({'scoring_settings': {'rec': 0.5, 'rec_yd': 0.1}}))
        scoring = client.get_league_scoring("1")
        assert scoring.weights == {'rec': 0.5, 'rec_yd': 0.1}

    @patch('dynasty_board.data.sleeper_client.time.sleep')
    def test_prior_year_ppg(self, mock_sleep):
        """Average league points per game over the weeks a player appears in."""
        league = _response({'scoring_settings': {'rec': 1, 'rec_yd': 0.1}})
        week1 = _response({'a': {'rec': 5, 'rec_yd': 50}, 'b': {'rec': 1}})
        week2 = _response({'a': {'rec': 3, 'rec_yd': 20}})
        week3_failures = [_response(status=500) for _ in range(3)]
        client, _ = _client(league, week1, week2, *week3_failures)

        ppg = client.get_prior_year_ppg("1", ['a', 'c'], 2024, weeks=(1, 2, 3))

        assert ppg == {'a': pytest.approx(7.5), 'c': 0.0}
