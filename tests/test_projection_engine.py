"""Tests for the projection engine orchestration."""

from unittest.mock import MagicMock

import pytest
from dynasty_board.config.settings import EngineSettings
from dynasty_board.data.rtm_data import DataStrategy
from dynasty_board.errors import TransientFetchError
from dynasty_board.models.projection_engine import ProjectionEngine

META = {
    'wr1': {'full_name': "Ja'Marr Chase", 'position': 'WR', 'team': 'CIN', 'active': True},
    'te1': {'full_name': 'Mike Gesicki', 'position': 'TE', 'team': 'CIN', 'active': True},
    'rb1': {'full_name': 'Chase Brown', 'position': 'RB', 'team': 'CIN', 'active': True, 'age': 25},
    'qb1': {'full_name': 'Joe Burrow', 'position': 'QB', 'team': 'CIN', 'active': True,
            'injury_status': 'Questionable'},
}

STATS = {
    'wr1': {'rec_tgt': 10, 'rec_air_yd': 100, 'pts_ppr': 24.5},
    'te1': {'rec_tgt': 5, 'rec_air_yd': 50, 'pts_ppr': 8.0},
    'rb1': {'rush_att': 18, 'rec_tgt': 5, 'rec_air_yd': 0, 'pts_ppr': 15.0, 'off_snp': 45},
}

ROSTERS = [
    {'roster_id': 1, 'owner_id': 'u1', 'players': ['wr1', 'qb1'], 'settings': {'fpts': 100}},
    {'roster_id': 2, 'owner_id': 'u2', 'players': ['te1', 'rb1'], 'settings': {'fpts': 90}},
]

USERS = [{'user_id': 'u1', 'display_name': 'alpha'}, {'user_id': 'u2', 'display_name': 'bravo'}]


@pytest.fixture
def client():
    client = MagicMock()
    client.get_nfl_state.return_value = {'week': 5}
    client.get_players_meta.return_value = META
    client.get_league.return_value = {'roster_positions': ['QB', 'RB', 'WR', 'TE', 'FLEX', 'BN']}
    client.get_rosters.return_value = ROSTERS
    client.get_users.return_value = USERS
    client.get_week_actuals.return_value = STATS
    client.get_week_team_stats.return_value = {'TEAM_CIN': {'rush_att': 25, 'rec_tgt': 8, 'tm_off_snp': 60}}
    client.get_projection_map.return_value = {'wr1': 18.0, 'te1': 7.5, 'rb1': 14.0, 'qb1': 21.0}
    client.get_prior_year_ppg.return_value = {'wr1': 19.0, 'te1': 6.0}
    client.get_week_matchups.return_value = []
    return client


@pytest.fixture
def engine(client):
    rtm = MagicMock()
    rtm.load.return_value = [{'full_nm': "Ja'Marr Chase", 'tm': 'CIN', 'overall': 90}]
    ktc = MagicMock()
    ktc.get_values.return_value = {'wr1': 9800, 'qb1': 8000, 'te1': 2000, 'rb1': 5000}
    nfl_loader = MagicMock()
    nfl_loader.get_bye_weeks.return_value = {'CIN': [10]}
    return ProjectionEngine(client=client, rtm=rtm, ktc=ktc, nfl_loader=nfl_loader,
                            settings=EngineSettings(season=2025, season_weeks=8, playoff_teams=1))


class TestWeeks:
    """Test week resolution."""

    def test_current_week(self, engine):
        assert engine.current_week() == 5
        assert engine._last_completed_week() == 4

    def test_missing_state_defaults_to_week_one(self, engine, client):
        client.get_nfl_state.return_value = None
        assert engine.current_week() == 1
        assert engine._last_completed_week() == 1


class TestProjections:
    """Test each ranking entry point with mocked feeds."""

    def test_best_ball(self, engine, client):
        table = engine.get_best_ball_projections("L1")

        assert len(table) == 2
        assert [c.args[1] for c in client.get_week_matchups.call_args_list] == [1, 2, 3, 4]
        assert sorted(c.args[1] for c in client.get_projection_map.call_args_list) == [6, 7, 8]
        assert list(table['draft_order']) == [1, 2]

    def test_best_ball_skips_failed_matchup_week(self, engine, client, caplog):
        client.get_week_matchups.side_effect = TransientFetchError("matchups", "HTTP 500", "L1 week 1")

        with caplog.at_level("WARNING"):
            table = engine.get_best_ball_projections("L1")

        assert (table['ytd_points'] == 0).all()
        assert "Skipping matchups for week 1" in caplog.text

    def test_pwopr(self, engine, client):
        table = engine.get_pwopr_projections("L1")

        client.get_week_actuals.assert_called_with(2025, 4)
        client.get_projection_map.assert_called_with(2025, 5)
        engine.rtm.load.assert_called_once_with(4, None)
        league_id, candidates, season = client.get_prior_year_ppg.call_args[0]
        assert (league_id, sorted(candidates), season) == ("L1", ['te1', 'wr1'], 2024)
        assert list(table['player_id']) == ['wr1', 'te1']

    def test_pwopr_explicit_strategy(self, engine):
        engine.get_pwopr_projections("L1", DataStrategy.CURRENT_WEEK)
        engine.rtm.load.assert_called_once_with(4, DataStrategy.CURRENT_WEEK)

    def test_pwopr_without_optional_feeds(self, engine, client):
        client.get_prior_year_ppg.side_effect = TransientFetchError("league", "HTTP 500")
        client.get_projection_map.side_effect = TransientFetchError("projections", "HTTP 500")
        engine.rtm.load.side_effect = TransientFetchError("rtm", "down")

        table = engine.get_pwopr_projections("L1")

        assert list(table['player_id']) == ['wr1', 'te1']

    def test_pwrb(self, engine, client):
        table = engine.get_pwrb_projections("L1")

        client.get_week_team_stats.assert_called_once_with(2025, 4)
        assert list(table['player_id']) == ['rb1']
        assert table.iloc[0]['role'] == 'lead'

    def test_power_rankings(self, engine):
        table = engine.get_power_rankings("L1")

        assert list(table['roster_id']) == [1, 2]
        assert table.iloc[0]['total_value'] == 17800
        engine.ktc.get_values.assert_called_once_with(META)

    def test_signals(self, engine, client):
        table = engine.get_pwopr_signals("L1", history_weeks=2)

        weeks = [c.args[1] for c in client.get_week_actuals.call_args_list]
        assert weeks == [3, 4, 4]
        client.get_projection_map.assert_called_with(2025, 5)
        assert {'expected', 'signal', 'model'} <= set(table.columns)
        assert set(table['player_id']) == {'wr1', 'te1', 'rb1'}

    def test_injury_summary_logged(self, engine, caplog):
        with caplog.at_level("INFO"):
            engine.get_pwrb_projections("L1")
        assert "InjuryModel: zeroed=0, discounted=1, healthy=3, source=sleeper" in caplog.text
