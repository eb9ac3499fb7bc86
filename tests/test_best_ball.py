"""Tests for best ball projections and draft order."""

import pytest
from dynasty_board.config.settings import EngineSettings
from dynasty_board.models.best_ball import (
    BEST_BALL_COLUMNS,
    actual_points_for,
    blend_weekly_projection,
    owner_names,
    project_best_ball,
)
from dynasty_board.utils.stats import regression_to_mean

USERS = [{'user_id': 'u1', 'display_name': 'alpha'}, {'user_id': 'u2', 'display_name': 'bravo'}]


def _meta(pos, team='KC', active=True, injury_status=None):
    return {'position': pos, 'team': team, 'active': active, 'injury_status': injury_status}


def _roster(roster_id, owner_id, players, fpts=0):
    return {'roster_id': roster_id, 'owner_id': owner_id, 'players': players,
            'settings': {'fpts': fpts, 'fpts_decimal': 0}}


class TestHelpers:
    """Test owner names, points-for and the weekly blend."""

    def test_owner_names(self):
        rosters = [_roster(1, 'u1', []), _roster(2, 'ghost', [])]
        assert owner_names(rosters, USERS) == {1: 'alpha', 2: 'Roster 2'}

    def test_actual_points_for(self):
        assert actual_points_for({'settings': {'fpts': 1204, 'fpts_decimal': 56}}) == pytest.approx(1204.56)
        assert actual_points_for({}) == 0

    def test_blend_with_history_and_external(self):
        assert blend_weekly_projection(20, 1.0, 18, 0.5, 2) == pytest.approx(0.35 * 0.5 * 20 + 0.6 * 18 + 0.05 * 2)

    def test_blend_external_only(self):
        assert blend_weekly_projection(0, 0, 14.5, 0.25, 1) == 14.5

    def test_blend_history_only(self):
        assert blend_weekly_projection(12, 0.5, None, 0.9, 3) == pytest.approx(12 + 0.2 * 0.5 * 3)

    def test_blend_nothing(self):
        assert blend_weekly_projection(0, 0, None, 0.25, 1) == 0


class TestProjectBestBall:
    """Test season totals and ordering."""

    def test_completed_and_future_weeks(self):
        """Actual lineup points for completed weeks plus blended future weeks."""
        meta = {'q1': _meta('QB'), 'r1': _meta('RB'), 'q2': _meta('QB', 'BUF'), 'r2': _meta('RB', 'BUF')}
        rosters = [_roster(1, 'u1', ['q1', 'r1'], fpts=100), _roster(2, 'u2', ['q2', 'r2'], fpts=50)]
        matchups = {1: [
            {'roster_id': 1, 'players': ['q1', 'r1'], 'players_points': {'q1': 20, 'r1': 10}},
            {'roster_id': 2, 'players': ['q2', 'r2'], 'players_points': {'q2': 15, 'r2': 5}},
        ]}
        projections = {3: {'q1': 18, 'r1': 12, 'q2': 16, 'r2': 6}}
        settings = EngineSettings(season=2025, season_weeks=3, playoff_teams=1)

        table = project_best_ball(rosters, USERS, meta, 2, matchups, projections, {},
                                  roster_positions=['QB', 'RB', 'BN'], settings=settings)

        def future(hist, ext, avg):
            return regression_to_mean(0.35 * 0.5 * hist + 0.6 * ext, avg)

        assert list(table.columns) == BEST_BALL_COLUMNS
        by_roster = table.set_index('roster_id')
        assert by_roster.loc[1, 'ytd_points'] == 30
        assert by_roster.loc[2, 'ytd_points'] == 20
        assert by_roster.loc[1, 'projected_points'] == pytest.approx(
            round(future(20, 18, 18) + future(10, 12, 12), 2), abs=0.01)
        assert by_roster.loc[2, 'total_points'] == pytest.approx(
            round(20 + future(15, 16, 18) + future(5, 6, 12), 2), abs=0.01)
        # roster 1 made the playoffs on actual points-for, so it picks last
        assert list(table['roster_id']) == [2, 1]
        assert list(table['draft_order']) == [1, 2]
        assert list(table['rank']) == [1, 2]

    def test_non_playoff_teams_pick_first_worst_first(self):
        meta = {p: _meta('RB') for p in ('a', 'b', 'c')}
        rosters = [_roster(1, 'u1', ['a'], fpts=300), _roster(2, 'u2', ['b'], fpts=200),
                   _roster(3, 'u3', ['c'], fpts=100)]
        projections = {2: {'a': 30, 'b': 12, 'c': 20}}
        settings = EngineSettings(season=2025, season_weeks=2, playoff_teams=1)

        table = project_best_ball(rosters, [], meta, 1, {}, projections, {},
                                  roster_positions=['RB'], settings=settings)

        assert list(table['roster_id']) == [2, 3, 1]
        assert list(table['owner_name']) == ['Roster 2', 'Roster 3', 'Roster 1']

    def _single_week(self, meta, projections, bye_weeks=None):
        settings = EngineSettings(season=2025, season_weeks=2, playoff_teams=0)
        rosters = [_roster(1, 'u1', list(meta))]
        table = project_best_ball(rosters, USERS, meta, 1, {}, {2: projections}, bye_weeks or {},
                                  roster_positions=['RB'], settings=settings)
        return table.iloc[0]['projected_points']

    def test_external_projection_at_position_average(self):
        """A projection equal to the position average is unchanged by regression."""
        assert self._single_week({'r': _meta('RB')}, {'r': 12}) == 12

    def test_questionable_discounted(self):
        projected = self._single_week({'r': _meta('RB', injury_status='Questionable')}, {'r': 12})
        assert projected == pytest.approx(round(12 * 0.65 * 0.85, 2))

    def test_ruled_out_with_projection_not_discounted(self):
        """A positive projection for a ruled-out player is trusted as is."""
        assert self._single_week({'r': _meta('RB', injury_status='Out')}, {'r': 12}) == 12

    def test_ruled_out_without_projection_skipped(self):
        assert self._single_week({'r': _meta('RB', injury_status='IR')}, {}) == 0

    def test_bye_week_skipped(self):
        assert self._single_week({'r': _meta('RB')}, {'r': 12}, {'KC': [2]}) == 0

    def test_inactive_and_unknown_players_skipped(self):
        assert self._single_week({'r': _meta('RB', active=False)}, {'r': 12}) == 0
        assert self._single_week({'r': {'team': 'KC', 'active': True}}, {'r': 12}) == 0

    def test_no_data_projects_regressed_zero(self):
        """With no history and no projection the player regresses up from zero."""
        projected = self._single_week({'r': _meta('RB')}, {})
        assert projected == pytest.approx(0.12 * 12)

    def test_missing_matchup_week_scores_nothing(self):
        settings = EngineSettings(season=2025, season_weeks=2, playoff_teams=0)
        rosters = [_roster(1, 'u1', ['r'])]
        table = project_best_ball(rosters, USERS, {'r': _meta('RB')}, 3, {1: None}, {}, {},
                                  roster_positions=['RB'], settings=settings)
        assert table.iloc[0]['total_points'] == 0
