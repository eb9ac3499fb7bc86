"""Tests for the draft board session."""

import json
from unittest.mock import MagicMock

import pytest
from dynasty_board.config.settings import DraftSettings
from dynasty_board.data.storage import MemoryStore
from dynasty_board.draft.models import DraftPick
from dynasty_board.draft.reconciler import DraftReconciler
from dynasty_board.draft.session import DraftSession, MY_USER_IDS_KEY, SAVED_RANKINGS_KEY
from dynasty_board.errors import ValidationError

RANKINGS = "name,tier,pos\nBijan Robinson,1,RB\nBreece Hall,1,RB\nPuka Nacua,2,WR\n"


def _picks():
    return [
        DraftPick(pick_no=1, pick_display="1.01", player_name="Bijan Robinson", position="RB", picked_by="u1"),
        DraftPick(pick_no=2, pick_display="1.02", player_name="Breece Hall", position="RB", picked_by="u2"),
        DraftPick(pick_no=3, pick_display="1.03", player_name="Puka Nacua", position="WR", picked_by="u1"),
    ]


@pytest.fixture
def store():
    return MemoryStore()


@pytest.fixture
def session(store):
    return DraftSession(store, reconciler=MagicMock())


class TestRankings:
    """Test loading and switching ranking files."""

    def test_load_rankings(self, session, store):
        rows = session.load_rankings(RANKINGS, "ranks.csv")

        assert len(rows) == 3
        assert session.file_name == "ranks.csv"
        assert session.selected_id == session.saved[0].id
        saved = json.loads(store.get(SAVED_RANKINGS_KEY))
        assert saved[0]['name'] == "ranks.csv"
        assert saved[0]['content'] == RANKINGS
        assert session.logs[0].message == "Loaded 3 players from CSV"
        assert session.logs[0].level == 'success'

    def test_reload_replaces_same_name(self, session):
        session.load_rankings(RANKINGS, "ranks.csv")
        session.load_rankings("name,tier,pos\nBijan Robinson,1,RB", "ranks.csv")
        assert len(session.saved) == 1
        assert len(session.rankings) == 1

    def test_invalid_file_logged_and_raised(self, session):
        with pytest.raises(ValidationError):
            session.load_rankings("name,pos\nBijan Robinson,RB", "bad.csv")
        assert session.logs[0].level == 'error'
        assert session.rankings == []
        assert session.saved == []

    def test_saved_rankings_survive_restart(self, session, store):
        session.load_rankings(RANKINGS, "ranks.csv")
        restarted = DraftSession(store, reconciler=MagicMock())
        assert [s.name for s in restarted.saved] == ["ranks.csv"]

    def test_select_saved(self, session):
        session.load_rankings(RANKINGS, "a.csv")
        session.load_rankings("name,tier,pos\nBijan Robinson,1,RB", "b.csv")

        assert session.select_saved(session.saved[0].id) is True
        assert session.file_name == "a.csv"
        assert len(session.rankings) == 3
        assert session.select_saved("unknown") is False

    def test_delete_selected(self, session):
        session.load_rankings(RANKINGS, "ranks.csv")
        session.delete_saved(session.selected_id)
        assert session.saved == []
        assert session.rankings == []
        assert session.file_name is None

    def test_toggle_taken_survives_sync(self, session):
        """A manual toggle is kept when the feed says otherwise."""
        session.load_rankings(RANKINGS, "ranks.csv")
        session.toggle_taken(2)

        session._on_taken_update(frozenset({"bijan robinson"}))

        assert [r.taken for r in session.rankings] == [True, False, True]
        assert session.rankings[2].manual_override
        assert session.taken_count == 2
        assert [r.name for r in session.available] == ["Breece Hall"]


class TestMyPicks:
    """Test marking users as mine."""

    def test_toggle_marks_all_user_picks(self, session, store):
        session._on_picks_update(_picks())

        assert session.toggle_my_pick(1) is True

        assert [p.pick_no for p in session.my_picks] == [1, 3]
        assert [p.is_my_pick for p in session.picks] == [True, False, True]
        assert json.loads(store.get(MY_USER_IDS_KEY)) == ["u1"]
        assert session.logs[0].message == "Marked 2 picks as mine (user: u1)"

    def test_toggle_again_unmarks(self, session):
        session._on_picks_update(_picks())
        session.toggle_my_pick(1)
        assert session.toggle_my_pick(3) is False
        assert session.my_picks == []

    def test_unknown_pick(self, session):
        assert session.toggle_my_pick(99) is False

    def test_my_user_ids_loaded(self, store):
        store.set_json(MY_USER_IDS_KEY, ["u2"])
        session = DraftSession(store, reconciler=MagicMock())
        assert session.get_my_user_ids() == frozenset({"u2"})


class TestSyncCallbacks:
    """Test how poll results update the session."""

    def test_sync_status_and_log(self, session):
        session._on_sync(3)
        assert session.sync_status.picks_count == 3
        assert session.sync_status.last_sync is not None
        assert session.logs[0].message == "Synced 3 picks"

    def test_error_logged(self, session):
        session._on_error("draft picks (d1): HTTP 404")
        assert session.sync_status.error == "draft picks (d1): HTTP 404"
        assert session.logs[0].message == "Sync error: draft picks (d1): HTTP 404"
        assert session.logs[0].level == 'error'

    def test_log_keeps_newest_ten(self, session):
        for i in range(15):
            session.add_log(f"entry {i}")
        assert len(session.logs) == 10
        assert session.logs[0].message == "entry 14"
        assert session.logs[-1].message == "entry 5"

    def test_start_and_stop_polling(self, session):
        settings = DraftSettings(draft_id="d1", rookie_pick_mode=True, league_size=10)

        session.start_polling(settings)
        session.reconciler.start.assert_called_once()
        assert session.reconciler.start.call_args[0][0] is settings
        assert session.sync_status.is_polling
        assert session.logs[0].message == "Started polling draft d1 (Rookie Pick Mode: 10 teams)"

        session.stop_polling()
        session.reconciler.stop.assert_called_once()
        assert not session.sync_status.is_polling

    def test_sync_once_end_to_end(self, store):
        """One sync through a real reconciler marks drafted rows."""
        client = MagicMock()
        client.get_draft_picks.return_value = [
            {'pick_no': 1, 'picked_by': 'u1',
             'metadata': {'first_name': 'Bijan', 'last_name': 'Robinson', 'position': 'RB', 'team': 'ATL'}},
        ]
        session = DraftSession(store, reconciler=DraftReconciler(client=client))
        session.load_rankings(RANKINGS, "ranks.csv")

        assert session.sync_once(DraftSettings(draft_id="d1")) is True

        assert [r.taken for r in session.rankings] == [True, False, False]
        assert session.picks[0].pick_display == "1.01"
        assert session.sync_status.picks_count == 1

    def test_reset(self, session, store):
        session.load_rankings(RANKINGS, "ranks.csv")
        session._on_picks_update(_picks())
        session.toggle_my_pick(1)

        session.reset()

        assert session.rankings == []
        assert session.picks == []
        assert session.get_my_user_ids() == frozenset()
        assert store.get(MY_USER_IDS_KEY) is None
        assert store.get(SAVED_RANKINGS_KEY) is not None
        assert [entry.message for entry in session.logs] == ["Reset complete - ready for new draft"]
