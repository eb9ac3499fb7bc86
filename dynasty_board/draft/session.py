"""Draft board session: rankings, live picks, my picks and an activity log."""

import logging
import threading
import uuid
from datetime import datetime
from typing import FrozenSet, List, NamedTuple, Optional

from pydantic import BaseModel, Field

from ..config.settings import DraftSettings
from ..data.rankings_csv import parse_rankings_csv
from ..data.storage import KeyValueStore
from ..errors import ValidationError
from .models import DraftPick, RankingRow
from .reconciler import DraftReconciler, PollCallbacks, merge_taken

logger = logging.getLogger(__name__)

SAVED_RANKINGS_KEY = "dynasty-board-saved-rankings"
MY_USER_IDS_KEY = "dynasty-board-my-user-ids"
MAX_LOG_ENTRIES = 10


class SavedRankings(BaseModel):
    """A ranking file kept in the store so it can be reloaded."""

    id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    name: str
    content: str
    loaded_at: datetime = Field(default_factory=datetime.now)


class SyncStatus(BaseModel):
    last_sync: Optional[datetime] = None
    picks_count: int = 0
    error: Optional[str] = None
    is_polling: bool = False


class LogEntry(NamedTuple):
    timestamp: datetime
    message: str
    level: str  # info, error or success


class DraftSession:
    """Owns the ranking board and keeps it in sync with a live draft.

    Poll results arrive on the reconciler's thread; all state changes go
    through one lock.
    """

    def __init__(self, store: KeyValueStore, reconciler: Optional[DraftReconciler] = None):
        self.store = store
        self.reconciler = reconciler or DraftReconciler()
        self.rankings: List[RankingRow] = []
        self.file_name: Optional[str] = None
        self.selected_id: Optional[str] = None
        self.picks: List[DraftPick] = []
        self.sync_status = SyncStatus()
        self.logs: List[LogEntry] = []
        self._lock = threading.RLock()
        self.saved = self._load_saved()
        self.my_user_ids = self._load_my_user_ids()

    # Persistence

    def _load_saved(self) -> List[SavedRankings]:
        saved = []
        for entry in self.store.get_json(SAVED_RANKINGS_KEY, []) or []:
            try:
                saved.append(SavedRankings.model_validate(entry))
            except ValueError as e:
                logger.warning(f"Ignoring unreadable saved rankings entry: {e}")
        return saved

    def _save_saved(self) -> None:
        self.store.set_json(SAVED_RANKINGS_KEY, [s.model_dump(mode='json') for s in self.saved])

    def _load_my_user_ids(self) -> set:
        user_ids = self.store.get_json(MY_USER_IDS_KEY, []) or []
        return {str(u) for u in user_ids}

    def _save_my_user_ids(self) -> None:
        self.store.set_json(MY_USER_IDS_KEY, sorted(self.my_user_ids))

    def get_my_user_ids(self) -> FrozenSet[str]:
        with self._lock:
            return frozenset(self.my_user_ids)

    # Activity log

    def add_log(self, message: str, level: str = 'info') -> None:
        """Record an activity entry; only the newest entries are kept, newest first."""
        with self._lock:
            self.logs = [LogEntry(datetime.now(), message, level)] + self.logs[:MAX_LOG_ENTRIES - 1]
        log = logger.error if level == 'error' else logger.info
        log(message)

    # Rankings

    def load_rankings(self, content: str, file_name: str) -> List[RankingRow]:
        """Parse a ranking file, make it current and save it, replacing a same-named entry.

        Raises:
            ValidationError: if required columns are missing
        """
        try:
            rows = parse_rankings_csv(content, file_name)
        except ValidationError as e:
            self.add_log(str(e), 'error')
            raise

        entry = SavedRankings(name=file_name, content=content)
        with self._lock:
            self.rankings = rows
            self.file_name = file_name
            self.selected_id = entry.id
            self.saved = [s for s in self.saved if s.name != file_name] + [entry]
            self._save_saved()
        self.add_log(f"Loaded {len(rows)} players from CSV", 'success')
        return rows

    def select_saved(self, csv_id: str) -> bool:
        """Switch to a saved ranking file. Returns False for an unknown id."""
        with self._lock:
            entry = next((s for s in self.saved if s.id == csv_id), None)
            if entry is None:
                return False
            self.rankings = parse_rankings_csv(entry.content, entry.name)
            self.file_name = entry.name
            self.selected_id = csv_id
        self.add_log(f"Switched to {entry.name}")
        return True

    def delete_saved(self, csv_id: str) -> None:
        with self._lock:
            self.saved = [s for s in self.saved if s.id != csv_id]
            self._save_saved()
            if self.selected_id == csv_id:
                self.rankings = []
                self.file_name = None
                self.selected_id = None
        self.add_log("CSV removed from saved list")

    def toggle_taken(self, index: int) -> RankingRow:
        """Flip a row's taken flag by hand; the draft feed no longer changes it."""
        with self._lock:
            row = self.rankings[index]
            updated = row.model_copy(update={'taken': not row.taken, 'manual_override': True})
            self.rankings = self.rankings[:index] + [updated] + self.rankings[index + 1:]
        self.add_log(f"Manually toggled: {row.name}")
        return updated

    # Picks

    def toggle_my_pick(self, pick_no: int) -> bool:
        """Mark or unmark every pick by the user who made this pick as mine.

        Returns:
            True if the user is now marked, False if unmarked or the pick is unknown
        """
        with self._lock:
            pick = next((p for p in self.picks if p.pick_no == pick_no), None)
            if pick is None or not pick.picked_by:
                return False

            user_id = pick.picked_by
            marked = user_id not in self.my_user_ids
            if marked:
                self.my_user_ids.add(user_id)
            else:
                self.my_user_ids.discard(user_id)
            self._save_my_user_ids()

            self.picks = [p.model_copy(update={'is_my_pick': p.picked_by in self.my_user_ids})
                          for p in self.picks]
            user_picks = sum(1 for p in self.picks if p.picked_by == user_id)

        action = "Marked" if marked else "Unmarked"
        self.add_log(f"{action} {user_picks} picks as mine (user: {user_id})")
        return marked

    @property
    def my_picks(self) -> List[DraftPick]:
        with self._lock:
            return [p for p in self.picks if p.picked_by in self.my_user_ids]

    @property
    def taken_count(self) -> int:
        return sum(1 for row in self.rankings if row.taken)

    @property
    def available(self) -> List[RankingRow]:
        return [row for row in self.rankings if not row.taken]

    # Polling

    def _on_taken_update(self, taken: FrozenSet[str]) -> None:
        with self._lock:
            self.rankings = merge_taken(self.rankings, taken)

    def _on_picks_update(self, picks: List[DraftPick]) -> None:
        with self._lock:
            self.picks = picks

    def _on_sync(self, picks_count: int) -> None:
        with self._lock:
            self.sync_status = SyncStatus(last_sync=datetime.now(), picks_count=picks_count,
                                          is_polling=True)
        self.add_log(f"Synced {picks_count} picks", 'success')

    def _on_error(self, message: str) -> None:
        with self._lock:
            self.sync_status = self.sync_status.model_copy(update={'error': message})
        self.add_log(f"Sync error: {message}", 'error')

    def callbacks(self) -> PollCallbacks:
        return PollCallbacks(
            on_taken_update=self._on_taken_update,
            on_picks_update=self._on_picks_update,
            on_sync=self._on_sync,
            on_error=self._on_error,
        )

    def start_polling(self, settings: DraftSettings) -> None:
        self.reconciler.start(settings, self.callbacks(), self.get_my_user_ids)
        with self._lock:
            self.sync_status = self.sync_status.model_copy(update={'is_polling': True, 'error': None})
        mode = f" (Rookie Pick Mode: {settings.league_size} teams)" if settings.rookie_pick_mode else ""
        self.add_log(f"Started polling draft {settings.draft_id}{mode}")

    def sync_once(self, settings: DraftSettings) -> bool:
        """Fetch the draft once without starting the polling thread."""
        return self.reconciler.poll_once(settings, self.callbacks(), self.get_my_user_ids)

    def stop_polling(self) -> None:
        self.reconciler.stop()
        with self._lock:
            self.sync_status = self.sync_status.model_copy(update={'is_polling': False})
        self.add_log("Stopped polling")

    def reset(self) -> None:
        """Stop polling and clear the board, picks, log and my user ids. Saved files stay."""
        self.reconciler.stop()
        with self._lock:
            self.rankings = []
            self.file_name = None
            self.selected_id = None
            self.picks = []
            self.sync_status = SyncStatus()
            self.logs = []
            self.my_user_ids = set()
            self.store.remove(MY_USER_IDS_KEY)
        self.add_log("Reset complete - ready for new draft", 'success')
