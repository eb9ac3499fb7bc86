"""Live draft reconciliation: poll the draft feed and derive taken players.

Every poll fetches the full pick snapshot and recomputes everything from it;
nothing is carried over between polls. The reconciler never touches ranking
rows itself: consumers merge the taken set with ``merge_taken``.
"""

import logging
import math
import threading
import time
from enum import Enum
from typing import Callable, FrozenSet, Iterable, List, Mapping, NamedTuple, Optional, Sequence

from ..config.settings import DraftSettings
from ..data.aliases import apply_alias
from ..data.sleeper_client import SleeperClient
from ..errors import DynastyBoardError
from ..utils.names import normalize_name
from .models import DraftPick, RankingRow

logger = logging.getLogger(__name__)

ROOKIE_PICK_POSITION = 'PICK'
KICKER = 'K'


class ReconcilerState(str, Enum):
    IDLE = "idle"
    POLLING = "polling"
    STOPPED = "stopped"


def _ignore(*args) -> None:
    pass


class PollCallbacks(NamedTuple):
    """Consumers notified after each poll. Called from the polling thread."""
    on_taken_update: Callable[[FrozenSet[str]], None] = _ignore
    on_picks_update: Callable[[List[DraftPick]], None] = _ignore
    on_sync: Callable[[int], None] = _ignore
    on_error: Callable[[str], None] = _ignore


class DraftSnapshot(NamedTuple):
    taken: FrozenSet[str]
    picks: List[DraftPick]
    pick_count: int


def format_pick_display(pick_no: int, league_size: int) -> str:
    """Overall pick number as round.pick, e.g. 21 in a 12-team league is "2.09"."""
    round_no = math.ceil(pick_no / league_size)
    pick_in_round = (pick_no - 1) % league_size + 1
    return f"{round_no}.{pick_in_round:02d}"


def rookie_pick_name(kicker_count: int, league_size: int, rookie_year: int) -> str:
    """Name of the rookie pick the n-th drafted kicker stands for, e.g. "2026 2.01"."""
    return f"{rookie_year} {format_pick_display(kicker_count, league_size)}"


def extract_player_name(pick: Mapping) -> Optional[str]:
    """First and last name from pick metadata, else player_name, else None."""
    metadata = pick.get('metadata') or {}
    first_name = metadata.get('first_name')
    last_name = metadata.get('last_name')
    if first_name and last_name:
        return f"{first_name} {last_name}"
    return metadata.get('player_name') or None


def _pick_no(pick: Mapping) -> int:
    try:
        return int(pick.get('pick_no') or 0)
    except (TypeError, ValueError):
        return 0


def build_snapshot(picks: Sequence[Mapping],
                   league_size: int,
                   rookie_pick_mode: bool,
                   rookie_year: int,
                   my_user_ids: Iterable[str] = ()) -> DraftSnapshot:
    """Derive the taken set and display picks from a full pick snapshot.

    In rookie pick mode kickers stand in for rookie draft picks: the n-th
    kicker taken (in pick order) becomes the n-th rookie pick. The count
    restarts from the first pick on every snapshot.

    Args:
        picks: Raw picks from the draft feed, any order
        league_size: Teams per round
        rookie_pick_mode: Map kickers to rookie picks
        rookie_year: Draft year used in rookie pick names
        my_user_ids: Users whose picks are flagged as mine

    Returns:
        DraftSnapshot with normalized taken names, picks in pick order and
        the raw pick count
    """
    my_user_ids = frozenset(my_user_ids)
    ordered = sorted((p for p in picks if isinstance(p, Mapping)),
                     key=_pick_no)

    taken = set()
    draft_picks = []
    kicker_count = 0
    for pick in ordered:
        metadata = pick.get('metadata') or {}
        position = (metadata.get('position') or '').upper()
        picked_by = pick.get('picked_by') or ''

        if rookie_pick_mode and position == KICKER:
            kicker_count += 1
            name = rookie_pick_name(kicker_count, league_size, rookie_year)
            position, team = ROOKIE_PICK_POSITION, ''
            taken.add(normalize_name(name))
        else:
            name = extract_player_name(pick)
            if not name:
                continue
            team = metadata.get('team') or ''
            taken.add(apply_alias(normalize_name(name)))

        pick_no = _pick_no(pick)
        draft_picks.append(DraftPick(
            pick_no=pick_no,
            pick_display=format_pick_display(pick_no, league_size) if pick_no >= 1 else '',
            player_name=name,
            position=position,
            team=team,
            picked_by=picked_by,
            is_my_pick=bool(picked_by) and picked_by in my_user_ids,
        ))

    return DraftSnapshot(frozenset(taken), draft_picks, len(picks))


def merge_taken(rows: Sequence[RankingRow], taken: Iterable[str]) -> List[RankingRow]:
    """New ranking rows with ``taken`` set from the taken names.

    Manually overridden rows are returned as they are.
    """
    taken = frozenset(taken)
    merged = []
    for row in rows:
        if row.manual_override:
            merged.append(row)
        else:
            merged.append(row.model_copy(update={'taken': row.normalized_name in taken}))
    return merged


class DraftReconciler:
    """Polls a draft on a fixed cadence from a background thread.

    IDLE -> POLLING on start(); POLLING -> STOPPED on stop(). A tick that
    comes due while a fetch is still running is skipped, except the first
    fetch after start(), which waits for it. Results from a poll that started
    before the latest stop() or start() are discarded.
    """

    def __init__(self, client: Optional[SleeperClient] = None):
        self.client = client or SleeperClient()
        self.settings: Optional[DraftSettings] = None
        self.callbacks = PollCallbacks()
        self._my_user_ids: Callable[[], Iterable[str]] = tuple
        self._state = ReconcilerState.IDLE
        self._generation = 0
        self._stop_event: Optional[threading.Event] = None
        self._worker: Optional[threading.Thread] = None
        self._lock = threading.Lock()
        self._in_flight = threading.Lock()

    @property
    def state(self) -> ReconcilerState:
        return self._state

    @property
    def is_polling(self) -> bool:
        return self._state == ReconcilerState.POLLING

    def start(self, settings: DraftSettings, callbacks: PollCallbacks,
              my_user_ids: Callable[[], Iterable[str]] = tuple) -> None:
        """Poll immediately, then every ``settings.poll_interval_seconds``.

        Any previous polling is stopped first.

        Args:
            settings: Draft id, cadence and rookie pick options
            callbacks: Consumers of each poll's results
            my_user_ids: Returns the user ids whose picks are mine, read on every poll
        """
        self.stop()
        with self._lock:
            self._generation += 1
            generation = self._generation
            self.settings = settings
            self.callbacks = callbacks
            self._my_user_ids = my_user_ids
            self._stop_event = threading.Event()
            self._state = ReconcilerState.POLLING
            self._worker = threading.Thread(
                target=self._run, args=(generation, settings, callbacks, my_user_ids, self._stop_event),
                name=f"draft-poll-{settings.draft_id}", daemon=True)
            self._worker.start()

        mode = f" (rookie pick mode: {settings.league_size} teams)" if settings.rookie_pick_mode else ""
        logger.info(f"Started polling draft {settings.draft_id}{mode}")

    def stop(self) -> None:
        """Cancel future polls and discard any fetch still running. Safe to call repeatedly."""
        with self._lock:
            self._generation += 1
            if self._state != ReconcilerState.POLLING:
                return
            self._stop_event.set()
            self._state = ReconcilerState.STOPPED
        logger.info("Stopped polling")

    def poll_once(self, settings: Optional[DraftSettings] = None,
                  callbacks: Optional[PollCallbacks] = None,
                  my_user_ids: Optional[Callable[[], Iterable[str]]] = None) -> bool:
        """Run one fetch-and-derive cycle now.

        Arguments override the ones given to start() for this cycle only.

        Returns:
            True when results were delivered, False when the poll failed, was
            skipped because another fetch is running, or was discarded
        """
        with self._lock:
            generation = self._generation
            settings = settings or self.settings
            callbacks = callbacks or self.callbacks
            my_user_ids = my_user_ids or self._my_user_ids
        if settings is None:
            raise DynastyBoardError("Draft ID is required")
        return self._poll(generation, settings, callbacks, my_user_ids)

    def _current(self, generation: int) -> bool:
        with self._lock:
            return generation == self._generation

    def _run(self, generation: int, settings: DraftSettings, callbacks: PollCallbacks,
             my_user_ids: Callable[[], Iterable[str]], stop_event: threading.Event) -> None:
        interval = settings.poll_interval_seconds
        next_tick = time.monotonic()
        first = True
        while not stop_event.is_set():
            try:
                # The first fetch of a session waits out a fetch left over from before a restart.
                self._poll(generation, settings, callbacks, my_user_ids,
                           wait_timeout=interval if first else None)
            except Exception:
                logger.exception("Draft poll callback failed")

            first = False
            next_tick += interval
            now = time.monotonic()
            while next_tick <= now:
                logger.debug("Skipping overdue poll tick")
                next_tick += interval
            stop_event.wait(next_tick - now)

    def _poll(self, generation: int, settings: DraftSettings, callbacks: PollCallbacks,
              my_user_ids: Callable[[], Iterable[str]],
              wait_timeout: Optional[float] = None) -> bool:
        if wait_timeout is None:
            acquired = self._in_flight.acquire(blocking=False)
        else:
            acquired = self._in_flight.acquire(timeout=wait_timeout)
        if not acquired:
            logger.debug("Previous draft fetch still in flight, skipping tick")
            return False
        try:
            if not self._current(generation):
                return False
            try:
                picks = self.client.get_draft_picks(settings.draft_id)
            except DynastyBoardError as e:
                if self._current(generation):
                    logger.warning(f"Draft sync failed: {e}")
                    callbacks.on_error(str(e))
                return False

            if not self._current(generation):
                logger.debug("Discarding picks from a cancelled poll")
                return False

            try:
                snapshot = build_snapshot(picks, settings.league_size, settings.rookie_pick_mode,
                                          settings.rookie_year, my_user_ids())
            except (AttributeError, TypeError, ValueError) as e:
                logger.warning(f"Draft sync failed, malformed draft picks: {e}")
                callbacks.on_error(f"Malformed draft picks: {e}")
                return False

            callbacks.on_taken_update(snapshot.taken)
            callbacks.on_picks_update(snapshot.picks)
            callbacks.on_sync(snapshot.pick_count)
            return True
        finally:
            self._in_flight.release()
