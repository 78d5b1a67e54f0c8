import logging
import threading
from contextlib import contextmanager
from datetime import datetime, timedelta
from typing import Dict, Iterator, List, Optional

from dart_tournament.core.config import settings
from dart_tournament.core.exceptions import NotFoundError
from dart_tournament.models.tournament_model import TournamentModel

logger = logging.getLogger(__name__)


class _StoreEntry:
    def __init__(self, tournament: TournamentModel):
        self.tournament = tournament
        self.lock = threading.RLock()
        self.last_activity = datetime.utcnow()

    def touch(self):
        self.last_activity = datetime.utcnow()


class TournamentStore:
    """In-memory tournaments keyed by id, one exclusive lock per tournament.

    The map itself is guarded by a separate lock so creating or dropping a
    tournament never blocks on a tournament that is mid-operation.
    """

    def __init__(self, inactivity_timeout: Optional[timedelta] = None):
        self.inactivity_timeout = inactivity_timeout or timedelta(hours=settings.INACTIVITY_TIMEOUT_HOURS)
        self._entries: Dict[str, _StoreEntry] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, tournament_id: str) -> bool:
        with self._lock:
            return tournament_id in self._entries

    def add(self, tournament: TournamentModel) -> TournamentModel:
        with self._lock:
            self._entries[tournament.id] = _StoreEntry(tournament)
        logger.info("Stored tournament %s", tournament.id)
        return tournament

    def ids(self) -> List[str]:
        with self._lock:
            return list(self._entries)

    def _entry(self, tournament_id: str) -> _StoreEntry:
        with self._lock:
            entry = self._entries.get(tournament_id)
        if entry is None:
            raise NotFoundError(f"Tournament with ID {tournament_id} not found.")
        return entry

    @contextmanager
    def locked(self, tournament_id: str) -> Iterator[TournamentModel]:
        """Hold the tournament's exclusive lock for the duration of the block."""
        entry = self._entry(tournament_id)
        with entry.lock:
            entry.touch()
            yield entry.tournament

    def remove(self, tournament_id: str) -> TournamentModel:
        with self._lock:
            entry = self._entries.pop(tournament_id, None)
        if entry is None:
            raise NotFoundError(f"Tournament with ID {tournament_id} not found.")
        logger.info("Removed tournament %s", tournament_id)
        return entry.tournament

    def purge_inactive(self, now: Optional[datetime] = None) -> int:
        """Drop tournaments not touched within the inactivity timeout; returns how many."""
        now = now or datetime.utcnow()
        with self._lock:
            stale = [
                tid for tid, entry in self._entries.items()
                if now - entry.last_activity >= self.inactivity_timeout
            ]
            for tid in stale:
                del self._entries[tid]
        if stale:
            logger.info("Purged %d inactive tournament(s)", len(stale))
        return len(stale)
