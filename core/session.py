"""
Session Management

Per-conversation state plus an injectable in-memory store. Every turn runs
inside ``store.turn(session_id)``: the session lock is held for the whole
pipeline run and the working copy is committed only when the turn finishes
without raising.
"""

import copy
import time
import threading
from contextlib import contextmanager
from dataclasses import asdict, dataclass, field
from typing import Dict, Iterator, List, Optional

from app_config import (
    SESSION_TTL_SECONDS,
    TEMPLATE_HISTORY_SIZE,
    TEMPLATE_SKIP_WINDOW,
    VISIT_GAP_SECONDS,
    DEFAULT_LANG,
)
from chat_logger import get_logger

logger = get_logger()


@dataclass
class SessionState:
    focus: Optional[str] = None
    category: Optional[str] = None
    last_query: Optional[str] = None
    template_history: Dict[str, List[int]] = field(default_factory=dict)
    message_count: int = 0
    visit_count: int = 0
    lang: str = DEFAULT_LANG
    last_emotion: Optional[str] = None
    created_at: float = 0.0
    updated_at: float = 0.0

    def register_message(self, now: float, visit_gap: float = VISIT_GAP_SECONDS) -> None:
        """Count a message; a long idle gap (or the first message) opens a new visit."""
        if self.message_count == 0 or (now - self.updated_at) > visit_gap:
            self.visit_count += 1
        self.message_count += 1

    def to_dict(self) -> Dict:
        return asdict(self)


def pick_variant(state: SessionState, family: str, variant_count: int) -> int:
    """
    Next template index for *family*, round-robin from the last one used and
    skipping the last TEMPLATE_SKIP_WINDOW indices. With too few variants to
    skip, plain round-robin is used. Records the choice in the state.
    """
    if variant_count <= 0:
        raise ValueError("variant_count must be positive")

    history = state.template_history.get(family, [])
    last = history[-1] if history else -1
    recent = set(history[-TEMPLATE_SKIP_WINDOW:])

    choice = (last + 1) % variant_count
    for step in range(1, variant_count + 1):
        candidate = (last + step) % variant_count
        if candidate not in recent:
            choice = candidate
            break

    history = (history + [choice])[-TEMPLATE_HISTORY_SIZE:]
    state.template_history[family] = history
    return choice


# ═══════════════════════════════════════════
# STORES
# ═══════════════════════════════════════════

class SessionStore:
    """Interface every session backend implements."""

    def get(self, session_id: str) -> SessionState:
        raise NotImplementedError

    def update(self, session_id: str, **partial) -> SessionState:
        raise NotImplementedError

    def next_template_variant(self, session_id: str, family: str, variant_count: int) -> int:
        raise NotImplementedError

    def turn(self, session_id: str):
        raise NotImplementedError

    def evict_idle(self, max_idle_seconds: float) -> int:
        raise NotImplementedError


class InMemorySessionStore(SessionStore):
    """Single-process store: dict behind a registry lock plus one RLock per session."""

    def __init__(self, ttl_seconds: int = SESSION_TTL_SECONDS, clock=time.time):
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._sessions: Dict[str, SessionState] = {}
        self._locks: Dict[str, threading.RLock] = {}
        self._holders: Dict[str, int] = {}
        self._registry_lock = threading.Lock()
        self._stop_event: Optional[threading.Event] = None
        self._eviction_thread: Optional[threading.Thread] = None

    # ─── lock bookkeeping ───

    def _checkout(self, session_id: str) -> threading.RLock:
        with self._registry_lock:
            lock = self._locks.get(session_id)
            if lock is None:
                lock = threading.RLock()
                self._locks[session_id] = lock
            self._holders[session_id] = self._holders.get(session_id, 0) + 1
            return lock

    def _checkin(self, session_id: str) -> None:
        with self._registry_lock:
            remaining = self._holders.get(session_id, 1) - 1
            if remaining > 0:
                self._holders[session_id] = remaining
            else:
                self._holders.pop(session_id, None)

    @contextmanager
    def _locked(self, session_id: str) -> Iterator[None]:
        lock = self._checkout(session_id)
        lock.acquire()
        try:
            yield
        finally:
            lock.release()
            self._checkin(session_id)

    def _load_or_create(self, session_id: str) -> SessionState:
        state = self._sessions.get(session_id)
        if not isinstance(state, SessionState):
            if state is not None:
                logger.warning(f"⚠️ Corrupt session state for {session_id} — re-creating")
            now = self._clock()
            state = SessionState(created_at=now, updated_at=now)
            with self._registry_lock:
                self._sessions[session_id] = state
        return state

    # ─── public API ───

    def exists(self, session_id: str) -> bool:
        return session_id in self._sessions

    def get(self, session_id: str) -> SessionState:
        """Detached copy of the session, created with defaults on first access."""
        with self._locked(session_id):
            return copy.deepcopy(self._load_or_create(session_id))

    def update(self, session_id: str, **partial) -> SessionState:
        with self._locked(session_id):
            state = self._load_or_create(session_id)
            for key, value in partial.items():
                if not hasattr(state, key):
                    raise ValueError(f"Unknown session field: {key}")
                setattr(state, key, value)
            state.updated_at = self._clock()
            return copy.deepcopy(state)

    def next_template_variant(self, session_id: str, family: str, variant_count: int) -> int:
        with self._locked(session_id):
            state = self._load_or_create(session_id)
            index = pick_variant(state, family, variant_count)
            state.updated_at = self._clock()
            return index

    @contextmanager
    def turn(self, session_id: str) -> Iterator[SessionState]:
        """
        Serialize one conversational turn. Yields a working copy; it replaces
        the stored state only if the block exits normally.
        """
        with self._locked(session_id):
            working = copy.deepcopy(self._load_or_create(session_id))
            yield working
            working.updated_at = self._clock()
            with self._registry_lock:
                self._sessions[session_id] = working

    def evict_idle(self, max_idle_seconds: Optional[float] = None) -> int:
        """Drop sessions idle longer than the window. Busy sessions are skipped."""
        max_idle = self.ttl_seconds if max_idle_seconds is None else max_idle_seconds
        cutoff = self._clock() - max_idle
        evicted = 0
        with self._registry_lock:
            for session_id in list(self._sessions):
                state = self._sessions[session_id]
                if self._holders.get(session_id):
                    continue
                if isinstance(state, SessionState) and state.updated_at >= cutoff:
                    continue
                del self._sessions[session_id]
                self._locks.pop(session_id, None)
                evicted += 1
        if evicted:
            logger.info(f"🧹 Evicted {evicted} idle session(s)")
        return evicted

    def start_eviction_timer(self, interval_seconds: float, max_idle_seconds: Optional[float] = None):
        """Run evict_idle periodically on a daemon thread."""
        if self._eviction_thread and self._eviction_thread.is_alive():
            return self._eviction_thread

        self._stop_event = threading.Event()
        stop_event = self._stop_event

        def _evict_loop():
            while not stop_event.wait(interval_seconds):
                try:
                    self.evict_idle(max_idle_seconds)
                except Exception as e:
                    logger.error(f"❌ Session eviction failed: {e}")

        self._eviction_thread = threading.Thread(target=_evict_loop, daemon=True, name="session-eviction")
        self._eviction_thread.start()
        logger.info(f"🔄 Session eviction started (every {interval_seconds}s)")
        return self._eviction_thread

    def stop_eviction_timer(self) -> None:
        if self._stop_event:
            self._stop_event.set()

    def stats(self) -> Dict[str, int]:
        with self._registry_lock:
            return {
                "sessions": len(self._sessions),
                "active_turns": sum(1 for n in self._holders.values() if n),
            }
