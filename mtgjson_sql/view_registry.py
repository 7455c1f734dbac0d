"""
Session-scoped registry of materialized views.

Each view moves UNREGISTERED -> BUILDING -> REGISTERED, and on refresh
REGISTERED -> STALE -> UNREGISTERED. At most one build per view is in
flight; concurrent callers wait on the owner's future and see the same
result or the same exception.
"""

from __future__ import annotations

import datetime
import enum
import logging
import threading
from concurrent.futures import Future
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional

from .errors import StaleViewConflictError

LOGGER = logging.getLogger(__name__)


class ViewState(enum.Enum):
    UNREGISTERED = "unregistered"
    BUILDING = "building"
    REGISTERED = "registered"
    STALE = "stale"


@dataclass(frozen=True)
class RegisteredView:
    view_name: str
    built_at: datetime.datetime
    fingerprint: str
    generation: int


class ViewRegistry:
    """
    Tracks which views exist for one connection and runs each build once
    per (generation, fingerprint).
    """

    def __init__(
        self,
        build: Callable[[str], None],
        fingerprint: Callable[[], str],
    ) -> None:
        """
        :param build: Materializes one view; must publish atomically
        :param fingerprint: Current identity of the raw artifacts
        """
        self._build = build
        self._fingerprint = fingerprint
        self._guard = threading.Lock()
        self._records: Dict[str, RegisteredView] = {}
        self._states: Dict[str, ViewState] = {}
        self._in_flight: Dict[str, Future] = {}
        self._generation = 0

    @property
    def generation(self) -> int:
        with self._guard:
            return self._generation

    def state(self, view_name: str) -> ViewState:
        with self._guard:
            return self._states.get(view_name, ViewState.UNREGISTERED)

    def get(self, view_name: str) -> Optional[RegisteredView]:
        with self._guard:
            return self._records.get(view_name)

    def registered(self) -> List[str]:
        with self._guard:
            return sorted(self._records)

    def ensure(self, view_name: str) -> RegisteredView:
        """
        Make sure a view is built for the current generation and fingerprint
        :param view_name: Logical view name
        :return The registration record
        """
        try:
            return self._ensure_once(view_name)
        except StaleViewConflictError as error:
            LOGGER.info(f"Rebuilding {view_name} after refresh: {error}")
            return self._ensure_once(view_name)

    def _ensure_once(self, view_name: str) -> RegisteredView:
        current_fingerprint = self._fingerprint()

        with self._guard:
            record = self._records.get(view_name)
            if record is not None:
                if (
                    record.generation == self._generation
                    and record.fingerprint == current_fingerprint
                ):
                    return record
                LOGGER.info(
                    f"View {view_name} is stale "
                    f"({record.fingerprint} -> {current_fingerprint})"
                )
                self._states[view_name] = ViewState.STALE
                del self._records[view_name]
                self._states[view_name] = ViewState.UNREGISTERED

            future = self._in_flight.get(view_name)
            is_owner = future is None
            if future is None:
                future = Future()
                self._in_flight[view_name] = future
                self._states[view_name] = ViewState.BUILDING
            started_generation = self._generation

        if not is_owner:
            result: RegisteredView = future.result()
            return result

        try:
            self._build(view_name)
            built_fingerprint = self._fingerprint()
        except BaseException as error:
            with self._guard:
                self._in_flight.pop(view_name, None)
                self._states[view_name] = ViewState.UNREGISTERED
            future.set_exception(error)
            raise

        with self._guard:
            self._in_flight.pop(view_name, None)
            if started_generation != self._generation:
                self._states[view_name] = ViewState.UNREGISTERED
                conflict = StaleViewConflictError(
                    view_name, started_generation, self._generation
                )
            else:
                conflict = None
                record = RegisteredView(
                    view_name,
                    datetime.datetime.now(datetime.timezone.utc),
                    built_fingerprint,
                    started_generation,
                )
                self._records[view_name] = record
                self._states[view_name] = ViewState.REGISTERED

        if conflict is not None:
            future.set_exception(conflict)
            raise conflict

        LOGGER.debug(f"Registered view {view_name} at generation {started_generation}")
        future.set_result(record)
        return record

    def mark_registered(self, view_name: str) -> RegisteredView:
        """
        Record a view that was published outside of ensure()
        """
        fingerprint = self._fingerprint()
        with self._guard:
            record = RegisteredView(
                view_name,
                datetime.datetime.now(datetime.timezone.utc),
                fingerprint,
                self._generation,
            )
            self._records[view_name] = record
            self._states[view_name] = ViewState.REGISTERED
        return record

    def discard(self, view_name: str) -> None:
        with self._guard:
            self._records.pop(view_name, None)
            self._states.pop(view_name, None)

    def invalidate_all(self) -> int:
        """
        Bump the generation so every registered view rebuilds on next use.
        Raw artifacts are not touched. Builds in flight finish as stale.
        :return Number of views invalidated
        """
        with self._guard:
            self._generation += 1
            invalidated = list(self._records)
            for view_name in invalidated:
                self._states[view_name] = ViewState.STALE
            self._records.clear()
            for view_name in invalidated:
                self._states[view_name] = ViewState.UNREGISTERED

        LOGGER.info(
            f"Invalidated {len(invalidated)} view(s), generation is now {self.generation}"
        )
        return len(invalidated)
