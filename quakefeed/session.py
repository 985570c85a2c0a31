"""Feed Session - Wires Functional Core and Imperative Shell.

This module owns the state the display layer reads: the raw earthquakes
for the active time range, the current filter parameters, the loading
and error status and the selected earthquake. It fetches through a feed
source and recomputes the derived statistics and view with the pure
core functions whenever their inputs change.

All state transitions run on a single asyncio event loop. Only
set_time_range() and refresh() fetch; every other operation is a
synchronous parameter update.
"""

import asyncio
import logging
from dataclasses import dataclass, replace
from typing import Callable, Protocol

from quakefeed.core.earthquake import Earthquake
from quakefeed.core.filters import (
    DEFAULT_SORT_KEY,
    DEFAULT_TIME_RANGE,
    FilterParams,
    compute_view,
    validate_location_filter,
    validate_magnitude_floor,
    validate_params,
    validate_sort_key,
    validate_time_range,
)
from quakefeed.core.stats import StatsSummary, compute_stats, current_time_ms
from quakefeed.shell.usgs_client import FeedFetchError


logger = logging.getLogger(__name__)


STATUS_IDLE = "idle"
STATUS_LOADING = "loading"
STATUS_READY = "ready"
STATUS_FAILED = "failed"


class FeedSource(Protocol):
    """Anything that can fetch earthquakes for a time range."""

    async def fetch(self, time_range: str) -> list[Earthquake]:
        ...


@dataclass(frozen=True)
class SessionSnapshot:
    """Everything the display layer reads, at one point in time.

    Attributes:
        params: Current filter parameters
        status: idle/loading/ready/failed
        error: User-visible error from the last failed fetch
        stats: Statistics over all raw earthquakes
        view: Filtered, sorted earthquakes to display
        selected: Highlighted earthquake (may be outside the view)
        notifications_enabled: User's notification preference
        computed_at_ms: Clock reading (epoch ms) the stats were computed at
    """
    params: FilterParams
    status: str
    error: str | None
    stats: StatsSummary
    view: tuple[Earthquake, ...]
    selected: Earthquake | None
    notifications_enabled: bool
    computed_at_ms: int = 0

    @property
    def loading(self) -> bool:
        """True while a fetch is in flight."""
        return self.status == STATUS_LOADING

    @property
    def selected_id(self) -> str | None:
        """ID of the selected earthquake, if any."""
        return self.selected.id if self.selected is not None else None


Subscriber = Callable[[SessionSnapshot], None]


class FeedSession:
    """Holds earthquake feed state and keeps derived outputs current.

    Create one per consumer and pass it explicitly; it holds no global
    state.

    Fetching needs a running event loop: set_time_range() and refresh()
    schedule the fetch as a task and return it, so callers may await it
    or let it complete in the background. Only the most recently started
    fetch may change state; older results are discarded when they arrive.
    """

    def __init__(
        self,
        feed_source: FeedSource,
        time_range: str = DEFAULT_TIME_RANGE,
        sort_key: str = DEFAULT_SORT_KEY,
        clock: Callable[[], int] | None = None,
    ) -> None:
        """Initialize an idle session.

        Args:
            feed_source: Source of earthquakes per time range
            time_range: Initial time range (fetched on the first refresh())
            sort_key: Initial sort order
            clock: Returns current time in epoch ms (wall clock by default)

        Raises:
            InvalidParameterError: If time_range or sort_key is unknown
        """
        self.feed_source = feed_source
        self._clock = clock or current_time_ms
        self._params = validate_params(FilterParams(time_range=time_range, sort_key=sort_key))
        self._earthquakes: list[Earthquake] = []
        self._status = STATUS_IDLE
        self._error: str | None = None
        self._selected: Earthquake | None = None
        self._notifications_enabled = False
        self._generation = 0
        self._subscribers: list[Subscriber] = []
        self._stats = StatsSummary()
        self._computed_at_ms = 0
        self._view: list[Earthquake] = []

    # ----- Reads -----

    @property
    def params(self) -> FilterParams:
        return self._params

    @property
    def status(self) -> str:
        return self._status

    @property
    def loading(self) -> bool:
        return self._status == STATUS_LOADING

    @property
    def error(self) -> str | None:
        return self._error

    @property
    def earthquakes(self) -> list[Earthquake]:
        """Raw earthquakes for the active time range (a copy)."""
        return list(self._earthquakes)

    @property
    def stats(self) -> StatsSummary:
        return self._stats

    @property
    def view(self) -> list[Earthquake]:
        """Filtered, sorted earthquakes (a copy)."""
        return list(self._view)

    @property
    def selected(self) -> Earthquake | None:
        return self._selected

    @property
    def notifications_enabled(self) -> bool:
        return self._notifications_enabled

    def snapshot(self) -> SessionSnapshot:
        """Get an immutable copy of the current state."""
        return SessionSnapshot(
            params=self._params,
            status=self._status,
            error=self._error,
            stats=self._stats,
            view=tuple(self._view),
            selected=self._selected,
            notifications_enabled=self._notifications_enabled,
            computed_at_ms=self._computed_at_ms,
        )

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        """Register a callback invoked with a snapshot after every change.

        Returns:
            Function that removes the callback
        """
        self._subscribers.append(callback)

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    # ----- Fetching operations -----

    def set_time_range(self, time_range: str) -> asyncio.Task | None:
        """Switch to a different time range and fetch its feed.

        Args:
            time_range: One of hour/day/week/month

        Returns:
            The fetch task, or None if the range did not change

        Raises:
            InvalidParameterError: If the time range is unknown (state unchanged)
            RuntimeError: If called without a running event loop
        """
        validate_time_range(time_range)

        if time_range == self._params.time_range:
            return None

        loop = asyncio.get_running_loop()
        self._params = replace(self._params, time_range=time_range)
        return self._start_fetch(loop)

    def refresh(self) -> asyncio.Task:
        """Fetch the feed for the current time range again.

        Also used for the first load of an idle session.

        Returns:
            The fetch task

        Raises:
            RuntimeError: If called without a running event loop
        """
        loop = asyncio.get_running_loop()
        return self._start_fetch(loop)

    def _start_fetch(self, loop: asyncio.AbstractEventLoop) -> asyncio.Task:
        self._generation += 1
        generation = self._generation
        time_range = self._params.time_range

        self._error = None
        self._status = STATUS_LOADING
        logger.info("Loading %s feed (fetch #%d)", time_range, generation)
        self._notify()

        return loop.create_task(self._load(generation, time_range))

    async def _load(self, generation: int, time_range: str) -> None:
        """Run one fetch and apply its result if it is still the latest."""
        try:
            earthquakes = await self.feed_source.fetch(time_range)
        except asyncio.CancelledError:
            if generation == self._generation:
                logger.warning("Fetch of %s feed cancelled (fetch #%d)", time_range, generation)
                self._error = "Earthquake data request was cancelled"
                self._status = STATUS_FAILED
                self._notify()
            raise
        except Exception as e:
            if generation != self._generation:
                logger.warning(
                    "Discarding stale %s feed failure (fetch #%d): %s",
                    time_range,
                    generation,
                    e,
                )
                return

            if isinstance(e, FeedFetchError):
                error_msg = str(e)
            else:
                error_msg = f"Failed to fetch earthquake data: {e}"
            logger.error("Failed to load %s feed: %s", time_range, error_msg)

            # Cached earthquakes from the last successful fetch stay visible
            self._error = error_msg
            self._status = STATUS_FAILED
            self._notify()
            return

        if generation != self._generation:
            logger.warning(
                "Discarding stale %s feed result (fetch #%d, latest #%d)",
                time_range,
                generation,
                self._generation,
            )
            return

        self._earthquakes = list(earthquakes)
        self._status = STATUS_READY
        logger.info("Loaded %d earthquakes for %s", len(self._earthquakes), time_range)
        self._recompute_stats()
        self._recompute_view()
        self._notify()

    # ----- Local operations -----

    def set_magnitude_floor(self, magnitude_floor: float) -> None:
        """Show only earthquakes at or above this magnitude.

        Raises:
            InvalidParameterError: If negative or not a finite number
        """
        magnitude_floor = validate_magnitude_floor(magnitude_floor)
        self._params = replace(self._params, magnitude_floor=magnitude_floor)
        self._recompute_view()
        self._notify()

    def set_location_filter(self, location_filter: str) -> None:
        """Show only earthquakes whose place or title contains this text.

        Raises:
            InvalidParameterError: If not a string
        """
        location_filter = validate_location_filter(location_filter)
        self._params = replace(self._params, location_filter=location_filter)
        self._recompute_view()
        self._notify()

    def set_sort_key(self, sort_key: str) -> None:
        """Sort the view by "time" or "magnitude" (always descending).

        Raises:
            InvalidParameterError: If the sort key is unknown
        """
        sort_key = validate_sort_key(sort_key)
        self._params = replace(self._params, sort_key=sort_key)
        self._recompute_view()
        self._notify()

    def select(self, earthquake: Earthquake | None) -> None:
        """Highlight an earthquake, or clear the selection with None.

        The selection is independent of the filters and survives refetches.
        """
        self._selected = earthquake
        self._notify()

    def is_selected(self, earthquake: Earthquake) -> bool:
        """Check whether an earthquake is the selected one (matched by ID)."""
        return self._selected is not None and self._selected.id == earthquake.id

    def set_notifications(self, enabled: bool) -> None:
        """Record the user's notification preference."""
        self._notifications_enabled = bool(enabled)
        self._notify()

    def recompute(self) -> SessionSnapshot:
        """Recompute statistics and view against the current clock.

        The "last hour" count depends on wall-clock time; call this to
        refresh it without fetching.

        Returns:
            Snapshot after recomputation
        """
        self._recompute_stats()
        self._recompute_view()
        self._notify()
        return self.snapshot()

    # ----- Internals -----

    def _recompute_stats(self) -> None:
        self._computed_at_ms = self._clock()
        self._stats = compute_stats(self._earthquakes, now_ms=self._computed_at_ms)

    def _recompute_view(self) -> None:
        self._view = compute_view(self._earthquakes, self._params)

    def _notify(self) -> None:
        if not self._subscribers:
            return

        snapshot = self.snapshot()
        for callback in list(self._subscribers):
            try:
                callback(snapshot)
            except Exception:
                logger.exception("Session subscriber failed")
