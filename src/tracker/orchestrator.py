import asyncio
from collections.abc import Callable
from typing import Protocol

from src.logger import logger
from src.models.location import (
    Failed,
    Found,
    LocationRecord,
    LookupOutcome,
    NotFound,
    Phase,
    PresentationState,
    RequestToken,
)
from src.tracker.map_surface import DEFAULT_CENTER, DEFAULT_ZOOM, FOCUS_ZOOM, MapSurface

GENERIC_FAILURE_NOTICE = "The lookup could not be completed. Please try again."

StateListener = Callable[[PresentationState], None]


class Lookup(Protocol):
    async def lookup(self, query: str) -> LookupOutcome: ...


class Enricher(Protocol):
    async def enrich(self, longitude: float, latitude: float) -> str | None: ...


class SyncOrchestrator:
    """Keeps the presentation state and the map in step with the latest submit.

    Every submit mints a new request token and runs its lookup as a separate
    asyncio task, so further submits are accepted while earlier lookups are in
    flight. When a lookup (or its timezone enrichment) completes, its result is
    applied only if its token is still the current one; superseded results are
    dropped without touching the state or the map.

    The orchestrator is the only writer of the camera and of the single marker
    slot (`PresentationState.active_marker`). State is never patched: each
    transition publishes a new frozen `PresentationState` to the listeners.
    """

    def __init__(self, lookup_client: Lookup, enricher: Enricher, map_surface: MapSurface) -> None:
        self._lookup_client = lookup_client
        self._enricher = enricher
        self._map = map_surface
        self._state = PresentationState()
        self._listeners: list[StateListener] = []
        self._tasks: set[asyncio.Task[None]] = set()
        self._layers_ready = False

    @property
    def state(self) -> PresentationState:
        return self._state

    def subscribe(self, listener: StateListener) -> Callable[[], None]:
        """Register a listener for state changes; returns a function that unregisters it."""
        self._listeners.append(listener)
        return lambda: self._listeners.remove(listener)

    def start(self) -> asyncio.Task[None]:
        """Create the map and resolve the caller's own location."""
        self._map.initialize_once(DEFAULT_CENTER, DEFAULT_ZOOM)
        return self.submit("")

    def surface_ready(self) -> None:
        """Hook for the map surface's "visually ready" signal."""
        if self._layers_ready:
            return
        self._layers_ready = True
        self._map.ensure_supporting_layers()

    def submit(self, query: str) -> asyncio.Task[None]:
        """Start a lookup for `query` and return the task resolving it.

        An empty query always re-resolves the caller's own address. The query is
        passed on untouched, whitespace included.
        """
        loop = asyncio.get_running_loop()
        token = self._state.current_token + 1
        self._replace_state(
            self._state.model_copy(update={"phase": Phase.loading, "current_token": token, "notice": None})
        )
        logger.info(f"Lookup submitted token={token} query={query!r}")

        task = loop.create_task(self._resolve(token, query), name=f"lookup-{token}")
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def wait_idle(self) -> None:
        """Wait until every lookup started so far has finished."""
        while self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)

    async def _resolve(self, token: RequestToken, query: str) -> None:
        try:
            outcome = await self._lookup_client.lookup(query)
        except Exception as exc:
            logger.exception(f"Lookup client raised instead of returning an outcome token={token}")
            outcome = Failed(reason=repr(exc))

        if not self._is_current(token):
            return

        if isinstance(outcome, Found):
            timezone_id = await self._timezone_for(outcome.record)
            # Enrichment is a second suspension point; a newer submit may have landed meanwhile.
            if not self._is_current(token):
                return
            self._show_record(token, outcome.record.with_timezone(timezone_id))
        elif isinstance(outcome, NotFound):
            self._show_not_found(token)
        else:
            self._show_failure(token, outcome.reason)

    async def _timezone_for(self, record: LocationRecord) -> str | None:
        coord = record.coordinate
        if coord is None:
            return None
        try:
            return await self._enricher.enrich(coord.longitude, coord.latitude)
        except Exception:
            logger.exception(f"Timezone enrichment raised for ip={record.ip}; continuing without timezone")
            return None

    def _is_current(self, token: RequestToken) -> bool:
        if token == self._state.current_token:
            return True
        logger.debug(f"Dropping superseded lookup result token={token} current={self._state.current_token}")
        return False

    def _show_record(self, token: RequestToken, record: LocationRecord) -> None:
        coord = record.coordinate
        if coord is None:
            raise ValueError("cannot place a marker for a record without coordinates")

        self._release_marker()
        marker = self._map.place_marker(coord)
        self._map.fly_to(coord, FOCUS_ZOOM)
        logger.info(f"Lookup ready token={token} ip={record.ip} timezone={record.timezone_id}")
        self._replace_state(
            PresentationState(phase=Phase.ready, record=record, active_marker=marker, current_token=token)
        )

    def _show_not_found(self, token: RequestToken) -> None:
        self._release_marker()
        self._map.fly_to(DEFAULT_CENTER, DEFAULT_ZOOM)
        logger.info(f"Lookup found no record token={token}")
        self._replace_state(PresentationState(phase=Phase.not_found, current_token=token))

    def _show_failure(self, token: RequestToken, reason: str) -> None:
        # The last good record and marker stay on screen.
        logger.warning(f"Lookup failed token={token} reason={reason}")
        self._replace_state(
            self._state.model_copy(update={"phase": Phase.failed, "notice": GENERIC_FAILURE_NOTICE})
        )

    def _release_marker(self) -> None:
        if self._state.active_marker is not None:
            self._map.remove_marker(self._state.active_marker)

    def _replace_state(self, state: PresentationState) -> None:
        self._state = state
        for listener in list(self._listeners):
            listener(state)
