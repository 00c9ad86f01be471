"""Trip map controller - Public surface of the location pipeline.

One controller backs one map view. It loads the trip and its
reservations concurrently, derives the geocoding requests after every
upstream change and, when the request list changes by content, starts a
new geocode run that supersedes the previous one.

All state lives on the event loop thread. Every result is committed
synchronously after checking that its run is still the current one, so
a superseded run can never write into the view.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Iterable, List, Optional, Set

from ..config import MapConfig, get_config
from ..domain.errors import GeocodingError, UpstreamFetchError
from ..domain.models import (
    GeocodeBatch,
    GeocodeStatus,
    LocationRequest,
    MapMarker,
    PipelineState,
    Reservation,
    Trip,
    TripMapResult,
)
from ..ports.trips import ReservationSourcePort, TripSourcePort
from .address_collector import collect_locations
from .geocode_orchestrator import GeocodeOrchestrator
from .marker_assembler import assemble_markers
from .region_computer import compute_region

ResultListener = Callable[[TripMapResult], None]


@dataclass
class TripMapController:
    """Keeps a TripMapResult in sync with a trip and its reservations.

    Must be used from a running event loop. Typical use:

        async with TripMapController(trip_id, repo, repo, orchestrator) as ctrl:
            await ctrl.wait_until_settled()
            render(ctrl.result)

    Attributes:
        trip_id: Trip being displayed
        trip_source: Loads the trip
        reservation_source: Loads the trip's reservations
        orchestrator: Geocode orchestrator owned by this view
        destination_only: Only show the trip destination (inline preview)
        map_config: Viewport settings
    """

    trip_id: str
    trip_source: TripSourcePort
    reservation_source: ReservationSourcePort
    orchestrator: GeocodeOrchestrator
    destination_only: bool = False
    map_config: MapConfig = field(default_factory=lambda: get_config().map)

    _trip: Optional[Trip] = field(default=None, init=False, repr=False)
    _reservations: tuple[Reservation, ...] = field(default=(), init=False, repr=False)
    _trip_loading: bool = field(default=True, init=False, repr=False)
    _reservations_loading: bool = field(default=True, init=False, repr=False)
    _requests: Optional[tuple[LocationRequest, ...]] = field(
        default=None, init=False, repr=False
    )
    _markers: tuple[MapMarker, ...] = field(default=(), init=False, repr=False)
    _error: Optional[GeocodingError] = field(default=None, init=False, repr=False)
    _geocode_pending: bool = field(default=False, init=False, repr=False)
    _run_id: int = field(default=0, init=False, repr=False)
    _fetch_generation: int = field(default=0, init=False, repr=False)
    _closed: bool = field(default=False, init=False, repr=False)
    _tasks: Set["asyncio.Task[Any]"] = field(default_factory=set, init=False, repr=False)
    _listeners: List[ResultListener] = field(default_factory=list, init=False, repr=False)
    _result: TripMapResult = field(default_factory=TripMapResult, init=False, repr=False)
    _logger: logging.Logger = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self._logger = logging.getLogger(__name__)

    async def __aenter__(self) -> TripMapController:
        self.start()
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        self.close()

    @property
    def result(self) -> TripMapResult:
        """Latest published result."""
        return self._result

    def subscribe(self, listener: ResultListener) -> Callable[[], None]:
        """Call ``listener`` with every new result.

        Returns:
            A function that removes the listener.
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    # ------------------------------------------------------------------
    # Upstream loading
    # ------------------------------------------------------------------

    def start(self) -> None:
        """Load trip and reservations from scratch."""
        if self._closed:
            return
        self._trip_loading = True
        self._reservations_loading = not self.destination_only
        self._fetch()
        self._publish()

    def refresh(self) -> None:
        """Refetch upstream data, keeping current data until it arrives."""
        self._fetch()

    def set_trip_id(self, trip_id: str) -> None:
        """Switch to another trip, dropping everything from the old one."""
        if self._closed or trip_id == self.trip_id:
            return
        self._logger.info(
            "Switching trip",
            extra={"from_trip": self.trip_id, "to_trip": trip_id},
        )
        self.orchestrator.cancel()
        self._run_id += 1
        self.trip_id = trip_id
        self._trip = None
        self._reservations = ()
        self._requests = None
        self._markers = ()
        self._error = None
        self._geocode_pending = False
        self.start()

    def _fetch(self) -> None:
        if self._closed:
            return
        self._fetch_generation += 1
        generation = self._fetch_generation
        loop = asyncio.get_running_loop()
        self._track(loop.create_task(self._load_trip(generation)))
        if not self.destination_only:
            self._track(loop.create_task(self._load_reservations(generation)))

    def _is_stale_fetch(self, generation: int) -> bool:
        return self._closed or generation != self._fetch_generation

    async def _load_trip(self, generation: int) -> None:
        trip_id = self.trip_id
        try:
            trip = await self.trip_source.get(trip_id)
        except Exception as e:
            self._log_upstream_failure(
                UpstreamFetchError(
                    "Failed to load trip", cause=e, source="trip", trip_id=trip_id
                )
            )
            trip = None

        if self._is_stale_fetch(generation):
            return
        self.apply_snapshot(
            trip,
            self._reservations,
            trip_loading=False,
            reservations_loading=self._reservations_loading,
        )

    async def _load_reservations(self, generation: int) -> None:
        trip_id = self.trip_id
        reservations: Iterable[Reservation]
        try:
            reservations = await self.reservation_source.list_by_trip(trip_id)
        except Exception as e:
            self._log_upstream_failure(
                UpstreamFetchError(
                    "Failed to load reservations",
                    cause=e,
                    source="reservations",
                    trip_id=trip_id,
                )
            )
            reservations = ()

        if self._is_stale_fetch(generation):
            return
        self.apply_snapshot(
            self._trip,
            reservations,
            trip_loading=self._trip_loading,
            reservations_loading=False,
        )

    def _log_upstream_failure(self, error: UpstreamFetchError) -> None:
        self._logger.warning(
            "Upstream fetch failed",
            extra={
                "source": error.source,
                "trip_id": error.trip_id,
                "error": str(error),
            },
        )

    # ------------------------------------------------------------------
    # Pipeline
    # ------------------------------------------------------------------

    def apply_snapshot(
        self,
        trip: Optional[Trip],
        reservations: Iterable[Reservation] = (),
        *,
        trip_loading: bool = False,
        reservations_loading: bool = False,
    ) -> TripMapResult:
        """Feed the current upstream state into the pipeline.

        Geocoding restarts only when the derived request list differs by
        content from the previous one.

        Returns:
            The result published for this snapshot.
        """
        if self._closed:
            return self._result

        self._trip = trip
        self._reservations = tuple(reservations)
        self._trip_loading = trip_loading
        self._reservations_loading = reservations_loading

        requests = collect_locations(
            self.trip_id, trip, self._reservations, self.destination_only
        )
        if requests != self._requests:
            self._requests = requests
            self._start_geocode(requests)

        return self._publish()

    def _start_geocode(self, requests: tuple[LocationRequest, ...]) -> None:
        self.orchestrator.cancel()
        self._run_id += 1
        self._geocode_pending = True
        self._markers = ()
        self._error = None
        self._logger.debug(
            "Request list changed",
            extra={"trip_id": self.trip_id, "requests": len(requests), "run": self._run_id},
        )
        loop = asyncio.get_running_loop()
        self._track(loop.create_task(self._run_geocode(self._run_id, requests)))

    async def _run_geocode(
        self, run_id: int, requests: tuple[LocationRequest, ...]
    ) -> None:
        try:
            batch = await self.orchestrator.resolve(requests)
        except Exception as e:
            batch = GeocodeBatch(
                sequence=self.orchestrator.sequence,
                status=GeocodeStatus.FAILED,
                error=GeocodingError("Geocoding failed", cause=e, query_count=len(requests)),
            )
        self._commit(run_id, requests, batch)

    def _commit(
        self,
        run_id: int,
        requests: tuple[LocationRequest, ...],
        batch: GeocodeBatch,
    ) -> None:
        if (
            self._closed
            or run_id != self._run_id
            or batch.is_superseded
            or not self.orchestrator.is_current(batch.sequence)
        ):
            return

        self._geocode_pending = False
        if batch.status is GeocodeStatus.FAILED:
            self._markers = ()
            self._error = batch.error
        elif batch.status is GeocodeStatus.RESOLVED:
            self._markers = assemble_markers(requests, batch.outcomes)
            self._error = None
        else:
            self._markers = ()
            self._error = None
        self._publish()

    def _publish(self) -> TripMapResult:
        is_loading = (
            self._trip_loading
            or (not self.destination_only and self._reservations_loading)
            or self._geocode_pending
        )
        if self._closed:
            state = PipelineState.IDLE
        elif self._error is not None:
            state = PipelineState.ERRORED
        elif is_loading:
            state = PipelineState.LOADING
        else:
            state = PipelineState.READY

        result = TripMapResult(
            region=compute_region(self._markers, self.map_config),
            markers=self._markers,
            is_loading=is_loading,
            error=self._error,
            state=state,
        )
        if result != self._result:
            self._result = result
            for listener in list(self._listeners):
                try:
                    listener(result)
                except Exception as e:
                    self._logger.error(
                        "Result listener failed",
                        extra={"trip_id": self.trip_id, "error": str(e)},
                    )
        return self._result

    # ------------------------------------------------------------------
    # Task bookkeeping
    # ------------------------------------------------------------------

    def _track(self, task: "asyncio.Task[Any]") -> None:
        self._tasks.add(task)
        task.add_done_callback(self._on_task_done)

    def _on_task_done(self, task: "asyncio.Task[Any]") -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            self._logger.error(
                "Trip map task failed",
                extra={"trip_id": self.trip_id, "error": str(error)},
            )

    async def wait_until_settled(self) -> TripMapResult:
        """Wait for all upstream loads and geocode runs to finish.

        Returns:
            The result once nothing is pending.
        """
        while self._tasks:
            await asyncio.wait(set(self._tasks))
        return self._result

    def close(self) -> None:
        """Stop the pipeline; nothing started before this is applied."""
        if self._closed:
            return
        self._closed = True
        self.orchestrator.cancel()
        self._run_id += 1
        self._geocode_pending = False
        self._trip_loading = False
        self._reservations_loading = False
        self._markers = ()
        self._error = None
        self._publish()
        self._listeners.clear()
