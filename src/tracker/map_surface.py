from collections.abc import Hashable
from itertools import count
from typing import Protocol

from src.logger import logger
from src.models.location import LngLat

MarkerHandle = Hashable

DEFAULT_CENTER = LngLat(0.0, 0.0)
DEFAULT_ZOOM = 2.0
FOCUS_ZOOM = 10.0

SUPPORTING_LAYERS = ("navigation-control", "geolocate-control", "3d-buildings")


class MapSurface(Protocol):
    """Camera and marker primitives the tracker drives.

    Camera motion may complete asynchronously; a placed marker must be live as
    soon as `place_marker` returns.
    """

    def initialize_once(self, center: LngLat, zoom: float) -> None:
        """Create the map; calling it again is a no-op."""
        ...

    def fly_to(self, center: LngLat, zoom: float) -> None: ...

    def place_marker(self, coord: LngLat) -> MarkerHandle: ...

    def remove_marker(self, handle: MarkerHandle) -> None: ...

    def ensure_supporting_layers(self) -> None:
        """Add navigation/geolocation controls and the 3D buildings layer, once."""
        ...


class HeadlessMapSurface:
    """In-memory MapSurface used by the terminal shell.

    It keeps what a rendered map would show (camera, live markers, layers) so
    the shell can print it, without any rendering backend.
    """

    def __init__(self) -> None:
        self.initialized = False
        self.center: LngLat | None = None
        self.zoom: float | None = None
        self.markers: dict[int, LngLat] = {}
        self.layers: list[str] = []
        self._handles = count(1)

    def initialize_once(self, center: LngLat, zoom: float) -> None:
        if self.initialized:
            return
        self.initialized = True
        self.center = center
        self.zoom = zoom
        logger.debug(f"Map initialized center={tuple(center)} zoom={zoom}")

    def fly_to(self, center: LngLat, zoom: float) -> None:
        self._require_initialized()
        self.center = center
        self.zoom = zoom

    def place_marker(self, coord: LngLat) -> int:
        self._require_initialized()
        handle = next(self._handles)
        self.markers[handle] = coord
        return handle

    def remove_marker(self, handle: MarkerHandle) -> None:
        # Removing an already removed marker is a no-op.
        self.markers.pop(handle, None)

    def ensure_supporting_layers(self) -> None:
        self._require_initialized()
        for layer in SUPPORTING_LAYERS:
            if layer not in self.layers:
                self.layers.append(layer)

    def _require_initialized(self) -> None:
        if not self.initialized:
            raise RuntimeError("map surface used before initialize_once()")
