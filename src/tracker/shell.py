import asyncio
from collections.abc import Callable

from src.config import Settings
from src.models.location import Phase, PresentationState
from src.tracker.lookup_client import LookupClient
from src.tracker.map_surface import HeadlessMapSurface, MapSurface
from src.tracker.orchestrator import SyncOrchestrator
from src.tracker.timezone_enricher import TimezoneEnricher

PROMPT = "Search for any IP address or domain (leave empty for your own): "
UNKNOWN = "Unknown"


def build_orchestrator(settings: Settings, map_surface: MapSurface | None = None) -> SyncOrchestrator:
    """Wire the relay client, the timezone enricher and a map surface together."""
    return SyncOrchestrator(
        lookup_client=LookupClient(settings.relay_url, timeout_seconds=settings.relay_timeout_seconds),
        enricher=TimezoneEnricher(
            access_token=settings.mapbox_access_token,
            tileset=settings.mapbox_tileset,
            timeout_seconds=settings.enrichment_timeout_seconds,
        ),
        map_surface=map_surface if map_surface is not None else HeadlessMapSurface(),
    )


def render_state(state: PresentationState) -> str:
    """Render the state as the text card shown under the prompt."""
    if state.phase is Phase.idle:
        return ""
    if state.phase is Phase.loading:
        return "Loading..."
    if state.phase is Phase.not_found:
        return "Not Found"

    lines = []
    if state.phase is Phase.failed:
        lines.append(state.notice or "")
    record = state.record
    if record is not None:
        location = ", ".join(part for part in (record.city, record.country_name) if part) or UNKNOWN
        lines.extend(
            [
                f"IP Address  {record.ip or UNKNOWN}",
                f"Location    {location}",
                f"Timezone    {record.timezone_id or UNKNOWN}",
                f"Type        {record.connection_type or UNKNOWN}",
            ]
        )
        if record.coordinate is not None:
            lines.append(f"Map         marker at {record.coordinate.latitude}, {record.coordinate.longitude}")
    return "\n".join(lines)


async def run_shell(
    orchestrator: SyncOrchestrator,
    read_line: Callable[[str], str] = input,
    write: Callable[[str], None] = print,
) -> None:
    """Prompt for queries until EOF, submitting each one without waiting for the previous lookup.

    Every state change is written out as it happens, so an answer can appear
    while the next query is being typed.
    """
    unsubscribe = orchestrator.subscribe(lambda state: write(render_state(state)))
    orchestrator.start()
    # A headless surface is ready as soon as it has been initialized.
    orchestrator.surface_ready()
    try:
        while True:
            try:
                query = await asyncio.to_thread(read_line, PROMPT)
            except EOFError:
                break
            orchestrator.submit(query)
    finally:
        await orchestrator.wait_idle()
        unsubscribe()
