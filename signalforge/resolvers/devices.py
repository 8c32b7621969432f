"""DeckLink sink discovery and device-name resolution."""

import logging
from dataclasses import dataclass, field
from typing import Callable

from signalforge import ffutil

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SinkDiscovery:
    """Outcome of one discovery attempt. ``sinks`` is never empty."""

    sinks: tuple[str, ...]
    ok: bool
    error: str | None = None


@dataclass
class DeviceSinkCache:
    """Process-wide memo of the hardware sinks ffmpeg can output to.

    Discovery runs at most once until :meth:`invalidate` is called.  A failed
    discovery caches the single default name.  Population is idempotent, so
    two concurrent first calls may both query ffmpeg; one result wins.
    """

    ffmpeg_path: str = "ffmpeg"
    default_name: str = "UltraStudio Mini Monitor"
    query: Callable[[str], list[str]] | None = None
    _cached: SinkDiscovery | None = field(default=None, init=False, repr=False)

    @property
    def fallback(self) -> str:
        return f"{self.default_name} (1)"

    def discover(self) -> SinkDiscovery:
        """Return the cached discovery outcome, querying ffmpeg the first time."""
        cached = self._cached
        if cached is not None:
            return cached

        outcome = self._run_discovery()
        self._cached = outcome
        return outcome

    def sinks(self) -> list[str]:
        return list(self.discover().sinks)

    def invalidate(self) -> None:
        self._cached = None

    def resolve(self, requested: str | None) -> str:
        """Pick the sink for *requested*: exact, then prefix, then verbatim."""
        sinks = self.sinks()
        wanted = requested.strip() if isinstance(requested, str) else ""

        if wanted:
            for name in sinks:
                if name == wanted:
                    return name
            for name in sinks:
                if name.startswith(wanted):
                    return name
            return wanted

        return sinks[0] if sinks else self.fallback

    def list_devices(self) -> list[dict]:
        return [{"id": name, "name": name} for name in self.sinks()]

    def _run_discovery(self) -> SinkDiscovery:
        query = self.query or (lambda path: ffutil.list_sinks(path, "decklink"))
        try:
            names = query(self.ffmpeg_path)
        except Exception as e:
            logger.warning("DeckLink sink discovery failed, using %r: %s", self.fallback, e)
            return SinkDiscovery((self.fallback,), ok=False, error=str(e))

        if not names:
            logger.warning("No DeckLink sinks reported, using %r", self.fallback)
            return SinkDiscovery((self.fallback,), ok=False, error="no sinks reported")

        logger.info("Discovered DeckLink sinks: %s", ", ".join(names))
        return SinkDiscovery(tuple(names), ok=True)
