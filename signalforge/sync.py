"""Periodic SNTP clock sync feeding the shared ClockAnchor."""

import logging
import subprocess
import threading
import time

from signalforge import ffutil
from signalforge.builders.clock import SYSTEM_CLOCK, ClockAnchor
from signalforge.config import EngineSettings

logger = logging.getLogger(__name__)


def refresh_clock_sync(anchor: ClockAnchor, settings: EngineSettings,
                       now=time.time) -> ffutil.SntpMeasurement | None:
    """Query the configured SNTP servers in order and apply the first answer.

    When no server answers, the anchor falls back to the system clock with a
    zero offset.  The epoch is never moved, so a running clock stays
    continuous.  Returns the applied measurement, or None on fallback.
    """
    for host in settings.sntp_servers:
        try:
            measurement = ffutil.query_sntp(settings.sntp_path, host, now() * 1000)
        except (OSError, subprocess.SubprocessError) as e:
            logger.warning("SNTP query to %s failed: %s", host, e)
            continue
        if measurement is None:
            logger.debug("SNTP server %s gave no usable answer", host)
            continue

        anchor.update(
            offset_ms=measurement.offset_ms,
            source=measurement.source,
            uncertainty_ms=measurement.dispersion_ms,
            timestamp_ms=measurement.timestamp_ms,
            freeze_epoch=True,
        )
        logger.info("Clock synced via %s: offset %+.1fms", host, measurement.offset_ms)
        return measurement

    logger.warning("All SNTP servers failed, using %s", SYSTEM_CLOCK)
    anchor.update(
        offset_ms=0.0,
        source=SYSTEM_CLOCK,
        uncertainty_ms=None,
        timestamp_ms=now() * 1000,
        freeze_epoch=True,
    )
    return None


class ClockSyncWorker:
    """Runs :func:`refresh_clock_sync` immediately, then every ``sync_interval``."""

    def __init__(self, anchor: ClockAnchor, settings: EngineSettings):
        self.anchor = anchor
        self.settings = settings
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        if self.running:
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._run, name="clock-sync", daemon=True)
        self._thread.start()

    def stop(self, timeout: float | None = None) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None

    def _run(self) -> None:
        while not self._stop.is_set():
            try:
                refresh_clock_sync(self.anchor, self.settings)
            except Exception:
                logger.exception("Clock sync pass failed")
            self._stop.wait(self.settings.sync_interval)
