"""On-screen clock: timebase anchor and engine-evaluated time expressions.

The overlay is not rendered here.  Each line is a drawtext template whose
``%{eif:...}`` fields ffmpeg evaluates per frame from the stream time ``t``
and frame index ``n``:

    display time = epoch + t + (pipeline latency + sync offset)
"""

import math
import threading
import time
from dataclasses import dataclass
from datetime import datetime, timezone, tzinfo

from signalforge.config import round_half_up
from signalforge.filtergraph import Filter, Template, format_number
from signalforge.formats import CLOCK_POSITIONS
from signalforge.models import Anchor, FormatSpec
from signalforge.resolvers.fonts import FontChoice

SYSTEM_CLOCK = "system clock"

_UNSET = object()


@dataclass(frozen=True)
class ClockSnapshot:
    """Immutable copy of the anchor, taken once per compile."""

    epoch_ms: float
    latency_ms: float
    offset_ms: float
    source: str
    uncertainty_ms: float | None
    last_sync_ms: float | None
    tz: tzinfo | None = None

    def to_dict(self) -> dict:
        return {
            "epochMs": self.epoch_ms,
            "latencyMs": self.latency_ms,
            "offsetMs": self.offset_ms,
            "source": self.source,
            "dispersionMs": self.uncertainty_ms,
            "timestamp": self.last_sync_ms,
        }


class ClockAnchor:
    """Process-wide wall-clock anchor shared by compiles and the sync routine.

    Writers go through :meth:`update`; readers take a :meth:`snapshot`.  The
    lock only makes the field copy consistent, last write wins.
    """

    def __init__(self, epoch_ms: float | None = None, latency_ms: float = 200,
                 tz: tzinfo | None = None, now=time.time):
        self._now = now
        self._lock = threading.Lock()
        self._epoch_ms = epoch_ms if epoch_ms is not None else self._now_ms()
        self._latency_ms = latency_ms
        self._offset_ms = 0.0
        self._source = SYSTEM_CLOCK
        self._uncertainty_ms: float | None = None
        self._last_sync_ms: float | None = None
        self._tz = tz

    def _now_ms(self) -> float:
        return self._now() * 1000

    def update(self, *, latency_ms=None, offset_ms=None, source=None,
               uncertainty_ms=_UNSET, timestamp_ms=_UNSET,
               epoch_ms=None, freeze_epoch: bool = False) -> None:
        """Apply a timing update.

        Omitted fields keep their value; ``uncertainty_ms=None`` and
        ``timestamp_ms=None`` clear theirs.  The epoch is reset to "now"
        unless *freeze_epoch* is set or *epoch_ms* is given.
        """
        with self._lock:
            if _finite(latency_ms) and latency_ms >= 0:
                self._latency_ms = latency_ms
            if _finite(offset_ms):
                self._offset_ms = offset_ms
            if uncertainty_ms is None or _finite(uncertainty_ms):
                self._uncertainty_ms = uncertainty_ms
            if isinstance(source, str) and source.strip():
                self._source = source.strip()
            if timestamp_ms is None or _finite(timestamp_ms):
                self._last_sync_ms = timestamp_ms

            if _finite(epoch_ms):
                self._epoch_ms = epoch_ms
            elif not freeze_epoch:
                self._epoch_ms = self._now_ms()

    def snapshot(self) -> ClockSnapshot:
        with self._lock:
            return ClockSnapshot(
                epoch_ms=self._epoch_ms,
                latency_ms=self._latency_ms,
                offset_ms=self._offset_ms,
                source=self._source,
                uncertainty_ms=self._uncertainty_ms,
                last_sync_ms=self._last_sync_ms,
                tz=self._tz,
            )


def _finite(value) -> bool:
    return (isinstance(value, (int, float)) and not isinstance(value, bool)
            and math.isfinite(value))


# --- Expressions -------------------------------------------------------------

@dataclass(frozen=True)
class ClockComponents:
    hours: str
    minutes: str
    seconds: str
    millis: str

    @property
    def hms(self) -> str:
        return f"{self.hours}:{self.minutes}:{self.seconds}"


def clock_components(total: str) -> ClockComponents:
    """Split a total-seconds expression into h/m/s/ms drawtext fields."""
    return ClockComponents(
        hours=f"%{{eif:floor({total}/3600)-24*floor({total}/86400):d:02}}",
        minutes=f"%{{eif:floor({total}/60)-60*floor({total}/3600):d:02}}",
        seconds=f"%{{eif:floor({total})-60*floor({total}/60):d:02}}",
        millis=f"%{{eif:floor(1000*mod({total},1)):d:03}}",
    )


def frame_counter(fps) -> str:
    rate = fps if _finite(fps) and fps > 0 else 25
    return f"%{{eif:mod(n,{format_number(rate)}):d:02}}"


def format_tz_offset(minutes_east: float) -> str:
    sign = "+" if minutes_east >= 0 else "-"
    total = abs(round_half_up(minutes_east))
    return f"{sign}{total // 60:02d}:{total % 60:02d}"


@dataclass(frozen=True)
class LocalZone:
    label: str
    offset_seconds: int
    offset_label: str
    date: str


def local_zone(reference: datetime, tz: tzinfo | None) -> LocalZone:
    local = reference.astimezone(tz) if tz is not None else reference.astimezone()
    offset = local.utcoffset()
    offset_seconds = int(offset.total_seconds()) if offset is not None else 0
    short = local.tzname() or ""
    zone = getattr(local.tzinfo, "key", None) or short or "Local"
    label = f"{zone} ({short})" if short and short not in zone else zone
    return LocalZone(
        label=label,
        offset_seconds=offset_seconds,
        offset_label=format_tz_offset(offset_seconds / 60),
        date=local.strftime("%Y-%m-%d"),
    )


@dataclass(frozen=True)
class ClockTiming:
    sync_line: str
    utc_line: str
    local_line: str
    latency_ms: float
    offset_ms: float

    @property
    def lines(self) -> list[str]:
        return [self.sync_line, self.utc_line, self.local_line]

    @property
    def total_offset_ms(self) -> float:
        return self.latency_ms + self.offset_ms


def compute_clock_timing(snapshot: ClockSnapshot, fps, latency_ms=None) -> ClockTiming:
    """Build the three clock lines for *snapshot*.

    *latency_ms* overrides the anchor's pipeline latency when given.
    """
    latency = latency_ms if _finite(latency_ms) else snapshot.latency_ms
    offset = snapshot.offset_ms if _finite(snapshot.offset_ms) else 0.0
    total_offset_ms = latency + offset

    utc_seconds = f"({snapshot.epoch_ms / 1000:.6f}+t+{total_offset_ms / 1000:.6f})"
    reference = datetime.fromtimestamp((snapshot.epoch_ms + total_offset_ms) / 1000, tz=timezone.utc)
    zone = local_zone(reference, snapshot.tz)
    local_seconds = f"({utc_seconds}+{zone.offset_seconds:.6f})"

    frames = frame_counter(fps)
    utc = clock_components(utc_seconds)
    local = clock_components(local_seconds)

    utc_line = f"UTC {reference.strftime('%Y-%m-%d')} {utc.hms}:{frames}.{utc.millis}"
    local_line = (f"{zone.label} {zone.offset_label} {zone.date} "
                  f"{local.hms}:{frames}.{local.millis}")

    offset_label = f"{'+' if offset >= 0 else ''}{offset:.1f}ms"
    uncertainty = (f" +/-{snapshot.uncertainty_ms:.1f}ms"
                   if _finite(snapshot.uncertainty_ms) else "")
    sync_line = f"SNTP {snapshot.source or SYSTEM_CLOCK} offset {offset_label}{uncertainty}"

    return ClockTiming(sync_line, utc_line, local_line, latency, offset)


# --- Placement ---------------------------------------------------------------

def clock_font_size(height: int) -> int:
    return max(28, round_half_up(48 * (height / 1080)))


def line_y(base: str, index: int, total: int, line_height: int, anchor: Anchor) -> str:
    """Y expression for line *index* of a *total*-line block at *anchor*.

    Centre rows stack symmetrically around the anchor, top rows downward,
    bottom rows upward.
    """
    if anchor.row == "center":
        offset = (index - (total - 1) / 2) * line_height
        if abs(offset) < 1:
            return base
        rounded = round_half_up(offset)
        sign = "+" if rounded >= 0 else "-"
        return f"({base}){sign}{abs(rounded)}"

    if index == 0:
        return base
    offset = index * line_height
    if anchor.row == "top":
        return f"({base})+{offset}"
    return f"({base})-{offset}"


def clock_filters(timing: ClockTiming, fmt: FormatSpec, anchor: Anchor,
                  font: FontChoice) -> list[Filter]:
    """One drawtext filter per clock line, in reading order.

    At bottom anchors the block grows upward, so the placement order is
    reversed to keep the first line on top.
    """
    size = clock_font_size(fmt.height)
    border = max(3, round_half_up(size * 0.1))
    line_height = max(size + 4, round_half_up(size * 1.2))
    pos = CLOCK_POSITIONS[anchor]

    lines = timing.lines
    filters = []
    for i, text in enumerate(lines):
        placement = len(lines) - 1 - i if anchor.row == "bottom" else i
        filters.append(Filter("drawtext", params={
            "text": Template(text),
            **font.as_params(),
            "fontsize": size,
            "fontcolor": "white",
            "box": 1,
            "boxcolor": "black@0.5",
            "boxborderw": border,
            "x": pos.x,
            "y": line_y(pos.y, placement, len(lines), line_height, anchor),
        }))
    return filters
