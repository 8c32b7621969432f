"""ffmpeg / sntp subprocess helpers."""

import re
import shutil
import subprocess
from dataclasses import dataclass

SINK_QUERY_TIMEOUT = 10
SNTP_TIMEOUT = 7


class FFmpegNotFoundError(RuntimeError):
    pass


class SinkQueryError(RuntimeError):
    """Raised when ffmpeg could not list output sinks."""
    pass


def check_ffmpeg(ffmpeg_path: str = "ffmpeg") -> None:
    """Raise FFmpegNotFoundError if the ffmpeg executable cannot be found."""
    if shutil.which(ffmpeg_path) is None:
        raise FFmpegNotFoundError(f"{ffmpeg_path} not found on PATH")


def parse_sink_names(stdout: str) -> list[str]:
    """Extract the bracketed device names from ``ffmpeg -sinks`` output.

    Each sink line ends with its display name in square brackets, e.g.
    ``  0x1 [UltraStudio Mini Monitor (1)]``.
    """
    names: list[str] = []
    for line in stdout.splitlines():
        m = re.search(r"\[(.+?)\]\s*$", line)
        if m and m.group(1).strip():
            names.append(m.group(1).strip())
    return names


def list_sinks(ffmpeg_path: str, device: str = "decklink") -> list[str]:
    """Ask ffmpeg for the available *device* sinks.

    Raises SinkQueryError when ffmpeg exits non-zero; OSError and
    subprocess.TimeoutExpired propagate.
    """
    cmd = [ffmpeg_path, "-hide_banner", "-sinks", device]
    result = subprocess.run(
        cmd, capture_output=True, encoding="utf-8", errors="replace",
        timeout=SINK_QUERY_TIMEOUT,
    )
    if result.returncode != 0:
        raise SinkQueryError(
            f"ffmpeg -sinks {device} failed (rc={result.returncode})"
        )
    return parse_sink_names(result.stdout or "")


@dataclass
class SntpMeasurement:
    """One clock-offset reading from an SNTP server."""

    source: str
    offset_ms: float
    dispersion_ms: float | None
    timestamp_ms: float


def parse_sntp_output(stdout: str) -> tuple[float, float | None] | None:
    """Return (offset_seconds, dispersion_seconds) from sntp's last line.

    The last line looks like
    ``2024-01-01 12:00:00.123 (+0100) +0.012345 +/- 0.025000 time.google.com 1.2.3.4``.
    Returns None when no offset can be found.
    """
    lines = [ln for ln in stdout.strip().splitlines() if ln.strip()]
    if not lines:
        return None
    data_line = lines[-1]

    offset = re.search(r"([+-]?\d+\.\d+)\s+\+/-", data_line)
    if not offset:
        return None
    dispersion = re.search(r"\+/-\s+([0-9.]+)", data_line)

    try:
        disp_value = float(dispersion.group(1)) if dispersion else None
    except ValueError:
        disp_value = None
    return float(offset.group(1)), disp_value


def query_sntp(sntp_path: str, host: str, now_ms: float) -> SntpMeasurement | None:
    """Query *host* with the sntp client; None when the server gave no usable answer.

    OSError and subprocess.TimeoutExpired propagate.
    """
    result = subprocess.run(
        [sntp_path, host], capture_output=True, encoding="utf-8", errors="replace",
        timeout=SNTP_TIMEOUT,
    )
    if result.returncode != 0:
        return None

    parsed = parse_sntp_output(result.stdout or "")
    if parsed is None:
        return None

    offset_s, dispersion_s = parsed
    return SntpMeasurement(
        source=host,
        offset_ms=offset_s * 1000,
        dispersion_ms=dispersion_s * 1000 if dispersion_s is not None else None,
        timestamp_ms=now_ms,
    )
