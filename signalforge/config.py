"""Broadcast configuration schema and engine settings.

``BroadcastConfig`` is the contract between the control surfaces (CLI, HTTP
API, presets) and the compiler.  ``from_dict`` is the single place where
loosely-typed input is validated: anything unknown is replaced by a default
and numbers are clamped, so the compiler never sees malformed values.
"""

import json
import math
import os
import re
from dataclasses import dataclass, field
from pathlib import Path

from signalforge.formats import ANIMATIONS, BACKGROUNDS, DEFAULT_BACKGROUND, DEFAULT_FORMAT, FORMATS
from signalforge.models import Anchor

CHANNEL_SLOTS = 8

FONT_FAMILIES = ("sf_mono", "arial_bold", "arial_black", "impact")
TEXT_WEIGHTS = ("normal", "semi", "heavy")
TEXT_BACKGROUNDS = ("none", "black_solid", "black_soft", "white_soft", "yellow_soft", "blue_soft")

MIN_FREQ_HZ, MAX_FREQ_HZ = 20, 20000
MIN_LEVEL_DB, MAX_LEVEL_DB = -120.0, 12.0
MAX_LATENCY_MS = 5000
MIN_OVERLAY_FONT, MAX_OVERLAY_FONT = 16, 160

# ffmpeg colour: a name or RGB[A] hex, optionally with @alpha.
COLOR_RE = re.compile(
    r"^(?:[A-Za-z]+|(?:0x|#)[0-9A-Fa-f]{6}(?:[0-9A-Fa-f]{2})?)"
    r"(?:@(?:\d+(?:\.\d*)?|\.\d+|0x[0-9A-Fa-f]{2}))?$"
)


def _default_channel_map() -> list[bool]:
    return [True, True] + [False] * (CHANNEL_SLOTS - 2)


def _no_channels() -> list[bool]:
    return [False] * CHANNEL_SLOTS


def normalize_channel_flags(value, fill: bool = False) -> list[bool]:
    """Truncate/pad a per-channel flag list to exactly eight booleans."""
    flags = [bool(v) for v in value[:CHANNEL_SLOTS]] if isinstance(value, (list, tuple)) else []
    return flags + [fill] * (CHANNEL_SLOTS - len(flags))


def normalize_channel_map(value, fallback_count: int = 2) -> list[bool]:
    """Like :func:`normalize_channel_flags`, but at least one channel is active.

    When *value* is not a list the first *fallback_count* channels are active.
    An all-silent map gets channels 1 and 2 switched on.
    """
    if isinstance(value, (list, tuple)):
        channel_map = normalize_channel_flags(value)
    else:
        count = min(CHANNEL_SLOTS, max(1, _as_int(fallback_count, 2)))
        channel_map = [True] * count + [False] * (CHANNEL_SLOTS - count)

    if not any(channel_map):
        channel_map[0] = True
        channel_map[1] = True
    return channel_map


def as_number(value) -> float | None:
    if isinstance(value, bool) or value is None:
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None


def _as_int(value, default: int) -> int:
    number = as_number(value)
    return int(number) if number is not None else default


def clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def round_half_up(value: float) -> int:
    """Round like the control panel does (``2.5`` -> ``3``, ``-2.5`` -> ``-2``)."""
    return math.floor(value + 0.5)


@dataclass
class BroadcastConfig:
    """Everything that defines the generated signal."""

    background: str = DEFAULT_BACKGROUND
    custom_background: str | None = None
    text: str = "ACTUA PARIS"
    font_size: float = 80
    font_family: str = "sf_mono"
    text_weight: str = "normal"
    text_color: str = "white"
    text_background: str = "none"
    text_position: Anchor = Anchor.CENTER
    show_logo: bool = True
    logo_file: str | None = None
    logo_position: Anchor = Anchor.TOP_RIGHT
    animation: str | None = None
    video_format: str = DEFAULT_FORMAT
    audio_freq: float = 1000
    audio_level_db: float = 0.0
    audio_channel_map: list[bool] = field(default_factory=_default_channel_map)
    audio_channel_id_cycle: list[bool] = field(default_factory=_no_channels)
    audio_channel_flash: list[bool] = field(default_factory=_no_channels)
    audio_channel_force400: list[bool] = field(default_factory=_no_channels)
    show_clock: bool = False
    clock_position: Anchor = Anchor.BOTTOM_RIGHT
    clock_latency_ms: int = 200
    show_config_overlay: bool = False
    config_overlay_font_size: int | None = None
    config_overlay_position: Anchor = Anchor.TOP_LEFT
    flash_overlay_offset: int = 0
    decklink_device: str | None = None

    @classmethod
    def from_dict(cls, data) -> "BroadcastConfig":
        """Build a sanitized config from control-panel JSON.

        Accepts camelCase (``videoFormat``) or snake_case keys.  Never raises
        for a mapping; non-mappings yield the defaults.
        """
        data = _snake_keys(data if isinstance(data, dict) else {})
        d = cls()

        if "audio_channel_flash" not in data and isinstance(data.get("audio_channel_id_pop"), list):
            data["audio_channel_flash"] = data["audio_channel_id_pop"]
        if "flash_overlay_offset" not in data and "pop_flash_offset" in data:
            data["flash_overlay_offset"] = data["pop_flash_offset"]

        background = _choice(data.get("background"), tuple(BACKGROUNDS), d.background)

        text = data.get("text")
        if not isinstance(text, str) or not text:
            text = d.text

        font_size = as_number(data.get("font_size"))
        if font_size is None or font_size <= 0:
            font_size = d.font_size

        text_color = data.get("text_color")
        text_color = text_color.strip() if isinstance(text_color, str) else ""
        if not COLOR_RE.match(text_color):
            text_color = d.text_color

        animation = _choice(data.get("animation"), tuple(ANIMATIONS), None)

        video_format = _choice(data.get("video_format"), tuple(FORMATS), d.video_format)

        freq = as_number(data.get("audio_freq"))
        freq = clamp(freq, MIN_FREQ_HZ, MAX_FREQ_HZ) if freq is not None else d.audio_freq

        level = as_number(_first_number(data.get("audio_level_db")))
        level = clamp(level, MIN_LEVEL_DB, MAX_LEVEL_DB) if level is not None else d.audio_level_db

        latency = as_number(data.get("clock_latency_ms"))
        latency = int(clamp(round_half_up(latency), 0, MAX_LATENCY_MS)) if latency is not None else d.clock_latency_ms

        overlay_size = as_number(data.get("config_overlay_font_size"))
        if overlay_size is not None:
            overlay_size = int(clamp(round_half_up(overlay_size), MIN_OVERLAY_FONT, MAX_OVERLAY_FONT))

        flash_offset = as_number(data.get("flash_overlay_offset"))
        flash_offset = int(clamp(round_half_up(flash_offset), -100, 100)) if flash_offset is not None else d.flash_overlay_offset

        device = data.get("decklink_device")
        device = (device.strip() or None) if isinstance(device, str) else None

        return cls(
            background=background,
            custom_background=_optional_name(data.get("custom_background")),
            text=text,
            font_size=font_size,
            font_family=_choice(data.get("font_family"), FONT_FAMILIES, d.font_family),
            text_weight=_choice(data.get("text_weight"), TEXT_WEIGHTS, d.text_weight),
            text_color=text_color,
            text_background=_choice(data.get("text_background"), TEXT_BACKGROUNDS, d.text_background),
            text_position=Anchor.parse(data.get("text_position"), d.text_position),
            show_logo=data.get("show_logo", True) is not False,
            logo_file=_optional_name(data.get("logo_file")),
            logo_position=Anchor.parse(data.get("logo_position"), d.logo_position),
            animation=animation,
            video_format=video_format,
            audio_freq=freq,
            audio_level_db=level,
            audio_channel_map=normalize_channel_map(
                data.get("audio_channel_map"), data.get("audio_channels", 2)
            ),
            audio_channel_id_cycle=normalize_channel_flags(data.get("audio_channel_id_cycle")),
            audio_channel_flash=normalize_channel_flags(data.get("audio_channel_flash")),
            audio_channel_force400=normalize_channel_flags(data.get("audio_channel_force400")),
            show_clock=bool(data.get("show_clock", False)),
            clock_position=Anchor.parse(data.get("clock_position"), d.clock_position),
            clock_latency_ms=latency,
            show_config_overlay=bool(data.get("show_config_overlay", False)),
            config_overlay_font_size=overlay_size,
            config_overlay_position=Anchor.parse(
                data.get("config_overlay_position"), d.config_overlay_position
            ),
            flash_overlay_offset=flash_offset,
            decklink_device=device,
        )

    def to_dict(self) -> dict:
        """Serialize with the control panel's camelCase keys."""
        out = {}
        for name, value in self.__dict__.items():
            if isinstance(value, Anchor):
                value = value.value
            elif isinstance(value, list):
                value = list(value)
            out[_camel(name)] = value
        return out


def load_config(path: str | Path) -> BroadcastConfig:
    """Load a broadcast configuration from a JSON file."""
    path = Path(path)
    data = json.loads(path.read_text())
    if not isinstance(data, dict):
        raise ValueError("Broadcast config must be a JSON object")
    return BroadcastConfig.from_dict(data)


def _choice(value, allowed, default):
    return value if value in allowed else default


def _optional_name(value) -> str | None:
    return value if isinstance(value, str) and value else None


def _first_number(value):
    """Pull the leading number out of labels such as ``"-6 dBFS"``."""
    if isinstance(value, str):
        match = re.search(r"-?\d+(?:\.\d+)?", value)
        return match.group(0) if match else None
    return value


def _camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(p[:1].upper() + p[1:] for p in rest)


def _snake(name: str) -> str:
    out = []
    for ch in name:
        if ch.isupper():
            out.append("_")
            out.append(ch.lower())
        else:
            out.append(ch)
    return "".join(out)


def _snake_keys(data: dict) -> dict:
    return {_snake(k) if isinstance(k, str) else k: v for k, v in data.items()}


# --- Engine settings ---------------------------------------------------------

DEFAULT_FONT_PATH = "/System/Library/Fonts/SFNSMono.ttf"
DEFAULT_DEVICE_NAME = "UltraStudio Mini Monitor"
DEFAULT_SNTP_SERVERS = ("time.cloudflare.com", "time.google.com", "time.nist.gov")


def _default_ffmpeg() -> str:
    bundled = Path.home() / "ffmpeg-4.4.4" / "build" / "bin" / "ffmpeg"
    return str(bundled) if bundled.exists() else "ffmpeg"


@dataclass
class EngineSettings:
    """Host-specific paths and defaults the compiler needs."""

    ffmpeg_path: str = "ffmpeg"
    pictures_dir: Path = field(default_factory=lambda: Path.home() / "Pictures")
    uploads_dir: Path = field(default_factory=lambda: Path.cwd() / "uploads")
    font_path: str = DEFAULT_FONT_PATH
    default_device: str = DEFAULT_DEVICE_NAME
    sntp_path: str = "/usr/bin/sntp"
    sntp_servers: tuple[str, ...] = DEFAULT_SNTP_SERVERS
    sync_interval: float = 15 * 60

    @property
    def logo_path(self) -> Path:
        return self.pictures_dir / "PNG-actua" / "actua.png"

    @property
    def backgrounds_dir(self) -> Path:
        return self.uploads_dir / "backgrounds"

    @classmethod
    def from_env(cls, environ=None) -> "EngineSettings":
        env = os.environ if environ is None else environ
        settings = cls(ffmpeg_path=env.get("FFMPEG_PATH") or _default_ffmpeg())
        if env.get("SIGNALFORGE_PICTURES"):
            settings.pictures_dir = Path(env["SIGNALFORGE_PICTURES"])
        if env.get("SIGNALFORGE_UPLOADS"):
            settings.uploads_dir = Path(env["SIGNALFORGE_UPLOADS"])
        if env.get("SIGNALFORGE_FONT"):
            settings.font_path = env["SIGNALFORGE_FONT"]
        if env.get("SIGNALFORGE_DEVICE"):
            settings.default_device = env["SIGNALFORGE_DEVICE"]
        if env.get("SIGNALFORGE_SNTP"):
            settings.sntp_path = env["SIGNALFORGE_SNTP"]
        return settings
