"""Shared test fixtures."""

from datetime import timedelta, timezone
from pathlib import Path

import pytest

from signalforge.builders.clock import ClockAnchor
from signalforge.config import EngineSettings
from signalforge.engine import Compiler
from signalforge.resolvers.devices import DeviceSinkCache
from signalforge.resolvers.fonts import FontResolver

FIXTURES_DIR = Path(__file__).parent / "fixtures"

EPOCH_MS = 1_700_000_000_000.0  # 2023-11-14 22:13:20 UTC
CEST = timezone(timedelta(hours=2), "CEST")
FONT_PATH = "/fonts/mono.ttf"
DEVICE = "UltraStudio Mini Monitor (1)"


@pytest.fixture
def sample_config_path() -> Path:
    return FIXTURES_DIR / "sample_config.json"


@pytest.fixture
def settings(tmp_path) -> EngineSettings:
    return EngineSettings(
        ffmpeg_path="ffmpeg",
        pictures_dir=tmp_path / "Pictures",
        uploads_dir=tmp_path / "uploads",
        font_path=FONT_PATH,
        sntp_servers=("time.cloudflare.com", "time.google.com"),
    )


@pytest.fixture
def anchor() -> ClockAnchor:
    return ClockAnchor(epoch_ms=EPOCH_MS, tz=CEST)


@pytest.fixture
def devices() -> DeviceSinkCache:
    return DeviceSinkCache(query=lambda path: [DEVICE, "DeckLink Duo (2)"])


@pytest.fixture
def fonts() -> FontResolver:
    return FontResolver(FONT_PATH)


@pytest.fixture
def compiler(settings, anchor, devices, fonts) -> Compiler:
    return Compiler(settings=settings, anchor=anchor, devices=devices, fonts=fonts)
