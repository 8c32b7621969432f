"""Unit tests for ffutil: sink and sntp parsing plus subprocess wrappers."""

import subprocess
from unittest.mock import MagicMock, patch

import pytest

from signalforge.ffutil import (
    FFmpegNotFoundError,
    SinkQueryError,
    check_ffmpeg,
    list_sinks,
    parse_sink_names,
    parse_sntp_output,
    query_sntp,
)


# ---------------------------------------------------------------------------
# parse_sink_names (pure parsing, no subprocess)
# ---------------------------------------------------------------------------

SINKS_STDOUT = """\
Auto-detected sinks for decklink:
  0x1 [UltraStudio Mini Monitor (1)]
  0x2 [DeckLink Duo (2)]
"""


class TestParseSinkNames:
    def test_bracketed_names(self):
        assert parse_sink_names(SINKS_STDOUT) == ["UltraStudio Mini Monitor (1)", "DeckLink Duo (2)"]

    def test_empty(self):
        assert parse_sink_names("") == []

    def test_blank_brackets_ignored(self):
        assert parse_sink_names("  0x1 [ ]\n") == []


# ---------------------------------------------------------------------------
# parse_sntp_output
# ---------------------------------------------------------------------------

SNTP_STDOUT = """\
sntp 4.2.8p15@1.3728-o Tue Jun  6 00:00:00 UTC 2023 (1)
2024-01-01 12:00:00.123456 (+0100) +0.012345 +/- 0.025000 time.google.com 216.239.35.0 s1 no-leap
"""


class TestParseSntpOutput:
    def test_offset_and_dispersion(self):
        assert parse_sntp_output(SNTP_STDOUT) == (0.012345, 0.025)

    def test_negative_offset(self):
        line = "2024-01-01 12:00:00.1 (+0000) -0.500000 +/- 0.010000 pool.ntp.org 1.2.3.4 s2 no-leap"
        assert parse_sntp_output(line) == (-0.5, 0.01)

    def test_no_offset(self):
        assert parse_sntp_output("sntp: lookup error\n") is None

    def test_empty(self):
        assert parse_sntp_output("") is None


# ---------------------------------------------------------------------------
# Subprocess wrappers (mocked)
# ---------------------------------------------------------------------------

class TestCheckFfmpeg:
    @patch("signalforge.ffutil.shutil.which", return_value=None)
    def test_missing(self, mock_which):
        with pytest.raises(FFmpegNotFoundError):
            check_ffmpeg("ffmpeg")

    @patch("signalforge.ffutil.shutil.which", return_value="/usr/bin/ffmpeg")
    def test_present(self, mock_which):
        check_ffmpeg("ffmpeg")


class TestListSinks:
    @patch("signalforge.ffutil.subprocess.run")
    def test_success(self, mock_run):
        mock_run.return_value = MagicMock(returncode=0, stdout=SINKS_STDOUT)
        assert list_sinks("/opt/ffmpeg") == ["UltraStudio Mini Monitor (1)", "DeckLink Duo (2)"]

        cmd = mock_run.call_args[0][0]
        assert cmd == ["/opt/ffmpeg", "-hide_banner", "-sinks", "decklink"]
        assert mock_run.call_args[1]["timeout"] == 10

    @patch("signalforge.ffutil.subprocess.run")
    def test_nonzero_exit(self, mock_run):
        mock_run.return_value = MagicMock(returncode=1, stdout="")
        with pytest.raises(SinkQueryError):
            list_sinks("ffmpeg")

    @patch("signalforge.ffutil.subprocess.run")
    def test_invalid_bytes_replaced(self, mock_run):
        mock_run.return_value = MagicMock(returncode=0, stdout="  0x1 [Studio \ufffd HD (1)]\n")
        assert list_sinks("ffmpeg") == ["Studio \ufffd HD (1)"]
        assert mock_run.call_args[1]["encoding"] == "utf-8"
        assert mock_run.call_args[1]["errors"] == "replace"

    @patch("signalforge.ffutil.subprocess.run", side_effect=subprocess.TimeoutExpired("ffmpeg", 10))
    def test_timeout_propagates(self, mock_run):
        with pytest.raises(subprocess.TimeoutExpired):
            list_sinks("ffmpeg")


class TestQuerySntp:
    @patch("signalforge.ffutil.subprocess.run")
    def test_measurement(self, mock_run):
        mock_run.return_value = MagicMock(returncode=0, stdout=SNTP_STDOUT)
        m = query_sntp("/usr/bin/sntp", "time.google.com", 1000.0)
        assert m.source == "time.google.com"
        assert m.offset_ms == pytest.approx(12.345)
        assert m.dispersion_ms == pytest.approx(25.0)
        assert m.timestamp_ms == 1000.0
        assert mock_run.call_args[0][0] == ["/usr/bin/sntp", "time.google.com"]
        assert mock_run.call_args[1]["timeout"] == 7

    @patch("signalforge.ffutil.subprocess.run")
    def test_failed_exit(self, mock_run):
        mock_run.return_value = MagicMock(returncode=1, stdout="")
        assert query_sntp("sntp", "time.google.com", 0) is None

    @patch("signalforge.ffutil.subprocess.run")
    def test_unparseable(self, mock_run):
        mock_run.return_value = MagicMock(returncode=0, stdout="no data")
        assert query_sntp("sntp", "time.google.com", 0) is None

    @patch("signalforge.ffutil.subprocess.run")
    def test_invalid_bytes_replaced(self, mock_run):
        mock_run.return_value = MagicMock(returncode=0, stdout="server \ufffd\n" + SNTP_STDOUT)
        m = query_sntp("sntp", "time.google.com", 0)
        assert m.offset_ms == pytest.approx(12.345)
        assert mock_run.call_args[1]["errors"] == "replace"
