"""Tests for the SNTP clock-sync routine and its worker thread."""

import logging
import subprocess
import threading
from unittest.mock import patch

from signalforge.builders.clock import SYSTEM_CLOCK
from signalforge.ffutil import SntpMeasurement
from signalforge.sync import ClockSyncWorker, refresh_clock_sync

from conftest import EPOCH_MS


class TestRefreshClockSync:
    @patch("signalforge.sync.ffutil.query_sntp")
    def test_first_answer_applied(self, mock_query, anchor, settings):
        measurement = SntpMeasurement("time.google.com", 4.0, 2.0, 99.0)
        mock_query.side_effect = [None, measurement]

        assert refresh_clock_sync(anchor, settings, now=lambda: 10.0) is measurement

        snap = anchor.snapshot()
        assert snap.offset_ms == 4.0
        assert snap.source == "time.google.com"
        assert snap.uncertainty_ms == 2.0
        assert snap.last_sync_ms == 99.0
        assert snap.epoch_ms == EPOCH_MS
        assert mock_query.call_args_list[0][0] == (settings.sntp_path, "time.cloudflare.com", 10000.0)

    @patch("signalforge.sync.ffutil.query_sntp")
    def test_stops_at_first_success(self, mock_query, anchor, settings):
        mock_query.return_value = SntpMeasurement("time.cloudflare.com", 1.0, None, 5.0)
        refresh_clock_sync(anchor, settings)
        assert mock_query.call_count == 1
        assert anchor.snapshot().uncertainty_ms is None

    @patch("signalforge.sync.ffutil.query_sntp")
    def test_all_fail_falls_back_to_system_clock(self, mock_query, anchor, settings, caplog):
        anchor.update(offset_ms=30.0, source="time.google.com", uncertainty_ms=1.0, freeze_epoch=True)
        mock_query.side_effect = [OSError("no sntp"), subprocess.TimeoutExpired("sntp", 7)]

        with caplog.at_level(logging.WARNING, logger="signalforge.sync"):
            assert refresh_clock_sync(anchor, settings, now=lambda: 10.0) is None

        snap = anchor.snapshot()
        assert snap.source == SYSTEM_CLOCK
        assert snap.offset_ms == 0.0
        assert snap.uncertainty_ms is None
        assert snap.last_sync_ms == 10000.0
        assert snap.epoch_ms == EPOCH_MS
        assert "All SNTP servers failed" in caplog.text


class TestClockSyncWorker:
    def test_runs_on_background_thread(self, anchor, settings):
        called = threading.Event()
        with patch("signalforge.sync.refresh_clock_sync", side_effect=lambda a, s: called.set()) as mock_refresh:
            worker = ClockSyncWorker(anchor, settings)
            worker.start()
            assert called.wait(2)
            worker.stop(timeout=2)

        mock_refresh.assert_called_with(anchor, settings)
        assert not worker.running

    def test_stop_without_start(self, anchor, settings):
        worker = ClockSyncWorker(anchor, settings)
        worker.stop()
        assert not worker.running

    def test_survives_failed_pass(self, anchor, settings, caplog):
        settings.sync_interval = 0.01
        recovered = threading.Event()
        calls = []

        def refresh(a, s):
            calls.append(1)
            if len(calls) == 1:
                raise ValueError("bad sntp output")
            recovered.set()

        with caplog.at_level(logging.ERROR):
            with patch("signalforge.sync.refresh_clock_sync", side_effect=refresh):
                worker = ClockSyncWorker(anchor, settings)
                worker.start()
                assert recovered.wait(2)
                assert worker.running
                worker.stop(timeout=2)

        assert "Clock sync pass failed" in caplog.text
        assert not worker.running
