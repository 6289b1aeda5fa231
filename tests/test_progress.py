# Copyright 2026 Cisco Systems, Inc.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
#
# SPDX-License-Identifier: Apache-2.0

"""Tests for progress reporting."""

import logging

from unitypackage_scanner.core.models import ProgressEvent, ScanStage
from unitypackage_scanner.core.progress import ProgressReporter, QueueProgressSink


class TestProgressEvent:
    def test_progress_is_clamped(self):
        assert ProgressEvent(ScanStage.SCANNING, 150).progress == 100
        assert ProgressEvent(ScanStage.SCANNING, -5).progress == 0

    def test_to_dict(self):
        event = ProgressEvent(ScanStage.EXTRACTING, 10, current_file="abc/asset")

        assert event.to_dict() == {"stage": "extracting", "progress": 10, "currentFile": "abc/asset"}


class TestProgressReporter:
    def test_without_sink(self):
        ProgressReporter().emit(ScanStage.COMPLETED, 100)

    def test_delivers_events(self):
        events = []
        reporter = ProgressReporter(events.append)

        reporter.emit(ScanStage.ANALYZING, 60, message="hi", current_file="Assets/A.cs")

        assert events == [ProgressEvent(ScanStage.ANALYZING, 60, current_file="Assets/A.cs", message="hi")]

    def test_sink_errors_are_logged(self, caplog):
        def broken(event):
            raise ValueError("boom")

        with caplog.at_level(logging.WARNING):
            ProgressReporter(broken).emit(ScanStage.SCANNING, 95)

        assert "boom" in caplog.text

    def test_wrap(self):
        reporter = ProgressReporter()

        assert ProgressReporter.wrap(reporter) is reporter
        assert ProgressReporter.wrap(None).sink is None
        assert ProgressReporter.wrap(print).sink is print


class TestQueueProgressSink:
    def test_events_are_queued(self):
        sink = QueueProgressSink()
        reporter = ProgressReporter(sink)

        reporter.emit(ScanStage.EXTRACTING, 0)
        reporter.emit(ScanStage.COMPLETED, 100)

        assert [e.stage for e in sink.drain()] == [ScanStage.EXTRACTING, ScanStage.COMPLETED]
        assert sink.drain() == []

    def test_full_queue_drops_events(self):
        sink = QueueProgressSink(maxsize=2)

        for progress in range(5):
            sink(ProgressEvent(ScanStage.SCANNING, progress))

        assert [e.progress for e in sink.drain()] == [0, 1]
        assert sink.dropped == 3
