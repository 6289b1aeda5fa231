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

"""
Progress reporting for long-running scans.

A sink is any callable taking a ProgressEvent.  Sinks are notified
synchronously from the scanning thread; exceptions raised by a sink are
logged and never interrupt the scan.
"""

import logging
import queue
from collections.abc import Callable

from .models import ProgressEvent, ScanStage

logger = logging.getLogger(__name__)

ProgressSink = Callable[[ProgressEvent], None]


class ProgressReporter:
    """Fire-and-forget wrapper around an optional sink."""

    def __init__(self, sink: ProgressSink | None = None):
        self.sink = sink

    def emit(
        self,
        stage: ScanStage,
        progress: int,
        message: str | None = None,
        current_file: str | None = None,
    ) -> None:
        if self.sink is None:
            return
        event = ProgressEvent(stage=stage, progress=progress, current_file=current_file, message=message)
        try:
            self.sink(event)
        except Exception as e:
            logger.warning("Progress sink raised %s: %s", type(e).__name__, e)

    @classmethod
    def wrap(cls, progress: "ProgressReporter | ProgressSink | None") -> "ProgressReporter":
        """Accept a reporter, a bare sink or None."""
        if isinstance(progress, ProgressReporter):
            return progress
        return cls(progress)


class QueueProgressSink:
    """
    Sink that forwards events into a bounded queue.

    Events are dropped when the queue is full so a slow consumer never
    blocks the scan.
    """

    def __init__(self, maxsize: int = 256):
        self.queue: queue.Queue[ProgressEvent] = queue.Queue(maxsize=maxsize)
        self.dropped = 0

    def __call__(self, event: ProgressEvent) -> None:
        try:
            self.queue.put_nowait(event)
        except queue.Full:
            self.dropped += 1
            logger.debug("Progress queue full; dropped %s event", event.stage.value)

    def drain(self) -> list[ProgressEvent]:
        """Remove and return every queued event."""
        events: list[ProgressEvent] = []
        while True:
            try:
                events.append(self.queue.get_nowait())
            except queue.Empty:
                return events
