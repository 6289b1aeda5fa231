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
Unpacking of .unitypackage archives into a scratch directory.

A .unitypackage is a gzip-compressed tar stream.  Extraction is defensive:
member names are normalized and anything that could land outside the
scratch directory (absolute paths, ``..`` segments, links, devices) is
skipped.  By default extraction is best-effort and keeps whatever could be
read from a damaged stream.
"""

import logging
import os
import posixpath
import re
import shutil
import tarfile
import tempfile
import zlib
from dataclasses import dataclass
from pathlib import Path

from ...config.constants import ScannerConstants
from ..exceptions import ArchiveCorruptError, ArchiveNotFoundError
from ..models import ScanStage
from ..progress import ProgressReporter, ProgressSink

logger = logging.getLogger(__name__)

# Errors a damaged gzip/tar stream can raise mid-iteration
_STREAM_ERRORS = (tarfile.TarError, EOFError, zlib.error, OSError)

_DRIVE_PREFIX = re.compile(r"^[A-Za-z]:")


@dataclass
class ExtractionLimits:
    """Safety limits for archive extraction."""

    max_file_count: int = 50_000
    max_total_size_bytes: int = 4 * 1024 * 1024 * 1024  # 4GB uncompressed


def normalize_member_name(name: str) -> str:
    """Fold backslashes to ``/`` and collapse ``.`` and duplicate separators."""
    return posixpath.normpath(name.replace("\\", "/"))


def is_unsafe_member_name(normalized: str) -> bool:
    """True when a normalized member name is absolute or escapes upward."""
    if normalized.startswith("/") or _DRIVE_PREFIX.match(normalized):
        return True
    return ".." in normalized.split("/")


class ArchiveExtractor:
    """
    Extracts .unitypackage archives into scratch directories.

    Every call to :meth:`extract` creates a new uniquely named directory
    under ``temp_root``.  The extractor remembers the directories it created
    so :meth:`cleanup` can remove them.
    """

    def __init__(
        self,
        temp_root: str | Path | None = None,
        limits: ExtractionLimits | None = None,
        strict: bool = False,
    ):
        self.temp_root = Path(temp_root) if temp_root is not None else ScannerConstants.TEMP_ROOT
        self.limits = limits or ExtractionLimits()
        self.strict = strict
        self._scratch_dirs: list[Path] = []

    @property
    def scratch_dirs(self) -> list[Path]:
        return list(self._scratch_dirs)

    def extract(self, archive_path: str | Path, progress: ProgressReporter | ProgressSink | None = None) -> Path:
        """
        Extract a package into a fresh scratch directory.

        Args:
            archive_path: Path to the .unitypackage file
            progress: Optional reporter or sink for ``extracting`` events

        Returns:
            Path to the scratch directory

        Raises:
            ArchiveNotFoundError: If the path is not a readable regular file
            ArchiveCorruptError: If the stream cannot be opened, or any member
                fails in strict mode
        """
        archive_path = Path(archive_path)
        reporter = ProgressReporter.wrap(progress)

        if not archive_path.is_file():
            raise ArchiveNotFoundError(f"Package not found: {archive_path}")
        if not os.access(archive_path, os.R_OK):
            raise ArchiveNotFoundError(f"Package is not readable: {archive_path}")

        reporter.emit(ScanStage.EXTRACTING, 0, message=f"Extracting {archive_path.name}")

        self.temp_root.mkdir(parents=True, exist_ok=True)
        scratch_dir = Path(tempfile.mkdtemp(prefix=ScannerConstants.TEMP_DIR_PREFIX, dir=self.temp_root))
        self._scratch_dirs.append(scratch_dir)
        logger.debug("Extracting %s into %s", archive_path, scratch_dir)

        try:
            self._extract_tar(archive_path, scratch_dir, reporter)
        except BaseException:
            self.cleanup(scratch_dir)
            raise

        return scratch_dir

    def _extract_tar(self, archive_path: Path, dest: Path, reporter: ProgressReporter) -> None:
        archive_size = max(archive_path.stat().st_size, 1)
        root = os.path.realpath(dest)

        with open(archive_path, "rb") as raw:
            try:
                tf = tarfile.open(fileobj=raw, mode="r:*")
            except _STREAM_ERRORS as e:
                raise ArchiveCorruptError(f"Cannot open {archive_path.name} as a gzip tar archive: {e}") from e

            reporter.emit(ScanStage.EXTRACTING, 10, message="Reading archive entries")

            extracted_count = 0
            extracted_size = 0
            with tf:
                members = iter(tf)
                while True:
                    try:
                        member = next(members)
                    except StopIteration:
                        break
                    except _STREAM_ERRORS as e:
                        if self.strict or extracted_count == 0:
                            raise ArchiveCorruptError(f"Archive {archive_path.name} is corrupt: {e}") from e
                        logger.warning(
                            "Archive %s is truncated or damaged after %d entries: %s",
                            archive_path.name,
                            extracted_count,
                            e,
                        )
                        break

                    name = normalize_member_name(member.name)
                    if name == "." or is_unsafe_member_name(name):
                        logger.debug("Skipping unsafe entry %r", member.name)
                        continue
                    if not (member.isfile() or member.isdir()):
                        logger.debug("Skipping link or special entry %r", member.name)
                        continue
                    target = os.path.realpath(os.path.join(root, name))
                    if os.path.commonpath([root, target]) != root:
                        logger.debug("Skipping entry %r resolving outside the extraction root", member.name)
                        continue

                    if member.isdir():
                        try:
                            os.makedirs(target, exist_ok=True)
                        except OSError as e:
                            if self.strict:
                                raise ArchiveCorruptError(
                                    f"Failed to create directory {name!r} from {archive_path.name}: {e}"
                                ) from e
                            logger.warning("Skipping directory entry %r: %s", name, e)
                        continue

                    if extracted_count >= self.limits.max_file_count:
                        logger.warning(
                            "Archive %s exceeds %d entries; extraction stopped",
                            archive_path.name,
                            self.limits.max_file_count,
                        )
                        break
                    if extracted_size + member.size > self.limits.max_total_size_bytes:
                        logger.warning(
                            "Archive %s exceeds %d uncompressed bytes; extraction stopped",
                            archive_path.name,
                            self.limits.max_total_size_bytes,
                        )
                        break

                    member.name = name
                    try:
                        tf.extract(member, dest, filter="data")
                    except _STREAM_ERRORS as e:
                        if self.strict:
                            raise ArchiveCorruptError(f"Failed to extract {name!r} from {archive_path.name}: {e}") from e
                        logger.warning("Skipping entry %r that failed to extract: %s", name, e)
                        continue

                    extracted_count += 1
                    extracted_size += member.size
                    reporter.emit(
                        ScanStage.EXTRACTING,
                        10 + (40 * raw.tell()) // archive_size,
                        current_file=name,
                    )

        logger.info("Extracted %d entries (%d bytes) from %s", extracted_count, extracted_size, archive_path.name)

    def cleanup(self, scratch_dir: str | Path | None = None) -> None:
        """
        Delete one scratch directory, or every directory this extractor created.

        Failures are logged, never raised.  Calling it twice is harmless.
        """
        if scratch_dir is None:
            targets = list(self._scratch_dirs)
        else:
            targets = [Path(scratch_dir)]

        for target in targets:
            if target in self._scratch_dirs:
                self._scratch_dirs.remove(target)
            if not target.exists():
                continue
            try:
                shutil.rmtree(target)
                logger.debug("Removed scratch directory %s", target)
            except OSError as e:
                logger.warning("Failed to remove scratch directory %s: %s", target, e)
