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
Resolution of an extracted package layout into logical files.
"""

import logging
from pathlib import Path, PurePosixPath

from ..config.constants import ScannerConstants
from .exceptions import PackageExtractionError
from .models import ExtractedFile, FileType, ScanStage
from .progress import ProgressReporter, ProgressSink

logger = logging.getLogger(__name__)


class AssetResolver:
    """Maps the GUID-keyed layout of an unpacked package to logical files.

    Each asset lives in a directory named by its 32-hex-digit GUID:
    - asset: the file payload (absent for folder entries)
    - asset.meta: Unity import settings
    - pathname: first line holds the original project path
    """

    SCRIPT_EXTENSIONS = {".cs"}
    NATIVE_LIBRARY_EXTENSIONS = {".dll", ".so", ".dylib", ".bundle"}
    ASSET_EXTENSIONS = {".prefab", ".asset", ".mat", ".unity", ".controller", ".anim"}
    TEXTURE_EXTENSIONS = {".png", ".jpg", ".jpeg", ".tif", ".tiff", ".bmp", ".tga", ".psd", ".exr"}
    MODEL_EXTENSIONS = {".fbx", ".obj", ".dae", ".3ds", ".blend"}
    AUDIO_EXTENSIONS = {".wav", ".mp3", ".ogg", ".aiff"}
    METADATA_EXTENSIONS = {".meta"}

    def __init__(self, script_max_size: int = ScannerConstants.SCRIPT_MAX_SIZE):
        """
        Initialize asset resolver.

        Args:
            script_max_size: Scripts of this size or larger are listed without content
        """
        self.script_max_size = script_max_size

    def resolve(
        self, scratch_dir: str | Path, progress: ProgressReporter | ProgressSink | None = None
    ) -> list[ExtractedFile]:
        """
        List the logical files of an extracted package.

        Args:
            scratch_dir: Directory produced by ArchiveExtractor.extract
            progress: Optional reporter or sink for ``analyzing`` events

        Returns:
            Files in GUID order, excluding folder entries and metadata

        Raises:
            PackageExtractionError: If scratch_dir is not a directory
        """
        scratch_dir = Path(scratch_dir)
        if not scratch_dir.is_dir():
            raise PackageExtractionError(f"Extraction directory does not exist: {scratch_dir}")

        reporter = ProgressReporter.wrap(progress)
        reporter.emit(ScanStage.ANALYZING, 50, message="Analyzing package contents")

        asset_dirs = sorted(
            entry
            for entry in scratch_dir.iterdir()
            if entry.is_dir() and ScannerConstants.GUID_PATTERN.fullmatch(entry.name)
        )

        files: list[ExtractedFile] = []
        for index, asset_dir in enumerate(asset_dirs):
            extracted = self._resolve_asset(asset_dir)
            if extracted is None:
                continue
            files.append(extracted)
            reporter.emit(
                ScanStage.ANALYZING,
                50 + (40 * (index + 1)) // len(asset_dirs),
                current_file=extracted.path,
            )

        reporter.emit(ScanStage.ANALYZING, 90, message=f"Found {len(files)} files")
        logger.info("Resolved %d files from %d asset directories", len(files), len(asset_dirs))
        return files

    def _resolve_asset(self, asset_dir: Path) -> ExtractedFile | None:
        guid = asset_dir.name
        asset_path = asset_dir / "asset"
        if not asset_path.is_file():
            return None

        logical_path = self._read_pathname(asset_dir) or f"[GUID:{guid}]"
        file_type = self.determine_file_type(logical_path)
        if file_type == FileType.METADATA:
            return None

        try:
            size = asset_path.stat().st_size
        except OSError as e:
            logger.debug("Cannot stat %s: %s", asset_path, e)
            size = 0

        content = None
        if file_type == FileType.SCRIPT and size < self.script_max_size:
            try:
                content = asset_path.read_bytes().decode("utf-8")
            except (OSError, UnicodeDecodeError) as e:
                logger.debug("Failed to read script %s: %s", logical_path, e)

        return ExtractedFile(
            path=logical_path,
            file_type=file_type,
            size_bytes=size,
            content=content,
            asset_id=guid,
        )

    @staticmethod
    def _read_pathname(asset_dir: Path) -> str | None:
        pathname_file = asset_dir / "pathname"
        if not pathname_file.is_file():
            return None
        try:
            with open(pathname_file, encoding="utf-8") as f:
                first_line = f.readline()
        except (OSError, UnicodeDecodeError) as e:
            logger.debug("Failed to read %s: %s", pathname_file, e)
            return None
        return first_line.strip() or None

    def determine_file_type(self, path: str) -> FileType:
        """Determine the file type from the extension of a logical path."""
        ext = PurePosixPath(path).suffix.lower()

        if ext in self.SCRIPT_EXTENSIONS:
            return FileType.SCRIPT
        elif ext in self.NATIVE_LIBRARY_EXTENSIONS:
            return FileType.NATIVE_LIBRARY
        elif ext in self.ASSET_EXTENSIONS:
            return FileType.ASSET
        elif ext in self.TEXTURE_EXTENSIONS:
            return FileType.TEXTURE
        elif ext in self.MODEL_EXTENSIONS:
            return FileType.MODEL
        elif ext in self.AUDIO_EXTENSIONS:
            return FileType.AUDIO
        elif ext in self.METADATA_EXTENSIONS:
            return FileType.METADATA
        return FileType.OTHER
