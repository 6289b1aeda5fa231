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
Scan orchestration: extract, resolve, match and aggregate one package.
"""

from __future__ import annotations

import logging
import threading
import time
from pathlib import Path

from ..config.config import Config
from .aggregator import aggregate
from .engine import PatternEngine
from .exceptions import ArchiveNotFoundError, PackageTooLargeError
from .extractors.archive_extractor import ArchiveExtractor
from .models import PackageInfo, ScanResult, ScanStage
from .progress import ProgressReporter, ProgressSink
from .resolver import AssetResolver
from .rules.content_rules import ContentRuleSet, load_content_rules
from .rules.extension_rules import ExtensionRuleSet, load_extension_rules

logger = logging.getLogger(__name__)


class PackageScanner:
    """Main scanner that runs the extraction and detection pipeline."""

    def __init__(
        self,
        config: Config | None = None,
        content_rules: ContentRuleSet | None = None,
        extension_rules: ExtensionRuleSet | None = None,
    ):
        """
        Initialize scanner and load rule sets.

        Args:
            config: Scanner configuration. If None, read from the environment.
            content_rules: Pre-loaded content rules. If None, loaded from config.
            extension_rules: Pre-loaded extension rules. If None, loaded from config.

        Raises:
            RuleConfigurationError: If a rule document or preset is invalid
        """
        self.config = config or Config()

        if content_rules is None:
            content_rules = load_content_rules(self.config.pattern_file, preset=self.config.pattern_preset)
        if extension_rules is None:
            extension_rules = load_extension_rules(self.config.extension_file, preset=self.config.extension_preset)
        self.content_rules = content_rules
        self.extension_rules = extension_rules

        self.extractor = ArchiveExtractor(temp_root=self.config.temp_root, strict=self.config.strict_extraction)
        self.resolver = AssetResolver()
        self.engine = PatternEngine(max_workers=self.config.max_workers)

    def scan_package(
        self,
        archive_path: str | Path,
        progress: ProgressReporter | ProgressSink | None = None,
        keep_extracted: bool = False,
        cancel_event: threading.Event | None = None,
    ) -> ScanResult:
        """
        Scan a single .unitypackage file.

        Args:
            archive_path: Path to the package
            progress: Optional sink receiving ProgressEvent notifications
            keep_extracted: Keep the scratch directory until cleanup() is called
            cancel_event: Optional event checked between files

        Returns:
            ScanResult with findings, summary and package inventory

        Raises:
            PackageExtractionError: If the package is missing, too large or corrupt
            ScanCancelledError: If cancel_event was set during the scan
        """
        if not isinstance(archive_path, Path):
            archive_path = Path(archive_path)

        if not archive_path.is_file():
            raise ArchiveNotFoundError(f"Package not found: {archive_path}")

        file_size = archive_path.stat().st_size
        if file_size > self.config.max_file_size_bytes:
            raise PackageTooLargeError(
                f"Package {archive_path.name} is {file_size} bytes; "
                f"the limit is {self.config.max_file_size_bytes} bytes"
            )

        reporter = ProgressReporter.wrap(progress)
        start_time = time.time()
        scratch_dir: Path | None = None

        try:
            logger.info("Scanning %s", archive_path)
            scratch_dir = self.extractor.extract(archive_path, reporter)
            files = self.resolver.resolve(scratch_dir, reporter)

            reporter.emit(ScanStage.SCANNING, 90, message=f"Scanning {len(files)} files")
            findings = self.engine.scan(files, self.content_rules, self.extension_rules, cancel_event)
            summary = aggregate(findings)

            result = ScanResult(
                file_path=str(archive_path),
                findings=findings,
                summary=summary,
                package_info=PackageInfo(
                    file_name=archive_path.name,
                    file_size=file_size,
                    extracted_files=files,
                ),
                scan_duration_seconds=time.time() - start_time,
            )
        finally:
            if scratch_dir is not None and not keep_extracted:
                self.extractor.cleanup(scratch_dir)

        reporter.emit(ScanStage.COMPLETED, 100, message=f"Found {summary.total} findings")
        logger.info(
            "Scan of %s complete: %d critical, %d warning, %d info",
            archive_path.name,
            summary.critical,
            summary.warning,
            summary.info,
        )
        return result

    def cleanup(self) -> None:
        """Remove scratch directories kept with ``keep_extracted=True``."""
        self.extractor.cleanup()

    @property
    def extracted_dirs(self) -> list[Path]:
        """Scratch directories kept for inspection."""
        return self.extractor.scratch_dirs


def scan_package(
    archive_path: str | Path,
    config: Config | None = None,
    progress: ProgressReporter | ProgressSink | None = None,
    content_rules: ContentRuleSet | None = None,
    extension_rules: ExtensionRuleSet | None = None,
) -> ScanResult:
    """
    Convenience function to scan a single package.

    Args:
        archive_path: Path to the .unitypackage file
        config: Optional configuration
        progress: Optional progress sink
        content_rules: Optional pre-loaded content rules
        extension_rules: Optional pre-loaded extension rules

    Returns:
        ScanResult
    """
    scanner = PackageScanner(config=config, content_rules=content_rules, extension_rules=extension_rules)
    return scanner.scan_package(archive_path, progress=progress)
