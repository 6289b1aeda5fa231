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
Configuration class for UnityPackage Scanner.
"""

import logging
import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

from .constants import ScannerConstants

logger = logging.getLogger(__name__)


@dataclass
class Config:
    """
    Configuration for a package scan.

    Explicit arguments win; anything left at its default is filled from
    ``UNITYPACKAGE_SCANNER_*`` environment variables.
    """

    # Rule documents
    pattern_file: str = ScannerConstants.DEFAULT_PATTERN_FILE
    pattern_preset: str | None = ScannerConstants.DEFAULT_PATTERN_PRESET
    extension_file: str = ScannerConstants.DEFAULT_EXTENSION_FILE
    extension_preset: str | None = ScannerConstants.DEFAULT_EXTENSION_PRESET

    # Extraction
    temp_dir: Path | None = None
    max_file_size_bytes: int = ScannerConstants.DEFAULT_MAX_FILE_SIZE
    strict_extraction: bool = False

    # Scanning
    max_workers: int = 1

    def __post_init__(self):
        """Load configuration from environment variables if not provided."""

        if self.pattern_file == ScannerConstants.DEFAULT_PATTERN_FILE:
            if env_file := os.getenv("UNITYPACKAGE_SCANNER_PATTERN_FILE"):
                self.pattern_file = env_file

        if self.pattern_preset == ScannerConstants.DEFAULT_PATTERN_PRESET:
            if env_preset := os.getenv("UNITYPACKAGE_SCANNER_PATTERN_PRESET"):
                self.pattern_preset = env_preset

        if self.extension_file == ScannerConstants.DEFAULT_EXTENSION_FILE:
            if env_file := os.getenv("UNITYPACKAGE_SCANNER_EXTENSION_FILE"):
                self.extension_file = env_file

        if self.extension_preset == ScannerConstants.DEFAULT_EXTENSION_PRESET:
            if env_preset := os.getenv("UNITYPACKAGE_SCANNER_EXTENSION_PRESET"):
                self.extension_preset = env_preset

        if self.temp_dir is None:
            if env_temp := os.getenv("UNITYPACKAGE_SCANNER_TEMP_DIR"):
                self.temp_dir = Path(env_temp)
        elif not isinstance(self.temp_dir, Path):
            self.temp_dir = Path(self.temp_dir)

        if self.max_file_size_bytes == ScannerConstants.DEFAULT_MAX_FILE_SIZE:
            if env_size := os.getenv("UNITYPACKAGE_SCANNER_MAX_FILE_SIZE"):
                try:
                    self.max_file_size_bytes = int(env_size)
                except ValueError:
                    logger.warning("Ignoring invalid UNITYPACKAGE_SCANNER_MAX_FILE_SIZE: %s", env_size)

        if self.max_workers == 1:
            if env_workers := os.getenv("UNITYPACKAGE_SCANNER_MAX_WORKERS"):
                try:
                    self.max_workers = max(1, int(env_workers))
                except ValueError:
                    logger.warning("Ignoring invalid UNITYPACKAGE_SCANNER_MAX_WORKERS: %s", env_workers)

        if os.getenv("UNITYPACKAGE_SCANNER_STRICT_EXTRACTION", "").lower() in ("true", "1"):
            self.strict_extraction = True

    @property
    def temp_root(self) -> Path:
        """Directory under which scratch directories are created."""
        return self.temp_dir or ScannerConstants.TEMP_ROOT

    @classmethod
    def from_env(cls) -> "Config":
        """
        Create configuration from environment variables.

        Returns:
            Config instance with values from environment
        """
        return cls()

    @classmethod
    def from_file(cls, config_file: Path) -> "Config":
        """
        Load configuration from a .env file.

        Args:
            config_file: Path to .env file

        Returns:
            Config instance
        """
        if config_file.exists():
            load_dotenv(config_file, override=True)

        return cls.from_env()
