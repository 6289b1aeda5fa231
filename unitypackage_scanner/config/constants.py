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
Constants for UnityPackage Scanner.
"""

import re
import tempfile
from pathlib import Path

from .. import __version__ as PACKAGE_VERSION


class ScannerConstants:
    """Constants used throughout the scanner."""

    VERSION = PACKAGE_VERSION

    # Project paths
    PACKAGE_ROOT = Path(__file__).parent.parent

    # Resource paths
    DATA_DIR = PACKAGE_ROOT / "data"
    PATTERNS_DIR = DATA_DIR / "patterns"

    # Rule documents shipped with the package
    DEFAULT_PATTERN_FILE = "default-patterns.yaml"
    MALWARE_PATTERN_FILE = "malware-detection.yaml"
    DEFAULT_EXTENSION_FILE = "file-extensions.yaml"

    # Default presets
    DEFAULT_PATTERN_PRESET = "standard"
    DEFAULT_EXTENSION_PRESET = "standard"
    AVAILABLE_PATTERN_PRESETS = ("strict", "standard", "relaxed")

    # Size limits
    DEFAULT_MAX_FILE_SIZE = 500 * 1024 * 1024  # 500MB package ceiling
    SCRIPT_MAX_SIZE = 1024 * 1024  # Scripts at or above 1MB are listed without content

    # Scratch directories
    TEMP_ROOT = Path(tempfile.gettempdir()) / "unitypackage-scanner"
    TEMP_DIR_PREFIX = "unitypackage-"

    # Package layout
    GUID_PATTERN = re.compile(r"[a-fA-F0-9]{32}")
    SUPPORTED_EXTENSIONS = (".unitypackage",)

    # Severity levels
    SEVERITY_CRITICAL = "critical"
    SEVERITY_WARNING = "warning"
    SEVERITY_INFO = "info"

    # Detection categories
    SCAN_CATEGORIES = (
        "network",
        "fileSystem",
        "process",
        "native",
        "reflection",
        "registry",
        "dll",
        "executable",
        "script",
        "archive",
    )

    @classmethod
    def get_patterns_path(cls) -> Path:
        """Get path to the bundled rule documents."""
        return cls.PATTERNS_DIR

    @classmethod
    def get_pattern_file_path(cls, filename: str) -> Path:
        """Get the full path of a bundled rule document."""
        return cls.PATTERNS_DIR / filename

    @classmethod
    def get_default_pattern_path(cls) -> Path:
        return cls.get_pattern_file_path(cls.DEFAULT_PATTERN_FILE)

    @classmethod
    def get_default_extension_path(cls) -> Path:
        return cls.get_pattern_file_path(cls.DEFAULT_EXTENSION_FILE)
