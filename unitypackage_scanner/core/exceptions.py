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

"""UnityPackage Scanner exceptions.

This module defines custom exceptions for scanner operations.
All exceptions inherit from UnityPackageScannerError for easy catching.

Example:
    >>> from unitypackage_scanner.core.scanner import PackageScanner
    >>> from unitypackage_scanner.core.exceptions import ArchiveNotFoundError
    >>>
    >>> scanner = PackageScanner()
    >>>
    >>> try:
    ...     result = scanner.scan_package("path/to/asset.unitypackage")
    ... except ArchiveNotFoundError as e:
    ...     print(f"No such package: {e}")
    ... except RuleConfigurationError as e:
    ...     print(f"Bad rule configuration: {e}")
"""


class UnityPackageScannerError(Exception):
    """Base exception for all scanner errors."""

    pass


class PackageExtractionError(UnityPackageScannerError):
    """Raised when a package cannot be unpacked."""

    pass


class ArchiveNotFoundError(PackageExtractionError):
    """Raised when the package path does not resolve to a readable file."""

    pass


class ArchiveCorruptError(PackageExtractionError):
    """Raised when the package stream cannot be decompressed or read.

    This can indicate:
    - A file that is not gzip/tar at all
    - A truncated download
    - A member that failed to extract in strict mode
    """

    pass


class PackageTooLargeError(PackageExtractionError):
    """Raised when the package exceeds the configured maximum file size."""

    pass


class RuleConfigurationError(UnityPackageScannerError):
    """Base class for rule document and preset errors."""

    pass


class RuleSourceInvalidError(RuleConfigurationError):
    """Raised when a rule document is missing, unreadable or malformed.

    This indicates:
    - File not found or not readable
    - Invalid YAML/JSON
    - Missing required top-level fields (version, name, categories/extensions)
    """

    pass


class PresetNotFoundError(RuleConfigurationError):
    """Raised when a preset name is not defined in the rule document."""

    pass


class ScanCancelledError(UnityPackageScannerError):
    """Raised when a scan is cancelled between files."""

    pass
