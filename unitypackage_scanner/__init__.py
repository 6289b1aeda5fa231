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
UnityPackage Scanner - Security scanner for Unity asset packages.
"""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("unitypackage-scanner")
except PackageNotFoundError:
    __version__ = "0.0.0+unknown"

__author__ = "Cisco Systems, Inc."


def __getattr__(name: str):
    """Lazy-load public API symbols on first access.

    Keeps ``python -m unitypackage_scanner.cli.cli`` from importing the whole
    engine before argument parsing.
    """
    _lazy_map = {
        "Config": (".config.config", "Config"),
        "ScannerConstants": (".config.constants", "ScannerConstants"),
        "ArchiveExtractor": (".core.extractors.archive_extractor", "ArchiveExtractor"),
        "AssetResolver": (".core.resolver", "AssetResolver"),
        "load_content_rules": (".core.rules.content_rules", "load_content_rules"),
        "load_extension_rules": (".core.rules.extension_rules", "load_extension_rules"),
        "PatternEngine": (".core.engine", "PatternEngine"),
        "aggregate": (".core.aggregator", "aggregate"),
        "ExtractedFile": (".core.models", "ExtractedFile"),
        "Finding": (".core.models", "Finding"),
        "ScanResult": (".core.models", "ScanResult"),
        "ScanSummary": (".core.models", "ScanSummary"),
        "Severity": (".core.models", "Severity"),
        "ScanCategory": (".core.models", "ScanCategory"),
        "ProgressEvent": (".core.models", "ProgressEvent"),
        "QueueProgressSink": (".core.progress", "QueueProgressSink"),
        "PackageScanner": (".core.scanner", "PackageScanner"),
        "scan_package": (".core.scanner", "scan_package"),
    }
    if name in _lazy_map:
        module_path, attr = _lazy_map[name]
        import importlib

        mod = importlib.import_module(module_path, __package__)
        val = getattr(mod, attr)
        # Cache on the module so __getattr__ is only called once per symbol
        globals()[name] = val
        return val
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


__all__ = [
    "PackageScanner",
    "scan_package",
    "ArchiveExtractor",
    "AssetResolver",
    "load_content_rules",
    "load_extension_rules",
    "PatternEngine",
    "aggregate",
    "ExtractedFile",
    "Finding",
    "ScanResult",
    "ScanSummary",
    "Severity",
    "ScanCategory",
    "ProgressEvent",
    "QueueProgressSink",
    "Config",
    "ScannerConstants",
]
