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
Data models for Unity packages, detection rules and scan findings.
"""

from __future__ import annotations

import logging
import re
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import PurePosixPath
from typing import Any

logger = logging.getLogger(__name__)


class Severity(str, Enum):
    """Severity levels for findings."""

    CRITICAL = "critical"
    WARNING = "warning"
    INFO = "info"


class RiskLevel(str, Enum):
    """Risk level attached to an extension rule."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class FileType(str, Enum):
    """Classification of an asset by its original file extension."""

    SCRIPT = "script"
    NATIVE_LIBRARY = "nativeLibrary"
    ASSET = "asset"
    TEXTURE = "texture"
    MODEL = "model"
    AUDIO = "audio"
    METADATA = "metadata"
    OTHER = "other"


class ScanCategory(str, Enum):
    """Known detection categories.

    Values are the category keys used in rule documents.  ``OTHER`` is the
    fallback for category names that are not part of this set.
    """

    NETWORK = "network"
    FILE_SYSTEM = "fileSystem"
    PROCESS = "process"
    NATIVE = "native"
    REFLECTION = "reflection"
    REGISTRY = "registry"
    DLL = "dll"
    EXECUTABLE = "executable"
    SCRIPT = "script"
    ARCHIVE = "archive"
    OTHER = "other"

    @classmethod
    def parse(cls, name: str) -> ScanCategory:
        """Map a document category name to the enum, falling back to OTHER."""
        try:
            return cls(name)
        except ValueError:
            logger.warning("Unknown category '%s'; treating it as '%s'", name, cls.OTHER.value)
            return cls.OTHER


class ScanStage(str, Enum):
    """Stages reported on the progress channel."""

    EXTRACTING = "extracting"
    ANALYZING = "analyzing"
    SCANNING = "scanning"
    COMPLETED = "completed"


@dataclass(frozen=True)
class ExtractedFile:
    """A logical file recovered from a package."""

    path: str  # Original path inside the Unity project (or a GUID placeholder)
    file_type: FileType
    size_bytes: int = 0
    content: str | None = None  # Only populated for small scripts
    asset_id: str | None = None

    @property
    def extension(self) -> str | None:
        """Lower-cased extension without the leading dot, or None."""
        suffix = PurePosixPath(self.path).suffix.lower()
        return suffix[1:] if suffix else None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "path": self.path,
            "type": self.file_type.value,
            "size": self.size_bytes,
        }
        if self.content is not None:
            data["content"] = self.content
        if self.asset_id is not None:
            data["guid"] = self.asset_id
        return data


@dataclass(frozen=True)
class ContentRule:
    """A compiled regex detector applied to script text."""

    name: str
    category: ScanCategory
    severity: Severity
    pattern: re.Pattern[str]
    description: str
    source_category: str = ""
    # Set for rules built from a ``fileExtension`` category
    file_extension: str | None = None

    @property
    def match_path(self) -> bool:
        """Path rules test the logical file path instead of script content."""
        return self.file_extension is not None


@dataclass(frozen=True)
class ExtensionMetadata:
    """Descriptive metadata for an extension rule."""

    human_file_type: str = ""
    platforms: tuple[str, ...] = ()  # Declared order
    common_uses: tuple[str, ...] = ()


@dataclass(frozen=True)
class ExtensionRule:
    """A detector keyed on the file name suffix."""

    extension: str
    category: ScanCategory
    severity: Severity
    risk_level: RiskLevel
    description: str = ""
    requires_content_scan: bool = False
    metadata: ExtensionMetadata = field(default_factory=ExtensionMetadata)

    @property
    def rule_name(self) -> str:
        return f"{self.extension.upper()} File"


@dataclass(frozen=True)
class ContentPreset:
    """Named selection of content-rule categories."""

    name: str
    enabled_categories: tuple[str, ...] = ()
    exclude_patterns: tuple[str, ...] = ()
    description: str = ""


@dataclass(frozen=True)
class ExtensionPreset:
    """Named selection of enabled extensions."""

    name: str
    enabled_extensions: tuple[str, ...] = ()
    description: str = ""


@dataclass(frozen=True)
class Finding:
    """One detection event: a rule match on a file line, or an extension hit."""

    id: str
    severity: Severity
    category: ScanCategory
    rule_name: str
    file_path: str
    line_number: int = 0
    context: str = ""
    description: str = ""
    # Extension findings only
    file_type_label: str | None = None
    risk_level: RiskLevel | None = None
    platforms: tuple[str, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        """Convert finding to dictionary."""
        data: dict[str, Any] = {
            "id": self.id,
            "severity": self.severity.value,
            "category": self.category.value,
            "pattern": self.rule_name,
            "filePath": self.file_path,
            "lineNumber": self.line_number,
            "context": self.context,
            "description": self.description,
        }
        if self.file_type_label is not None:
            data["fileType"] = self.file_type_label
        if self.risk_level is not None:
            data["riskLevel"] = self.risk_level.value
            data["platform"] = list(self.platforms)
        return data


@dataclass(frozen=True)
class ScanSummary:
    """Finding counts per severity."""

    critical: int = 0
    warning: int = 0
    info: int = 0
    total: int = 0

    def to_dict(self) -> dict[str, int]:
        return {
            "critical": self.critical,
            "warning": self.warning,
            "info": self.info,
            "total": self.total,
        }


@dataclass
class PackageInfo:
    """File inventory of a scanned package."""

    file_name: str
    file_size: int
    extracted_files: list[ExtractedFile] = field(default_factory=list)

    @property
    def file_count(self) -> int:
        return len(self.extracted_files)

    @property
    def script_count(self) -> int:
        return sum(1 for f in self.extracted_files if f.file_type == FileType.SCRIPT)

    @property
    def native_library_count(self) -> int:
        return sum(1 for f in self.extracted_files if f.file_type == FileType.NATIVE_LIBRARY)

    @property
    def asset_count(self) -> int:
        return sum(1 for f in self.extracted_files if f.file_type == FileType.ASSET)

    def counts_by_type(self) -> dict[str, int]:
        """Number of files for every file type, including zero counts."""
        counts = {file_type.value: 0 for file_type in FileType}
        for extracted in self.extracted_files:
            counts[extracted.file_type.value] += 1
        return counts

    def to_dict(self) -> dict[str, Any]:
        return {
            "fileName": self.file_name,
            "fileSize": self.file_size,
            "fileCount": self.file_count,
            "scriptCount": self.script_count,
            "nativeLibraryCount": self.native_library_count,
            "assetCount": self.asset_count,
            "extractedFiles": [f.to_dict() for f in self.extracted_files],
        }


@dataclass
class ScanResult:
    """Results from scanning a single package."""

    file_path: str
    findings: list[Finding] = field(default_factory=list)
    summary: ScanSummary = field(default_factory=ScanSummary)
    package_info: PackageInfo | None = None
    status: str = "completed"
    id: str = field(default_factory=lambda: uuid.uuid4().hex)
    scan_date: datetime = field(default_factory=datetime.now)
    scan_duration_seconds: float = 0.0

    @property
    def is_safe(self) -> bool:
        """Check if the package produced no critical findings."""
        return not any(f.severity == Severity.CRITICAL for f in self.findings)

    @property
    def max_severity(self) -> Severity | None:
        """Get the highest severity level found, or None without findings."""
        for severity in (Severity.CRITICAL, Severity.WARNING, Severity.INFO):
            if any(f.severity == severity for f in self.findings):
                return severity
        return None

    def get_findings_by_severity(self, severity: Severity) -> list[Finding]:
        """Get all findings of a specific severity."""
        return [f for f in self.findings if f.severity == severity]

    def get_findings_by_category(self, category: ScanCategory) -> list[Finding]:
        """Get all findings of a specific category."""
        return [f for f in self.findings if f.category == category]

    def to_dict(self) -> dict[str, Any]:
        """Convert scan result to the dictionary consumed by presentation layers."""
        data: dict[str, Any] = {
            "id": self.id,
            "filePath": self.file_path,
            "scanDate": self.scan_date.isoformat(),
            "status": self.status,
            "findings": [f.to_dict() for f in self.findings],
            "summary": self.summary.to_dict(),
            "scanDurationSeconds": self.scan_duration_seconds,
        }
        if self.package_info is not None:
            data["packageInfo"] = self.package_info.to_dict()
        return data


@dataclass(frozen=True)
class ProgressEvent:
    """A progress notification emitted while a package is processed."""

    stage: ScanStage
    progress: int
    current_file: str | None = None
    message: str | None = None

    def __post_init__(self):
        """Clamp progress into 0..100."""
        object.__setattr__(self, "progress", max(0, min(100, int(self.progress))))

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"stage": self.stage.value, "progress": self.progress}
        if self.current_file is not None:
            data["currentFile"] = self.current_file
        if self.message is not None:
            data["message"] = self.message
        return data
