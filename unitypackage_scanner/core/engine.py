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
Pattern engine: applies extension and content rules to resolved files.

Findings are produced in a stable order: all extension findings in file
order, then content findings ordered by file, line and rule declaration.
Ids are left empty here and assigned by the aggregator.
"""

import logging
import threading
from collections.abc import Callable, Iterable, Sequence
from concurrent.futures import ThreadPoolExecutor
from typing import TypeVar

from .aggregator import merge
from .exceptions import ScanCancelledError
from .models import ExtractedFile, FileType, Finding
from .rules.content_rules import ContentRuleSet
from .rules.extension_rules import ExtensionRuleSet

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Case-insensitive substrings flagged in scripts picked up by extension rules
SUSPICIOUS_KEYWORDS = (
    "delete",
    "remove",
    "format",
    "registry",
    "regedit",
    "powershell",
    "cmd",
    "eval",
    "exec",
    "system",
    "download",
    "wget",
    "curl",
    "invoke-webrequest",
    "del",
)

COMMENT_PREFIXES = ("//", "/*", "*")

PREVIEW_LINES = 5


def is_comment_line(line: str) -> bool:
    """True for a line that is entirely a C#-style comment."""
    return line.strip().startswith(COMMENT_PREFIXES)


def find_suspicious_keywords(content: str) -> list[str]:
    lowered = content.lower()
    return [keyword for keyword in SUSPICIOUS_KEYWORDS if keyword in lowered]


class PatternEngine:
    """
    Runs rule sets over a list of extracted files.

    The engine holds no per-scan state, so one instance can serve many
    scans.  With ``max_workers > 1`` files are scanned on a thread pool;
    results keep the sequential order.
    """

    def __init__(self, max_workers: int = 1):
        self.max_workers = max(1, int(max_workers))

    def scan(
        self,
        files: Sequence[ExtractedFile],
        content_rules: ContentRuleSet,
        extension_rules: ExtensionRuleSet,
        cancel_event: threading.Event | None = None,
    ) -> list[Finding]:
        """
        Run extension rules, then content rules.

        Returns:
            Findings with sequential ids "1".."n"

        Raises:
            ScanCancelledError: If cancel_event is set between files
        """
        extension_findings = self.scan_extensions(files, extension_rules, cancel_event)
        content_findings = self.scan_content(files, content_rules, cancel_event)
        logger.debug(
            "Scan produced %d extension and %d content findings",
            len(extension_findings),
            len(content_findings),
        )
        return merge(extension_findings, content_findings)

    def scan_extensions(
        self,
        files: Sequence[ExtractedFile],
        extension_rules: ExtensionRuleSet,
        cancel_event: threading.Event | None = None,
    ) -> list[Finding]:
        """Apply extension rules; at most one finding per file."""

        def scan_file(extracted: ExtractedFile) -> list[Finding]:
            finding = self._check_extension(extracted, extension_rules)
            return [finding] if finding else []

        return self._map_files(scan_file, files, cancel_event)

    def scan_content(
        self,
        files: Sequence[ExtractedFile],
        content_rules: ContentRuleSet,
        cancel_event: threading.Event | None = None,
    ) -> list[Finding]:
        """Apply path rules to every file and line rules to script content."""
        path_rules = content_rules.path_rules
        line_rules = content_rules.line_rules

        def scan_file(extracted: ExtractedFile) -> list[Finding]:
            findings: list[Finding] = []
            for rule in path_rules:
                if rule.pattern.search(extracted.path):
                    findings.append(
                        Finding(
                            id="",
                            severity=rule.severity,
                            category=rule.category,
                            rule_name=rule.name,
                            file_path=extracted.path,
                            line_number=0,
                            context=extracted.path,
                            description=rule.description,
                        )
                    )

            if extracted.file_type != FileType.SCRIPT or not extracted.content:
                return findings

            for line_number, line in enumerate(extracted.content.split("\n"), start=1):
                if is_comment_line(line):
                    continue
                context = line.strip()
                for rule in line_rules:
                    for _ in rule.pattern.finditer(line):
                        findings.append(
                            Finding(
                                id="",
                                severity=rule.severity,
                                category=rule.category,
                                rule_name=rule.name,
                                file_path=extracted.path,
                                line_number=line_number,
                                context=context,
                                description=rule.description,
                            )
                        )
            return findings

        return self._map_files(scan_file, files, cancel_event)

    def _check_extension(self, extracted: ExtractedFile, extension_rules: ExtensionRuleSet) -> Finding | None:
        ext = extracted.extension
        if not ext or not extension_rules.is_enabled(ext):
            return None

        rule = extension_rules.rules[ext]
        if rule.requires_content_scan and extracted.content is not None:
            context = self._script_summary(ext, extracted.content)
        else:
            label = rule.metadata.human_file_type or rule.rule_name
            context = f"{label}: {extracted.path}"

        return Finding(
            id="",
            severity=rule.severity,
            category=rule.category,
            rule_name=rule.rule_name,
            file_path=extracted.path,
            line_number=0,
            context=context,
            description=rule.description,
            file_type_label=rule.metadata.human_file_type or None,
            risk_level=rule.risk_level,
            platforms=rule.metadata.platforms,
        )

    @staticmethod
    def _script_summary(ext: str, content: str) -> str:
        lines = content.split("\n")
        summary = f"{ext.upper()} script ({len(lines)} lines)"
        keywords = find_suspicious_keywords(content)
        if keywords:
            summary += f" [suspicious keywords: {', '.join(keywords)}]"
        preview = "\n".join(lines[:PREVIEW_LINES])
        return f"{summary}\n{preview}"

    def _map_files(
        self,
        scan_file: Callable[[ExtractedFile], list[T]],
        files: Iterable[ExtractedFile],
        cancel_event: threading.Event | None,
    ) -> list[T]:
        def run(extracted: ExtractedFile) -> list[T]:
            if cancel_event is not None and cancel_event.is_set():
                raise ScanCancelledError("Scan cancelled")
            return scan_file(extracted)

        results: list[T] = []
        if self.max_workers == 1:
            for extracted in files:
                results.extend(run(extracted))
            return results

        with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
            for file_results in executor.map(run, files):
                results.extend(file_results)
        return results
