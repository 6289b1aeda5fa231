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
Content rules: regex detectors compiled from a content-rule document.

Usage
-----
    from unitypackage_scanner.core.rules.content_rules import load_content_rules

    # Bundled defaults, every rule
    rules = load_content_rules()

    # A named preset from a custom document
    rules = load_content_rules("my-patterns.yaml", preset="strict")

Compilation is lenient: a rule with an invalid regex is dropped with a
warning and the rest of the document still loads.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import Any

import yaml

from ...config.constants import ScannerConstants
from ..exceptions import PresetNotFoundError, RuleSourceInvalidError
from ..models import ContentPreset, ContentRule, ScanCategory, Severity
from .documents import CONTENT_DOCUMENT, RuleSource, load_rule_document

logger = logging.getLogger(__name__)

# JavaScript-style flag letters used by rule documents
_FLAG_MAP = {"i": re.IGNORECASE, "m": re.MULTILINE, "s": re.DOTALL}
# g: every match is reported anyway; u: str patterns are unicode; y: no equivalent
_IGNORED_FLAGS = frozenset("guy")


def parse_regex_flags(flags: str | None) -> tuple[int, list[str]]:
    """
    Translate a flag string such as ``"gi"`` into ``re`` flags.

    Returns:
        Tuple of (re flags, unknown flag letters)
    """
    value = 0
    unknown: list[str] = []
    for letter in flags or "":
        if letter in _FLAG_MAP:
            value |= _FLAG_MAP[letter]
        elif letter not in _IGNORED_FLAGS:
            unknown.append(letter)
    return value, unknown


def _flags_to_string(value: int) -> str:
    return "".join(letter for letter, flag in _FLAG_MAP.items() if value & flag)


@dataclass(frozen=True)
class ContentRuleSet:
    """An immutable, compiled set of content rules."""

    name: str
    description: str = ""
    version: str = ""
    rules: tuple[ContentRule, ...] = ()
    presets: Mapping[str, ContentPreset] = field(default_factory=lambda: MappingProxyType({}))
    active_preset: str | None = None
    warnings: tuple[str, ...] = ()
    origin: str = "<mapping>"

    def __len__(self) -> int:
        return len(self.rules)

    def __iter__(self) -> Iterator[ContentRule]:
        return iter(self.rules)

    @property
    def line_rules(self) -> tuple[ContentRule, ...]:
        """Rules applied to script lines."""
        return tuple(rule for rule in self.rules if not rule.match_path)

    @property
    def path_rules(self) -> tuple[ContentRule, ...]:
        """Rules applied to logical file paths."""
        return tuple(rule for rule in self.rules if rule.match_path)

    def rule_names(self) -> list[str]:
        return [rule.name for rule in self.rules]

    def get_rule(self, name: str) -> ContentRule | None:
        for rule in self.rules:
            if rule.name == name:
                return rule
        return None

    def preset_names(self) -> list[str]:
        return sorted(self.presets)

    def info(self) -> dict[str, Any]:
        """Name, description and version of the source document."""
        return {
            "name": self.name,
            "description": self.description,
            "version": self.version,
            "ruleCount": len(self.rules),
            "preset": self.active_preset,
        }

    def to_document(self) -> dict[str, Any]:
        """
        Serialize the active rules back into a content-rule document.

        Loading the result yields the same rule names, severities and
        patterns.  Presets of the source document are carried over when all
        of their categories survive.
        """
        categories: dict[str, dict[str, Any]] = {}
        for rule in self.rules:
            if rule.match_path:
                categories[rule.source_category] = {
                    "severity": rule.severity.value,
                    "description": rule.description,
                    "fileExtension": rule.file_extension,
                }
                continue
            category = categories.setdefault(
                rule.source_category,
                {"severity": rule.severity.value, "description": "", "patterns": []},
            )
            category["patterns"].append(
                {
                    "name": rule.name,
                    "description": rule.description,
                    "regex": rule.pattern.pattern,
                    "flags": _flags_to_string(rule.pattern.flags),
                    "severity": rule.severity.value,
                }
            )

        presets: dict[str, dict[str, Any]] = {}
        for preset in self.presets.values():
            enabled = [name for name in preset.enabled_categories if name in categories]
            presets[preset.name] = {
                "description": preset.description,
                "enabledCategories": enabled,
                "excludePatterns": list(preset.exclude_patterns),
            }

        document: dict[str, Any] = {
            "version": self.version,
            "name": self.name,
            "description": self.description,
            "categories": categories,
        }
        if presets:
            document["presets"] = presets
        return document

    def to_yaml(self, path: str | Path) -> None:
        """Dump the active rules to a YAML rule document."""
        with open(path, "w", encoding="utf-8") as fh:
            yaml.safe_dump(self.to_document(), fh, default_flow_style=False, sort_keys=False, width=120)


def _parse_severity(value: Any) -> Severity | None:
    if value is None:
        return None
    try:
        return Severity(str(value).lower())
    except ValueError:
        return None


def _parse_presets(raw: Any, origin: str) -> dict[str, ContentPreset]:
    presets: dict[str, ContentPreset] = {}
    for key, body in (raw or {}).items():
        if not isinstance(body, Mapping):
            raise RuleSourceInvalidError(f"Rule document {origin}: preset '{key}' must be a mapping")
        presets[str(key)] = ContentPreset(
            name=str(key),
            enabled_categories=tuple(str(c) for c in body.get("enabledCategories") or []),
            exclude_patterns=tuple(str(p) for p in body.get("excludePatterns") or []),
            description=str(body.get("description", "")),
        )
    return presets


def iter_compiled_rules(
    categories: Mapping[str, Any],
) -> Iterator[tuple[ContentRule | None, str | None]]:
    """
    Compile every rule of a category table.

    Yields ``(rule, None)`` for each compiled rule, ``(None, warning)`` for a
    rule that had to be dropped, and ``(rule, warning)`` for a rule that
    compiled with a caveat (ignored flags).
    """
    for category_name, category in categories.items():
        category_name = str(category_name)
        if not isinstance(category, Mapping):
            yield None, f"Category '{category_name}' is not a mapping; skipped"
            continue

        scan_category = ScanCategory.parse(category_name)
        category_severity = _parse_severity(category.get("severity"))
        category_description = str(category.get("description", ""))

        file_extension = category.get("fileExtension")
        if file_extension:
            if category_severity is None:
                yield None, f"Category '{category_name}' has invalid severity '{category.get('severity')}'; skipped"
                continue
            extension = str(file_extension).lstrip(".").lower()
            yield (
                ContentRule(
                    name=f"{category_name.upper()} File",
                    category=scan_category,
                    severity=category_severity,
                    pattern=re.compile(rf"\.{re.escape(extension)}$", re.IGNORECASE),
                    description=category_description,
                    source_category=category_name,
                    file_extension=extension,
                ),
                None,
            )
            continue

        for pattern_def in category.get("patterns") or []:
            if not isinstance(pattern_def, Mapping) or not pattern_def.get("name") or "regex" not in pattern_def:
                yield None, f"Malformed pattern entry in category '{category_name}'; skipped"
                continue

            name = str(pattern_def["name"])
            severity = _parse_severity(pattern_def.get("severity")) or category_severity
            if severity is None:
                yield None, f"Pattern '{name}' has no valid severity; skipped"
                continue

            flags, unknown = parse_regex_flags(pattern_def.get("flags"))
            try:
                compiled = re.compile(str(pattern_def["regex"]), flags)
            except re.error as e:
                yield None, f"Failed to compile pattern '{name}': {e}"
                continue

            rule = ContentRule(
                name=name,
                category=scan_category,
                severity=severity,
                pattern=compiled,
                description=str(pattern_def.get("description", category_description)),
                source_category=category_name,
            )
            warning = f"Pattern '{name}' has unsupported flags: {''.join(unknown)}" if unknown else None
            yield rule, warning


def _select_categories(
    categories: Mapping[str, Any], preset: ContentPreset | None
) -> tuple[dict[str, Any], frozenset[str]]:
    """Restrict a category table to a preset; returns (categories, excluded rule names)."""
    if preset is None:
        return dict(categories), frozenset()

    enabled = set(preset.enabled_categories)
    for name in enabled - set(categories):
        logger.debug("Preset '%s' references unknown category '%s'", preset.name, name)

    selected = {name: body for name, body in categories.items() if name in enabled}
    return selected, frozenset(preset.exclude_patterns)


def load_content_rules(source: RuleSource | None = None, preset: str | None = None) -> ContentRuleSet:
    """
    Load and compile content rules.

    Args:
        source: Rule document (path, bundled file name or mapping).  Defaults
            to the bundled ``default-patterns.yaml``.
        preset: Optional preset name restricting the enabled rules

    Returns:
        ContentRuleSet with the enabled rules in declaration order

    Raises:
        RuleSourceInvalidError: If the document is missing or malformed
        PresetNotFoundError: If *preset* is not defined in the document
    """
    if source is None:
        source = ScannerConstants.get_default_pattern_path()

    document, origin = load_rule_document(source, CONTENT_DOCUMENT)
    presets = _parse_presets(document.get("presets"), origin)

    active: ContentPreset | None = None
    if preset is not None:
        if preset not in presets:
            available = ", ".join(sorted(presets)) or "none"
            raise PresetNotFoundError(f"Preset '{preset}' not found in {origin}. Available: {available}")
        active = presets[preset]

    categories, excluded = _select_categories(document["categories"], active)

    rules: list[ContentRule] = []
    warnings: list[str] = []
    seen: set[str] = set()
    for rule, warning in iter_compiled_rules(categories):
        if warning:
            logger.warning("%s: %s", origin, warning)
            warnings.append(warning)
        if rule is None or rule.name in excluded:
            continue
        if rule.name in seen:
            message = f"Duplicate rule name '{rule.name}'; keeping the first definition"
            logger.warning("%s: %s", origin, message)
            warnings.append(message)
            continue
        seen.add(rule.name)
        rules.append(rule)

    logger.debug("Loaded %d content rules from %s (preset=%s)", len(rules), origin, preset)
    return ContentRuleSet(
        name=str(document["name"]),
        description=str(document.get("description", "")),
        version=str(document["version"]),
        rules=tuple(rules),
        presets=MappingProxyType(presets),
        active_preset=preset,
        warnings=tuple(warnings),
        origin=origin,
    )
