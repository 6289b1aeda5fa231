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
Extension rules: detectors keyed on the suffix of a logical file path.
"""

from __future__ import annotations

import dataclasses
import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any

from ...config.constants import ScannerConstants
from ..exceptions import PresetNotFoundError, RuleSourceInvalidError
from ..models import ExtensionMetadata, ExtensionPreset, ExtensionRule, RiskLevel, ScanCategory, Severity
from .documents import EXTENSION_DOCUMENT, RuleSource, load_rule_document

logger = logging.getLogger(__name__)


def normalize_extension(extension: str) -> str:
    """Lower-case an extension and strip a leading dot."""
    return str(extension).strip().lstrip(".").lower()


@dataclass(frozen=True)
class ExtensionRuleSet:
    """An immutable set of extension rules plus the currently enabled subset."""

    name: str
    description: str = ""
    version: str = ""
    rules: Mapping[str, ExtensionRule] = field(default_factory=lambda: MappingProxyType({}))
    enabled_extensions: frozenset[str] = frozenset()
    presets: Mapping[str, ExtensionPreset] = field(default_factory=lambda: MappingProxyType({}))
    categories: Mapping[str, Mapping[str, Any]] = field(default_factory=lambda: MappingProxyType({}))
    active_preset: str | None = None
    warnings: tuple[str, ...] = ()
    origin: str = "<mapping>"

    def __len__(self) -> int:
        return len(self.rules)

    def get_rule(self, extension: str) -> ExtensionRule | None:
        return self.rules.get(normalize_extension(extension))

    def is_enabled(self, extension: str) -> bool:
        """True when *extension* is declared and enabled."""
        ext = normalize_extension(extension)
        return ext in self.enabled_extensions and ext in self.rules

    def enabled_rules(self) -> list[ExtensionRule]:
        return [rule for ext, rule in self.rules.items() if ext in self.enabled_extensions]

    def rule_names(self) -> list[str]:
        return [rule.rule_name for rule in self.enabled_rules()]

    def preset_names(self) -> list[str]:
        return sorted(self.presets)

    def with_extension_enabled(self, extension: str, enabled: bool = True) -> ExtensionRuleSet:
        """Return a copy with one extension switched on or off."""
        ext = normalize_extension(extension)
        if enabled:
            extensions = self.enabled_extensions | {ext}
        else:
            extensions = self.enabled_extensions - {ext}
        return dataclasses.replace(self, enabled_extensions=frozenset(extensions))

    def info(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "version": self.version,
            "ruleCount": len(self.rules),
            "enabledCount": len(self.enabled_rules()),
            "preset": self.active_preset,
        }


def _as_string_tuple(value: Any) -> tuple[str, ...]:
    if value is None:
        return ()
    if isinstance(value, str):
        return (value,)
    return tuple(dict.fromkeys(str(v) for v in value))


def _parse_rule(extension: str, body: Any) -> ExtensionRule:
    """Build one ExtensionRule; raises ValueError when a field is invalid."""
    if not isinstance(body, Mapping):
        raise ValueError("entry must be a mapping")

    severity = Severity(str(body.get("severity", "")).lower())
    risk_level = RiskLevel(str(body.get("riskLevel", RiskLevel.LOW.value)).lower())
    category = ScanCategory.parse(str(body.get("category", ScanCategory.OTHER.value)))

    raw_metadata = body.get("metadata") or {}
    if not isinstance(raw_metadata, Mapping):
        raise ValueError("metadata must be a mapping")
    metadata = ExtensionMetadata(
        human_file_type=str(raw_metadata.get("fileType", "")),
        platforms=_as_string_tuple(raw_metadata.get("platform")),
        common_uses=_as_string_tuple(raw_metadata.get("commonUses")),
    )

    return ExtensionRule(
        extension=extension,
        category=category,
        severity=severity,
        risk_level=risk_level,
        description=str(body.get("description", "")),
        requires_content_scan=bool(body.get("checkContent", False)),
        metadata=metadata,
    )


def _parse_presets(raw: Any, origin: str) -> dict[str, ExtensionPreset]:
    presets: dict[str, ExtensionPreset] = {}
    for key, body in (raw or {}).items():
        if not isinstance(body, Mapping):
            raise RuleSourceInvalidError(f"Rule document {origin}: preset '{key}' must be a mapping")
        presets[str(key)] = ExtensionPreset(
            name=str(key),
            enabled_extensions=tuple(normalize_extension(e) for e in body.get("enabledExtensions") or []),
            description=str(body.get("description", "")),
        )
    return presets


def load_extension_rules(source: RuleSource | None = None, preset: str | None = None) -> ExtensionRuleSet:
    """
    Load extension rules.

    Without a preset every declared extension is enabled; a preset replaces
    the enabled set with its ``enabledExtensions``.

    Raises:
        RuleSourceInvalidError: If the document is missing or malformed
        PresetNotFoundError: If *preset* is not defined in the document
    """
    if source is None:
        source = ScannerConstants.get_default_extension_path()

    document, origin = load_rule_document(source, EXTENSION_DOCUMENT)
    presets = _parse_presets(document.get("presets"), origin)

    rules: dict[str, ExtensionRule] = {}
    warnings: list[str] = []
    for raw_ext, body in document["extensions"].items():
        ext = normalize_extension(raw_ext)
        try:
            rules[ext] = _parse_rule(ext, body)
        except ValueError as e:
            message = f"Invalid extension rule '{raw_ext}': {e}"
            logger.warning("%s: %s", origin, message)
            warnings.append(message)

    if preset is None:
        enabled = frozenset(rules)
    elif preset in presets:
        enabled = frozenset(presets[preset].enabled_extensions)
        for ext in enabled - set(rules):
            logger.debug("Preset '%s' enables undeclared extension '%s'", preset, ext)
    else:
        available = ", ".join(sorted(presets)) or "none"
        raise PresetNotFoundError(f"Preset '{preset}' not found in {origin}. Available: {available}")

    categories = document.get("categories") or {}
    if not isinstance(categories, Mapping):
        raise RuleSourceInvalidError(f"Rule document {origin}: 'categories' must be a mapping")

    logger.debug("Loaded %d extension rules from %s (%d enabled)", len(rules), origin, len(enabled))
    return ExtensionRuleSet(
        name=str(document["name"]),
        description=str(document.get("description", "")),
        version=str(document["version"]),
        rules=MappingProxyType(rules),
        enabled_extensions=enabled,
        presets=MappingProxyType(presets),
        categories=MappingProxyType({str(k): v for k, v in categories.items()}),
        active_preset=preset,
        warnings=tuple(warnings),
        origin=origin,
    )
