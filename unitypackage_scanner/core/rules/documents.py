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
Loading and validation of rule documents.

Both content-rule and extension-rule documents are YAML mappings (JSON files
load too, since JSON is a subset of YAML).  A source may be a path, a bare
file name resolved against the bundled ``data/patterns`` directory, or an
already-parsed mapping.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from pathlib import Path
from typing import Any, Union

import yaml

from ...data import PATTERNS_DIR
from ..exceptions import RuleSourceInvalidError

logger = logging.getLogger(__name__)

RuleSource = Union[str, Path, Mapping[str, Any]]

CONTENT_DOCUMENT = "content"
EXTENSION_DOCUMENT = "extension"

_REQUIRED_FIELDS = {
    CONTENT_DOCUMENT: ("version", "name", "categories"),
    EXTENSION_DOCUMENT: ("version", "name", "extensions"),
}

_DOCUMENT_SUFFIXES = (".yaml", ".yml", ".json")


def resolve_source_path(source: str | Path) -> Path:
    """Resolve a bare file name against the bundled patterns directory."""
    path = Path(source)
    if not path.is_absolute() and len(path.parts) == 1 and not path.exists():
        return PATTERNS_DIR / path
    return path


def load_rule_document(source: RuleSource, kind: str) -> tuple[dict[str, Any], str]:
    """
    Read and validate a rule document.

    Args:
        source: Path, bundled file name, or parsed mapping
        kind: ``"content"`` or ``"extension"``

    Returns:
        Tuple of (document, origin label used in log messages)

    Raises:
        RuleSourceInvalidError: If the source cannot be read or is malformed
    """
    if isinstance(source, Mapping):
        data: Any = dict(source)
        origin = "<mapping>"
    else:
        path = resolve_source_path(source)
        origin = str(path)
        try:
            with open(path, encoding="utf-8") as fh:
                data = yaml.safe_load(fh)
        except OSError as e:
            raise RuleSourceInvalidError(f"Failed to read rule document {path}: {e}") from e
        except yaml.YAMLError as e:
            raise RuleSourceInvalidError(f"Failed to parse rule document {path}: {e}") from e

    validate_rule_document(data, kind, origin)
    return data, origin


def validate_rule_document(data: Any, kind: str, origin: str = "<mapping>") -> None:
    """Check the top-level shape of a rule document."""
    if kind not in _REQUIRED_FIELDS:
        raise ValueError(f"Unknown rule document kind: {kind}")

    if not isinstance(data, Mapping):
        raise RuleSourceInvalidError(f"Rule document {origin} must be a mapping")

    missing = [name for name in _REQUIRED_FIELDS[kind] if not data.get(name)]
    if missing:
        raise RuleSourceInvalidError(f"Rule document {origin} missing required field(s): {', '.join(missing)}")

    table_key = "categories" if kind == CONTENT_DOCUMENT else "extensions"
    # Extension documents carry a descriptive `categories` table as well
    if kind == CONTENT_DOCUMENT and "extensions" in data:
        raise RuleSourceInvalidError(f"Rule document {origin} is an extension-rule document")
    if not isinstance(data[table_key], Mapping):
        raise RuleSourceInvalidError(f"Rule document {origin}: '{table_key}' must be a mapping")

    presets = data.get("presets")
    if presets is not None and not isinstance(presets, Mapping):
        raise RuleSourceInvalidError(f"Rule document {origin}: 'presets' must be a mapping")


def find_rule_documents(directory: str | Path | None = None, kind: str = CONTENT_DOCUMENT) -> list[Path]:
    """
    List valid rule documents of one kind in *directory*.

    Invalid or unreadable files are skipped.  Defaults to the bundled
    patterns directory.
    """
    search_dir = Path(directory) if directory is not None else PATTERNS_DIR
    if not search_dir.is_dir():
        return []

    found: list[Path] = []
    for candidate in sorted(search_dir.iterdir()):
        if candidate.suffix.lower() not in _DOCUMENT_SUFFIXES or not candidate.is_file():
            continue
        try:
            load_rule_document(candidate, kind)
        except RuleSourceInvalidError as e:
            logger.debug("Skipping %s: %s", candidate, e)
            continue
        found.append(candidate)
    return found
