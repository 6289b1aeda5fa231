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

"""Tests for content-rule documents, presets and compilation."""

import re

import pytest
import yaml

from unitypackage_scanner.core.exceptions import PresetNotFoundError, RuleSourceInvalidError
from unitypackage_scanner.core.models import ScanCategory, Severity
from unitypackage_scanner.core.rules.content_rules import (
    iter_compiled_rules,
    load_content_rules,
    parse_regex_flags,
)
from unitypackage_scanner.core.rules.documents import (
    CONTENT_DOCUMENT,
    EXTENSION_DOCUMENT,
    find_rule_documents,
    load_rule_document,
)


def _document(**categories):
    return {"version": "1.0.0", "name": "Test Rules", "description": "test", "categories": categories}


class TestBundledDocuments:
    """The shipped rule documents load cleanly."""

    def test_default_document_loads(self):
        rules = load_content_rules()

        assert rules.name == "Default Detection Patterns"
        assert rules.warnings == ()
        assert {"UnityWebRequest", "Socket", "URL", "Process.Start", "DllImport"} <= set(rules.rule_names())

    def test_rule_level_severities(self):
        rules = load_content_rules()

        assert rules.get_rule("Socket").severity == Severity.CRITICAL
        assert rules.get_rule("URL").severity == Severity.INFO
        assert rules.get_rule("File.Delete").severity == Severity.CRITICAL
        assert rules.get_rule("UnityWebRequest").severity == Severity.WARNING
        assert rules.get_rule("Process.Start").severity == Severity.CRITICAL

    def test_malware_document_by_bundled_name(self):
        rules = load_content_rules("malware-detection.yaml", preset="standard")

        assert "PowerShell" in rules.rule_names()
        assert "Base64Decode" not in rules.rule_names()

    def test_bundled_presets(self):
        rules = load_content_rules()

        assert rules.preset_names() == ["relaxed", "standard", "strict"]

    def test_find_rule_documents(self):
        content_docs = {p.name for p in find_rule_documents(kind=CONTENT_DOCUMENT)}
        extension_docs = {p.name for p in find_rule_documents(kind=EXTENSION_DOCUMENT)}

        assert content_docs == {"default-patterns.yaml", "malware-detection.yaml"}
        assert extension_docs == {"file-extensions.yaml"}


class TestDocumentValidation:
    """Malformed sources raise RuleSourceInvalidError."""

    def test_missing_file(self, tmp_path):
        with pytest.raises(RuleSourceInvalidError):
            load_content_rules(tmp_path / "missing.yaml")

    def test_invalid_yaml(self, tmp_path):
        bad = tmp_path / "bad.yaml"
        bad.write_text("categories: [unclosed")

        with pytest.raises(RuleSourceInvalidError):
            load_content_rules(bad)

    def test_not_a_mapping(self, tmp_path):
        bad = tmp_path / "list.yaml"
        bad.write_text("- just\n- a list\n")

        with pytest.raises(RuleSourceInvalidError):
            load_content_rules(bad)

    @pytest.mark.parametrize("missing", ["version", "name", "categories"])
    def test_missing_required_field(self, missing):
        document = _document(network={"severity": "warning", "patterns": []})
        document["categories"]["network"]["patterns"].append({"name": "X", "regex": "x"})
        del document[missing]

        with pytest.raises(RuleSourceInvalidError, match=missing):
            load_content_rules(document)

    def test_json_document(self, tmp_path):
        path = tmp_path / "rules.json"
        path.write_text(
            '{"version": "1", "name": "J", "categories": {"network": {"severity": "info",'
            ' "patterns": [{"name": "Http", "regex": "http", "flags": "i"}]}}}'
        )

        rules = load_content_rules(path)

        assert rules.rule_names() == ["Http"]

    def test_load_rule_document_returns_origin(self, tmp_path):
        path = tmp_path / "rules.yaml"
        path.write_text(yaml.safe_dump(_document(network={"severity": "info", "patterns": []})))

        document, origin = load_rule_document(path, CONTENT_DOCUMENT)

        assert document["name"] == "Test Rules"
        assert origin == str(path)


class TestCompilation:
    """Test rule compilation and flag handling."""

    def test_flag_parsing(self):
        assert parse_regex_flags("gi") == (re.IGNORECASE, [])
        assert parse_regex_flags("ms") == (re.MULTILINE | re.DOTALL, [])
        assert parse_regex_flags("uy") == (0, [])
        assert parse_regex_flags("") == (0, [])
        assert parse_regex_flags(None) == (0, [])
        assert parse_regex_flags("iq") == (re.IGNORECASE, ["q"])

    def test_invalid_regex_drops_only_that_rule(self):
        document = _document(
            network={
                "severity": "warning",
                "patterns": [
                    {"name": "Good", "regex": "WebClient"},
                    {"name": "Broken", "regex": "(unclosed"},
                    {"name": "AlsoGood", "regex": "HttpClient"},
                ],
            }
        )

        rules = load_content_rules(document)

        assert rules.rule_names() == ["Good", "AlsoGood"]
        assert len(rules.warnings) == 1
        assert "Broken" in rules.warnings[0]

    def test_fallible_iterator(self):
        categories = {
            "network": {
                "severity": "warning",
                "patterns": [{"name": "A", "regex": "a"}, {"name": "B", "regex": "["}],
            }
        }

        items = list(iter_compiled_rules(categories))

        assert items[0][0].name == "A" and items[0][1] is None
        assert items[1][0] is None and "B" in items[1][1]

    def test_unknown_flag_warns_but_compiles(self):
        document = _document(network={"severity": "info", "patterns": [{"name": "A", "regex": "a", "flags": "iz"}]})

        rules = load_content_rules(document)

        assert rules.rule_names() == ["A"]
        assert rules.get_rule("A").pattern.flags & re.IGNORECASE
        assert any("z" in w for w in rules.warnings)

    def test_rule_severity_overrides_category(self):
        document = _document(
            network={
                "severity": "warning",
                "patterns": [
                    {"name": "Inherits", "regex": "a"},
                    {"name": "Overrides", "regex": "b", "severity": "critical"},
                ],
            }
        )

        rules = load_content_rules(document)

        assert rules.get_rule("Inherits").severity == Severity.WARNING
        assert rules.get_rule("Overrides").severity == Severity.CRITICAL

    def test_unknown_category_maps_to_other(self):
        document = _document(telemetry={"severity": "info", "patterns": [{"name": "Analytics", "regex": "analytics"}]})

        rule = load_content_rules(document).get_rule("Analytics")

        assert rule.category == ScanCategory.OTHER
        assert rule.source_category == "telemetry"

    def test_duplicate_names_keep_first(self):
        document = _document(
            network={"severity": "warning", "patterns": [{"name": "Dup", "regex": "first"}]},
            process={"severity": "critical", "patterns": [{"name": "Dup", "regex": "second"}]},
        )

        rules = load_content_rules(document)

        assert rules.rule_names() == ["Dup"]
        assert rules.get_rule("Dup").pattern.pattern == "first"
        assert any("Duplicate" in w for w in rules.warnings)

    def test_file_extension_category_becomes_path_rule(self):
        document = _document(dll={"severity": "warning", "description": "Native library", "fileExtension": ".dll"})

        rules = load_content_rules(document)

        rule = rules.get_rule("DLL File")
        assert rule is not None
        assert rule.match_path
        assert rule.category == ScanCategory.DLL
        assert rule.pattern.search("Plugins/Native.DLL")
        assert not rule.pattern.search("Plugins/dll.txt")
        assert rules.path_rules == (rule,)
        assert rules.line_rules == ()


class TestPresets:
    """Test preset selection."""

    @pytest.fixture
    def document(self):
        return {
            "version": "1.0.0",
            "name": "Preset Rules",
            "categories": {
                "network": {
                    "severity": "warning",
                    "patterns": [{"name": "Http", "regex": "http"}, {"name": "URL", "regex": "https?://"}],
                },
                "process": {"severity": "critical", "patterns": [{"name": "Start", "regex": "Process.Start"}]},
                "registry": {"severity": "critical", "patterns": [{"name": "Reg", "regex": "Registry"}]},
            },
            "presets": {
                "netonly": {"enabledCategories": ["network", "doesNotExist"], "excludePatterns": ["URL"]},
                "empty": {"enabledCategories": []},
            },
        }

    def test_no_preset_enables_everything(self, document):
        assert load_content_rules(document).rule_names() == ["Http", "URL", "Start", "Reg"]

    def test_preset_restricts_and_excludes(self, document):
        rules = load_content_rules(document, preset="netonly")

        assert rules.rule_names() == ["Http"]
        assert rules.active_preset == "netonly"

    def test_preset_application_is_idempotent(self, document):
        first = load_content_rules(document, preset="netonly")
        second = load_content_rules(first.to_document(), preset="netonly")

        assert second.rule_names() == first.rule_names() == ["Http"]
        assert load_content_rules(preset="standard").rule_names() == load_content_rules(preset="standard").rule_names()

    def test_empty_preset(self, document):
        assert len(load_content_rules(document, preset="empty")) == 0

    def test_unknown_preset(self, document):
        with pytest.raises(PresetNotFoundError, match="netonly"):
            load_content_rules(document, preset="nope")

    def test_standard_excludes_url(self):
        strict = load_content_rules(preset="strict")
        standard = load_content_rules(preset="standard")

        assert set(strict.rule_names()) - set(standard.rule_names()) == {"URL"}

    def test_relaxed_categories(self):
        rules = load_content_rules(preset="relaxed")

        assert {rule.source_category for rule in rules} == {"process", "native", "registry"}


class TestRoundTrip:
    """Serialized rule sets reload to the same rules."""

    @pytest.mark.parametrize("preset", [None, "strict", "standard", "relaxed"])
    def test_to_document_round_trip(self, preset):
        rules = load_content_rules(preset=preset)

        reloaded = load_content_rules(rules.to_document())

        assert reloaded.rule_names() == rules.rule_names()
        for original, copy in zip(rules, reloaded):
            assert copy.severity == original.severity
            assert copy.pattern.pattern == original.pattern.pattern
            assert copy.pattern.flags == original.pattern.flags

    def test_to_yaml_round_trip_with_preset(self, tmp_path):
        rules = load_content_rules(preset="standard")
        path = tmp_path / "standard.yaml"

        rules.to_yaml(path)
        reloaded = load_content_rules(path, preset="standard")

        assert reloaded.rule_names() == rules.rule_names()

    def test_path_rules_round_trip(self):
        document = _document(dll={"severity": "warning", "fileExtension": "dll"})
        rules = load_content_rules(document)

        reloaded = load_content_rules(rules.to_document())

        assert reloaded.rule_names() == ["DLL File"]
        assert reloaded.get_rule("DLL File").match_path

    def test_rule_sets_are_immutable(self):
        rules = load_content_rules()

        with pytest.raises(AttributeError):
            rules.rules = ()
        with pytest.raises(TypeError):
            rules.presets["new"] = None
