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

"""Command-line interface for the UnityPackage Scanner."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from collections.abc import Callable
from pathlib import Path

from ..config.config import Config
from ..core.aggregator import platform_statistics, risk_statistics
from ..core.exceptions import PackageExtractionError, RuleConfigurationError, UnityPackageScannerError
from ..core.models import ProgressEvent, ScanResult, Severity
from ..core.rules.content_rules import load_content_rules
from ..core.rules.extension_rules import load_extension_rules
from ..core.scanner import PackageScanner

logger = logging.getLogger("unitypackage_scanner.cli")


# ---------------------------------------------------------------------------
# Shared helpers
# ---------------------------------------------------------------------------


def _configure_logging(args: argparse.Namespace) -> None:
    level = logging.DEBUG if getattr(args, "verbose", False) else logging.WARNING
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")


def _make_status_printer(args: argparse.Namespace) -> Callable[[str], None]:
    """Return a printer that sends to stderr when JSON output is active."""
    is_json = getattr(args, "format", "summary") == "json"

    def _print(msg: str) -> None:
        print(msg, file=sys.stderr if is_json else sys.stdout)

    return _print


def _make_progress_printer(args: argparse.Namespace) -> Callable[[ProgressEvent], None] | None:
    """Stage transitions on stderr with --verbose, nothing otherwise."""
    if not getattr(args, "verbose", False):
        return None
    last_stage: list[str] = []

    def _sink(event: ProgressEvent) -> None:
        if last_stage and last_stage[-1] == event.stage.value:
            return
        last_stage.append(event.stage.value)
        print(f"[{event.progress:3d}%] {event.stage.value}", file=sys.stderr)

    return _sink


def _build_config(args: argparse.Namespace) -> Config:
    """Layer CLI flags over the environment-derived configuration."""
    config = Config.from_env()
    # A custom document without an explicit preset enables all of its rules
    if getattr(args, "patterns", None):
        config.pattern_file = args.patterns
        config.pattern_preset = None
    if getattr(args, "preset", None):
        config.pattern_preset = args.preset
    if getattr(args, "extensions", None):
        config.extension_file = args.extensions
        config.extension_preset = None
    if getattr(args, "extension_preset", None):
        config.extension_preset = args.extension_preset
    if getattr(args, "workers", None):
        config.max_workers = max(1, args.workers)
    return config


def _format_output(args: argparse.Namespace, result: ScanResult) -> str:
    if getattr(args, "format", "summary") == "json":
        indent = None if args.compact else 2
        return json.dumps(result.to_dict(), indent=indent, default=str)
    return _generate_summary(result)


def _write_output(args: argparse.Namespace, output: str) -> None:
    """Write *output* to a file or stdout."""
    if args.output:
        with open(args.output, "w", encoding="utf-8") as fh:
            fh.write(output)
        _make_status_printer(args)(f"Report saved to: {args.output}")
    else:
        print(output)


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


def scan_command(args: argparse.Namespace) -> int:
    """Handle the ``scan`` command for a single package."""
    package_path = Path(args.package)
    if not package_path.is_file():
        print(f"Error: Package does not exist: {package_path}", file=sys.stderr)
        return 1

    status = _make_status_printer(args)

    try:
        scanner = PackageScanner(config=_build_config(args))
    except RuleConfigurationError as e:
        print(f"Error loading rules: {e}", file=sys.stderr)
        return 1

    try:
        result = scanner.scan_package(
            package_path,
            progress=_make_progress_printer(args),
            keep_extracted=args.keep_extracted,
        )
    except PackageExtractionError as e:
        print(f"Error extracting package: {e}", file=sys.stderr)
        return 1
    except UnityPackageScannerError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    if args.keep_extracted:
        for scratch_dir in scanner.extracted_dirs:
            status(f"Extracted files kept in: {scratch_dir}")

    _write_output(args, _format_output(args, result))

    if args.fail_on_findings and not result.is_safe:
        return 1
    return 0


def list_presets_command(args: argparse.Namespace) -> int:
    """Handle the ``list-presets`` command."""
    try:
        content_rules = load_content_rules(args.patterns)
        extension_rules = load_extension_rules(args.extensions)
    except RuleConfigurationError as e:
        print(f"Error loading rules: {e}", file=sys.stderr)
        return 1

    print(f"Content presets ({content_rules.name}):\n")
    for name in content_rules.preset_names():
        preset = content_rules.presets[name]
        print(f"  {name}")
        if preset.description:
            print(f"     {preset.description}")
        print(f"     Categories: {', '.join(preset.enabled_categories) or '-'}")
        if preset.exclude_patterns:
            print(f"     Excluded: {', '.join(preset.exclude_patterns)}")
    print()

    print(f"Extension presets ({extension_rules.name}):\n")
    for name in extension_rules.preset_names():
        preset = extension_rules.presets[name]
        print(f"  {name}")
        if preset.description:
            print(f"     {preset.description}")
        print(f"     Extensions: {', '.join(preset.enabled_extensions) or '-'}")
    return 0


def validate_rules_command(args: argparse.Namespace) -> int:
    """Handle the ``validate-rules`` command."""
    try:
        content_rules = load_content_rules(args.patterns)
        extension_rules = load_extension_rules(args.extensions)
    except RuleConfigurationError as e:
        print(f"[FAIL] Error validating rules: {e}", file=sys.stderr)
        return 1

    print(f"[OK] Loaded {len(content_rules)} content rules from {content_rules.origin}\n")
    print("Rules by category:")
    by_category: dict[str, int] = {}
    for rule in content_rules:
        by_category[rule.source_category] = by_category.get(rule.source_category, 0) + 1
    for category, count in by_category.items():
        print(f"  - {category}: {count} rules")

    print(f"\n[OK] Loaded {len(extension_rules)} extension rules from {extension_rules.origin}")

    warnings = list(content_rules.warnings) + list(extension_rules.warnings)
    if warnings:
        print(f"\n[WARNING] {len(warnings)} rule(s) skipped:")
        for warning in warnings:
            print(f"  - {warning}")
        return 1
    return 0


# ---------------------------------------------------------------------------
# Summary formatter
# ---------------------------------------------------------------------------


def _generate_summary(result: ScanResult) -> str:
    max_severity = result.max_severity
    lines = [
        "=" * 60,
        f"Package: {Path(result.file_path).name}",
        "=" * 60,
        f"Status: {'[OK] SAFE' if result.is_safe else '[FAIL] ISSUES FOUND'}",
        f"Max Severity: {max_severity.value if max_severity else 'none'}",
        f"Total Findings: {result.summary.total}",
        f"Scan Duration: {result.scan_duration_seconds:.2f}s",
    ]
    if result.package_info is not None:
        info = result.package_info
        lines.append(
            f"Files: {info.file_count} ({info.script_count} scripts, "
            f"{info.native_library_count} native libraries, {info.asset_count} assets)"
        )
    lines.append("")

    if result.findings:
        lines.append("Findings Summary:")
        for sev in (Severity.CRITICAL, Severity.WARNING, Severity.INFO):
            lines.append(f"  {sev.value:>8s}: {len(result.get_findings_by_severity(sev))}")

        risk = risk_statistics(result.findings)
        if any(risk.values()):
            lines.append("Extension Risk: " + ", ".join(f"{level} {count}" for level, count in risk.items()))
        platforms = platform_statistics(result.findings)
        if platforms:
            lines.append("Platforms: " + ", ".join(f"{name} {count}" for name, count in platforms.items()))

        lines.append("")
        lines.append("Findings:")
        for finding in result.findings:
            location = finding.file_path
            if finding.line_number:
                location += f":{finding.line_number}"
            lines.append(f"  [{finding.severity.value.upper()}] {finding.rule_name} ({finding.category.value})")
            lines.append(f"     {location}")
            if finding.line_number and finding.context:
                lines.append(f"     {finding.context}")
    return "\n".join(lines)


# ---------------------------------------------------------------------------
# Shared argparse helpers
# ---------------------------------------------------------------------------


def _add_rule_source_flags(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--patterns",
        metavar="FILE",
        help="Content rule document (path or bundled name, default: default-patterns.yaml)",
    )
    parser.add_argument(
        "--extensions",
        metavar="FILE",
        help="Extension rule document (path or bundled name, default: file-extensions.yaml)",
    )


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        description="UnityPackage Scanner - Security scanner for Unity asset packages",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  unitypackage-scanner scan Asset.unitypackage
  unitypackage-scanner scan Asset.unitypackage --preset strict --format json
  unitypackage-scanner scan Asset.unitypackage --patterns malware-detection.yaml
  unitypackage-scanner scan Asset.unitypackage --extension-preset executables_only
  unitypackage-scanner list-presets
  unitypackage-scanner validate-rules --patterns my-patterns.yaml
        """,
    )
    subparsers = parser.add_subparsers(dest="command", help="Command to execute")

    # -- scan --------------------------------------------------------------
    scan_p = subparsers.add_parser("scan", help="Scan a .unitypackage file")
    scan_p.add_argument("package", help="Path to the .unitypackage file")
    _add_rule_source_flags(scan_p)
    scan_p.add_argument("--preset", metavar="NAME", help="Content rule preset (default: standard)")
    scan_p.add_argument("--extension-preset", metavar="NAME", help="Extension rule preset (default: standard)")
    scan_p.add_argument(
        "--format",
        choices=["summary", "json"],
        default="summary",
        help="Output format (default: summary)",
    )
    scan_p.add_argument("--compact", action="store_true", help="Compact JSON output")
    scan_p.add_argument("--output", "-o", help="Output file path")
    scan_p.add_argument("--keep-extracted", action="store_true", help="Keep the extracted files on disk")
    scan_p.add_argument("--workers", type=int, metavar="N", help="Scan files on N threads")
    scan_p.add_argument("--fail-on-findings", action="store_true", help="Exit with error if critical findings")
    scan_p.add_argument("--verbose", "-v", action="store_true", help="Debug logging and progress on stderr")

    # -- list-presets ------------------------------------------------------
    lp_p = subparsers.add_parser("list-presets", help="List content and extension presets")
    _add_rule_source_flags(lp_p)

    # -- validate-rules ----------------------------------------------------
    vr_p = subparsers.add_parser("validate-rules", help="Validate rule documents")
    _add_rule_source_flags(vr_p)

    # -- dispatch ----------------------------------------------------------
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 1

    _configure_logging(args)

    dispatch = {
        "scan": scan_command,
        "list-presets": list_presets_command,
        "validate-rules": validate_rules_command,
    }
    handler = dispatch.get(args.command)
    if handler:
        return handler(args)

    parser.print_help()
    return 1


if __name__ == "__main__":
    sys.exit(main())
