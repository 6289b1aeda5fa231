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
Merging of findings and severity statistics.
"""

import dataclasses
from collections import Counter
from collections.abc import Iterable, Sequence

from .models import Finding, RiskLevel, ScanSummary, Severity


def merge(extension_findings: Sequence[Finding], content_findings: Sequence[Finding]) -> list[Finding]:
    """
    Concatenate extension and content findings and number them "1".."n".

    Returns new Finding instances; the inputs are not modified.
    """
    merged = list(extension_findings) + list(content_findings)
    return [dataclasses.replace(finding, id=str(index)) for index, finding in enumerate(merged, start=1)]


def aggregate(findings: Sequence[Finding]) -> ScanSummary:
    """Count findings by severity."""
    counts = Counter(finding.severity for finding in findings)
    return ScanSummary(
        critical=counts[Severity.CRITICAL],
        warning=counts[Severity.WARNING],
        info=counts[Severity.INFO],
        total=len(findings),
    )


def risk_statistics(findings: Iterable[Finding]) -> dict[str, int]:
    """Count extension findings by risk level."""
    stats = {level.value: 0 for level in RiskLevel}
    for finding in findings:
        if finding.risk_level is not None:
            stats[finding.risk_level.value] += 1
    return stats


def platform_statistics(findings: Iterable[Finding]) -> dict[str, int]:
    """Count extension findings per target platform, most common first."""
    counts: Counter[str] = Counter()
    for finding in findings:
        counts.update(finding.platforms)
    return dict(counts.most_common())
