"""
Impact Analyzer — ranked "who depends on this" report.

Groups Reference Scanner output by file, counts occurrences per
confidence tier and ranks files by descending count, then path. Zero
references is a successful, explicit "no dependents found" report.
"""

from collections import defaultdict
from dataclasses import dataclass, field
from typing import Any, Dict, List

from .references import Confidence, ScanResult

NO_DEPENDENTS = "no dependents found"

# Risk thresholds on the number of affected files
MEDIUM_RISK_FILES = 3
HIGH_RISK_FILES = 10

RECOMMENDATIONS = {
    "high": "Consider creating a deprecation path or using feature flags",
    "medium": "Run tests after change, review affected files",
    "low": "Safe to modify with standard review",
}


@dataclass(frozen=True)
class ImpactEntry:
    file: str
    count: int
    exact: int = 0
    heuristic: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "file": self.file,
            "count": self.count,
            "exact": self.exact,
            "heuristic": self.heuristic,
        }


@dataclass
class ImpactReport:
    """Affected files of one target, built fresh per request."""
    target: str
    entries: List[ImpactEntry] = field(default_factory=list)
    files_scanned: int = 0
    files_skipped: int = 0
    skipped: List[Dict[str, str]] = field(default_factory=list)

    @property
    def total_references(self) -> int:
        return sum(e.count for e in self.entries)

    @property
    def total_files(self) -> int:
        return len(self.entries)

    @property
    def risk(self) -> str:
        if self.total_files > HIGH_RISK_FILES:
            return "high"
        if self.total_files > MEDIUM_RISK_FILES:
            return "medium"
        return "low"

    @property
    def recommendation(self) -> str:
        return RECOMMENDATIONS[self.risk]

    @property
    def message(self) -> str:
        if not self.entries:
            return NO_DEPENDENTS
        return f"{self.total_references} reference(s) in {self.total_files} file(s)"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "target": self.target,
            "affected": [e.to_dict() for e in self.entries],
            "total_references": self.total_references,
            "total_files": self.total_files,
            "files_scanned": self.files_scanned,
            "files_skipped": self.files_skipped,
            "skipped": list(self.skipped),
            "risk": self.risk,
            "recommendation": self.recommendation,
            "message": self.message,
        }


def analyze(scan: ScanResult) -> ImpactReport:
    """Aggregate a scan into a ranked report."""
    counts: Dict[str, Dict[Confidence, int]] = defaultdict(lambda: defaultdict(int))
    seen = set()
    for ref in scan.references:
        key = (ref.path, ref.line, ref.column)
        if key in seen:
            continue
        seen.add(key)
        counts[ref.path][ref.confidence] += 1

    entries = [
        ImpactEntry(
            file=path,
            count=sum(tiers.values()),
            exact=tiers[Confidence.EXACT],
            heuristic=tiers[Confidence.HEURISTIC],
        )
        for path, tiers in counts.items()
    ]
    entries.sort(key=lambda e: (-e.count, e.file))

    return ImpactReport(
        target=scan.target,
        entries=entries,
        files_scanned=scan.files_scanned,
        files_skipped=scan.files_skipped,
        skipped=list(scan.skipped),
    )
