"""Merges heuristic and model findings into one deduplicated issue list.

Overall severity escalates through fixed thresholds, high conditions
checked before medium ones, so the aggregate never reports less than
the worst individual finding:

    high    any severity "high", any priority "immediate"/"high", or > 5 issues
    medium  any severity "medium", or > 2 issues
    low     otherwise

When the model path failed entirely, :meth:`AnalysisAggregator.fallback`
uses the heuristic issues alone and reports "high" if there are any.
"""

from __future__ import annotations

import structlog

from folderlens.models.review import AggregateResult, AnalysisIssue, Priority, Severity

logger = structlog.get_logger(logger_name=__name__)

HIGH_COUNT_THRESHOLD = 5
MEDIUM_COUNT_THRESHOLD = 2

_URGENT_PRIORITIES = frozenset({Priority.IMMEDIATE, Priority.HIGH})


class AnalysisAggregator:
    """Combines issue lists and derives the overall page severity."""

    def aggregate(
        self,
        heuristic_issues: list[AnalysisIssue],
        model_issues: list[AnalysisIssue],
    ) -> AggregateResult:
        """Union *model_issues* then *heuristic_issues*, dedupe, and grade.

        Deduplication key is ``(current_text, location)``; the first
        occurrence wins, so a model finding shadows the heuristic finding
        for the same text at the same location.
        """
        unique = self.deduplicate([*model_issues, *heuristic_issues])
        severity = self.overall_severity(unique)
        logger.debug(
            "issues_aggregated",
            heuristic=len(heuristic_issues),
            model=len(model_issues),
            unique=len(unique),
            overall_severity=severity.value,
        )
        return AggregateResult(unique_issues=unique, overall_severity=severity)

    def fallback(self, heuristic_issues: list[AnalysisIssue]) -> AggregateResult:
        """Heuristic-only result used when the model analysis is unavailable."""
        unique = self.deduplicate(heuristic_issues)
        return AggregateResult(
            unique_issues=unique,
            overall_severity=Severity.HIGH if unique else Severity.LOW,
            used_fallback=True,
        )

    @staticmethod
    def deduplicate(issues: list[AnalysisIssue]) -> list[AnalysisIssue]:
        seen: set[tuple[str | None, str | None]] = set()
        unique: list[AnalysisIssue] = []
        for issue in issues:
            if issue.dedup_key in seen:
                continue
            seen.add(issue.dedup_key)
            unique.append(issue)
        return unique

    @staticmethod
    def overall_severity(issues: list[AnalysisIssue]) -> Severity:
        if (
            any(i.severity is Severity.HIGH for i in issues)
            or any(i.priority in _URGENT_PRIORITIES for i in issues)
            or len(issues) > HIGH_COUNT_THRESHOLD
        ):
            return Severity.HIGH
        if any(i.severity is Severity.MEDIUM for i in issues) or len(issues) > MEDIUM_COUNT_THRESHOLD:
            return Severity.MEDIUM
        return Severity.LOW
