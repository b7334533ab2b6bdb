"""Content review of external web pages against the indexed knowledge base.

For each URL:

1. **Fetch** the page (HTTPS, then HTTP).  Failure -> an unsuccessful
   :class:`PageReview` graded high.
2. **Heuristics** -- pattern-match outdated terminology sentence by sentence.
3. **Context** -- retrieve knowledge-base passages related to the page's
   opening text.  Any failure here just means no context.
4. **Model analysis** -- ask the LLM for a camelCase JSON analysis and
   validate it through :class:`ModelAnalysis`.  A reply that is missing,
   unparseable, or off-schema switches the page to the heuristic-only
   fallback.
5. **Aggregate** -- merge, deduplicate and grade via
   :class:`AnalysisAggregator`.

URLs are reviewed with bounded concurrency; results keep input order.
"""

from __future__ import annotations

import asyncio
import re
from typing import Any

import structlog
from pydantic import ValidationError

from folderlens.interfaces.llm_provider import ILLMProvider
from folderlens.interfaces.page_fetcher import IPageFetcher, PageContent
from folderlens.models.review import (
    AggregateResult,
    AnalysisIssue,
    ModelAnalysis,
    PageReview,
    Priority,
    Severity,
)
from folderlens.services.retrieval_service import RetrievalEngine
from folderlens.services.review.aggregator import AnalysisAggregator
from folderlens.services.review.terminology import (
    DEFAULT_TERM_RULES,
    TermMatch,
    TermRule,
    detect_outdated_terms,
)
from folderlens.utils.errors import FolderLensError, LLMError, PipelineError
from folderlens.utils.logging import get_logger

logger: structlog.BoundLogger = get_logger(__name__)

FETCH_FAILED_ERROR = "Failed to fetch page content"
DEADLINE_ERROR = "Review deadline exceeded before this page finished"

_CONTEXT_QUERY_CHARS = 5000
_PROMPT_PAGE_CHARS = 18000
_PROMPT_CONTEXT_CHARS = 4000
_JSON_OBJECT = re.compile(r"\{[\s\S]*\}")
_INSTRUCTOR_PAGE = re.compile(
    r"instructor|faculty|teacher|professor|staff|teaching|course\s+setup|how\s+to|tutorial|guide",
    re.IGNORECASE,
)
_LEGACY_FEATURES = re.compile(
    r"grade\s+center|content\s+area|course\s+menu|discussion\s+board|assignment|dropbox|test|quiz|survey",
    re.IGNORECASE,
)


class ContentReviewService:
    """Reviews web pages for outdated messaging about a platform migration.

    Parameters
    ----------
    page_fetcher:
        Fetches page HTML and readable text.
    llm:
        Produces the structured model analysis.
    retrieval:
        Optional knowledge-base retrieval; ``None`` reviews without context.
    aggregator:
        Merges and grades issues; a default instance is created if omitted.
    rules:
        Terminology rules for the heuristic pass.
    current_system, target_system:
        Names of the platform pages describe today and the one they should
        move towards.
    instructor_link:
        Link recommended on instructor-facing pages.
    top_k:
        Knowledge-base matches pulled in as context per page.
    max_concurrent_pages:
        Pages reviewed at once.  ``1`` reviews them in order.
    """

    def __init__(
        self,
        page_fetcher: IPageFetcher,
        llm: ILLMProvider,
        retrieval: RetrievalEngine | None = None,
        aggregator: AnalysisAggregator | None = None,
        rules: tuple[TermRule, ...] = DEFAULT_TERM_RULES,
        current_system: str = "Blackboard Learn",
        target_system: str = "Blackboard Ultra",
        instructor_link: str = "",
        top_k: int = 10,
        max_concurrent_pages: int = 1,
    ) -> None:
        self._page_fetcher = page_fetcher
        self._llm = llm
        self._retrieval = retrieval
        self._aggregator = aggregator or AnalysisAggregator()
        self._rules = rules
        self._current_system = current_system
        self._target_system = target_system
        self._instructor_link = instructor_link
        self._top_k = top_k
        self._max_concurrent_pages = max(1, max_concurrent_pages)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def scan(self, urls: list[str], timeout: float | None = None) -> list[PageReview]:
        """Review every URL and return one :class:`PageReview` per URL, in order.

        Pages still running when *timeout* expires are reported as
        unsuccessful; finished reviews are kept.

        Raises
        ------
        PipelineError
            If *urls* is empty.
        """
        if not urls:
            raise PipelineError(message="URLs array is required")

        slots: list[PageReview | None] = [None] * len(urls)
        semaphore = asyncio.Semaphore(self._max_concurrent_pages)

        async def _run(position: int, url: str) -> None:
            async with semaphore:
                slots[position] = await self.review_page(url)

        tasks = [asyncio.create_task(_run(i, url)) for i, url in enumerate(urls)]
        try:
            _, pending = await asyncio.wait(tasks, timeout=timeout)
            if pending:
                logger.warning("review_deadline_exceeded", unfinished=len(pending))
                for task in pending:
                    task.cancel()
                await asyncio.gather(*pending, return_exceptions=True)
        except asyncio.CancelledError:
            for task in tasks:
                task.cancel()
            raise

        reviews = [
            review if review is not None else self._failed_review(url, DEADLINE_ERROR)
            for review, url in zip(slots, urls)
        ]

        logger.info(
            "review_scan_complete",
            urls=len(urls),
            failed=sum(1 for r in reviews if not r.success),
        )
        return reviews

    async def review_page(self, url: str) -> PageReview:
        """Review one URL.  Never raises for page-level failures."""
        log = logger.bind(url=url)
        try:
            page = await self._page_fetcher.fetch(url)
        except FolderLensError as exc:
            log.warning("page_fetch_failed", error=str(exc))
            return PageReview(
                url=url,
                success=False,
                error=FETCH_FAILED_ERROR,
                summary="Unable to analyze - page could not be fetched",
                overall_severity=Severity.HIGH,
                update_priority=Severity.HIGH,
            )
        except Exception as exc:  # noqa: BLE001
            log.exception("page_fetch_unexpected_error")
            return self._failed_review(url, str(exc) or type(exc).__name__)

        try:
            return await self._analyze(url, page)
        except Exception as exc:  # noqa: BLE001
            log.exception("page_review_failed")
            return self._failed_review(url, str(exc) or type(exc).__name__)

    # ------------------------------------------------------------------
    # Analysis
    # ------------------------------------------------------------------

    async def _analyze(self, url: str, page: PageContent) -> PageReview:
        term_matches = detect_outdated_terms(page.text, self._rules)
        heuristic_issues = [self._heuristic_issue(match) for match in term_matches]
        context = await self._knowledge_context(page.text)

        analysis: ModelAnalysis | None
        try:
            analysis = await self._model_analysis(page.text, term_matches, context)
        except (FolderLensError, ValidationError, ValueError) as exc:
            logger.warning("model_analysis_failed_using_heuristics", url=url, error=str(exc))
            analysis = None

        if analysis is None:
            aggregate = self._aggregator.fallback(heuristic_issues)
            return self._fallback_review(url, term_matches, aggregate)

        aggregate = self._aggregator.aggregate(heuristic_issues, analysis.issues)
        risks = [*analysis.risks, *(i.description or i.type for i in aggregate.unique_issues)]
        logger.info(
            "page_reviewed",
            url=url,
            issues=len(aggregate.unique_issues),
            overall_severity=aggregate.overall_severity.value,
        )
        return PageReview(
            url=url,
            success=True,
            summary=self._summary(analysis, term_matches),
            overall_severity=aggregate.overall_severity,
            issues=aggregate.unique_issues,
            risks=risks,
            outdated_terms_found=analysis.outdated_terms_found or [m.term for m in term_matches],
            update_priority=analysis.update_priority or aggregate.overall_severity,
            specific_changes=analysis.specific_changes,
            analysis=analysis,
        )

    async def _knowledge_context(self, text: str) -> str:
        if self._retrieval is None or not text.strip():
            return ""
        try:
            result = await self._retrieval.retrieve(text[:_CONTEXT_QUERY_CHARS], top_k=self._top_k)
        except FolderLensError as exc:
            logger.warning("review_context_unavailable", error=str(exc))
            return ""
        return result.context_text

    async def _model_analysis(
        self,
        text: str,
        term_matches: list[TermMatch],
        context: str,
    ) -> ModelAnalysis:
        """Ask the LLM for an analysis and validate it.

        Raises
        ------
        LLMError
            If the reply holds no JSON object.
        pydantic.ValidationError
            If the JSON does not fit :class:`ModelAnalysis`.
        """
        reply = await self._llm.complete(
            system_prompt=self._system_prompt(context),
            user_prompt=self._analysis_prompt(text, term_matches, context),
            temperature=0.3,
        )
        found = _JSON_OBJECT.search(reply)
        if found is None:
            raise LLMError(message="No JSON found in analysis response")
        return ModelAnalysis.model_validate_json(found.group(0))

    # ------------------------------------------------------------------
    # Prompt construction
    # ------------------------------------------------------------------

    def _system_prompt(self, context: str) -> str:
        prompt = (
            f"You are an expert in {self._target_system} migration and content strategy. "
            "You review institutional web pages and return structured JSON analyses."
        )
        if context:
            prompt += f"\n\nReference material from the knowledge base:\n\n{context}"
        return prompt

    def _analysis_prompt(self, text: str, term_matches: list[TermMatch], context: str) -> str:
        current, target = self._current_system, self._target_system
        instructor_page = bool(_INSTRUCTOR_PAGE.search(text))
        legacy_features = bool(_LEGACY_FEATURES.search(text))

        sections = [
            f"Analyze the following webpage content to provide comprehensive messaging "
            f"recommendations.\n\n"
            f"IMPORTANT CONTEXT:\n"
            f"- {current} is the CURRENT system the institution uses\n"
            f"- {target} is the NEW system being adopted\n"
            f"- Pages should acknowledge {current} as current while promoting {target} adoption\n"
            f"- For instructor-facing pages, include links to practice access and workshops",
            f"Webpage Content (first {_PROMPT_PAGE_CHARS} characters):\n{text[:_PROMPT_PAGE_CHARS]}",
        ]
        if term_matches:
            listed = "\n".join(f'- "{m.term}" found in: {m.context[:150]}...' for m in term_matches)
            sections.append(f"Detected Outdated Terms:\n{listed}")
        if context:
            sections.append(
                f"Relevant {target} Context from Knowledge Base:\n{context[:_PROMPT_CONTEXT_CHARS]}"
            )
        else:
            sections.append("Note: No relevant context found in knowledge base.")

        link_note = f" (link: {self._instructor_link})" if self._instructor_link else ""
        sections.append(
            "Page Context:\n"
            f"- Instructor-facing: {'YES - include practice access and workshop links' + link_note if instructor_page else 'NO'}\n"
            f"- Mentions {current} features: {'YES - needs a feature comparison' if legacy_features else 'NO'}"
        )
        sections.append(self._schema_instructions(instructor_page))
        return "\n\n".join(sections)

    def _schema_instructions(self, instructor_page: bool) -> str:
        current, target = self._current_system, self._target_system
        instructor_block = (
            '{"addDevShellLink": true, "devShellLinkText": "...", "workshopMention": "...", '
            '"ultraFeaturesToHighlight": ["..."], "transitionGuidance": "..."}'
            if instructor_page
            else "null"
        )
        return (
            "Your analysis should cover: current relevance for "
            f"{current} users, future relevance for {target} adoption, messaging strategy, "
            "instructor-specific recommendations (if instructor-facing) and specific changes.\n\n"
            "Provide a JSON response with this structure:\n"
            "{\n"
            '  "risks": ["specific issue with context"],\n'
            '  "summary": "Summary of current relevance, future relevance and required changes",\n'
            '  "riskLevel": "low" | "medium" | "high",\n'
            '  "currentRelevance": {"isRelevant": true, "reason": "...", '
            '"accurateContent": ["..."], "needsUpdating": ["..."]},\n'
            '  "futureRelevance": {"isRelevant": true, "reason": "...", "shouldUpdate": true, '
            '"shouldArchive": false, "reasoning": "..."},\n'
            '  "messagingStrategy": {"currentState": "...", "transitionMessage": "...", '
            '"tone": "...", "keyMessages": ["..."]},\n'
            '  "issues": [{"type": "Outdated Terminology" | "Feature Reference" | '
            '"Workflow Reference" | "Instructional Content" | "Missing Ultra Link" | '
            '"Messaging Update", "description": "...", "currentText": "exact text found", '
            '"suggestedReplacement": "...", "reasoning": "...", "location": "...", '
            '"severity": "low" | "medium" | "high", '
            '"priority": "immediate" | "high" | "medium" | "low"}],\n'
            f'  "instructorRecommendations": {instructor_block},\n'
            '  "outdatedTermsFound": ["..."],\n'
            '  "updatePriority": "high" | "medium" | "low",\n'
            '  "specificChanges": [{"action": "replace" | "add" | "remove" | "update", '
            '"currentText": "...", "newText": "...", "location": "...", "reason": "..."}]\n'
            "}\n\n"
            "Only return valid JSON, no other text."
        )

    # ------------------------------------------------------------------
    # Result assembly
    # ------------------------------------------------------------------

    def _heuristic_issue(self, match: TermMatch) -> AnalysisIssue:
        return AnalysisIssue(
            type="Outdated Terminology",
            description=(
                f"Found outdated term: {match.term}. This should be updated to acknowledge "
                f"{self._current_system} as current while promoting {self._target_system} adoption."
            ),
            severity=match.severity,
            current_text=match.term,
            suggested_replacement=match.replacement
            or (
                f"{self._target_system} (or messaging acknowledging "
                f"{self._current_system} as current)"
            ),
            reasoning=(
                f"Terminology needs to reflect that {self._current_system} is current but "
                f"{self._target_system} is the future direction"
            ),
            location=match.location,
            priority=Priority.HIGH if match.severity is Severity.HIGH else Priority.MEDIUM,
        )

    def _summary(self, analysis: ModelAnalysis, term_matches: list[TermMatch]) -> str:
        parts = [analysis.summary] if analysis.summary else []
        if analysis.current_relevance is not None:
            rel = analysis.current_relevance
            parts.append(
                f"CURRENT RELEVANCE: {'Relevant' if rel.is_relevant else 'Not relevant'} - {rel.reason}"
            )
        if analysis.future_relevance is not None:
            rel = analysis.future_relevance
            parts.append(
                f"FUTURE RELEVANCE: {'Relevant' if rel.is_relevant else 'Not relevant'} - "
                f"{rel.reasoning or rel.reason}"
            )
        if analysis.messaging_strategy is not None:
            parts.append(
                "MESSAGING STRATEGY: "
                f"{analysis.messaging_strategy.transition_message or 'See detailed recommendations'}"
            )
        if parts:
            return "\n\n".join(parts)
        return self._heuristic_summary(term_matches)

    def _fallback_review(
        self,
        url: str,
        term_matches: list[TermMatch],
        aggregate: AggregateResult,
    ) -> PageReview:
        count = len(term_matches)
        risks = (
            [f"Found {count} instance(s) of outdated {self._current_system} terminology"]
            if count
            else ["No obvious outdated terminology detected"]
        )
        return PageReview(
            url=url,
            success=True,
            summary=self._heuristic_summary(term_matches),
            overall_severity=aggregate.overall_severity,
            issues=aggregate.unique_issues,
            risks=risks,
            outdated_terms_found=[m.term for m in term_matches],
            update_priority=aggregate.overall_severity,
            used_fallback=True,
        )

    def _heuristic_summary(self, term_matches: list[TermMatch]) -> str:
        if not term_matches:
            return "No obvious outdated messaging detected."
        return (
            f"Found {len(term_matches)} instance(s) of outdated {self._current_system} "
            f"terminology that should be updated to {self._target_system}."
        )

    @staticmethod
    def _failed_review(url: str, error: str) -> PageReview:
        return PageReview(
            url=url,
            success=False,
            error=error,
            summary=f"Analysis failed: {error}",
            risks=[f"Analysis failed: {error}"],
            overall_severity=Severity.HIGH,
            update_priority=Severity.HIGH,
        )


def review_settings_from_config(config: dict[str, Any] | None) -> dict[str, str]:
    """Extract the ``current_system`` / ``target_system`` / ``instructor_link`` kwargs."""
    review = (config or {}).get("review") or {}
    return {
        key: str(review[key])
        for key in ("current_system", "target_system", "instructor_link")
        if review.get(key)
    }
