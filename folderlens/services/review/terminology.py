"""Pattern-based detection of outdated platform terminology.

The heuristic half of content review: cheap, deterministic, and always
available even when the model path fails.  Rules come from the ``review``
section of ``config/config.yaml``; :data:`DEFAULT_TERM_RULES` is used when
the config has none.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any

from folderlens.models.review import Severity

_SENTENCE = re.compile(r"[^.!?]+[.!?]+")
_CONTEXT_LIMIT = 200


@dataclass(frozen=True)
class TermRule:
    """A case-insensitive pattern and the severity of each hit."""

    pattern: re.Pattern[str]
    severity: Severity
    replacement: str | None = None

    @classmethod
    def compile(
        cls,
        pattern: str,
        severity: str | Severity = Severity.MEDIUM,
        replacement: str | None = None,
    ) -> TermRule:
        return cls(
            pattern=re.compile(pattern, re.IGNORECASE),
            severity=Severity(severity),
            replacement=replacement,
        )


@dataclass(frozen=True)
class TermMatch:
    """One occurrence of an outdated term."""

    term: str
    context: str
    severity: Severity
    location: str
    replacement: str | None = None


DEFAULT_TERM_RULES: tuple[TermRule, ...] = (
    TermRule.compile(r"\bBlackboard Learn\b", Severity.HIGH),
    TermRule.compile(r"\bBb Learn\b", Severity.HIGH),
    TermRule.compile(r"\bLearn\s+\(Blackboard\)", Severity.HIGH),
    TermRule.compile(r"\bBlackboard\s+Learn\s+9\.\d+\b", Severity.HIGH),
    TermRule.compile(r"\bclassic\s+Blackboard\b", Severity.MEDIUM),
    TermRule.compile(r"\bBlackboard\s+Classic\b", Severity.MEDIUM),
    TermRule.compile(r"\bold\s+Blackboard\b", Severity.MEDIUM),
)


def load_review_terms(config: dict[str, Any] | None) -> tuple[TermRule, ...]:
    """Build term rules from ``config["review"]["terms"]``.

    Each entry is ``{"pattern": <regex>, "severity": low|medium|high}`` with an
    optional ``"replacement"`` suggestion.
    Returns :data:`DEFAULT_TERM_RULES` when the section is missing or empty.

    Raises
    ------
    ValueError
        If a pattern does not compile or a severity is unknown.
    """
    entries = ((config or {}).get("review") or {}).get("terms") or []
    if not entries:
        return DEFAULT_TERM_RULES
    try:
        return tuple(
            TermRule.compile(
                entry["pattern"],
                str(entry.get("severity", "medium")).lower(),
                entry.get("replacement"),
            )
            for entry in entries
        )
    except (KeyError, re.error) as exc:
        raise ValueError(f"Invalid review term rule: {exc}") from exc


def split_sentences(text: str) -> list[str]:
    """Split *text* into punctuation-terminated sentences.

    Text with no terminal punctuation is returned as a single sentence;
    a trailing unterminated fragment is not included.
    """
    return _SENTENCE.findall(text) or [text]


def detect_outdated_terms(
    text: str,
    rules: tuple[TermRule, ...] | list[TermRule] = DEFAULT_TERM_RULES,
) -> list[TermMatch]:
    """Return every rule hit in *text*, in sentence order then rule order.

    ``location`` is the 1-based sentence number (``"Sentence 3"``) and
    ``context`` is the trimmed sentence, capped at 200 characters.
    """
    found: list[TermMatch] = []
    for number, sentence in enumerate(split_sentences(text), start=1):
        context = sentence.strip()[:_CONTEXT_LIMIT]
        for rule in rules:
            for hit in rule.pattern.finditer(sentence):
                found.append(
                    TermMatch(
                        term=hit.group(0),
                        context=context,
                        severity=rule.severity,
                        location=f"Sentence {number}",
                        replacement=rule.replacement,
                    )
                )
    return found
