"""
Metadata Helpers — Structural Tags for Inquiry Requests.

Constants and deterministic helpers for filling the optional structural
fields of an InquiryRequest (stop_pattern, domain, complexity_signal,
session_context). Regex and keyword matching only.

IMPORTANT: detect_ambiguity_pattern() reads user text locally; only the
resulting tag may be sent to a provider.
"""

import re
from collections.abc import Iterable, Mapping
from typing import Any

from hapkit.models.protocol import SessionContext


class StopPatterns:
    """Common stop pattern tags, grouped by ladder stage."""

    # Meaning
    AMBIGUOUS_PRONOUN = "ambiguous-pronoun"
    VAGUE_QUANTIFIER = "vague-quantifier"
    UNCLEAR_OBJECT = "unclear-object"
    MISSING_CONTEXT = "missing-context"
    TECHNICAL_JARGON = "technical-jargon"

    # Purpose
    UNCLEAR_DIRECTION = "unclear-direction"
    MISSING_GOAL = "missing-goal"
    AMBIGUOUS_INTENT = "ambiguous-intent"
    CONFLICTING_OBJECTIVES = "conflicting-objectives"

    # Intention
    MULTIPLE_PATHS = "multiple-paths"
    UNCLEAR_APPROACH = "unclear-approach"
    MISSING_CONSTRAINTS = "missing-constraints"

    # Action
    INSUFFICIENT_DETAILS = "insufficient-details"
    MISSING_PARAMETERS = "missing-parameters"
    UNCLEAR_SEQUENCE = "unclear-sequence"


class Domains:
    """Common domain tags."""

    SOFTWARE_DEVELOPMENT = "software-development"
    DATA_ANALYSIS = "data-analysis"
    CONTENT_CREATION = "content-creation"
    PROJECT_MANAGEMENT = "project-management"
    RESEARCH = "research"
    DESIGN = "design"
    EDUCATION = "education"
    CUSTOMER_SUPPORT = "customer-support"
    GENERAL = "general"


class ComplexityLevel:
    """complexity_signal values."""

    VERY_LOW = 1
    LOW = 2
    MEDIUM = 3
    HIGH = 4
    VERY_HIGH = 5


# =============================================================================
# AMBIGUITY PATTERNS
# =============================================================================

# Checked in order; first match wins
_AMBIGUITY_PATTERNS: list[tuple[re.Pattern[str], str]] = [
    (
        re.compile(r"\b(it|this|that|they|them|these|those)\b", re.IGNORECASE),
        StopPatterns.AMBIGUOUS_PRONOUN,
    ),
    (
        re.compile(
            r"\b(some|many|few|several|most|lots of|a bit|kind of|sort of)\b", re.IGNORECASE
        ),
        StopPatterns.VAGUE_QUANTIFIER,
    ),
    (
        re.compile(r"\bthe (thing|one|file|code|function)\b", re.IGNORECASE),
        StopPatterns.MISSING_CONTEXT,
    ),
]


def detect_ambiguity_pattern(text: str) -> str | None:
    """
    Return the first ambiguity pattern found in text, or None.

    "Can you update it?" -> "ambiguous-pronoun"
    """
    for pattern, tag in _AMBIGUITY_PATTERNS:
        if pattern.search(text):
            return tag
    return None


# =============================================================================
# DOMAIN KEYWORDS
# =============================================================================

# Checked in order; first domain with any matching keyword wins
_DOMAIN_KEYWORDS: list[tuple[str, frozenset[str]]] = [
    (
        Domains.SOFTWARE_DEVELOPMENT,
        frozenset(
            {"code", "function", "class", "api", "database", "test", "bug", "refactor", "deploy"}
        ),
    ),
    (
        Domains.DATA_ANALYSIS,
        frozenset({"data", "analyze", "chart", "graph", "statistics", "dataset", "metrics"}),
    ),
    (
        Domains.CONTENT_CREATION,
        frozenset({"write", "article", "blog", "post", "draft", "edit", "content"}),
    ),
    (
        Domains.PROJECT_MANAGEMENT,
        frozenset({"project", "task", "deadline", "milestone", "schedule", "team"}),
    ),
    (
        Domains.RESEARCH,
        frozenset({"research", "study", "paper", "hypothesis", "experiment", "literature"}),
    ),
    (
        Domains.DESIGN,
        frozenset({"design", "layout", "mockup", "prototype", "ui", "ux", "interface"}),
    ),
]


def classify_domain(keywords: Iterable[str]) -> str:
    """Map context keywords to a domain tag; "general" when nothing matches."""
    lowered = {keyword.lower() for keyword in keywords}
    for domain, domain_keywords in _DOMAIN_KEYWORDS:
        if lowered & domain_keywords:
            return domain
    return Domains.GENERAL


# =============================================================================
# COMPLEXITY
# =============================================================================

LONG_TEXT_THRESHOLD = 500


def estimate_complexity(
    num_entities: int | None = None,
    has_ambiguity: bool = False,
    prior_stops: int | None = None,
    has_multiple_paths: bool = False,
    text_length: int | None = None,
) -> int:
    """
    Score task complexity on the 1-5 scale.

    Starts at 1 and adds:
    - +2 for 5+ entities, +1 for 3-4
    - +1 for ambiguity
    - +1 for 3+ prior stops
    - +1 for multiple paths
    - +1 for text longer than LONG_TEXT_THRESHOLD

    The result is clamped to [1, 5].
    """
    score = ComplexityLevel.VERY_LOW

    if num_entities is not None:
        if num_entities >= 5:
            score += 2
        elif num_entities >= 3:
            score += 1

    if has_ambiguity:
        score += 1

    if prior_stops is not None and prior_stops >= 3:
        score += 1

    if has_multiple_paths:
        score += 1

    if text_length is not None and text_length > LONG_TEXT_THRESHOLD:
        score += 1

    return min(ComplexityLevel.VERY_HIGH, max(ComplexityLevel.VERY_LOW, score))


# =============================================================================
# SESSION CONTEXT
# =============================================================================


def create_session_context(stops: Iterable[Mapping[str, Any]]) -> SessionContext:
    """
    Summarize a session's stop history.

    Args:
        stops: Oldest-first records with "resolved" (bool) and "turns" (int)

    Returns:
        SessionContext with the total stop count, the number of trailing
        unresolved stops, and the mean turns over resolved stops
    """
    history = list(stops)

    consecutive = 0
    for stop in reversed(history):
        if stop.get("resolved"):
            break
        consecutive += 1

    resolved_turns = [stop.get("turns", 0) for stop in history if stop.get("resolved")]
    average = sum(resolved_turns) / len(resolved_turns) if resolved_turns else 0.0

    return SessionContext(
        previous_stops=len(history),
        consecutive_stops=consecutive,
        average_resolution_turns=average,
    )
