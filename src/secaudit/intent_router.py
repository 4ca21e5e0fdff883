"""Heuristic intent router: free text -> ticker, year, sections, skip set.

Keyword heuristics resolve what the user asked for. Which steps to skip is
decided by an injectable function of the extracted signals, so callers can
pick a seeded probabilistic policy, a fixed policy, or no skipping at all.
"""
from __future__ import annotations

import logging
import random
import re
from collections.abc import Callable
from dataclasses import dataclass

from secaudit.errors import InputError
from secaudit.policy import DEFAULT_POLICY, WorkflowPolicy
from secaudit.workflow_types import DEFAULT_REQUIRED_SECTIONS, StepName

log = logging.getLogger(__name__)

TICKER_PATTERNS: tuple[tuple[re.Pattern[str], str], ...] = (
    (re.compile(r"\bAAPL\b", re.IGNORECASE), "AAPL"),
    (re.compile(r"\bapple\b", re.IGNORECASE), "AAPL"),
    (re.compile(r"\bGOOGL?\b", re.IGNORECASE), "GOOGL"),
    (re.compile(r"\bgoogle\b", re.IGNORECASE), "GOOGL"),
    (re.compile(r"\balphabet\b", re.IGNORECASE), "GOOGL"),
    (re.compile(r"\bMSFT\b", re.IGNORECASE), "MSFT"),
    (re.compile(r"\bmicrosoft\b", re.IGNORECASE), "MSFT"),
    (re.compile(r"\bAMZN\b", re.IGNORECASE), "AMZN"),
    (re.compile(r"\bamazon\b", re.IGNORECASE), "AMZN"),
    (re.compile(r"\bTSLA\b", re.IGNORECASE), "TSLA"),
    (re.compile(r"\btesla\b", re.IGNORECASE), "TSLA"),
    (re.compile(r"\bmeta\b", re.IGNORECASE), "META"),
    (re.compile(r"\bfacebook\b", re.IGNORECASE), "META"),
    (re.compile(r"\bNVDA\b", re.IGNORECASE), "NVDA"),
    (re.compile(r"\bnvidia\b", re.IGNORECASE), "NVDA"),
)

_GENERIC_TICKER_RE = re.compile(r"\b([A-Z]{1,5})\b")
_YEAR_RE = re.compile(r"\b(20[1-3]\d)\b")

_TICKER_STOP_WORDS = frozenset({
    "THE", "AND", "FOR", "ARE", "BUT", "NOT", "YOU", "ALL",
    "CAN", "HER", "WAS", "ONE", "OUR", "OUT", "SEC", "PDF",
})


@dataclass(frozen=True, slots=True)
class IntentSignals:
    wants_risk_factors: bool
    wants_mdna: bool
    wants_financials: bool
    is_vague: bool


@dataclass(frozen=True, slots=True)
class IntentRoute:
    """What a router resolved. Shared by every router implementation."""

    ticker: str
    year: int
    required_sections: tuple[str, ...]
    skipped_steps: frozenset[StepName]
    reasoning: str = ""


type SkipDecision = Callable[[IntentSignals], frozenset[StepName]]


# ---------------------------------------------------------------------------
# Signal extraction
# ---------------------------------------------------------------------------


def extract_ticker(text: str) -> str | None:
    for pattern, ticker in TICKER_PATTERNS:
        if pattern.search(text):
            return ticker
    m = _GENERIC_TICKER_RE.search(text)
    if m:
        candidate = m.group(1)
        if candidate not in _TICKER_STOP_WORDS and len(candidate) >= 2:
            return candidate
    return None


def extract_year(text: str) -> int | None:
    """Latest plausible filing year mentioned in ``text``."""
    years = [int(y) for y in _YEAR_RE.findall(text)]
    return max(years) if years else None


def extract_intent_signals(text: str) -> IntentSignals:
    lower = text.lower()
    return IntentSignals(
        wants_risk_factors="risk" in lower or "item 1a" in lower,
        wants_mdna=any(
            kw in lower for kw in ("md&a", "discussion", "management", "item 7")
        ),
        wants_financials=any(
            kw in lower
            for kw in ("financial", "revenue", "earnings", "item 8", "balance sheet")
        ),
        is_vague=not any(
            kw in lower for kw in ("risk", "financial", "md&a", "discussion", "item")
        ),
    )


def resolve_required_sections(signals: IntentSignals) -> tuple[str, ...]:
    if signals.is_vague:
        return DEFAULT_REQUIRED_SECTIONS
    sections: list[str] = []
    if signals.wants_risk_factors:
        sections.append("risk-factors")
    if signals.wants_mdna:
        sections.append("mdna")
    if signals.wants_financials:
        sections.append("financials")
    return tuple(sections) or DEFAULT_REQUIRED_SECTIONS


# ---------------------------------------------------------------------------
# Skip decisions
# ---------------------------------------------------------------------------


def never_skip(signals: IntentSignals) -> frozenset[StepName]:
    return frozenset()


def probabilistic_skips(
    policy: WorkflowPolicy = DEFAULT_POLICY,
    rng: random.Random | None = None,
) -> SkipDecision:
    """Skip decision drawing from ``rng`` with the policy's probabilities.

    Pass a seeded ``random.Random`` for reproducible runs.
    """
    generator = rng or random.Random()

    def decide(signals: IntentSignals) -> frozenset[StepName]:
        skips: set[StepName] = set()
        if generator.random() < policy.skip_probability("validate"):
            skips.add("validate")
        if signals.is_vague and generator.random() < policy.skip_probability(
            "locate_sections_when_vague"
        ):
            skips.add("locate_sections")
        if generator.random() < policy.skip_probability("generate"):
            skips.add("generate")
        return frozenset(skips)

    return decide


# ---------------------------------------------------------------------------
# Router
# ---------------------------------------------------------------------------


def resolve_ticker_and_year(
    text: str,
    *,
    ticker: str | None = None,
    year: int | None = None,
) -> tuple[str, int]:
    resolved_ticker = ticker or extract_ticker(text)
    resolved_year = year or extract_year(text)
    if not resolved_ticker:
        raise InputError(
            "Could not determine ticker from intent. "
            'Try: secaudit intent "analyze AAPL 10-K 2023", or provide --ticker explicitly.'
        )
    if not resolved_year:
        raise InputError(
            "Could not determine year from intent. "
            'Try including a year like "2023" or provide --year explicitly.'
        )
    return resolved_ticker.upper(), resolved_year


def route_intent(
    text: str,
    *,
    ticker: str | None = None,
    year: int | None = None,
    decide_skips: SkipDecision | None = None,
    policy: WorkflowPolicy = DEFAULT_POLICY,
    seed: int | None = None,
) -> IntentRoute:
    """Route free text with keyword heuristics.

    ``decide_skips`` defaults to ``probabilistic_skips`` seeded with ``seed``.
    """
    resolved_ticker, resolved_year = resolve_ticker_and_year(text, ticker=ticker, year=year)
    signals = extract_intent_signals(text)
    sections = resolve_required_sections(signals)

    decide = decide_skips or probabilistic_skips(policy, random.Random(seed))
    skipped = decide(signals)

    log.info("[intent] Router: heuristic (keyword-based)")
    log.info("[intent] Resolved: ticker=%s year=%s", resolved_ticker, resolved_year)
    log.info("[intent] Sections: %s", ", ".join(sections))
    if skipped:
        log.info("[intent] Skips: %s", ", ".join(sorted(skipped)))

    return IntentRoute(
        ticker=resolved_ticker,
        year=resolved_year,
        required_sections=sections,
        skipped_steps=skipped,
        reasoning="keyword heuristics",
    )
