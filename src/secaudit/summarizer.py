"""Extractive summaries of located sections.

Sentences are scored by keyword hits from a per-section list, with a bonus
for currency figures and percentages. The scoring function is shared; only
the keyword lists differ by section.
"""
from __future__ import annotations

import re
from dataclasses import dataclass

from secaudit.section_locator import find_section, resolve_section_key
from secaudit.workflow_types import SectionAnalysis, SectionMatch

MAX_SUMMARY_POINTS = 5
MAX_EVIDENCE_SNIPPETS = 3
MAX_EVIDENCE_CHARS = 200
MIN_SENTENCE_CHARS = 30
MAX_SENTENCE_CHARS = 500
FIGURE_BONUS = 0.5

_SENTENCE_END_RE = re.compile(r"(?<=[.!?])\s+")
_CURRENCY_RE = re.compile(r"\$[\d,.]+")
_PERCENT_RE = re.compile(r"\d+(?:\.\d+)?%")

RISK_KEYWORDS: tuple[str, ...] = (
    "risk", "adverse", "uncertainty", "litigation", "regulatory",
    "competition", "cybersecurity", "supply chain", "economic",
    "volatility", "liability", "compliance", "disruption",
)

FINANCIAL_KEYWORDS: tuple[str, ...] = (
    "revenue", "income", "loss", "margin", "earnings", "cash flow",
    "assets", "liabilities", "debt", "capital", "dividend",
    "operating", "growth", "decline", "increase", "decrease",
)

MDNA_KEYWORDS: tuple[str, ...] = (
    "revenue", "growth", "margin", "decline", "increase", "segment",
    "operating", "strategy", "outlook", "trend", "driver",
    "year-over-year", "compared to", "primarily due", "result of",
)

SECTION_KEYWORDS: dict[str, tuple[str, ...]] = {
    "risk_factors": RISK_KEYWORDS,
    "mdna": MDNA_KEYWORDS,
    "financials": FINANCIAL_KEYWORDS,
}


@dataclass(frozen=True, slots=True)
class ScoredSentence:
    text: str
    score: float


@dataclass(frozen=True, slots=True)
class AnalysisResult:
    sections: tuple[SectionAnalysis, ...]
    overall_summary: tuple[str, ...]


def split_sentences(text: str) -> list[str]:
    """Split on terminal punctuation followed by whitespace."""
    return [s.strip() for s in _SENTENCE_END_RE.split(text) if s.strip()]


def keywords_for(section_name: str) -> tuple[str, ...]:
    return SECTION_KEYWORDS.get(section_name, RISK_KEYWORDS + FINANCIAL_KEYWORDS)


def score_sentence(text: str, keywords: tuple[str, ...]) -> float:
    """+1 per keyword present, plus a bonus for a dollar figure or percentage."""
    lower = text.lower()
    score = float(sum(1 for kw in keywords if kw in lower))
    if _CURRENCY_RE.search(text) or _PERCENT_RE.search(text):
        score += FIGURE_BONUS
    return score


def score_sentences(sentences: list[str], keywords: tuple[str, ...]) -> list[ScoredSentence]:
    """Score sentences inside the length band, best first.

    Ties keep document order (``sorted`` is stable).
    """
    scored = [
        ScoredSentence(text=s, score=score_sentence(s, keywords))
        for s in sentences
        if MIN_SENTENCE_CHARS < len(s) < MAX_SENTENCE_CHARS
    ]
    return sorted(scored, key=lambda s: s.score, reverse=True)


def truncate(text: str, max_len: int) -> str:
    if len(text) <= max_len:
        return text
    return text[: max_len - 3] + "..."


def analyze_section(section: SectionMatch) -> SectionAnalysis:
    scored = score_sentences(split_sentences(section.content), keywords_for(section.name))
    return SectionAnalysis(
        name=section.name,
        found=True,
        confidence=section.confidence,
        summary=tuple(s.text for s in scored[:MAX_SUMMARY_POINTS]),
        evidence=tuple(
            truncate(s.text, MAX_EVIDENCE_CHARS) for s in scored[:MAX_EVIDENCE_SNIPPETS]
        ),
    )


def generate_analysis(
    sections: list[SectionMatch],
    required_keys: tuple[str, ...] | list[str],
) -> AnalysisResult:
    """One analysis per requested key, including not-found placeholders."""
    analyses: list[SectionAnalysis] = []
    for req_key in required_keys:
        section = find_section(sections, req_key)
        if section is None or not section.found:
            analyses.append(SectionAnalysis(
                name=resolve_section_key(req_key) or req_key,
                found=False,
                confidence=0.0,
            ))
            continue
        analyses.append(analyze_section(section))

    return AnalysisResult(
        sections=tuple(analyses),
        overall_summary=tuple(build_overall_summary(analyses)),
    )


def build_overall_summary(analyses: list[SectionAnalysis]) -> list[str]:
    """Found/missing listing followed by each found section's top sentence."""
    found = [a for a in analyses if a.found]
    missing = [a for a in analyses if not a.found]

    summary: list[str] = []
    if found:
        summary.append(
            f"Analyzed {len(found)} section(s): {', '.join(a.name for a in found)}."
        )
    if missing:
        summary.append(f"Missing section(s): {', '.join(a.name for a in missing)}.")
    for a in found:
        if a.summary:
            summary.append(f"{a.name}: {a.summary[0]}")
    return summary
