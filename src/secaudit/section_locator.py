"""Section locator for 10-K filings.

Finds three logical sections by their Item headings:
- ``risk_factors``: Item 1A. Risk Factors
- ``mdna``: Item 7. Management's Discussion and Analysis
- ``financials``: Item 8. Financial Statements and Supplementary Data

Each section has an ordered list of heading patterns. The first pattern is
the canonical wording and earns the higher confidence tier; later patterns
are bare item-number fallbacks and earn the lower tier.

Two paths:
    1. Markup: walk the top-level ``<body>`` blocks; a short block matching
       a heading pattern opens the section, the next short "Item N" block
       closes it. Offsets are block indices.
    2. Flat text: regex search over the extracted text; the section ends at
       the first later "Item N" line or a line cap. Offsets are character
       offsets.
"""
from __future__ import annotations

import re
from dataclasses import dataclass

from secaudit.html_utils import top_level_blocks
from secaudit.workflow_types import ContentKind, SectionMatch

# ---------------------------------------------------------------------------
# Section patterns
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class SectionPattern:
    key: str
    aliases: tuple[str, ...]
    heading_patterns: tuple[str, ...]


# Sources are unanchored; the markup path anchors them at block start.
SECTION_PATTERNS: tuple[SectionPattern, ...] = (
    SectionPattern(
        key="risk_factors",
        aliases=("risk-factors", "risk_factors"),
        heading_patterns=(
            r"item\s+1a[.\s\-—–]+risk\s+factors",
            r"item\s+1a\b",
        ),
    ),
    SectionPattern(
        key="mdna",
        aliases=("mdna", "md&a", "mda"),
        heading_patterns=(
            r"item\s+7[.\s\-—–]+management['’]?s?\s+discussion",
            # "Item 7" but not "Item 7A"
            r"item\s+7\b(?!\s*a)",
        ),
    ),
    SectionPattern(
        key="financials",
        aliases=("financials", "financial-statements", "financial_statements"),
        heading_patterns=(
            r"item\s+8[.\s\-—–]+financial\s+statements",
            r"item\s+8\b",
        ),
    ),
)

_ALIAS_TO_KEY: dict[str, str] = {
    alias: pattern.key for pattern in SECTION_PATTERNS for alias in pattern.aliases
}

# Any "Item N" / "Item NA" heading. Closes the current section.
NEXT_ITEM_HEADING_RE = re.compile(r"^item\s+\d+[a-z]?[.\s\-—–]", re.IGNORECASE)

# Confidence tiers: (canonical wording, bare item number).
MARKUP_CONFIDENCE: tuple[float, float] = (0.95, 0.90)
TEXT_CONFIDENCE: tuple[float, float] = (0.90, 0.85)

_HEADING_MIN_CHARS = 3
_HEADING_MAX_CHARS = 150
_NEXT_ITEM_MAX_CHARS_MARKUP = 100
_NEXT_ITEM_MAX_CHARS_TEXT = 150
# Lines right after a heading may echo its own trigger words.
_HEADING_ECHO_LINES = 3
_TEXT_LINE_CAP = 800
MAX_SECTION_CHARS = 100_000


def _compile(sources: tuple[str, ...], *, anchored: bool) -> tuple[re.Pattern[str], ...]:
    prefix = "^" if anchored else ""
    return tuple(re.compile(prefix + src, re.IGNORECASE) for src in sources)


_MARKUP_PATTERNS: dict[str, tuple[re.Pattern[str], ...]] = {
    p.key: _compile(p.heading_patterns, anchored=True) for p in SECTION_PATTERNS
}
_TEXT_PATTERNS: dict[str, tuple[re.Pattern[str], ...]] = {
    p.key: _compile(p.heading_patterns, anchored=False) for p in SECTION_PATTERNS
}


# ---------------------------------------------------------------------------
# Alias resolution
# ---------------------------------------------------------------------------


def resolve_section_key(require_key: str) -> str | None:
    """Canonical section key for a requested name, or None if unknown."""
    return _ALIAS_TO_KEY.get(require_key.strip().lower())


def matches_section_key(section_name: str, require_key: str) -> bool:
    """True when ``require_key`` is an alias of section ``section_name``."""
    return resolve_section_key(require_key) == section_name


def find_section(sections: list[SectionMatch], require_key: str) -> SectionMatch | None:
    """First located section answering to ``require_key``."""
    key = resolve_section_key(require_key)
    if key is None:
        return None
    for section in sections:
        if section.name == key:
            return section
    return None


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def locate_sections(
    raw_content: str | bytes,
    extracted_text: str,
    content_kind: ContentKind,
) -> list[SectionMatch]:
    """Locate every configured section. One result per pattern, in order."""
    match content_kind:
        case "html":
            raw = raw_content.decode("utf-8", errors="replace") if isinstance(
                raw_content, bytes
            ) else raw_content
            return locate_in_html(raw)
        case "pdf" | "text":
            return locate_in_text(extracted_text)
        case _:
            raise ValueError(f"Unsupported content kind: {content_kind!r}")


def locate_in_html(raw_html: str) -> list[SectionMatch]:
    blocks = top_level_blocks(raw_html)
    return [_find_in_blocks(blocks, pattern.key) for pattern in SECTION_PATTERNS]


def locate_in_text(text: str) -> list[SectionMatch]:
    return [_find_in_text(text, pattern.key) for pattern in SECTION_PATTERNS]


# ---------------------------------------------------------------------------
# Internal: markup path
# ---------------------------------------------------------------------------


def _match_tier(text: str, patterns: tuple[re.Pattern[str], ...]) -> int | None:
    for tier, pat in enumerate(patterns):
        if pat.search(text):
            return tier
    return None


def _find_in_blocks(blocks: list[str], key: str) -> SectionMatch:
    patterns = _MARKUP_PATTERNS[key]
    heading_idx = -1
    tier = 0
    for i, text in enumerate(blocks):
        if not _HEADING_MIN_CHARS <= len(text) <= _HEADING_MAX_CHARS:
            continue
        hit = _match_tier(text, patterns)
        if hit is not None:
            heading_idx, tier = i, hit
            break

    if heading_idx < 0:
        return SectionMatch.not_found(key)

    content_blocks: list[str] = []
    end_idx = len(blocks)
    for i in range(heading_idx + 1, len(blocks)):
        text = blocks[i]
        if len(text) < _NEXT_ITEM_MAX_CHARS_MARKUP and NEXT_ITEM_HEADING_RE.match(text):
            end_idx = i
            break
        if len(text) > 2:
            content_blocks.append(text)

    content = "\n".join(content_blocks)
    return SectionMatch(
        name=key,
        found=True,
        confidence=MARKUP_CONFIDENCE[min(tier, 1)],
        start_offset=heading_idx,
        end_offset=end_idx,
        length_chars=len(content),
        content=content,
    )


# ---------------------------------------------------------------------------
# Internal: flat-text path
# ---------------------------------------------------------------------------


def _find_in_text(text: str, key: str) -> SectionMatch:
    for tier, pat in enumerate(_TEXT_PATTERNS[key]):
        m = pat.search(text)
        if m is None:
            continue
        content = _text_section(text, m.start())
        return SectionMatch(
            name=key,
            found=True,
            confidence=TEXT_CONFIDENCE[min(tier, 1)],
            start_offset=m.start(),
            end_offset=m.start() + len(content),
            length_chars=len(content),
            content=content,
        )
    return SectionMatch.not_found(key)


def _text_section(text: str, start: int) -> str:
    """Text from ``start`` up to the next Item heading line.

    Without a closing heading the section runs for at most the line cap.
    Content is hard-capped at ``MAX_SECTION_CHARS``.
    """
    lines = text[start:].split("\n")

    end_idx = -1
    for i in range(_HEADING_ECHO_LINES, len(lines)):
        trimmed = lines[i].strip()
        if len(trimmed) < 3:
            continue
        if len(trimmed) < _NEXT_ITEM_MAX_CHARS_TEXT and NEXT_ITEM_HEADING_RE.match(trimmed):
            end_idx = i
            break

    kept = lines[:end_idx] if end_idx > 0 else lines[:_TEXT_LINE_CAP]
    content = "\n".join(kept).strip()
    return content[:MAX_SECTION_CHARS]
