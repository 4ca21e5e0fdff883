"""Threshold validation of located sections.

Every required key is checked independently; all failures of a run are
collected into one composite report. Escalation is the caller's choice:
``hard_fail`` raises, otherwise the report is logged as a warning.
"""
from __future__ import annotations

import logging

from secaudit.errors import SectionValidationError, format_failures
from secaudit.section_locator import find_section
from secaudit.workflow_types import SectionMatch

log = logging.getLogger(__name__)

MIN_SECTION_LENGTH = 500


def collect_failures(
    sections: list[SectionMatch],
    required_keys: tuple[str, ...] | list[str],
    confidence_threshold: float,
    *,
    min_length: int = MIN_SECTION_LENGTH,
) -> tuple[str, ...]:
    """Return one human-readable failure per failing check."""
    failures: list[str] = []
    for req_key in required_keys:
        section = find_section(sections, req_key)
        if section is None or not section.found:
            failures.append(f'Section "{req_key}" not found in filing')
            continue
        if section.confidence < confidence_threshold:
            failures.append(
                f'Section "{req_key}" confidence {section.confidence:.2f} '
                f"below threshold {confidence_threshold:.2f}"
            )
        if section.length_chars < min_length:
            failures.append(
                f'Section "{req_key}" too short ({section.length_chars} chars, '
                f"minimum {min_length})"
            )
    return tuple(failures)


def validate_sections(
    sections: list[SectionMatch],
    required_keys: tuple[str, ...] | list[str],
    confidence_threshold: float,
    *,
    hard_fail: bool,
    min_length: int = MIN_SECTION_LENGTH,
) -> tuple[str, ...]:
    """Validate required sections.

    Returns:
        The failures (empty when every section passes).

    Raises:
        SectionValidationError: if any check failed and ``hard_fail`` is set.
    """
    failures = collect_failures(
        sections, required_keys, confidence_threshold, min_length=min_length,
    )
    if not failures:
        return failures
    if hard_fail:
        raise SectionValidationError(failures)
    log.warning(format_failures(failures))
    return failures
