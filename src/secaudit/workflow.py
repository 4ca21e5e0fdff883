"""Workflow planner: options -> ordered plan of named steps.

``fetch``, ``extract``, ``locate_sections`` and ``emit_ledger`` are always
required. ``validate`` and ``generate`` are required only in command mode.
The planner never skips steps; an external router may attach a skip set
with ``WorkflowPlan.with_skipped``.
"""
from __future__ import annotations

from secaudit.errors import InputError
from secaudit.extractor import extract_text
from secaudit.fetcher import FilingFetcher
from secaudit.policy import DEFAULT_POLICY, WorkflowPolicy
from secaudit.section_locator import locate_sections
from secaudit.section_validator import validate_sections
from secaudit.summarizer import generate_analysis
from secaudit.workflow_types import RunContext, RunOptions, WorkflowPlan, WorkflowStep


def build_workflow(
    options: RunOptions,
    *,
    policy: WorkflowPolicy = DEFAULT_POLICY,
    fetcher: FilingFetcher | None = None,
) -> WorkflowPlan:
    is_command = options.is_command
    threshold = policy.threshold_for(is_command=is_command, strict=options.strict)
    source = fetcher or FilingFetcher()

    def fetch(ctx: RunContext) -> None:
        result = source.fetch(ctx.options)
        ctx.raw_content = result.content
        ctx.content_kind = result.content_kind

    def extract(ctx: RunContext) -> None:
        ctx.extracted_text = extract_text(ctx.raw_content, ctx.content_kind)
        if len(ctx.extracted_text) < policy.min_extracted_chars:
            raise InputError(
                f"Extracted text too short ({len(ctx.extracted_text)} chars). "
                "Filing may be malformed."
            )

    def locate(ctx: RunContext) -> None:
        ctx.sections = locate_sections(ctx.raw_content, ctx.extracted_text, ctx.content_kind)

    def validate(ctx: RunContext) -> None:
        warnings = validate_sections(
            ctx.sections,
            ctx.options.require,
            threshold,
            hard_fail=is_command,
            min_length=policy.min_section_length,
        )
        ctx.validation_warnings.extend(warnings)

    def generate(ctx: RunContext) -> None:
        result = generate_analysis(ctx.sections, ctx.options.require)
        ctx.analyses = list(result.sections)
        ctx.overall_summary = list(result.overall_summary)

    def emit_ledger(ctx: RunContext) -> None:
        # The orchestrator writes the ledger once, after the last step.
        return None

    steps = (
        WorkflowStep(name="fetch", required=True, execute=fetch),
        WorkflowStep(name="extract", required=True, execute=extract),
        WorkflowStep(name="locate_sections", required=True, execute=locate),
        WorkflowStep(name="validate", required=is_command, execute=validate),
        WorkflowStep(name="generate", required=is_command, execute=generate),
        WorkflowStep(name="emit_ledger", required=True, execute=emit_ledger),
    )
    return WorkflowPlan(steps=steps, confidence_threshold=threshold)
