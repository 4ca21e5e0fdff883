"""Step orchestrator: runs a plan against one run context.

Per-step state machine::

    pending -> running -> passed | failed
    pending -> skipped

Steps run strictly in plan order. A failure of a required step in command
mode halts the sequence: the ledger is written with ``passed=false`` and
``RequiredStepFailure`` is raised. Any other failure is recorded and the
run continues. The ledger is written exactly once per run; the analysis
artifact only when the run passed.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from time import perf_counter

from secaudit.errors import RequiredStepFailure
from secaudit.fetcher import FilingFetcher
from secaudit.ledger import AuditLedger, build_ledger, write_ledger
from secaudit.policy import DEFAULT_POLICY, WorkflowPolicy
from secaudit.report import build_analysis_output, write_analysis
from secaudit.workflow import build_workflow
from secaudit.workflow_types import (
    WORKFLOW_ID,
    RunContext,
    RunOptions,
    StepName,
    StepResult,
    StepStatus,
    WorkflowPlan,
)

log = logging.getLogger(__name__)

_TRANSITIONS: dict[StepStatus, frozenset[StepStatus]] = {
    "pending": frozenset({"running", "skipped"}),
    "running": frozenset({"passed", "failed"}),
    "passed": frozenset(),
    "failed": frozenset(),
    "skipped": frozenset(),
}


class StepStateTracker:
    """Tracks each step's state and rejects illegal transitions."""

    def __init__(self, names: tuple[StepName, ...]) -> None:
        self._states: dict[StepName, StepStatus] = {name: "pending" for name in names}

    def state(self, name: StepName) -> StepStatus:
        return self._states[name]

    def transition(self, name: StepName, new: StepStatus) -> None:
        current = self._states[name]
        if new not in _TRANSITIONS[current]:
            raise RuntimeError(f"Illegal step transition for {name}: {current} -> {new}")
        self._states[name] = new
        log.debug("step %s: %s -> %s", name, current, new)


@dataclass(frozen=True, slots=True)
class RunOutcome:
    context: RunContext
    ledger: AuditLedger
    ledger_path: Path
    analysis_path: Path | None


def run_workflow(
    options: RunOptions,
    plan: WorkflowPlan | None = None,
    *,
    policy: WorkflowPolicy = DEFAULT_POLICY,
    fetcher: FilingFetcher | None = None,
) -> RunOutcome:
    """Execute every step of ``plan`` (built from ``options`` when omitted).

    Raises:
        ValueError: a command-mode run was given a plan with skipped steps.
            Nothing runs and no ledger is written.
        RequiredStepFailure: a required step failed in command mode. The
            ledger has been written before this is raised.
    """
    ctx = RunContext(options=options)
    if plan is None:
        plan = build_workflow(options, policy=policy, fetcher=fetcher)
    skipped = set(plan.skipped_steps)
    if options.is_command and skipped:
        raise ValueError(
            "Command mode runs every step; refusing plan that skips: "
            + ", ".join(sorted(skipped))
        )
    tracker = StepStateTracker(tuple(step.name for step in plan.steps))

    log.info(
        "mode=%s workflow=%s id=%s", options.mode, WORKFLOW_ID, options.invocation_id,
    )
    log.info(
        "ticker=%s year=%s strict=%s threshold=%.2f",
        options.ticker, options.year, options.strict, plan.confidence_threshold,
    )

    failure_reason: str | None = None
    for step in plan.steps:
        if step.name in skipped:
            tracker.transition(step.name, "skipped")
            ctx.step_results.append(StepResult(name=step.name, status="skipped", duration_ms=0.0))
            log.info("[skip] %s", step.name)
            continue

        tracker.transition(step.name, "running")
        log.info("[run]  %s", step.name)
        started = perf_counter()
        try:
            step.execute(ctx)
        except Exception as exc:
            duration_ms = round((perf_counter() - started) * 1000, 3)
            message = str(exc) or exc.__class__.__name__
            tracker.transition(step.name, "failed")
            ctx.step_results.append(StepResult(
                name=step.name, status="failed", duration_ms=duration_ms, error=message,
            ))
            log.error("[FAIL] %s: %s", step.name, message)

            if step.required and options.is_command:
                ledger, path, _ = _emit_outputs(ctx, plan, passed=False, failure_reason=message)
                log.error('required step "%s" failed in command mode; run halted', step.name)
                raise RequiredStepFailure(step.name, message, ledger=ledger, ledger_path=path) from exc
            if step.required and failure_reason is None:
                failure_reason = f"{step.name}: {message}"
            continue

        duration_ms = round((perf_counter() - started) * 1000, 3)
        tracker.transition(step.name, "passed")
        ctx.step_results.append(StepResult(name=step.name, status="passed", duration_ms=duration_ms))
        log.info("[pass] %s (%.1fms)", step.name, duration_ms)

    ledger, path, analysis_path = _emit_outputs(
        ctx, plan, passed=failure_reason is None, failure_reason=failure_reason,
    )
    log.info("done. Output written to %s", options.out_dir)
    return RunOutcome(context=ctx, ledger=ledger, ledger_path=path, analysis_path=analysis_path)


def _emit_outputs(
    ctx: RunContext,
    plan: WorkflowPlan,
    *,
    passed: bool,
    failure_reason: str | None,
) -> tuple[AuditLedger, Path, Path | None]:
    out_dir = ctx.options.out_dir
    ledger = build_ledger(ctx, plan, passed=passed, failure_reason=failure_reason)
    path = write_ledger(ledger, out_dir)
    log.info("ledger: %s", path)

    analysis_path: Path | None = None
    if passed:
        analysis_path = write_analysis(build_analysis_output(ctx), out_dir, ctx.options.format)
        log.info("analysis: %s", analysis_path)
    return ledger, path, analysis_path


def remediation_hints(step: StepName, message: str) -> list[str]:
    """Suggestions shown for the step that failed, and only that step."""
    if step == "fetch":
        return [
            "Try --url <direct-filing-url> or --file <local-filing>",
            "Check ticker spelling and year availability",
        ]
    if step == "extract":
        return [
            "The filing format may be unsupported",
            "Try --url with an HTML filing instead",
        ]
    if step == "validate":
        return [
            "Try --no-strict to lower the confidence threshold",
            "Try a different filing year",
            f"Details: {message}",
        ]
    return []
