"""Audit ledger: required vs executed steps for one run.

The ledger is a pure reconciliation of the run context and plan. The
pass/fail outcome is supplied by the orchestrator and never recomputed here.
"""
from __future__ import annotations

import secrets
from dataclasses import dataclass
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from secaudit.io_utils import load_json, save_json
from secaudit.workflow_types import (
    ALL_STEPS,
    WORKFLOW_ID,
    InvocationMode,
    RunContext,
    StepName,
    WorkflowPlan,
)

LEDGER_SUFFIX = "-ledger.json"


def utc_now_iso() -> str:
    """Return current UTC timestamp in ISO-8601 format."""
    return datetime.now(UTC).isoformat()


def generate_invocation_id() -> str:
    """Compact invocation id: ``inv_<YYYYMMDD>_<6 hex>``."""
    date = datetime.now(UTC).strftime("%Y%m%d")
    return f"inv_{date}_{secrets.token_hex(3)}"


@dataclass(frozen=True, slots=True)
class SectionValidationEntry:
    found: bool
    confidence: float
    length_chars: int

    def as_dict(self) -> dict[str, Any]:
        return {
            "found": self.found,
            "confidence": self.confidence,
            "lengthChars": self.length_chars,
        }


@dataclass(frozen=True, slots=True)
class AuditLedger:
    invocation_id: str
    timestamp: str
    mode: InvocationMode
    deterministic: bool
    workflow: str
    required_steps: tuple[StepName, ...]
    executed_steps: tuple[StepName, ...]
    skipped_steps: tuple[StepName, ...]
    unreached_steps: tuple[StepName, ...]
    durations_ms: dict[str, float]
    section_validation: dict[str, SectionValidationEntry]
    passed: bool
    failure_reason: str | None = None

    def as_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "invocationId": self.invocation_id,
            "timestamp": self.timestamp,
            "mode": self.mode,
            "deterministic": self.deterministic,
            "workflow": self.workflow,
            "requiredSteps": list(self.required_steps),
            "executedSteps": list(self.executed_steps),
            "skippedSteps": list(self.skipped_steps),
            "unreachedSteps": list(self.unreached_steps),
            "durationsMs": dict(self.durations_ms),
            "sectionValidation": {
                name: entry.as_dict() for name, entry in self.section_validation.items()
            },
            "passed": self.passed,
        }
        if self.failure_reason is not None:
            payload["failureReason"] = self.failure_reason
        return payload


def build_ledger(
    ctx: RunContext,
    plan: WorkflowPlan,
    *,
    passed: bool,
    failure_reason: str | None = None,
) -> AuditLedger:
    """Classify every step result as executed or skipped.

    Steps that never produced a result (the tail after an enforced halt)
    are reported as unreached.
    """
    durations: dict[str, float] = {}
    executed: list[StepName] = []
    skipped: list[StepName] = list(plan.skipped_steps)

    for result in ctx.step_results:
        durations[result.name] = result.duration_ms
        if result.status in ("passed", "failed"):
            executed.append(result.name)
        elif result.status == "skipped" and result.name not in skipped:
            skipped.append(result.name)

    accounted = set(executed) | set(skipped)
    unreached = tuple(name for name in ALL_STEPS if name not in accounted)

    section_validation = {
        section.name: SectionValidationEntry(
            found=section.found,
            confidence=section.confidence,
            length_chars=section.length_chars,
        )
        for section in ctx.sections
    }

    return AuditLedger(
        invocation_id=ctx.options.invocation_id,
        timestamp=utc_now_iso(),
        mode=ctx.options.mode,
        deterministic=ctx.options.is_command,
        workflow=WORKFLOW_ID,
        required_steps=ALL_STEPS,
        executed_steps=tuple(executed),
        skipped_steps=tuple(skipped),
        unreached_steps=unreached,
        durations_ms=durations,
        section_validation=section_validation,
        passed=passed,
        failure_reason=failure_reason,
    )


def ledger_path(out_dir: Path, invocation_id: str) -> Path:
    return out_dir / f"{invocation_id}{LEDGER_SUFFIX}"


def write_ledger(ledger: AuditLedger, out_dir: Path) -> Path:
    """Write ``<out_dir>/<invocationId>-ledger.json`` and return its path."""
    path = ledger_path(out_dir, ledger.invocation_id)
    save_json(ledger.as_dict(), path, pretty=True)
    return path


def load_ledger(path: Path) -> dict[str, Any]:
    """Load a ledger payload from JSON."""
    data = load_json(path)
    if not isinstance(data, dict):
        raise ValueError(f"Invalid ledger payload in {path}")
    return data
