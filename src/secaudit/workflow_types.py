"""Core types for the 10-K analysis workflow.

Every component in the control plane shares these types. Value types are
frozen; ``RunContext`` is the single mutable object of a run and is owned by
the orchestrator, which passes it by reference to each step's work unit.

Type hierarchy:
  RunOptions: Immutable invocation parameters
  FetchResult: Raw filing payload plus its content kind
  SectionMatch: Locator output for one section key
  SectionAnalysis: Summarizer output for one requested section
  StepResult: Terminal outcome of one workflow step
  WorkflowStep: Named unit of work with a mode-dependent required flag
  WorkflowPlan: Ordered steps, external skip set, confidence threshold
  RunContext: Mutable state threaded through the steps
"""
from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Literal

type InvocationMode = Literal["command", "intent"]
type OutputFormat = Literal["json", "md"]
type ContentKind = Literal["html", "pdf", "text"]
type StepName = Literal[
    "fetch",
    "extract",
    "locate_sections",
    "validate",
    "generate",
    "emit_ledger",
]
type StepStatus = Literal["pending", "running", "passed", "failed", "skipped"]

# The fixed step universe, in plan order. The ledger measures coverage
# against this tuple.
ALL_STEPS: tuple[StepName, ...] = (
    "fetch",
    "extract",
    "locate_sections",
    "validate",
    "generate",
    "emit_ledger",
)

WORKFLOW_ID = "analyze_10k_v1"

DEFAULT_REQUIRED_SECTIONS: tuple[str, ...] = ("risk-factors", "mdna", "financials")


# ---------------------------------------------------------------------------
# Invocation
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class RunOptions:
    """Parameters of a single invocation. Immutable once constructed."""

    ticker: str
    year: int
    mode: InvocationMode
    invocation_id: str
    require: tuple[str, ...] = DEFAULT_REQUIRED_SECTIONS
    strict: bool = True
    format: OutputFormat = "json"
    out_dir: Path = Path("out")
    url: str | None = None
    file: Path | None = None

    @property
    def is_command(self) -> bool:
        """True for the deterministic (strict) mode."""
        return self.mode == "command"


@dataclass(frozen=True, slots=True)
class FetchResult:
    """Filing payload as delivered by a fetch collaborator."""

    content: str | bytes
    content_kind: ContentKind
    source: str = ""


# ---------------------------------------------------------------------------
# Analysis results
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class SectionMatch:
    """Located section. Produced once by the locator, read-only afterwards.

    Offsets are block indices on the markup path and character offsets on
    the flat-text path; both are -1 when the section was not found.
    """

    name: str
    found: bool
    confidence: float
    start_offset: int
    end_offset: int
    length_chars: int
    content: str

    @classmethod
    def not_found(cls, name: str) -> SectionMatch:
        return cls(
            name=name,
            found=False,
            confidence=0.0,
            start_offset=-1,
            end_offset=-1,
            length_chars=0,
            content="",
        )


@dataclass(frozen=True, slots=True)
class SectionAnalysis:
    """Extractive summary of one requested section."""

    name: str
    found: bool
    confidence: float
    summary: tuple[str, ...] = ()
    evidence: tuple[str, ...] = ()

    def as_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "found": self.found,
            "confidence": self.confidence,
            "summary": list(self.summary),
            "evidence": list(self.evidence),
        }


# ---------------------------------------------------------------------------
# Workflow
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class StepResult:
    name: StepName
    status: StepStatus
    duration_ms: float
    error: str | None = None


@dataclass(frozen=True, slots=True)
class WorkflowStep:
    """A named unit of work. ``required`` is fixed at plan-build time."""

    name: StepName
    required: bool
    execute: Callable[[RunContext], None]


@dataclass(frozen=True, slots=True)
class WorkflowPlan:
    steps: tuple[WorkflowStep, ...]
    confidence_threshold: float
    skipped_steps: tuple[StepName, ...] = ()

    def with_skipped(self, names: tuple[StepName, ...] | frozenset[StepName]) -> WorkflowPlan:
        """Return a copy carrying an externally supplied skip set.

        Names keep plan order so ledgers are stable across runs.
        """
        wanted = set(names)
        unknown = wanted.difference(ALL_STEPS)
        if unknown:
            raise ValueError(f"Unknown step name(s): {', '.join(sorted(unknown))}")
        ordered = tuple(name for name in ALL_STEPS if name in wanted)
        return replace(self, skipped_steps=ordered)

    def step(self, name: StepName) -> WorkflowStep:
        for step in self.steps:
            if step.name == name:
                return step
        raise KeyError(name)


@dataclass(slots=True)
class RunContext:
    """Mutable state of one run. Exactly one writer at a time."""

    options: RunOptions
    raw_content: str | bytes = ""
    content_kind: ContentKind = "html"
    extracted_text: str = ""
    sections: list[SectionMatch] = field(default_factory=list)
    analyses: list[SectionAnalysis] = field(default_factory=list)
    step_results: list[StepResult] = field(default_factory=list)
    overall_summary: list[str] = field(default_factory=list)
    validation_warnings: list[str] = field(default_factory=list)
