"""Workflow policy: thresholds, length floors and router probabilities.

Values are data, not logic. A JSON file can override any field::

    {"command_threshold": 0.8, "skip_probabilities": {"validate": 0.0}}
"""
from __future__ import annotations

import os
from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from typing import Any

from secaudit.io_utils import load_json

POLICY_ENV_VAR = "SECAUDIT_POLICY"

DEFAULT_SKIP_PROBABILITIES: dict[str, float] = {
    "validate": 0.5,
    "locate_sections_when_vague": 0.4,
    "generate": 0.2,
}


@dataclass(frozen=True, slots=True)
class WorkflowPolicy:
    command_threshold: float = 0.75
    intent_threshold: float = 0.5
    min_section_length: int = 500
    min_extracted_chars: int = 1000
    skip_probabilities: dict[str, float] = field(
        default_factory=lambda: dict(DEFAULT_SKIP_PROBABILITIES)
    )

    def __post_init__(self) -> None:
        for name in ("command_threshold", "intent_threshold"):
            value = getattr(self, name)
            if not 0.0 <= value <= 1.0:
                raise ValueError(f"{name} must be within [0, 1], got {value}")
        if self.command_threshold < self.intent_threshold:
            raise ValueError(
                "command_threshold must be >= intent_threshold "
                f"({self.command_threshold} < {self.intent_threshold})"
            )
        for key, prob in self.skip_probabilities.items():
            if key not in DEFAULT_SKIP_PROBABILITIES:
                raise ValueError(f"Unknown skip probability key: {key}")
            if not 0.0 <= prob <= 1.0:
                raise ValueError(f"skip probability {key} must be within [0, 1], got {prob}")

    def threshold_for(self, *, is_command: bool, strict: bool) -> float:
        """Confidence threshold in effect for a run.

        ``--no-strict`` relaxes command mode to the intent threshold.
        """
        if is_command and strict:
            return self.command_threshold
        return self.intent_threshold

    def skip_probability(self, key: str) -> float:
        return float(self.skip_probabilities.get(key, DEFAULT_SKIP_PROBABILITIES[key]))


DEFAULT_POLICY = WorkflowPolicy()


def policy_from_dict(data: dict[str, Any], *, base: WorkflowPolicy = DEFAULT_POLICY) -> WorkflowPolicy:
    """Overlay a mapping onto ``base``. Unknown keys are rejected."""
    known = {f.name for f in fields(WorkflowPolicy)}
    unknown = sorted(set(data) - known)
    if unknown:
        raise ValueError(f"Unknown policy key(s): {', '.join(unknown)}")

    updates: dict[str, Any] = {}
    for key, value in data.items():
        if key == "skip_probabilities":
            if not isinstance(value, dict):
                raise ValueError("skip_probabilities must be an object")
            merged = dict(base.skip_probabilities)
            merged.update({str(k): float(v) for k, v in value.items()})
            updates[key] = merged
        elif key in ("min_section_length", "min_extracted_chars"):
            updates[key] = int(value)
        else:
            updates[key] = float(value)
    return replace(base, **updates)


def load_policy(path: Path | None = None) -> WorkflowPolicy:
    """Load policy from ``path``, else from ``$SECAUDIT_POLICY``, else defaults."""
    if path is None:
        env_path = os.getenv(POLICY_ENV_VAR, "").strip()
        if not env_path:
            return DEFAULT_POLICY
        path = Path(env_path)
    data = load_json(path)
    if not isinstance(data, dict):
        raise ValueError(f"Invalid policy payload in {path}")
    return policy_from_dict(data)
