"""Exception taxonomy for the analysis workflow."""
from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from secaudit.ledger import AuditLedger
    from secaudit.workflow_types import StepName


class SecAuditError(Exception):
    """Base class for every error raised by this package."""


class InputError(SecAuditError, ValueError):
    """Raised when a document or CLI input is unusable."""


class StepError(SecAuditError):
    """Raised for step-local failures (network, extraction, planner)."""


class SectionValidationError(SecAuditError):
    """Composite validation failure listing every failing section."""

    def __init__(self, failures: tuple[str, ...]) -> None:
        self.failures = failures
        super().__init__(format_failures(failures))


class RequiredStepFailure(SecAuditError):
    """Raised after a required step failed in command mode.

    The ledger has already been written when this is raised.
    """

    def __init__(
        self,
        step: StepName,
        message: str,
        *,
        ledger: AuditLedger,
        ledger_path: Path,
    ) -> None:
        self.step = step
        self.message = message
        self.ledger = ledger
        self.ledger_path = ledger_path
        super().__init__(f'required step "{step}" failed in command mode: {message}')


def format_failures(failures: tuple[str, ...]) -> str:
    return "Validation failed:\n  - " + "\n  - ".join(failures)
