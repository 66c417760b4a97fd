"""Core validation types, registry, and runner.

All types live here to avoid circular imports: validator submodules
import from core, and __init__ re-exports everything.
"""

from dataclasses import dataclass
from enum import Enum, auto
from typing import Any, Callable


class Phase(Enum):
    """Checkpoints where validation runs.

    Each phase implies the type of artifact being validated:
        POST_BUILD:    BoundMethod, right after its slots were applied
        POST_RESOLVE:  ResolutionCheck (bound method + resolver result)
    """
    POST_BUILD   = auto()
    POST_RESOLVE = auto()


class Severity(Enum):
    """Diagnostic severity level.

    ERROR:   The method cannot work as declared.
    WARNING: Suspicious but not necessarily fatal.
    INFO:    Diagnostic observation.
    """
    ERROR   = auto()
    WARNING = auto()
    INFO    = auto()


@dataclass
class ValidationResult:
    """A single diagnostic from a validator."""
    validator: str
    severity: Severity
    message: str

    def __str__(self) -> str:
        return f"[{self.severity.name}] {self.validator}: {self.message}"


class ValidationError(Exception):
    """Raised when validation produces fatal errors."""

    def __init__(self, phase: Phase, results: list[ValidationResult]) -> None:
        self.phase = phase
        self.results = results
        errors = [r for r in results if r.severity == Severity.ERROR]
        msg = f"Validation failed at {phase.name} ({len(errors)} error(s)):\n"
        msg += "\n".join(f"  {r}" for r in errors)
        super().__init__(msg)


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------

@dataclass
class Validator:
    """A tagged validation check.

    Attributes:
        name: Human-readable identifier.
        phase: When this validator runs.
        check: Callable that inspects the phase's artifact and returns
            diagnostics.
    """
    name: str
    phase: Phase
    check: Callable[..., list[ValidationResult]]


VALIDATORS: list[Validator] = []


def register_validator(name: str, phase: Phase):
    """Decorator to register a validation function.

    Usage:
        @register_validator("my_check", Phase.POST_BUILD)
        def check_something(bound: BoundMethod) -> list[ValidationResult]:
            ...
    """
    def decorator(fn: Callable[..., list[ValidationResult]]):
        VALIDATORS.append(Validator(name=name, phase=phase, check=fn))
        return fn
    return decorator


def run_validators(
    phase: Phase,
    target: Any,
    *,
    fail_on: Severity | None = Severity.ERROR,
) -> list[ValidationResult]:
    """Run all validators registered for a phase.

    Args:
        phase: Which checkpoint to validate.
        target: The artifact to validate.
        fail_on: Raise ValidationError if any result meets or exceeds
            this severity. None collects without raising.

    Returns:
        All validation results (errors, warnings, and info).

    Raises:
        ValidationError: If any result's severity >= fail_on.
    """
    results: list[ValidationResult] = []
    for v in VALIDATORS:
        if v.phase == phase:
            results.extend(v.check(target))

    if fail_on is not None:
        fatal = [r for r in results if r.severity.value <= fail_on.value]
        if fatal:
            raise ValidationError(phase, results)

    return results


def validation_severity(validation: str) -> Severity | None:
    """Map a validation preference string to a fail_on severity.

    "strict" fails on warnings too, "normal" on errors only, "none"
    skips validation entirely (returns None).
    """
    if validation == "strict":
        return Severity.WARNING
    if validation == "normal":
        return Severity.ERROR
    if validation == "none":
        return None
    raise ValueError(
        f"Unknown validation '{validation}' "
        f"(expected 'strict', 'normal', or 'none')"
    )
