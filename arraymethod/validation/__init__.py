"""Validation framework for method definitions and resolver results.

Validators are tagged checks that run at specific phases. Each validator
inspects an artifact (a BoundMethod or a ResolutionCheck) and returns
structured diagnostics.

The registry collects validators via decorator. BoundMethod runs them at
the appropriate points, but they work standalone too:

    from arraymethod.validation import run_validators, Phase
    results = run_validators(Phase.POST_BUILD, bound, fail_on=None)

Validators are defined in submodules:
    method.py      definition invariants (default resolver / loop selector)
    resolution.py  casting-level consistency of resolver results

Core types live in core.py to avoid circular imports.
"""

from .core import (  # noqa: F401
    Phase,
    Severity,
    ValidationResult,
    ValidationError,
    Validator,
    VALIDATORS,
    register_validator,
    run_validators,
    validation_severity,
)

# Import submodules to trigger validator registration.
from . import method, resolution  # noqa: F401
from .resolution import ResolutionCheck  # noqa: F401
