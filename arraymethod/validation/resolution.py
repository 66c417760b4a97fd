"""Resolver result validators.

Covers POST_RESOLVE. Validators receive a ResolutionCheck: the bound
method plus what its resolver returned. These are consistency checks on
custom resolvers; the default resolver passes them by construction.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from ..methodspec import Casting, min_cast_safety
from .core import Phase, Severity, ValidationResult, register_validator

if TYPE_CHECKING:
    from ..method import BoundMethod
    from ..resolve import Resolution


@dataclass
class ResolutionCheck:
    """A successful resolution, paired with the method that produced it."""
    bound: BoundMethod
    resolution: Resolution


@register_validator("descriptor_count", Phase.POST_RESOLVE)
def validate_descriptor_count(check: ResolutionCheck) -> list[ValidationResult]:
    """One resolved descriptor per operand, none left open."""
    NAME = "descriptor_count"
    nargs = check.bound.method.nargs
    descrs = check.resolution.descriptors
    if len(descrs) != nargs:
        return [ValidationResult(NAME, Severity.ERROR,
            f"resolver returned {len(descrs)} descriptors for {nargs} operands")]
    missing = [i for i, d in enumerate(descrs) if d is None]
    if missing:
        return [ValidationResult(NAME, Severity.ERROR,
            f"resolver left operands {missing} without a descriptor")]
    return []


@register_validator("casting_level", Phase.POST_RESOLVE)
def validate_casting_level(check: ResolutionCheck) -> list[ValidationResult]:
    """The returned casting level must be consistent with the declared one.

    It may never be less safe than declared. For non-parametric bindings
    it must match exactly, except that EQUIV may resolve to NO (e.g. when
    the byte order turns out to already match).
    """
    NAME = "casting_level"
    method = check.bound.method
    declared = method.casting
    got = check.resolution.casting
    if declared == Casting.UNKNOWN:
        return []

    if min_cast_safety(got, declared) != declared:
        return [ValidationResult(NAME, Severity.ERROR,
            f"resolve_descriptors cast level did not match stored one "
            f"(set level is {declared.name}, got {Casting(got).name})")]

    parametric = any(dt is not None and dt.parametric for dt in check.bound.dtypes)
    if not parametric and got != declared and declared != Casting.EQUIV:
        return [ValidationResult(NAME, Severity.ERROR,
            f"resolve_descriptors cast level changed even though the cast "
            f"is non-parametric where the only possible change should be "
            f"from equivalent to no casting (set level is {declared.name}, "
            f"got {Casting(got).name})")]
    return []
