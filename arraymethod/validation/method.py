"""Method definition validators.

Covers POST_BUILD. Validators receive the BoundMethod right after its
slots were applied, before it is handed out. Any ERROR here makes
construction fail with InvalidMethodDefinition.

Checks are only about what the defaults need: a custom resolver or loop
selector takes over responsibility for the corresponding fields.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from ..dtypes import BUILTIN_DTYPES, Number
from ..methodspec import Casting, MethodFlags
from .core import Phase, Severity, ValidationResult, register_validator

if TYPE_CHECKING:
    from ..method import BoundMethod


@register_validator("default_resolver_requirements", Phase.POST_BUILD)
def validate_default_resolver(bound: BoundMethod) -> list[ValidationResult]:
    """The default resolver needs concrete inputs and inferable outputs."""
    NAME = "default_resolver_requirements"
    method = bound.method
    if not method.uses_default_resolver:
        return []

    results = []
    if method.casting == Casting.UNKNOWN:
        results.append(ValidationResult(NAME, Severity.ERROR,
            "Cannot set casting to -1 (invalid) when not providing "
            "the default `resolve_descriptors` function"))

    for i, dtype in enumerate(bound.dtypes):
        # an abstract DType is resolved like a missing one
        if dtype is None or dtype.abstract:
            if i < method.nin:
                results.append(ValidationResult(NAME, Severity.ERROR,
                    "All input DTypes must be specified when using "
                    "the default `resolve_descriptors` function"))
            elif method.nin == 0:
                results.append(ValidationResult(NAME, Severity.ERROR,
                    "Must specify output DTypes or use custom "
                    "`resolve_descriptors` when there are no inputs"))
            continue
        if i >= method.nin and dtype.parametric:
            results.append(ValidationResult(NAME, Severity.ERROR,
                f"must provide a `resolve_descriptors` function if any "
                f"output DType is parametric (output {i - method.nin}: {dtype!r})"))
    return results


@register_validator("default_loop_requirements", Phase.POST_BUILD)
def validate_default_loops(bound: BoundMethod) -> list[ValidationResult]:
    """The default loop selector can only pick loops that were provided."""
    NAME = "default_loop_requirements"
    method = bound.method
    if not method.uses_default_get_loop:
        return []

    results = []
    if method.strided_loop is None:
        results.append(ValidationResult(NAME, Severity.ERROR,
            "Must provide a strided inner loop function"))

    if method.unaligned_contiguous_loop is not None and \
            method.unaligned_strided_loop is None:
        results.append(ValidationResult(NAME, Severity.ERROR,
            "Must provide unaligned strided inner loop when providing "
            "a contiguous version"))

    supports_unaligned = bool(method.flags & MethodFlags.SUPPORTS_UNALIGNED)
    if (method.unaligned_strided_loop is not None) != supports_unaligned:
        if supports_unaligned:
            msg = ("SUPPORTS_UNALIGNED is set but no unaligned strided "
                   "inner loop was provided")
        else:
            msg = ("An unaligned strided inner loop was provided but "
                   "SUPPORTS_UNALIGNED is not set")
        results.append(ValidationResult(NAME, Severity.ERROR, msg))
    return results


@register_validator("output_dtype_ownership", Phase.POST_BUILD)
def validate_output_ownership(bound: BoundMethod) -> list[ValidationResult]:
    """Flag bindings that keep non-builtin DTypes alive only through this method.

    Inferred (None/abstract) outputs cost nothing. Concrete DTypes created
    at runtime are held strongly; that is correct but means the DType
    stays alive as long as the method does.
    """
    NAME = "output_dtype_ownership"
    persistent = set(map(id, BUILTIN_DTYPES)) | {id(Number)}
    results = []
    for i, dtype in enumerate(bound.dtypes):
        if dtype is not None and id(dtype) not in persistent:
            results.append(ValidationResult(NAME, Severity.INFO,
                f"operand {i} holds a strong reference to dynamic DType {dtype!r}"))
    return results
