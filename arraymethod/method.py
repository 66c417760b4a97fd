"""Methods and bound methods.

A Method is the validated, DType-independent part of a computation: its
arity, flags, declared casting, and the functions that resolve
descriptors and pick loops. A BoundMethod pairs a Method with the DTypes
of its operands; that is the unit callers obtain and invoke.

    bound = BoundMethod.from_spec(spec)
    res = bound.resolve_descriptors((np.dtype("i4"), np.dtype("f8"), None))
    if not res:
        ...  # impossible for these inputs (ResolutionFailed)
    bound.simple_strided_call((a, b, out))

Ownership: a BoundMethod holds strong references to every DType it names
and to its Method; both are immutable after construction and may be
shared freely between threads. Construction either returns a complete
object or raises, leaving nothing reachable behind. Reference cycles
between methods and dynamically created DTypes are not collected
specially; long-lived (builtin) DTypes are the expected case.
"""

from __future__ import annotations

import dataclasses
import logging
from dataclasses import dataclass
from typing import Any, Sequence

import numpy as np

from .dtypes import DType, dtype_of
from .errors import (
    ArrayMethodError,
    CastingMismatch,
    InvalidArity,
    InvalidMethodDefinition,
    InvalidResolution,
    InvalidSlot,
    LayoutUnsupported,
    LoopExecutionFailed,
)
from .loops import (
    GetLoopFn,
    LoopFn,
    LoopSelection,
    MethodContext,
    default_get_strided_loop,
)
from .methodspec import (
    PRIVATE_SLOTS,
    Casting,
    MethodFlags,
    MethodSpec,
    Slot,
    parse_casting,
    validate_spec,
)
from .resolve import Resolution, ResolutionFailed, ResolverFn, default_resolve_descriptors
from .validation import (
    Phase,
    ResolutionCheck,
    Severity,
    ValidationError,
    run_validators,
    validation_severity,
)

logger = logging.getLogger(__name__)


# Slot -> Method field it overrides
_SLOT_FIELDS: dict[Slot, str] = {
    Slot.RESOLVE_DESCRIPTORS:       "resolve_descriptors",
    Slot.GET_LOOP:                  "get_strided_loop",
    Slot.STRIDED_LOOP:              "strided_loop",
    Slot.CONTIGUOUS_LOOP:           "contiguous_loop",
    Slot.UNALIGNED_STRIDED_LOOP:    "unaligned_strided_loop",
    Slot.UNALIGNED_CONTIGUOUS_LOOP: "unaligned_contiguous_loop",
}


@dataclass(frozen=True)
class Method:
    """A validated method, not bound to specific DTypes."""
    name: str
    nin: int
    nout: int
    flags: MethodFlags = MethodFlags.NONE
    casting: Casting = Casting.NO
    cast_is_view: bool = False
    resolve_descriptors: ResolverFn = default_resolve_descriptors
    get_strided_loop: GetLoopFn = default_get_strided_loop
    strided_loop: LoopFn | None = None
    contiguous_loop: LoopFn | None = None
    unaligned_strided_loop: LoopFn | None = None
    unaligned_contiguous_loop: LoopFn | None = None

    @property
    def nargs(self) -> int:
        return self.nin + self.nout

    @property
    def uses_default_resolver(self) -> bool:
        return self.resolve_descriptors is default_resolve_descriptors

    @property
    def uses_default_get_loop(self) -> bool:
        return self.get_strided_loop is default_get_strided_loop

    def __repr__(self) -> str:
        return f"<_ArrayMethod `{self.name}` nin={self.nin} nout={self.nout}>"


def _slot_overrides(spec: MethodSpec, name: str, private: bool) -> dict[str, Any]:
    """Map the spec's slots onto Method field overrides."""
    fields: dict[str, Any] = {}
    for key, fn in spec.slots.items():
        try:
            slot = Slot(key)
        except ValueError:
            raise InvalidSlot(key, name) from None
        if slot in PRIVATE_SLOTS and not private:
            raise InvalidSlot(slot, name)
        if not callable(fn):
            raise InvalidSlot(slot, name)
        fields[_SLOT_FIELDS[slot]] = fn
    return fields


class BoundMethod:
    """A Method bound to one DType per operand."""

    __slots__ = ("_method", "_dtypes")

    def __init__(self, method: Method, dtypes: Sequence[DType | None]) -> None:
        dtypes = tuple(dtypes)
        if len(dtypes) != method.nargs:
            raise InvalidArity(
                f"expected {method.nargs} DTypes, got {len(dtypes)}", method.name)
        self._method = method
        self._dtypes = dtypes

    @classmethod
    def from_spec(cls, spec: MethodSpec, private: bool = False,
                  verbose: bool = False) -> BoundMethod:
        """Validate a spec and build the bound method it describes.

        Args:
            spec: The declaration. It is not referenced afterwards.
            private: Allow slots reserved for trusted callers (GET_LOOP).
            verbose: Print the definition validators' diagnostics.

        Raises:
            InvalidArity, InvalidCasting, MissingInputType, NotADType,
            AbstractInputType: the spec itself is malformed.
            InvalidSlot: unknown slot, or a private slot without `private`.
            InvalidMethodDefinition: the slots don't satisfy what the
                default resolver or loop selector needs.
        """
        name = str(spec.name) if spec.name is not None else "<unknown>"
        validate_spec(spec)
        casting, is_view = parse_casting(spec.casting)

        method = Method(
            name=name,
            nin=spec.nin,
            nout=spec.nout,
            flags=MethodFlags(spec.flags),
            casting=casting,
            cast_is_view=is_view,
            **_slot_overrides(spec, name, private),
        )
        # The default selector falls back to the strided loop for
        # contiguous data when no specialized version was given.
        if method.uses_default_get_loop and method.contiguous_loop is None:
            method = dataclasses.replace(method, contiguous_loop=method.strided_loop)
        bound = cls(method, spec.dtypes)

        results = run_validators(Phase.POST_BUILD, bound, fail_on=None)
        if verbose:
            for r in results:
                print(r)
        if any(r.severity == Severity.ERROR for r in results):
            raise InvalidMethodDefinition(results, name)

        logger.debug("built %r", bound)
        return bound

    # -----------------------------------------------------------------
    # Attributes
    # -----------------------------------------------------------------

    @property
    def method(self) -> Method:
        return self._method

    @property
    def dtypes(self) -> tuple[DType | None, ...]:
        return self._dtypes

    @property
    def name(self) -> str:
        return self._method.name

    @property
    def supports_unaligned(self) -> bool:
        """Whether the method supports unaligned inputs/outputs."""
        return bool(self._method.flags & MethodFlags.SUPPORTS_UNALIGNED)

    def __repr__(self) -> str:
        return f"<_BoundArrayMethod `{self.name}` for dtypes {self._dtypes!r}>"

    def context(self, descriptors: Sequence[np.dtype],
                caller: Any = None) -> MethodContext:
        return MethodContext(caller=caller, method=self._method,
                             descriptors=tuple(descriptors))

    # -----------------------------------------------------------------
    # Resolution
    # -----------------------------------------------------------------

    def resolve_descriptors(
        self,
        descrs: Sequence[np.dtype | None],
        validation: str = "normal",
        verbose: bool = False,
    ) -> Resolution | ResolutionFailed:
        """Resolve the loop descriptors for the given operand descriptors.

        Args:
            descrs: One entry per operand. Outputs may be None; every given
                descriptor must be an exact instance of the bound DType.
            validation: "strict", "normal" or "none"; how the casting level
                returned by the resolver is checked against the declared one.
            verbose: Print validation diagnostics.

        Returns:
            A Resolution, or a ResolutionFailed if the method cannot handle
            these inputs.

        Raises:
            TypeError: malformed descriptor tuple.
            CastingMismatch: the resolver's casting level is inconsistent
                with the declared one.
            InvalidResolution: any other broken resolver result (descriptor
                count, descriptors left open).
        """
        method = self._method
        nin, nargs = method.nin, method.nargs
        if isinstance(descrs, (str, bytes)) or len(descrs) != nargs:
            raise TypeError(
                f"resolve_descriptors() takes exactly one sequence with as many "
                f"elements as the method takes arguments ({nin}+{method.nout}).")

        given: list[np.dtype | None] = []
        for i, descr in enumerate(descrs):
            if descr is None:
                if i < nin:
                    raise TypeError("only output dtypes may be omitted (set to None).")
                given.append(None)
            elif isinstance(descr, np.dtype):
                self._check_exact_dtype(i, descr)
                given.append(descr)
            else:
                raise TypeError("dtype tuple can only contain dtype instances or None.")

        resolution = method.resolve_descriptors(method, self._dtypes, given)
        if not resolution:
            return resolution

        fail_on = validation_severity(validation)
        if fail_on is not None:
            try:
                results = run_validators(Phase.POST_RESOLVE,
                                         ResolutionCheck(self, resolution),
                                         fail_on=fail_on)
            except ValidationError as e:
                failed = {r.validator for r in e.results
                          if r.severity.value <= fail_on.value}
                error = CastingMismatch if failed == {"casting_level"} else InvalidResolution
                raise error(str(e), method.name) from e
            if verbose:
                for r in results:
                    print(r)
        return resolution

    def _check_exact_dtype(self, index: int, descr: np.dtype) -> None:
        bound_dtype = self._dtypes[index]
        if bound_dtype is None:
            return
        try:
            actual = dtype_of(descr)
        except TypeError:
            actual = None
        if actual is not bound_dtype:
            raise TypeError(
                f"input dtype {descr} was not an exact instance of the bound "
                f"DType class {bound_dtype!r}.")

    # -----------------------------------------------------------------
    # Direct 1-D invocation
    # -----------------------------------------------------------------

    def simple_strided_call(self, arrays: Sequence[np.ndarray]) -> None:
        """Call the method once on 1-D inputs and pre-allocated outputs.

        No broadcasting and no casting: every array must be 1-D, all of the
        same length, with a dtype that resolves to itself. Outputs must be
        writeable; unaligned arrays need a method that supports them.

        Raises:
            TypeError, ValueError: the arrays don't fit the method.
            LayoutUnsupported: unaligned data for an aligned-only method.
            LoopExecutionFailed: the loop returned a non-zero status.
        """
        method = self._method
        nin, nargs = method.nin, method.nargs
        if isinstance(arrays, np.ndarray) or len(arrays) != nargs:
            raise TypeError(
                f"simple_strided_call() takes exactly one sequence with as many "
                f"arrays as the method takes arguments ({nin}+{method.nout}).")

        descrs: list[np.dtype] = []
        data: list[int] = []
        strides: list[int] = []
        length = -1
        aligned = True
        for i, arr in enumerate(arrays):
            if type(arr) is not np.ndarray:
                raise TypeError("All inputs must be NumPy arrays.")
            self._check_exact_dtype(i, arr.dtype)
            if arr.ndim != 1:
                raise ValueError("All arrays must be one dimensional.")
            if i == 0:
                length = arr.size
            elif arr.size != length:
                raise ValueError("All arrays must have the same length.")
            if i >= nin and not arr.flags.writeable:
                raise ValueError("simple_strided_call() output is read-only.")
            descrs.append(arr.dtype)
            data.append(arr.ctypes.data)
            strides.append(arr.strides[0])
            aligned &= bool(arr.flags.aligned)

        if not aligned and not self.supports_unaligned:
            raise LayoutUnsupported("method does not support unaligned input", method.name)

        try:
            resolution = method.resolve_descriptors(method, self._dtypes, descrs)
        except ArrayMethodError as e:
            raise TypeError("cannot perform method call with the given dtypes.") from e
        if not resolution:
            raise TypeError(
                f"cannot perform method call with the given dtypes. "
                f"{resolution.reason}".rstrip())

        if any(d != r for d, r in zip(descrs, resolution.descriptors)):
            raise TypeError(
                "simple_strided_call(): requires dtypes to not require a cast "
                "(must match exactly with `resolve_descriptors()`).")

        context = self.context(descrs)
        selection: LoopSelection = method.get_strided_loop(context, aligned, strides)
        try:
            res = selection.loop(context, data, length, strides, selection.auxdata)
        finally:
            if selection.auxdata is not None:
                selection.auxdata.free()
        if res != 0:
            raise LoopExecutionFailed(res, method.name)
