"""Method declarations: casting levels, flags, slots and the MethodSpec.

A MethodSpec is what a caller fills in to declare a new method. It is
transient: BoundMethod.from_spec() validates it, copies what it needs,
and the spec can be discarded afterwards.

    spec = MethodSpec(
        name="add_int32",
        nin=2, nout=1,
        casting=Casting.NO,
        dtypes=[Int32, Int32, Int32],
        slots={Slot.STRIDED_LOOP: add_strided},
    )
    validate_spec(spec)
"""

import enum
from dataclasses import dataclass, field
from typing import Any, Callable, Mapping, Sequence

from .dtypes import DType
from .errors import (
    AbstractInputType,
    InvalidArity,
    InvalidCasting,
    MissingInputType,
    NotADType,
)


# Upper bound on nin + nout for a single method.
MAX_ARGS = 32


class Casting(enum.IntEnum):
    """Casting safety, ordered from safest to least safe.

    UNKNOWN is a sentinel for methods whose level is only known after
    resolution (always paired with a custom resolver).
    """
    UNKNOWN   = -1
    NO        = 0
    EQUIV     = 1
    SAFE      = 2
    SAME_KIND = 3
    UNSAFE    = 4


# Marker OR-ed onto a raw casting level when the cast is a pure view
# (no data movement). Resolution carries it as `is_view` instead.
CAST_IS_VIEW = 1 << 16


def min_cast_safety(a: Casting, b: Casting) -> Casting:
    """The less safe of two casting levels (UNKNOWN wins)."""
    if a == Casting.UNKNOWN or b == Casting.UNKNOWN:
        return Casting.UNKNOWN
    return Casting(max(a, b))


def parse_casting(value: Any) -> tuple[Casting, bool] | None:
    """Split a raw casting value into (level, is_view). None if invalid."""
    if isinstance(value, bool) or not isinstance(value, int):
        return None
    if value == Casting.UNKNOWN:
        return Casting.UNKNOWN, False
    is_view = bool(value & CAST_IS_VIEW)
    level = value & ~CAST_IS_VIEW
    if level not in (c.value for c in Casting) or level == Casting.UNKNOWN:
        return None
    return Casting(level), is_view


class MethodFlags(enum.IntFlag):
    """Method properties.

    REQUIRES_PYAPI: the loop calls back into Python objects and is not
        safe to run without serialization.
    NO_FLOATINGPOINT_ERRORS: the loop never raises floating point flags,
        so the caller can skip checking them.
    SUPPORTS_UNALIGNED: the method provides unaligned loops.
    """
    NONE                    = 0
    REQUIRES_PYAPI          = 1 << 0
    NO_FLOATINGPOINT_ERRORS = 1 << 1
    SUPPORTS_UNALIGNED      = 1 << 2


# Flags a caller must honour at loop invocation time. The loop selector
# reports these (and only these) for the loop it picked.
RUNTIME_FLAGS = MethodFlags.REQUIRES_PYAPI | MethodFlags.NO_FLOATINGPOINT_ERRORS


class Slot(enum.IntEnum):
    """Overridable capabilities of a method. Values are stable ids."""
    RESOLVE_DESCRIPTORS       = 1
    GET_LOOP                  = 2   # private: only trusted callers
    STRIDED_LOOP              = 3
    CONTIGUOUS_LOOP           = 4
    UNALIGNED_STRIDED_LOOP    = 5
    UNALIGNED_CONTIGUOUS_LOOP = 6


# Slots that require the private (trusted) construction path.
PRIVATE_SLOTS = frozenset({Slot.GET_LOOP})


@dataclass
class MethodSpec:
    """User-supplied declaration of a method.

    Fields:
        name: Used in reprs and error messages. None becomes "<unknown>".
        nin, nout: Number of input and output operands.
        casting: Declared casting level (Casting, optionally OR-ed with
            CAST_IS_VIEW).
        flags: MethodFlags.
        dtypes: One entry per operand, inputs first. Inputs must be
            concrete DTypes; outputs may be None or abstract to ask for
            inference from the inputs.
        slots: Capability overrides, keyed by Slot (or its integer id).
    """
    name: str | None
    nin: int
    nout: int
    casting: int = Casting.NO
    flags: MethodFlags = MethodFlags.NONE
    dtypes: Sequence[DType | None] = ()
    slots: Mapping[Slot | int, Callable[..., Any]] = field(default_factory=dict)

    @property
    def nargs(self) -> int:
        return self.nin + self.nout


def validate_spec(spec: MethodSpec) -> None:
    """Reject a spec that cannot describe a valid method.

    Only checks fields in isolation; consistency between fields and slots
    is checked after the slots are applied (see validation/method.py).
    """
    name = spec.name if spec.name is not None else "<unknown>"
    nargs = spec.nin + spec.nout
    if spec.nin < 0 or spec.nout < 0 or nargs > MAX_ARGS:
        raise InvalidArity(
            f"ArrayMethod inputs and outputs must be greater or equal zero "
            f"and not exceed {MAX_ARGS} (got nin={spec.nin}, nout={spec.nout})",
            name)
    if len(spec.dtypes) != nargs:
        raise InvalidArity(
            f"ArrayMethod needs exactly {nargs} DTypes, got {len(spec.dtypes)}",
            name)

    if parse_casting(spec.casting) is None:
        raise InvalidCasting(spec.casting, name)

    for i, dtype in enumerate(spec.dtypes):
        if dtype is None:
            if i < spec.nin:
                raise MissingInputType(i, name)
            continue
        if not isinstance(dtype, DType):
            raise NotADType(dtype, name)
        if dtype.abstract and i < spec.nin:
            raise AbstractInputType(dtype, name)
