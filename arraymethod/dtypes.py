"""DType handles: the classes of value representation methods are bound to.

A DType identifies *what kind* of data an operand holds (int32, float64,
fixed-width bytes, ...). Concrete instances are numpy dtype descriptors:
np.dtype('>i4') and np.dtype('<i4') are two descriptors of the same Int32
DType. Methods bind to DTypes, resolution works on descriptors.

Two properties matter to the dispatch core:
  abstract    Cannot describe a concrete value. Only valid in output slots,
              where it means "infer from the inputs".
  parametric  Instances carry extra state (itemsize for bytes/str), so there
              is no single canonical descriptor.

Builtin DTypes are created once at import and never released. Dynamically
created DTypes are fine too, but a BoundMethod holds strong references to
every DType it names, so such a DType lives as long as its methods do.
"""

from typing import Iterable

import numpy as np


class DType:
    """A class of value representation.

    Identity matters: two DTypes are the same only if they are the same
    object. The registry guarantees one DType per numpy scalar type.
    """

    def __init__(self, name: str, scalar_type: type | None = None, *,
                 abstract: bool = False, parametric: bool = False) -> None:
        if not abstract and scalar_type is None:
            raise ValueError(f"Concrete DType '{name}' needs a scalar type")
        self.name = name
        self.scalar_type = scalar_type
        self.abstract = abstract
        self.parametric = parametric

    def default_descr(self) -> np.dtype:
        """Return the canonical (native byte order) descriptor.

        Abstract and parametric DTypes have no canonical instance.
        """
        if self.abstract:
            raise TypeError(f"abstract DType {self} has no default descriptor")
        if self.parametric:
            raise TypeError(
                f"parametric DType {self} has no default descriptor; "
                f"its instances must be resolved explicitly")
        return np.dtype(self.scalar_type)

    def __repr__(self) -> str:
        return f"DType({self.name})"


# ---------------------------------------------------------------------------
# Builtin registry
# ---------------------------------------------------------------------------

Bool       = DType("bool", np.bool_)
Int8       = DType("int8", np.int8)
Int16      = DType("int16", np.int16)
Int32      = DType("int32", np.int32)
Int64      = DType("int64", np.int64)
UInt8      = DType("uint8", np.uint8)
UInt16     = DType("uint16", np.uint16)
UInt32     = DType("uint32", np.uint32)
UInt64     = DType("uint64", np.uint64)
Float16    = DType("float16", np.float16)
Float32    = DType("float32", np.float32)
Float64    = DType("float64", np.float64)
Complex64  = DType("complex64", np.complex64)
Complex128 = DType("complex128", np.complex128)
Bytes      = DType("bytes", np.bytes_, parametric=True)
Unicode    = DType("str", np.str_, parametric=True)

# Placeholder for "any number": only usable as an output DType.
Number     = DType("number", abstract=True)

BUILTIN_DTYPES: tuple[DType, ...] = (
    Bool, Int8, Int16, Int32, Int64, UInt8, UInt16, UInt32, UInt64,
    Float16, Float32, Float64, Complex64, Complex128, Bytes, Unicode,
)

_BY_SCALAR: dict[type, DType] = {dt.scalar_type: dt for dt in BUILTIN_DTYPES}

# numpy kind codes that participate in numeric promotion
_NUMERIC_KINDS = frozenset("biufc")
_STRING_KINDS = frozenset("SU")


def dtype_of(descr: np.dtype) -> DType:
    """Map a descriptor to its DType (by scalar type)."""
    descr = np.dtype(descr)
    try:
        return _BY_SCALAR[descr.type]
    except KeyError:
        raise TypeError(f"No DType registered for descriptor {descr}") from None


def ensure_native(descr: np.dtype) -> np.dtype:
    """Return the descriptor in native byte order (same object if already native)."""
    if descr.isnative:
        return descr
    return descr.newbyteorder("=")


def _kind(dtype: DType) -> str:
    return np.dtype(dtype.scalar_type).kind


def common_dtype(a: DType, b: DType) -> DType | None:
    """The DType both a and b can be promoted to, or None if there is none.

    Numeric DTypes follow numpy's promotion table. Strings only promote
    among themselves (bytes + str -> str); strings and numbers have no
    common DType. Abstract DTypes never take part in promotion.
    """
    if a is b:
        return a
    if a.abstract or b.abstract:
        return None
    ka, kb = _kind(a), _kind(b)
    if ka in _STRING_KINDS and kb in _STRING_KINDS:
        return Unicode
    if ka in _NUMERIC_KINDS and kb in _NUMERIC_KINDS:
        promoted = np.promote_types(a.default_descr(), b.default_descr())
        return _BY_SCALAR.get(promoted.type)
    return None


def reduce_common_dtype(dtypes: Iterable[DType]) -> DType | None:
    """Left-to-right common_dtype reduction. None if any step fails."""
    it = iter(dtypes)
    try:
        result = next(it)
    except StopIteration:
        return None
    for dt in it:
        result = common_dtype(result, dt)
        if result is None:
            return None
    return result
