"""Builtin methods: casts and element-wise ufunc loops over builtin DTypes.

Each entry is a BoundMethod built through the same public path a user
would take (MethodSpec -> BoundMethod.from_spec), so the registry doubles
as a set of worked examples.

    from arraymethod.builtins import get_cast, METHOD_REGISTRY
    cast = get_cast(Int32, Float64)
    add = METHOD_REGISTRY["add_int32_float64"]

Adding a ufunc method: call make_ufunc_method() and, if it should be
shared, put it in METHOD_REGISTRY.
"""

from __future__ import annotations

import functools
from typing import Sequence

import numpy as np

from . import dtypes as dt
from .backends.numpy_backend import cast_loops, ufunc_loops
from .dtypes import DType, dtype_of, ensure_native
from .method import BoundMethod, Method
from .methodspec import Casting, MethodFlags, MethodSpec, Slot
from .resolve import Resolution, ResolutionFailed


_LOOP_SLOTS: dict[str, Slot] = {
    "strided_loop": Slot.STRIDED_LOOP,
    "contiguous_loop": Slot.CONTIGUOUS_LOOP,
    "unaligned_strided_loop": Slot.UNALIGNED_STRIDED_LOOP,
    "unaligned_contiguous_loop": Slot.UNALIGNED_CONTIGUOUS_LOOP,
}


def _numpy_casting(src: np.dtype, dst: np.dtype) -> Casting:
    """The safest level at which numpy allows casting src to dst."""
    for level in (Casting.NO, Casting.EQUIV, Casting.SAFE, Casting.SAME_KIND):
        if np.can_cast(src, dst, casting=level.name.lower()):
            return level
    return Casting.UNSAFE


def _resolve_same_dtype_cast(method: Method, dtypes: Sequence[DType | None],
                             given: Sequence[np.dtype | None]) -> Resolution | ResolutionFailed:
    """Cast within one DType: only the byte order can differ.

    An open output becomes the native version of the input. The cast is
    NO if both sides end up identical, EQUIV (a byte swap) otherwise.
    """
    src = given[0]
    dst = given[1] if given[1] is not None else ensure_native(src)
    if dtype_of(dst) is not dtype_of(src):
        return ResolutionFailed(f"{dst} is not of the same DType as {src}")
    if src == dst:
        return Resolution(Casting.NO, (src, dst), is_view=True)
    return Resolution(Casting.EQUIV, (src, dst))


def make_cast_method(src: DType, dst: DType) -> BoundMethod:
    """A cast between two non-parametric builtin DTypes."""
    slots = {_LOOP_SLOTS[k]: fn for k, fn in cast_loops(check_fpe=False).items()}
    if src is dst:
        casting = Casting.EQUIV
        slots[Slot.RESOLVE_DESCRIPTORS] = _resolve_same_dtype_cast
    else:
        casting = _numpy_casting(src.default_descr(), dst.default_descr())

    spec = MethodSpec(
        name=f"cast_{src.name}_to_{dst.name}",
        nin=1, nout=1,
        casting=casting,
        flags=MethodFlags.SUPPORTS_UNALIGNED | MethodFlags.NO_FLOATINGPOINT_ERRORS,
        dtypes=[src, dst],
        slots=slots,
    )
    return BoundMethod.from_spec(spec)


@functools.lru_cache(maxsize=None)
def get_cast(src: DType, dst: DType) -> BoundMethod:
    """Cached cast method between two builtin DTypes."""
    return make_cast_method(src, dst)


def make_ufunc_method(
    ufunc: np.ufunc,
    dtypes: Sequence[DType | None],
    casting: Casting = Casting.SAME_KIND,
    check_fpe: bool = True,
    name: str | None = None,
) -> BoundMethod:
    """An element-wise method running a numpy ufunc.

    Output DTypes left as None (or abstract) are inferred from the inputs
    by the default resolver.
    """
    flags = MethodFlags.SUPPORTS_UNALIGNED
    if not check_fpe:
        flags |= MethodFlags.NO_FLOATINGPOINT_ERRORS
    if name is None:
        name = "_".join([ufunc.__name__] + [d.name for d in dtypes[:ufunc.nin]])

    spec = MethodSpec(
        name=name,
        nin=ufunc.nin, nout=ufunc.nout,
        casting=casting,
        flags=flags,
        dtypes=list(dtypes),
        slots={_LOOP_SLOTS[k]: fn for k, fn in ufunc_loops(ufunc, check_fpe).items()},
    )
    return BoundMethod.from_spec(spec)


def _build_registry() -> dict[str, BoundMethod]:
    registry: dict[str, BoundMethod] = {}
    numeric = (dt.Int32, dt.Int64, dt.Float32, dt.Float64)
    floating = (dt.Float32, dt.Float64)
    for ufunc, operands in ((np.add, numeric), (np.subtract, numeric),
                            (np.multiply, numeric), (np.divide, floating)):
        for a in operands:
            for b in operands:
                m = make_ufunc_method(ufunc, [a, b, None])
                registry[m.name] = m
    for ufunc in (np.negative, np.absolute):
        for a in numeric:
            m = make_ufunc_method(ufunc, [a, None], casting=Casting.NO)
            registry[m.name] = m
    return registry


METHOD_REGISTRY: dict[str, BoundMethod] = _build_registry()
