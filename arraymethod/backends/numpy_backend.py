"""Numpy-based loops: strided kernels built on numpy ufuncs.

Each loop turns the raw addresses it is handed into numpy views and
writes through the ufunc's `out=` parameter, so results land directly in
the caller's buffers; no temporaries, no copies back. Views over
unaligned memory are fine for numpy, so the unaligned variants share the
same implementation and only differ in identity (the loop selector must
be able to tell them apart).

Loop contract (see loops.py):

    loop(context, data, count, strides, auxdata) -> int
"""

import ctypes
from typing import Sequence

import numpy as np

from ..loops import AuxData, LoopFn, MethodContext, strided_view


# Status returned when a floating point error was raised during the loop.
FPE_STATUS = -1


def contiguous_view(address: int, count: int, descr: np.dtype) -> np.ndarray:
    """A 1-D view of `count` packed elements at a raw address."""
    if count <= 0:
        return np.empty(0, dtype=descr)
    raw = (ctypes.c_char * (count * descr.itemsize)).from_address(address)
    return np.frombuffer(raw, dtype=descr, count=count)


def _views(context: MethodContext, data: Sequence[int], count: int,
           strides: Sequence[int], contiguous: bool) -> list[np.ndarray]:
    descrs = context.descriptors
    if contiguous:
        return [contiguous_view(data[i], count, descrs[i]) for i in range(len(descrs))]
    return [strided_view(data[i], count, strides[i], descrs[i]) for i in range(len(descrs))]


def _errstate(check_fpe: bool) -> np.errstate:
    if check_fpe:
        return np.errstate(over="raise", invalid="raise", divide="raise")
    return np.errstate(all="ignore")


def make_ufunc_loop(ufunc: np.ufunc, contiguous: bool = False,
                    check_fpe: bool = True, name: str | None = None) -> LoopFn:
    """Build a loop that applies `ufunc` element-wise.

    Args:
        ufunc: Any numpy ufunc; its nin/nout must match the method.
        contiguous: Assume every operand is packed (stride == itemsize).
        check_fpe: Report floating point errors as FPE_STATUS instead of
            ignoring them.
    """
    nin = ufunc.nin

    def loop(context: MethodContext, data: Sequence[int], count: int,
             strides: Sequence[int], auxdata: AuxData | None) -> int:
        views = _views(context, data, count, strides, contiguous)
        with _errstate(check_fpe):
            try:
                ufunc(*views[:nin], out=tuple(views[nin:]), casting="unsafe")
            except FloatingPointError:
                return FPE_STATUS
        return 0

    layout = "contiguous" if contiguous else "strided"
    loop.__name__ = name or f"{ufunc.__name__}_{layout}_loop"
    return loop


def make_cast_loop(contiguous: bool = False, check_fpe: bool = False,
                   name: str | None = None) -> LoopFn:
    """Build a loop copying operand 0 into operand 1, converting values."""

    def loop(context: MethodContext, data: Sequence[int], count: int,
             strides: Sequence[int], auxdata: AuxData | None) -> int:
        src, dst = _views(context, data, count, strides, contiguous)
        with _errstate(check_fpe):
            try:
                np.copyto(dst, src, casting="unsafe")
            except FloatingPointError:
                return FPE_STATUS
        return 0

    layout = "contiguous" if contiguous else "strided"
    loop.__name__ = name or f"cast_{layout}_loop"
    return loop


def ufunc_loops(ufunc: np.ufunc, check_fpe: bool = True) -> dict[str, LoopFn]:
    """All four layout variants for a ufunc, keyed by Method field name."""
    base = ufunc.__name__
    return {
        "strided_loop": make_ufunc_loop(ufunc, False, check_fpe),
        "contiguous_loop": make_ufunc_loop(ufunc, True, check_fpe),
        "unaligned_strided_loop": make_ufunc_loop(
            ufunc, False, check_fpe, name=f"{base}_unaligned_strided_loop"),
        "unaligned_contiguous_loop": make_ufunc_loop(
            ufunc, True, check_fpe, name=f"{base}_unaligned_contiguous_loop"),
    }


def cast_loops(check_fpe: bool = False) -> dict[str, LoopFn]:
    """All four layout variants of the generic cast loop."""
    return {
        "strided_loop": make_cast_loop(False, check_fpe),
        "contiguous_loop": make_cast_loop(True, check_fpe),
        "unaligned_strided_loop": make_cast_loop(
            False, check_fpe, name="cast_unaligned_strided_loop"),
        "unaligned_contiguous_loop": make_cast_loop(
            True, check_fpe, name="cast_unaligned_contiguous_loop"),
    }
