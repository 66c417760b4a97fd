"""Loop contract and the default loop selector.

A strided loop is the innermost kernel of a method. It runs over `count`
elements of every operand, addressed by raw data addresses and byte
strides:

    loop(context, data, count, strides, auxdata) -> int

    data     list of integer addresses, one per operand (inputs first)
    strides  byte stride per operand
    auxdata  per-call state handed out by the loop selector, or None

It returns 0 on success and a non-zero status if the kernel failed (e.g.
a floating point error). Addresses come from numpy (`arr.ctypes.data`);
the caller keeps the arrays alive for the duration of the call.

A loop selector picks the loop for a concrete call:

    get_loop(context, aligned, strides) -> LoopSelection

The default selector chooses among the four loops a method registered,
based on alignment and whether every operand is contiguous.
"""

from __future__ import annotations

import ctypes
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Callable, Sequence

import numpy as np

from .errors import LayoutUnsupported
from .methodspec import RUNTIME_FLAGS, MethodFlags

if TYPE_CHECKING:
    from .method import Method

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MethodContext:
    """What a loop selector and a loop know about the call.

    caller: Opaque object of whoever drives the loop (e.g. a ufunc), or None.
    method: The Method being run.
    descriptors: Resolved loop descriptors, one per operand.
    """
    caller: Any
    method: Method
    descriptors: tuple[np.dtype, ...]


class AuxData:
    """Base class for per-call loop state.

    The selector creates it, the caller owns it and must call free()
    exactly once when the loop is no longer used.
    """

    def free(self) -> None:
        pass


LoopFn = Callable[[MethodContext, list[int], int, Sequence[int], "AuxData | None"], int]


@dataclass
class LoopSelection:
    """Result of a loop selector.

    loop: The strided loop to call.
    auxdata: State to pass to every call of `loop`, or None.
    flags: Runtime flags the caller must honour (subset of RUNTIME_FLAGS).
    """
    loop: LoopFn
    auxdata: AuxData | None = None
    flags: MethodFlags = MethodFlags.NONE


GetLoopFn = Callable[[MethodContext, bool, Sequence[int]], LoopSelection]


def is_contiguous(strides: Sequence[int], descriptors: Sequence[np.dtype],
                  nargs: int) -> bool:
    """True if every operand's stride equals its itemsize."""
    for i in range(nargs):
        if strides[i] != descriptors[i].itemsize:
            return False
    return True


# (aligned, contiguous) -> Method attribute holding the loop for that layout
_LOOP_TABLE: dict[tuple[bool, bool], str] = {
    (True, True):   "contiguous_loop",
    (True, False):  "strided_loop",
    (False, True):  "unaligned_contiguous_loop",
    (False, False): "unaligned_strided_loop",
}


def default_get_strided_loop(context: MethodContext, aligned: bool,
                             strides: Sequence[int]) -> LoopSelection:
    """Pick one of the loops registered on the method.

    Aligned calls use the contiguous loop when every operand is contiguous,
    else the strided loop. Unaligned calls do the same with the unaligned
    variants. No auxiliary data is produced.
    """
    method = context.method
    flags = method.flags & RUNTIME_FLAGS
    aligned = bool(aligned)

    contiguous_loop = getattr(method, _LOOP_TABLE[aligned, True])
    if contiguous_loop is not None and \
            is_contiguous(strides, context.descriptors, method.nargs):
        loop, layout = contiguous_loop, "contiguous"
    else:
        loop, layout = getattr(method, _LOOP_TABLE[aligned, False]), "strided"

    if loop is None:
        raise LayoutUnsupported("method does not support unaligned input", method.name)

    logger.debug("%s: selected %s %s loop", method.name,
                 "aligned" if aligned else "unaligned", layout)
    return LoopSelection(loop=loop, auxdata=None, flags=flags)


# ---------------------------------------------------------------------------
# Raw address helpers (used by kernels and the masked adapter)
# ---------------------------------------------------------------------------

def strided_view(address: int, count: int, stride: int,
                 descr: np.dtype) -> np.ndarray:
    """A 1-D numpy view of `count` elements at a raw address.

    Works for zero and negative strides. The view does not own the
    memory; the caller must keep the backing array alive.
    """
    descr = np.dtype(descr)
    if count <= 0:
        return np.empty(0, dtype=descr)
    span = (count - 1) * abs(stride) + descr.itemsize
    if stride >= 0:
        start, offset = address, 0
    else:
        offset = (count - 1) * -stride
        start = address - offset
    raw = (ctypes.c_char * span).from_address(start)
    return np.ndarray((count,), dtype=descr, buffer=raw, offset=offset,
                      strides=(stride,))
