"""Masked loops: run any unmasked loop only where a boolean mask is set.

The masked loop takes one extra trailing operand, the mask (one byte per
element, non-zero means "process"). The run boundaries are found once per
call; the wrapped loop is then called on each maximal run of True.
Outputs at masked positions are never touched.

get_masked_strided_loop() has the same signature as a loop selector, so
an outer engine can use it wherever it expects one. It does not support
inner dimensions; every call is a flat 1-D run.
"""

import logging
from typing import Sequence

import numpy as np

from .loops import AuxData, LoopFn, LoopSelection, MethodContext, strided_view

logger = logging.getLogger(__name__)

_MASK_DESCR = np.dtype(np.uint8)


class MaskedLoopData(AuxData):
    """Auxiliary state of a masked loop.

    Owns the wrapped loop's auxdata and frees it with itself. `dataptrs`
    is scratch space for the operand addresses, rewritten on every call.
    """

    def __init__(self, loop: LoopFn, auxdata: AuxData | None, nargs: int) -> None:
        self.unmasked_loop = loop
        self.unmasked_auxdata = auxdata
        self.nargs = nargs
        self.dataptrs: list[int] = [0] * nargs

    def free(self) -> None:
        if self.unmasked_auxdata is not None:
            self.unmasked_auxdata.free()
            self.unmasked_auxdata = None


def _true_runs(truth: np.ndarray) -> np.ndarray:
    """(start, stop) of every maximal run of True, as rows of an (n, 2) array.

    Padding with False on both sides makes the change points alternate
    rising/falling edges, so consecutive pairs are exactly the runs.
    """
    padded = np.concatenate(([False], truth, [False]))
    edges = np.flatnonzero(padded[1:] != padded[:-1])
    return edges.reshape(-1, 2)


def masked_strided_loop(context: MethodContext, data: Sequence[int], count: int,
                        strides: Sequence[int], auxdata: MaskedLoopData) -> int:
    """Call the wrapped loop once per maximal run of True in the mask.

    `data[nargs]` and `strides[nargs]` address the mask. Returns the first
    non-zero status of the wrapped loop, else 0.
    """
    nargs = auxdata.nargs
    loop = auxdata.unmasked_loop
    inner_auxdata = auxdata.unmasked_auxdata
    inner_strides = list(strides[:nargs])

    dataptrs = auxdata.dataptrs
    mask = strided_view(data[nargs], count, strides[nargs], _MASK_DESCR) != 0

    for start, stop in _true_runs(mask).tolist():
        for i in range(nargs):
            dataptrs[i] = data[i] + start * strides[i]
        res = loop(context, list(dataptrs), stop - start, inner_strides, inner_auxdata)
        if res != 0:
            return res

    return 0


def get_masked_strided_loop(context: MethodContext, aligned: bool,
                            strides: Sequence[int]) -> LoopSelection:
    """Wrap the method's own loop into a masked loop.

    `strides` covers the data operands; a mask stride, if present at the
    end, is ignored here and taken from the call instead.
    """
    method = context.method
    nargs = method.nargs
    inner = method.get_strided_loop(context, aligned, strides[:nargs])
    logger.debug("%s: wrapping %s in masked loop", method.name,
                 getattr(inner.loop, "__name__", inner.loop))
    return LoopSelection(
        loop=masked_strided_loop,
        auxdata=MaskedLoopData(inner.loop, inner.auxdata, nargs),
        flags=inner.flags,
    )
