"""Shared fixtures and helpers for the test suite.

pytest discovers conftest.py automatically. Fixtures defined here are
available to all test files in this directory without explicit imports;
plain helpers are imported with `from conftest import ...`.
"""

import numpy as np
import pytest

from arraymethod import dtypes as dt
from arraymethod.loops import LoopSelection, MethodContext
from arraymethod.methodspec import Casting, MethodFlags, MethodSpec, Slot


# ---------------------------------------------------------------------------
# Loops
# ---------------------------------------------------------------------------

def noop_loop(context, data, count, strides, auxdata):
    return 0


class RecordingLoop:
    """A strided loop that records every call, then delegates.

    Each call is stored as (data, count, strides). If `inner` is given it
    is called with the same arguments and its status is returned;
    otherwise the loop returns `status`.
    """

    def __init__(self, inner=None, status=0, name="recording_loop"):
        self.inner = inner
        self.status = status
        self.calls = []
        self.__name__ = name

    def __call__(self, context, data, count, strides, auxdata):
        self.calls.append((list(data), count, list(strides)))
        if self.inner is not None:
            return self.inner(context, data, count, strides, auxdata)
        return self.status


# ---------------------------------------------------------------------------
# Specs
# ---------------------------------------------------------------------------

def make_spec(**overrides) -> MethodSpec:
    """A valid binary int32 spec; keyword arguments replace fields."""
    fields = dict(
        name="test_method",
        nin=2,
        nout=1,
        casting=Casting.NO,
        flags=MethodFlags.NONE,
        dtypes=[dt.Int32, dt.Int32, dt.Int32],
        slots={Slot.STRIDED_LOOP: noop_loop},
    )
    fields.update(overrides)
    return MethodSpec(**fields)


@pytest.fixture
def spec():
    return make_spec()


# ---------------------------------------------------------------------------
# Calling loops on numpy arrays
# ---------------------------------------------------------------------------

def operands(arrays):
    """(data addresses, byte strides) for a list of 1-D arrays."""
    return [a.ctypes.data for a in arrays], [a.strides[0] for a in arrays]


def call_selection(selection: LoopSelection, context: MethodContext,
                   arrays, count=None) -> int:
    """Invoke a selected loop on 1-D arrays and free its auxdata."""
    data, strides = operands(arrays)
    if count is None:
        count = arrays[0].size
    try:
        return selection.loop(context, data, count, strides, selection.auxdata)
    finally:
        if selection.auxdata is not None:
            selection.auxdata.free()


def unaligned_int32(values) -> np.ndarray:
    """An int32 array whose data starts at an odd address."""
    values = np.asarray(values, dtype=np.int32)
    raw = np.zeros(values.nbytes + 1, dtype=np.uint8)
    arr = raw[1:].view(np.int32)
    arr[:] = values
    assert not arr.flags.aligned
    return arr
