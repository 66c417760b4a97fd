"""Numpy backend kernels, called directly through the loop contract."""

import numpy as np
import pytest

from arraymethod import dtypes as dt
from arraymethod.backends.numpy_backend import (
    FPE_STATUS,
    cast_loops,
    contiguous_view,
    make_cast_loop,
    make_ufunc_loop,
    ufunc_loops,
)
from arraymethod.method import BoundMethod
from conftest import make_spec, operands


F8 = np.dtype(np.float64)


def _context(descrs):
    bound = BoundMethod.from_spec(make_spec(
        nin=len(descrs) - 1, nout=1, dtypes=[dt.dtype_of(d) for d in descrs]))
    return bound.context(descrs)


def _run(loop, arrays):
    data, strides = operands(arrays)
    return loop(_context([a.dtype for a in arrays]), data, arrays[0].size, strides, None)


class TestUfuncLoop:

    def test_strided(self):
        a = np.arange(6, dtype=np.float64)[::2]
        b = np.ones(3)
        out = np.zeros(6)[::2]
        assert _run(make_ufunc_loop(np.add), [a, b, out]) == 0
        np.testing.assert_array_equal(out, [1.0, 3.0, 5.0])

    def test_contiguous(self):
        a = np.array([1.0, 2.0])
        out = np.zeros(2)
        assert _run(make_ufunc_loop(np.multiply, contiguous=True), [a, a, out]) == 0
        np.testing.assert_array_equal(out, [1.0, 4.0])

    def test_fpe_reported(self):
        out = np.zeros(1)
        status = _run(make_ufunc_loop(np.divide), [np.ones(1), np.zeros(1), out])
        assert status == FPE_STATUS

    def test_fpe_ignored(self):
        out = np.zeros(1)
        status = _run(make_ufunc_loop(np.divide, check_fpe=False),
                      [np.ones(1), np.zeros(1), out])
        assert status == 0
        assert np.isinf(out[0])

    def test_names(self):
        assert make_ufunc_loop(np.add).__name__ == "add_strided_loop"
        assert make_ufunc_loop(np.add, contiguous=True).__name__ == "add_contiguous_loop"
        assert make_ufunc_loop(np.add, name="fast_add").__name__ == "fast_add"

    def test_variants_are_distinct(self):
        loops = ufunc_loops(np.subtract)
        assert set(loops) == {"strided_loop", "contiguous_loop",
                              "unaligned_strided_loop", "unaligned_contiguous_loop"}
        assert len({id(fn) for fn in loops.values()}) == 4


class TestCastLoop:

    def test_converts(self):
        src = np.array([1, 2, 3], dtype=np.int16)
        dst = np.zeros(3, dtype=np.float32)
        assert _run(make_cast_loop(), [src, dst]) == 0
        np.testing.assert_array_equal(dst, [1.0, 2.0, 3.0])

    def test_overflow_ignored_by_default(self):
        src = np.array([1e300])
        dst = np.zeros(1, dtype=np.float32)
        assert _run(make_cast_loop(contiguous=True), [src, dst]) == 0
        assert np.isinf(dst[0])

    @pytest.mark.filterwarnings("ignore::RuntimeWarning")
    def test_overflow_reported_when_checked(self):
        src = np.array([1e300])
        dst = np.zeros(1, dtype=np.float32)
        assert _run(make_cast_loop(check_fpe=True), [src, dst]) == FPE_STATUS

    def test_variants_are_distinct(self):
        loops = cast_loops()
        assert len({id(fn) for fn in loops.values()}) == 4


def test_contiguous_view():
    a = np.arange(4, dtype=np.float64)
    v = contiguous_view(a.ctypes.data, 4, F8)
    np.testing.assert_array_equal(v, a)
    v[0] = 42.0
    assert a[0] == 42.0
    assert contiguous_view(0, 0, F8).size == 0
