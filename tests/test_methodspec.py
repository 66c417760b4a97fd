"""MethodSpec validation: malformed declarations are rejected before building.

Each case breaks exactly one field of an otherwise valid spec and asserts
the specific error kind (and the method name in the message).
"""

import pytest

from arraymethod import dtypes as dt
from arraymethod.errors import (
    AbstractInputType,
    ArrayMethodError,
    InvalidArity,
    InvalidCasting,
    MissingInputType,
    NotADType,
)
from arraymethod.methodspec import (
    CAST_IS_VIEW,
    MAX_ARGS,
    Casting,
    MethodSpec,
    min_cast_safety,
    parse_casting,
    validate_spec,
)
from conftest import make_spec


# ---------------------------------------------------------------------------
# Arity
# ---------------------------------------------------------------------------

class TestArity:

    def test_valid_spec_passes(self, spec):
        validate_spec(spec)

    @pytest.mark.parametrize("nin,nout", [(-1, 1), (1, -1)], ids=["nin", "nout"])
    def test_negative_arity(self, nin, nout):
        spec = make_spec(nin=nin, nout=nout, dtypes=[])
        with pytest.raises(InvalidArity):
            validate_spec(spec)

    def test_arity_exceeds_maximum(self):
        spec = make_spec(nin=MAX_ARGS, nout=1, dtypes=[dt.Int32] * (MAX_ARGS + 1))
        with pytest.raises(InvalidArity, match=str(MAX_ARGS)):
            validate_spec(spec)

    def test_arity_at_maximum_is_fine(self):
        spec = make_spec(nin=MAX_ARGS - 1, nout=1, dtypes=[dt.Int32] * MAX_ARGS)
        validate_spec(spec)

    def test_dtype_count_mismatch(self):
        spec = make_spec(dtypes=[dt.Int32, dt.Int32])
        with pytest.raises(InvalidArity, match="exactly 3 DTypes"):
            validate_spec(spec)

    def test_invalid_arity_is_value_error(self):
        spec = make_spec(nin=-1, dtypes=[])
        with pytest.raises(ValueError):
            validate_spec(spec)


# ---------------------------------------------------------------------------
# Casting
# ---------------------------------------------------------------------------

class TestCasting:

    @pytest.mark.parametrize("level", list(Casting), ids=[c.name for c in Casting])
    def test_defined_levels_accepted(self, level):
        validate_spec(make_spec(casting=level))

    def test_view_flag_accepted(self):
        validate_spec(make_spec(casting=Casting.NO | CAST_IS_VIEW))

    @pytest.mark.parametrize("bad", [5, -2, 99, "safe", None, 1.0],
                             ids=["5", "-2", "99", "str", "None", "float"])
    def test_invalid_casting(self, bad):
        with pytest.raises(InvalidCasting) as excinfo:
            validate_spec(make_spec(casting=bad))
        assert excinfo.value.method == "test_method"
        assert "test_method" in str(excinfo.value)

    def test_parse_casting_splits_view_flag(self):
        assert parse_casting(Casting.EQUIV | CAST_IS_VIEW) == (Casting.EQUIV, True)
        assert parse_casting(Casting.SAFE) == (Casting.SAFE, False)
        assert parse_casting(-1) == (Casting.UNKNOWN, False)

    def test_parse_casting_rejects_bool(self):
        assert parse_casting(True) is None

    def test_min_cast_safety_picks_less_safe(self):
        assert min_cast_safety(Casting.NO, Casting.SAFE) == Casting.SAFE
        assert min_cast_safety(Casting.UNSAFE, Casting.EQUIV) == Casting.UNSAFE
        assert min_cast_safety(Casting.SAME_KIND, Casting.SAME_KIND) == Casting.SAME_KIND

    def test_min_cast_safety_unknown_wins(self):
        assert min_cast_safety(Casting.UNKNOWN, Casting.NO) == Casting.UNKNOWN


# ---------------------------------------------------------------------------
# DTypes
# ---------------------------------------------------------------------------

class TestDTypes:

    def test_missing_input_dtype(self):
        spec = make_spec(dtypes=[dt.Int32, None, dt.Int32])
        with pytest.raises(MissingInputType) as excinfo:
            validate_spec(spec)
        assert excinfo.value.index == 1

    def test_missing_output_dtype_allowed(self):
        validate_spec(make_spec(dtypes=[dt.Int32, dt.Int32, None]))

    @pytest.mark.parametrize("index", [0, 2], ids=["input", "output"])
    def test_not_a_dtype(self, index):
        dtypes = [dt.Int32, dt.Int32, dt.Int32]
        dtypes[index] = "int32"
        with pytest.raises(NotADType) as excinfo:
            validate_spec(make_spec(dtypes=dtypes))
        assert excinfo.value.obj == "int32"

    def test_numpy_dtype_is_not_a_dtype_handle(self):
        import numpy as np
        with pytest.raises(NotADType):
            validate_spec(make_spec(dtypes=[np.dtype("i4"), dt.Int32, dt.Int32]))

    def test_abstract_input(self):
        with pytest.raises(AbstractInputType) as excinfo:
            validate_spec(make_spec(dtypes=[dt.Number, dt.Int32, dt.Int32]))
        assert excinfo.value.dtype is dt.Number

    def test_abstract_output_allowed(self):
        validate_spec(make_spec(dtypes=[dt.Int32, dt.Int32, dt.Number]))

    def test_errors_share_base_class(self):
        with pytest.raises(ArrayMethodError):
            validate_spec(make_spec(dtypes=[None, dt.Int32, dt.Int32]))


def test_unnamed_spec_reports_unknown():
    spec = MethodSpec(name=None, nin=-1, nout=0)
    with pytest.raises(InvalidArity, match="<unknown>"):
        validate_spec(spec)


def test_nargs_property(spec):
    assert spec.nargs == 3
