"""Array methods: typed element-wise kernels bound to DTypes.

Pipeline for one call:

    spec  = MethodSpec(...)                      # declare
    bound = BoundMethod.from_spec(spec)          # validate + build (once)
    res   = bound.resolve_descriptors(descrs)    # per call: loop descriptors
    sel   = bound.method.get_strided_loop(ctx, aligned, strides)
    sel.loop(ctx, data, count, strides, sel.auxdata)

get_masked_strided_loop() can stand in for the loop selector to get a
loop that only touches elements where a boolean mask is set.
"""

from .dtypes import DType, common_dtype, dtype_of, ensure_native  # noqa: F401
from .errors import (  # noqa: F401
    AbstractInputType,
    ArrayMethodError,
    CastingMismatch,
    InvalidArity,
    InvalidCasting,
    InvalidMethodDefinition,
    InvalidResolution,
    InvalidResolverUse,
    InvalidSlot,
    LayoutUnsupported,
    LoopExecutionFailed,
    MissingInputType,
    NoCommonType,
    NotADType,
)
from .loops import (  # noqa: F401
    AuxData,
    LoopSelection,
    MethodContext,
    default_get_strided_loop,
    is_contiguous,
    strided_view,
)
from .masked import MaskedLoopData, get_masked_strided_loop, masked_strided_loop  # noqa: F401
from .method import BoundMethod, Method  # noqa: F401
from .methodspec import (  # noqa: F401
    CAST_IS_VIEW,
    MAX_ARGS,
    RUNTIME_FLAGS,
    Casting,
    MethodFlags,
    MethodSpec,
    Slot,
    min_cast_safety,
    validate_spec,
)
from .resolve import Resolution, ResolutionFailed, default_resolve_descriptors  # noqa: F401
