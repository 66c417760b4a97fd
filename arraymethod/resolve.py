"""Descriptor resolution: from bound DTypes + given descriptors to loop descriptors.

A resolver has the signature

    resolver(method, dtypes, given_descrs) -> Resolution | ResolutionFailed

where `dtypes` are the BoundMethod's DTypes and `given_descrs` has one
entry per operand (None for outputs the caller leaves open). It returns
the concrete descriptors the loop will run with and how safe the implied
cast from the given descriptors is.

"Impossible" is a normal outcome, not an error: a resolver returns a
ResolutionFailed (which is falsy) when no valid loop descriptors exist for
the given inputs. Exceptions are reserved for misuse and internal errors.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Callable, Sequence

import numpy as np

from .dtypes import DType, dtype_of, ensure_native, reduce_common_dtype
from .errors import InvalidCasting, InvalidResolverUse, NoCommonType
from .methodspec import Casting, parse_casting

if TYPE_CHECKING:
    from .method import Method

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Resolution:
    """Loop descriptors for every operand plus the casting level.

    A casting value OR-ed with CAST_IS_VIEW is split on construction: the
    level goes to `casting`, the marker sets `is_view`.
    """
    casting: Casting
    descriptors: tuple[np.dtype, ...]
    is_view: bool = False

    def __post_init__(self) -> None:
        parsed = parse_casting(self.casting)
        if parsed is None:
            raise InvalidCasting(self.casting)
        casting, is_view = parsed
        object.__setattr__(self, "casting", casting)
        object.__setattr__(self, "is_view", bool(self.is_view or is_view))

    def __bool__(self) -> bool:
        return True


@dataclass(frozen=True)
class ResolutionFailed:
    """No valid loop descriptors exist for the given inputs."""
    reason: str = ""

    def __bool__(self) -> bool:
        return False


ResolverFn = Callable[
    ["Method", Sequence[DType | None], Sequence[np.dtype | None]],
    "Resolution | ResolutionFailed",
]


def _descr_for(dtype: DType, given: np.dtype | None) -> np.dtype:
    """Keep the given descriptor (made native) if it is of `dtype`, else its default."""
    if given is not None and dtype_of(given) is dtype:
        return ensure_native(given)
    return dtype.default_descr()


def default_resolve_descriptors(
    method: Method,
    dtypes: Sequence[DType | None],
    given_descrs: Sequence[np.dtype | None],
) -> Resolution:
    """Built-in resolution policy.

    1. Every operand whose DType is known gets the given descriptor in
       native byte order if it already is of that DType, otherwise the
       DType's default descriptor.
    2. Operands with no DType (None, or an abstract output placeholder)
       use the common DType of all inputs instead.

    Returns the method's declared casting level unchanged; this resolver
    does not infer casting safety on its own.
    """
    nin, nout = method.nin, method.nout
    out: list[np.dtype | None] = [None] * (nin + nout)
    deferred: list[int] = []

    for i in range(nin + nout):
        dtype = dtypes[i]
        if dtype is None or dtype.abstract:
            deferred.append(i)
            continue
        out[i] = _descr_for(dtype, given_descrs[i])

    if deferred:
        if nin == 0 or dtypes[0] is None:
            # Registration rejects this, so reaching it means misuse.
            raise InvalidResolverUse(
                "Invalid use of default resolver without inputs or with "
                "input or output DType incorrectly missing", method.name)

        input_dtypes = tuple(dtypes[:nin])
        common = reduce_common_dtype(input_dtypes)
        if common is None:
            raise NoCommonType(input_dtypes, method.name)
        logger.debug("%s: inferring outputs %s as %r", method.name, deferred, common)

        for i in deferred:
            out[i] = _descr_for(common, given_descrs[i])

    return Resolution(casting=method.casting, descriptors=tuple(out),
                      is_view=method.cast_is_view)
