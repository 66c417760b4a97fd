"""Error taxonomy for method construction, resolution and loop execution.

Every error carries the name of the method it concerns so a failure can
be traced to a specific binding. Each class also derives from the builtin
exception a caller would naturally catch for it (ValueError for bad sizes,
TypeError for bad types, RuntimeError for internal misuse).

Note that an impossible resolution is NOT an error: resolvers return a
ResolutionFailed value for that (see resolve.py).
"""

from typing import Any


class ArrayMethodError(Exception):
    """Base class. `method` is the method name, or None if unknown."""

    def __init__(self, message: str, method: str | None = None) -> None:
        self.method = method
        if method is not None:
            message = f"{message} (method: {method})"
        super().__init__(message)


# ---------------------------------------------------------------------------
# Spec validation (raised before anything is built)
# ---------------------------------------------------------------------------

class InvalidArity(ArrayMethodError, ValueError):
    """nin/nout negative, too large, or not matching the dtypes list."""


class InvalidCasting(ArrayMethodError, TypeError):
    """Casting level is not one of the defined levels."""

    def __init__(self, casting: Any, method: str | None = None) -> None:
        self.casting = casting
        super().__init__(f"ArrayMethod has invalid casting `{casting!r}`", method)


class MissingInputType(ArrayMethodError, TypeError):
    """An input slot has no DType."""

    def __init__(self, index: int, method: str | None = None) -> None:
        self.index = index
        super().__init__(
            f"ArrayMethod must have well defined input DTypes "
            f"(input {index} is None)", method)


class NotADType(ArrayMethodError, TypeError):
    """A dtypes entry is not a DType handle."""

    def __init__(self, obj: Any, method: str | None = None) -> None:
        self.obj = obj
        super().__init__(f"ArrayMethod provided object {obj!r} is not a DType", method)


class AbstractInputType(ArrayMethodError, TypeError):
    """An input slot names an abstract DType."""

    def __init__(self, dtype: Any, method: str | None = None) -> None:
        self.dtype = dtype
        super().__init__(
            f"abstract DType {dtype!r} is currently not allowed for inputs", method)


# ---------------------------------------------------------------------------
# Construction
# ---------------------------------------------------------------------------

class InvalidSlot(ArrayMethodError, RuntimeError):
    """Unknown slot id, or a private slot used by a public caller."""

    def __init__(self, slot: Any, method: str | None = None) -> None:
        self.slot = slot
        super().__init__(f"invalid slot {slot!r} to ArrayMethod", method)


class InvalidMethodDefinition(ArrayMethodError, TypeError):
    """Slots and spec fields are inconsistent with each other.

    `results` holds every validation diagnostic collected for the method.
    """

    def __init__(self, results: list, method: str | None = None) -> None:
        self.results = results
        from .validation.core import Severity
        errors = [r for r in results if r.severity == Severity.ERROR]
        lines = "\n".join(f"  {r}" for r in errors)
        super().__init__(
            f"invalid ArrayMethod definition ({len(errors)} error(s)):\n{lines}\n",
            method)


# ---------------------------------------------------------------------------
# Resolution
# ---------------------------------------------------------------------------

class NoCommonType(ArrayMethodError, TypeError):
    """The input DTypes have no common DType to infer outputs from."""

    def __init__(self, dtypes: tuple, method: str | None = None) -> None:
        self.dtypes = dtypes
        super().__init__(f"The DTypes {dtypes!r} do not have a common DType", method)


class InvalidResolverUse(ArrayMethodError, RuntimeError):
    """The default resolver was asked to infer types without any input."""


class InvalidResolution(ArrayMethodError, RuntimeError):
    """A resolver result breaks the resolver contract (e.g. wrong descriptor count)."""


class CastingMismatch(InvalidResolution):
    """A resolver returned a casting level inconsistent with the declared one."""


# ---------------------------------------------------------------------------
# Loop selection and execution
# ---------------------------------------------------------------------------

class LayoutUnsupported(ArrayMethodError, ValueError):
    """Unaligned access requested from a method without unaligned loops."""


class LoopExecutionFailed(ArrayMethodError, RuntimeError):
    """The inner kernel returned a non-zero status."""

    def __init__(self, code: int, method: str | None = None) -> None:
        self.code = code
        super().__init__(f"inner loop failed with status {code}", method)
