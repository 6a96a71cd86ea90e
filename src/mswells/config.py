import typing

import attrs
import numpy as np

from mswells.constants import Constants, get_constants
from mswells.errors import ValidationError

__all__ = ["Config"]


def _validate_dtype(instance: typing.Any, attribute: attrs.Attribute, value) -> None:
    if value is not None and not np.issubdtype(np.dtype(value), np.floating):
        raise ValidationError(f"{attribute.name} must be a floating point dtype, got {value!r}")


@attrs.frozen
class Config:
    """Well state initialization configuration."""

    continuation: bool = True
    """
    Whether to carry values over from the previous state.

    Disable to always start a time step from the fresh initial guess.
    """
    constants: Constants = attrs.field(factory=get_constants)
    """
    Numerical constants (placeholder rate, safety factors, sentinels) used for initial guesses.

    Defaults to the constants of the current context (see `mswells.ConstantsContext`).
    """
    dtype: typing.Optional[np.typing.DTypeLike] = attrs.field(
        default=None, validator=_validate_dtype
    )
    """
    Floating point dtype of the state arrays.

    If None, the dtype of the current precision context is used (see `mswells.get_dtype`).
    """
    pressure_sentinel: typing.Optional[float] = attrs.field(
        default=None,
        validator=attrs.validators.optional(attrs.validators.lt(0.0)),
    )
    """
    Value marking unassigned segment and perforation pressures.

    If None, `constants.PRESSURE_SENTINEL` is used. Must be negative so that
    it can never be confused with a physical pressure.
    """

    def get_pressure_sentinel(self) -> float:
        if self.pressure_sentinel is not None:
            return self.pressure_sentinel
        return self.constants.PRESSURE_SENTINEL
