"""Well control descriptors."""

import logging
import typing

import attrs

from mswells.errors import ValidationError
from mswells.types import ControlType, WellStatus

logger = logging.getLogger(__name__)

__all__ = ["Control", "WellControls", "bhp_control", "thp_control", "rate_control"]


def _to_distribution(
    value: typing.Optional[typing.Iterable[float]],
) -> typing.Optional[typing.Tuple[float, ...]]:
    if value is None:
        return None
    return tuple(float(v) for v in value)


@attrs.frozen
class Control:
    """
    A single well control target.

    Control evaluation and switching happen elsewhere. A `Control` only
    describes what kind of target is enforced and its value.
    """

    type: ControlType = attrs.field(converter=ControlType)
    """Kind of target enforced by this control."""
    target: float = attrs.field(converter=float)
    """Target value (Pa for pressure controls, m³/s for rate controls)."""
    distribution: typing.Optional[typing.Tuple[float, ...]] = attrs.field(
        default=None, converter=_to_distribution
    )
    """
    Per-phase distribution of the target for rate controls.

    The phase rate guess of a rate controlled well is `target * distribution[phase]`.
    """

    @distribution.validator
    def _check_distribution(self, attribute, value) -> None:
        if self.type == ControlType.SURFACE_RATE and not value:
            raise ValidationError(
                "Surface rate controls require a per-phase distribution."
            )

    @property
    def is_rate_control(self) -> bool:
        return self.type in (ControlType.SURFACE_RATE, ControlType.RESERVOIR_RATE)


def bhp_control(target: float) -> Control:
    """Create a bottom-hole pressure control."""
    return Control(type=ControlType.BHP, target=target)


def thp_control(target: float) -> Control:
    """Create a tubing-head pressure control."""
    return Control(type=ControlType.THP, target=target)


def rate_control(
    target: float,
    distribution: typing.Iterable[float],
    type: ControlType = ControlType.SURFACE_RATE,
) -> Control:
    """
    Create a rate control.

    :param target: Total rate target. Positive for injection, negative for production.
    :param distribution: Fraction of the target assigned to each phase.
    :param type: Rate control type, surface or reservoir rate.
    """
    return Control(type=type, target=target, distribution=distribution)


@attrs.define
class WellControls:
    """
    The set of controls configured for a well and the one currently active.

    Mirrors what the control-switching logic hands over at the start of a time step.
    """

    controls: typing.Sequence[Control] = attrs.field(converter=tuple)
    """Configured controls, in order. Control indices refer to positions in this sequence."""
    current: int = attrs.field(default=0)
    """Index of the active control."""
    is_stopped: bool = False
    """Whether the well is stopped (shut and not flowing)."""

    @controls.validator
    def _check_controls(self, attribute, value) -> None:
        if not value:
            raise ValidationError("A well must have at least one control.")

    @current.validator
    def _check_current(self, attribute, value) -> None:
        if not 0 <= value < len(self.controls):
            raise ValidationError(
                f"Current control index {value} is out of range for {len(self.controls)} control(s)."
            )

    @property
    def num_controls(self) -> int:
        return len(self.controls)

    @property
    def status(self) -> WellStatus:
        return WellStatus.STOPPED if self.is_stopped else WellStatus.OPEN

    @property
    def current_control(self) -> Control:
        return self.controls[self.current]

    @property
    def current_type(self) -> ControlType:
        return self.current_control.type

    @property
    def current_target(self) -> float:
        return self.current_control.target

    @property
    def current_distribution(self) -> typing.Optional[typing.Tuple[float, ...]]:
        return self.current_control.distribution

    def switch_to(self, index: int) -> None:
        """
        Make the control at `index` the active one.

        :param index: Index of the control to activate.
        :raises ValidationError: If the index is out of range.
        """
        if not 0 <= index < len(self.controls):
            raise ValidationError(
                f"Cannot switch to control {index}, only {len(self.controls)} configured."
            )
        logger.debug(f"Switching control {self.current} -> {index}")
        self.current = index

    def stop(self) -> None:
        """Stop the well."""
        self.is_stopped = True

    def open(self) -> None:
        """Open the well."""
        self.is_stopped = False
