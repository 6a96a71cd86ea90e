"""Numerical constants used when building well states"""

from contextvars import ContextVar
import typing

import attrs


__all__ = [
    "Constant",
    "Constants",
    "c",
    "ConstantsContext",
    "get_constant",
    "get_constants",
]


@attrs.frozen(slots=True)
class Constant:
    """
    A constant value with optional description and metadata.

    Wraps a constant value and provides additional context about
    what the constant represents and its unit.
    """

    value: typing.Any
    """The actual value of the constant."""

    description: typing.Optional[str] = None
    """Optional description of what this constant represents."""

    unit: typing.Optional[str] = None
    """Optional unit of measurement for this constant."""

    def __str__(self) -> str:
        return f"{self.value}{self.unit or ''}"

    def __repr__(self) -> str:
        parts = [f"value={self.value}"]
        if self.description:
            parts.append(f"description='{self.description}'")
        if self.unit:
            parts.append(f"unit='{self.unit}'")
        return f"Constant({', '.join(parts)})"


DEFAULT_CONSTANTS: typing.Dict[str, typing.Union[typing.Any, Constant]] = {
    "SMALL_RATE": Constant(
        value=1e-14,
        description="Magnitude of the placeholder phase rate given to open wells that are not rate controlled",
        unit="m³/s",
    ),
    "INJECTOR_SAFETY_FACTOR": Constant(
        value=1.01,
        description="Factor applied to reservoir pressure to guess the bottom-hole pressure of injectors",
        unit="fraction",
    ),
    "PRODUCER_SAFETY_FACTOR": Constant(
        value=0.99,
        description="Factor applied to reservoir pressure to guess the bottom-hole pressure of producers",
        unit="fraction",
    ),
    "PRESSURE_SENTINEL": Constant(
        value=-1.0e100,
        description="Marker for segment and perforation pressures that have not been assigned",
        unit="Pa",
    ),
    "STANDARD_TEMPERATURE": Constant(
        value=273.15 + 20,
        description="Temperature assigned to every well (20°C)",
        unit="K",
    ),
}


class Constants:
    """
    Numerical constants used when initializing well states.

    All constants are stored in an internal dictionary and can be accessed via dot notation.
    Use `__getattr__` for value access and `__getitem__` for `Constant` object access.
    """

    __slots__ = ("_store",)

    def __new__(cls, **overrides: typing.Any) -> "Constants":
        instance = super().__new__(cls)
        instance._store = {}
        return instance

    def __init__(self, **overrides: typing.Any) -> None:
        """
        Initialize the constants store with default values.

        :param overrides: Constant values to use in place of the defaults.
        """
        self._store.update(DEFAULT_CONSTANTS)
        for name, value in overrides.items():
            self[name] = value

    def __getattr__(self, name: str) -> typing.Any:
        """Get a constant's value using dot notation.

        :param name: Name of the constant
        :return: Value of the constant (unwrapped from Constant object)
        :raises AttributeError: If the constant does not exist
        """
        if name.startswith("_"):
            return object.__getattribute__(self, name)

        try:
            return self._store[name].value
        except KeyError:
            raise AttributeError(
                f"'{type(self).__name__}' object has no attribute '{name}'"
            ) from None

    def __getitem__(self, name: str) -> Constant:
        """Get the Constant object (with metadata) using bracket notation."""
        return self._store[name]

    def __setattr__(self, name: str, value: typing.Union[typing.Any, Constant]) -> None:
        if name.startswith("_"):
            object.__setattr__(self, name, value)
        else:
            self[name] = value

    def __setitem__(self, name: str, value: typing.Union[typing.Any, Constant]) -> None:
        """Set a constant. Raw values keep the description of the constant they replace."""
        if not isinstance(value, Constant):
            existing = self._store.get(name)
            if existing is not None:
                value = attrs.evolve(existing, value=value)
            else:
                value = Constant(value=value)
        self._store[name] = value

    def __contains__(self, name: str) -> bool:
        return name in self._store

    def keys(self) -> typing.KeysView[str]:
        return self._store.keys()

    def items(self) -> typing.ItemsView[str, Constant]:
        return self._store.items()

    def get(self, name: str, default: typing.Any = None) -> typing.Any:
        """Get a constant's value with a default fallback.

        :param name: Name of the constant
        :param default: Default value if constant doesn't exist
        :return: Value of the constant or default
        """
        constant = self._store.get(name)
        if constant is None:
            return default
        return constant.value

    def get_constant(
        self, name: str, default: typing.Optional[Constant] = None
    ) -> typing.Optional[Constant]:
        """Get a `Constant` object with a default fallback."""
        return self._store.get(name, default)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(constants={len(self._store)})"

    def __len__(self) -> int:
        return len(self._store)

    def __call__(self) -> "ConstantsContext":
        """
        Create a context manager that within its context, temporarily overrides the default constants
        accessed through the global constants proxy `mswells.c` with this `Constants` instance.

        :return: `ConstantsContext` for temporary overrides
        """
        return ConstantsContext(self)


_constants_context: ContextVar[Constants] = ContextVar(
    "constants_context", default=Constants()
)


class ConstantsContext:
    """
    Context manager for temporary global `Constants` overrides.

    Upon exiting the context, the previous `Constants` instance is restored.
    """

    def __init__(self, constants: Constants) -> None:
        self._new_constants = constants
        self._token = None

    def __enter__(self) -> Constants:
        self._token = _constants_context.set(self._new_constants)
        return self._new_constants

    def __exit__(self, exc_type, exc_value, traceback) -> None:
        if self._token is not None:
            _constants_context.reset(self._token)


class _ConstantsProxy:
    """
    Proxy class to access the current context's `Constants` instance.

    Override the current `Constants` instance using the `ConstantsContext` context manager.
    """

    @property
    def _constants(self) -> Constants:
        return _constants_context.get()

    def __getattr__(self, name: str) -> typing.Any:
        return getattr(self._constants, name)

    def __getitem__(self, name: str) -> Constant:
        return self._constants[name]


c = _ConstantsProxy()
"""Global proxy to access the constants of the current context."""


def get_constant(name: str) -> typing.Optional[Constant]:
    """Get a `Constant` object by name from the global constants.

    :param name: Name of the constant
    :return: `Constant` object or None if not found
    """
    return c._constants.get_constant(name)


def get_constants() -> Constants:
    """Get the `Constants` instance of the current context."""
    return _constants_context.get()
