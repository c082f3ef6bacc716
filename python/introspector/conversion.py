"""Argument conversion rules used when matching method arguments."""

import inspect
import logging
import threading
from collections.abc import Callable
from typing import Any

logger = logging.getLogger(__name__)

Converter = Callable[[Any], Any]

_TRUE_STRINGS = {"true", "yes", "on", "1"}
_FALSE_STRINGS = {"false", "no", "off", "0"}


def _str_to_bool(value: str) -> bool:
    lowered = value.strip().lower()
    if lowered in _TRUE_STRINGS:
        return True
    if lowered in _FALSE_STRINGS:
        return False
    raise ValueError(f"Cannot convert {value!r} to bool")


# (formal, actual) -> converter
STANDARD_CONVERTERS: dict[tuple[type, type], Converter] = {
    (str, object): str,
    (float, int): float,
    (int, str): int,
    (float, str): float,
    (bool, str): _str_to_bool,
    (bool, int): bool,
}


class TypeConversionHandler:
    """Decides whether a value fits a parameter annotation, and converts it.

    Converters are keyed by (formal, actual) type pairs. Lookups walk the MRO
    of the actual type, so a converter registered for ``object`` applies to
    every value.
    """

    def __init__(self, converters: dict[tuple[type, type], Converter] | None = None):
        self._converters: dict[tuple[type, type], Converter] = dict(STANDARD_CONVERTERS)
        if converters:
            self._converters.update(converters)
        self._lock = threading.Lock()

    def add_converter(self, formal: type, actual: type, converter: Converter) -> None:
        """Register ``converter`` for values of ``actual`` passed as ``formal``."""
        with self._lock:
            converters = dict(self._converters)
            converters[(formal, actual)] = converter
            self._converters = converters
        logger.debug(
            "conversion.converter_added",
            extra={"formal": formal.__name__, "actual": actual.__name__},
        )

    def get_needed_converter(self, formal: Any, actual: type) -> Converter | None:
        """Return the converter for ``actual`` -> ``formal``, if one is needed.

        Returns None both when no conversion is required (``actual`` already
        satisfies ``formal``) and when no conversion is known.
        """
        if not inspect.isclass(formal) or _accepts_anything(formal):
            return None
        if issubclass(actual, formal):
            return None
        converters = self._converters
        for base in actual.__mro__:
            converter = converters.get((formal, base))
            if converter is not None:
                return converter
        return None

    def is_convertible(self, formal: Any, value: Any) -> bool:
        """Check whether ``value`` can be passed for a parameter typed ``formal``."""
        if value is None or _accepts_anything(formal):
            return True
        # Strings, generics and unions are not checked.
        if not inspect.isclass(formal):
            return True
        if isinstance(value, formal):
            return True
        return self.get_needed_converter(formal, type(value)) is not None


def _accepts_anything(formal: Any) -> bool:
    return formal is None or formal is inspect.Parameter.empty or formal is Any or formal is object
