"""Member resolution on top of IntrospectorCache."""

import logging
import os
from collections.abc import Sequence
from typing import Any

from .cache import IntrospectorCache
from .conversion import TypeConversionHandler
from .protocols import ClassFieldMap, ClassMap, FieldInfo, MethodInfo

logger = logging.getLogger(__name__)
_VALID_MODES = {"cached", "uncached"}


class Introspector:
    """Resolves methods and fields of classes, caching what it learns.

    One instance is meant to live as long as the engine that uses it; pass it
    around rather than creating one per lookup.
    """

    def __init__(
        self,
        log: logging.Logger | None = None,
        conversion_handler: TypeConversionHandler | None = None,
        cache: IntrospectorCache | None = None,
    ):
        """``log`` and ``conversion_handler`` configure a new cache; they
        cannot be combined with an existing ``cache``.
        """
        if cache is not None and (log is not None or conversion_handler is not None):
            raise ValueError("Pass either an existing cache or log/conversion_handler, not both")
        self._cache = cache or IntrospectorCache(
            log=log, conversion_handler=conversion_handler,
        )

        mode_raw = os.getenv("INTROSPECTOR_CACHE_MODE", "cached").strip().lower()
        if mode_raw not in _VALID_MODES:
            logger.warning(
                "introspector.invalid_cache_mode",
                extra={"mode": mode_raw, "fallback_mode": "cached"},
            )
            self._mode = "cached"
        else:
            self._mode = mode_raw

    @property
    def cache(self) -> IntrospectorCache:
        return self._cache

    @property
    def mode(self) -> str:
        return self._mode

    def get_class_map(self, cls: type) -> ClassMap:
        """Return the method map of ``cls``, building it on a miss."""
        if cls is None:
            raise ValueError("Cannot resolve members of None")
        if self._mode == "uncached":
            return self._cache.build(cls)[0]

        class_map = self._cache.get(cls)
        if class_map is None:
            class_map = self._cache.put(cls)
        return class_map

    def get_field_map(self, cls: type) -> ClassFieldMap:
        """Return the field map of ``cls``, building it on a miss."""
        if cls is None:
            raise ValueError("Cannot resolve members of None")
        if self._mode == "uncached":
            return self._cache.build(cls)[1]

        field_map = self._cache.get_field_map(cls)
        if field_map is None:
            self._cache.put(cls)
            field_map = self._cache.get_field_map(cls)
            if field_map is None:
                # A concurrent reload dumped the cache between put and get.
                field_map = self._cache.build(cls)[1]
        return field_map

    def get_method(self, cls: type, name: str, args: Sequence[Any] = ()) -> MethodInfo | None:
        """Find the public method ``name`` of ``cls`` accepting ``args``.

        Args:
            cls: Class to search
            name: Method name
            args: Positional argument values the caller intends to pass

        Returns:
            MethodInfo, or None if there is no applicable method.
        """
        return self.get_class_map(cls).find_method(name, args)

    def get_field(self, cls: type, name: str) -> FieldInfo | None:
        return self.get_field_map(cls).find_field(name)

