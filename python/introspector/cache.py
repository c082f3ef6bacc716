"""In-process introspection cache keyed by class identity.

The same logical class can exist as several distinct class objects when its
module is executed more than once (importlib.reload, duplicate imports under
different sys.modules entries, ...). Those objects share a qualified name but
are not interchangeable, and an identity-keyed lookup alone cannot tell
"never seen" from "seen under an older class object". A set of qualified
names resolves that: a miss on a name that is already known means the module
was reloaded, and the whole cache is dumped.
"""

import logging
import threading

from .conversion import TypeConversionHandler
from .extractors import ClassFieldMapBuilder, ClassMapBuilder
from .protocols import ClassFieldMap, ClassMap, FieldMapBuilder, MethodMapBuilder

logger = logging.getLogger(__name__)

# Public so other components can recognise the event in logs.
CACHEDUMP_MSG = "IntrospectorCache detected classloader change. Dumping cache."


def qualified_name(cls: type) -> str:
    """Loader-independent name of a class."""
    return f"{cls.__module__}.{cls.__qualname__}"


class IntrospectorCache:
    """Cache of method maps and field maps, keyed by class object.

    Lookups that hit never take the lock. Every path that writes (``put``,
    ``clear`` and the clear-on-reload branch of the lookups) holds a single
    lock for its whole duration, so no thread ever sees a half-cleared cache.
    """

    def __init__(
        self,
        log: logging.Logger | None = None,
        conversion_handler: TypeConversionHandler | None = None,
        method_map_builder: MethodMapBuilder | None = None,
        field_map_builder: FieldMapBuilder | None = None,
    ):
        self._log = log if log is not None else logger
        self._conversion_handler = (
            conversion_handler if conversion_handler is not None else TypeConversionHandler()
        )
        self._method_map_builder = method_map_builder or ClassMapBuilder()
        self._field_map_builder = field_map_builder or ClassFieldMapBuilder()

        self._class_maps: dict[type, ClassMap] = {}
        self._field_maps: dict[type, ClassFieldMap] = {}
        # Names outlive their entries on purpose: a miss on a known name is
        # the reload signal.
        self._class_names: set[str] = set()
        self._dumps = 0
        self._lock = threading.Lock()

    @property
    def conversion_handler(self) -> TypeConversionHandler:
        return self._conversion_handler

    @property
    def class_names(self) -> frozenset[str]:
        with self._lock:
            return frozenset(self._class_names)

    def clear(self) -> None:
        """Empty all stores and log CACHEDUMP_MSG."""
        with self._lock:
            self._clear_locked(trigger=None)

    def get(self, cls: type) -> ClassMap | None:
        """Return the cached method map for ``cls``, or None.

        A miss on a class whose qualified name is already known dumps the
        whole cache before returning None. The caller is expected to ``put``
        the class afterwards; nothing is inserted here.

        Raises:
            ValueError: if ``cls`` is None.
        """
        if cls is None:
            raise ValueError("Cannot look up the method map of None")

        class_map = self._class_maps.get(cls)
        if class_map is None:
            with self._lock:
                class_map = self._class_maps.get(cls)
                if class_map is None:
                    self._clear_if_reloaded(cls)
        return class_map

    def get_field_map(self, cls: type) -> ClassFieldMap | None:
        """Return the cached field map for ``cls``, or None.

        Same reload handling as ``get``.

        Raises:
            ValueError: if ``cls`` is None.
        """
        if cls is None:
            raise ValueError("Cannot look up the field map of None")

        field_map = self._field_maps.get(cls)
        if field_map is None:
            with self._lock:
                field_map = self._field_maps.get(cls)
                if field_map is None:
                    self._clear_if_reloaded(cls)
        return field_map

    def put(self, cls: type) -> ClassMap:
        """Build and register the method map and field map of ``cls``.

        Both maps are built before anything is stored, so a builder error
        leaves the cache untouched and propagates to the caller.

        Returns:
            The newly built ClassMap.
        """
        class_map, field_map = self.build(cls)
        with self._lock:
            self._class_maps[cls] = class_map
            self._field_maps[cls] = field_map
            self._class_names.add(qualified_name(cls))
        return class_map

    def build(self, cls: type) -> tuple[ClassMap, ClassFieldMap]:
        """Run both builders for ``cls`` without touching the stores."""
        class_map = self._method_map_builder.build(cls, self._conversion_handler)
        field_map = self._field_map_builder.build(cls)
        return class_map, field_map

    def stats(self) -> dict:
        with self._lock:
            return {
                "method_maps": len(self._class_maps),
                "field_maps": len(self._field_maps),
                "class_names": len(self._class_names),
                "dumps": self._dumps,
            }

    def _clear_if_reloaded(self, cls: type) -> None:
        # Caller holds self._lock.
        name = qualified_name(cls)
        if name in self._class_names:
            self._clear_locked(trigger=name)

    def _clear_locked(self, trigger: str | None) -> None:
        cached = len(self._class_maps)
        # Lock-free readers see either the old stores or the new empty ones.
        self._class_maps = {}
        self._field_maps = {}
        self._class_names = set()
        self._dumps += 1
        self._log.debug(
            CACHEDUMP_MSG,
            extra={"trigger": trigger, "cached_classes": cached},
        )
