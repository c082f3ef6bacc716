"""Introspection protocols for introspector.

Defines the builder protocols that decouple the cache from the code that
actually walks a class (default implementations live in extractors.py),
plus the method map and field map artifacts they produce.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass
from types import MappingProxyType
from typing import TYPE_CHECKING, Any, Protocol

if TYPE_CHECKING:
    from .conversion import TypeConversionHandler


@dataclass(frozen=True)
class ParamInfo:
    """One positional-capable parameter of a method."""
    name: str
    annotation: Any = None
    has_default: bool = False
    variadic: bool = False


@dataclass(frozen=True)
class MethodInfo:
    """Lightweight method info for a method map."""
    name: str
    function: Callable | None = None
    kind: str = "instance"
    params: tuple[ParamInfo, ...] | None = ()
    return_type: Any = None
    declaring_class: str = ""
    is_async: bool = False
    has_required_kwonly: bool = False

    @property
    def min_args(self) -> int:
        if self.params is None:
            return 0
        return sum(1 for p in self.params if not p.has_default and not p.variadic)

    @property
    def max_args(self) -> int | None:
        """Upper arity bound, None when the method takes *args or is opaque."""
        if self.params is None or any(p.variadic for p in self.params):
            return None
        return len(self.params)


@dataclass(frozen=True)
class FieldInfo:
    """Lightweight field info for a field map."""
    name: str
    kind: str = "attribute"
    annotation: Any = None
    default: Any = None
    declaring_class: str = ""


class ClassMap:
    """Method map for one class.

    Built once by a MethodMapBuilder and never mutated afterwards. The
    conversion handler the cache was built with is kept so argument
    applicability is resolved the same way for every lookup.
    """

    def __init__(
        self,
        cls: type,
        methods: Mapping[str, MethodInfo],
        conversion_handler: TypeConversionHandler,
    ):
        self._cls = cls
        self._methods = MappingProxyType(dict(methods))
        self._conversion_handler = conversion_handler

    @property
    def cls(self) -> type:
        return self._cls

    @property
    def methods(self) -> Mapping[str, MethodInfo]:
        return self._methods

    @property
    def conversion_handler(self) -> TypeConversionHandler:
        return self._conversion_handler

    def __contains__(self, name: object) -> bool:
        return name in self._methods

    def __len__(self) -> int:
        return len(self._methods)

    def method_names(self) -> list[str]:
        return sorted(self._methods)

    def find_method(self, name: str, args: Sequence[Any] = ()) -> MethodInfo | None:
        """Return the method called ``name`` if ``args`` can be passed to it.

        Args:
            name: Method name
            args: Positional argument values (excluding self/cls)

        Returns:
            The matching MethodInfo, or None when the name is unknown or the
            arguments are not applicable.
        """
        method = self._methods.get(name)
        if method is None or not self._is_applicable(method, args):
            return None
        return method

    def coerce_arguments(self, method: MethodInfo, args: Sequence[Any]) -> list[Any]:
        """Convert ``args`` to the parameter annotations of ``method``."""
        if method.params is None:
            return list(args)

        coerced = []
        for i, value in enumerate(args):
            param = _param_for_position(method.params, i)
            converter = None
            if param is not None and value is not None:
                converter = self._conversion_handler.get_needed_converter(
                    param.annotation, type(value),
                )
            coerced.append(converter(value) if converter is not None else value)
        return coerced

    def _is_applicable(self, method: MethodInfo, args: Sequence[Any]) -> bool:
        # Only positional calls are resolved here.
        if method.has_required_kwonly:
            return False
        if method.params is None:
            return True
        if len(args) < method.min_args:
            return False
        max_args = method.max_args
        if max_args is not None and len(args) > max_args:
            return False
        for i, value in enumerate(args):
            param = _param_for_position(method.params, i)
            if param is not None and not self._conversion_handler.is_convertible(
                param.annotation, value,
            ):
                return False
        return True

    def to_dict(self) -> dict:
        return {
            "class": f"{self._cls.__module__}.{self._cls.__qualname__}",
            "methods": [
                {
                    "name": m.name,
                    "kind": m.kind,
                    "params": None if m.params is None else [p.name for p in m.params],
                    "declaring_class": m.declaring_class,
                }
                for _, m in sorted(self._methods.items())
            ],
        }


class ClassFieldMap:
    """Field map for one class. Immutable after construction."""

    def __init__(self, cls: type, fields: Mapping[str, FieldInfo]):
        self._cls = cls
        self._fields = MappingProxyType(dict(fields))

    @property
    def cls(self) -> type:
        return self._cls

    @property
    def fields(self) -> Mapping[str, FieldInfo]:
        return self._fields

    def __contains__(self, name: object) -> bool:
        return name in self._fields

    def __len__(self) -> int:
        return len(self._fields)

    def field_names(self) -> list[str]:
        return sorted(self._fields)

    def find_field(self, name: str) -> FieldInfo | None:
        return self._fields.get(name)

    def to_dict(self) -> dict:
        return {
            "class": f"{self._cls.__module__}.{self._cls.__qualname__}",
            "fields": [
                {"name": f.name, "kind": f.kind, "declaring_class": f.declaring_class}
                for _, f in sorted(self._fields.items())
            ],
        }


class MethodMapBuilder(Protocol):
    """Protocol for building the method map of a class."""

    def build(self, cls: type, conversion_handler: TypeConversionHandler) -> ClassMap:
        """Inspect ``cls`` and return its method map.

        Raises whatever the introspection raises; callers do not retry.
        """
        ...


class FieldMapBuilder(Protocol):
    """Protocol for building the field map of a class."""

    def build(self, cls: type) -> ClassFieldMap:
        ...


def _param_for_position(params: tuple[ParamInfo, ...], index: int) -> ParamInfo | None:
    if index < len(params) and not params[index].variadic:
        return params[index]
    for p in params:
        if p.variadic:
            return p
    return None
