"""Default map builders using the stdlib inspect module.

Walks ``cls.__mro__`` most-derived first, so an override hides the base
definition. Only public (non-underscore) members are collected. Other
builders can be plugged in via the MethodMapBuilder / FieldMapBuilder
protocols.
"""

import functools
import inspect
from typing import Any

from .conversion import TypeConversionHandler
from .protocols import ClassFieldMap, ClassMap, FieldInfo, MethodInfo, ParamInfo

_POSITIONAL = (
    inspect.Parameter.POSITIONAL_ONLY,
    inspect.Parameter.POSITIONAL_OR_KEYWORD,
)


class ClassMapBuilder:
    """Build a ClassMap of the public methods of a class."""

    def build(self, cls: type, conversion_handler: TypeConversionHandler) -> ClassMap:
        _require_class(cls)

        methods: dict[str, MethodInfo] = {}
        seen: set[str] = set()
        for klass in cls.__mro__:
            declaring = _qualified(klass)
            for name, attr in vars(klass).items():
                if name in seen or name.startswith("_"):
                    continue
                seen.add(name)
                info = _method_info(name, attr, declaring)
                if info is not None:
                    methods[name] = info

        return ClassMap(cls, methods, conversion_handler)


class ClassFieldMapBuilder:
    """Build a ClassFieldMap of the public data members of a class."""

    def build(self, cls: type) -> ClassFieldMap:
        _require_class(cls)

        fields: dict[str, FieldInfo] = {}
        seen: set[str] = set()
        for klass in cls.__mro__:
            declaring = _qualified(klass)
            annotations = inspect.get_annotations(klass)

            for name, attr in vars(klass).items():
                if name in seen or name.startswith("_"):
                    continue
                seen.add(name)
                if isinstance(attr, (property, functools.cached_property)):
                    getter = attr.fget if isinstance(attr, property) else attr.func
                    fields[name] = FieldInfo(
                        name=name,
                        kind="property",
                        annotation=getattr(getter, "__annotations__", {}).get("return"),
                        declaring_class=declaring,
                    )
                elif _is_method_like(attr) or callable(attr):
                    continue
                elif inspect.isdatadescriptor(attr):
                    # __slots__ members and similar
                    fields[name] = FieldInfo(
                        name=name,
                        kind="declared",
                        annotation=annotations.get(name),
                        declaring_class=declaring,
                    )
                else:
                    fields[name] = FieldInfo(
                        name=name,
                        kind="attribute",
                        annotation=annotations.get(name),
                        default=attr,
                        declaring_class=declaring,
                    )

            for name, annotation in annotations.items():
                if name in seen or name.startswith("_"):
                    continue
                seen.add(name)
                fields[name] = FieldInfo(
                    name=name,
                    kind="declared",
                    annotation=annotation,
                    declaring_class=declaring,
                )

        return ClassFieldMap(cls, fields)


def _require_class(cls: Any) -> None:
    if not inspect.isclass(cls):
        raise TypeError(f"Cannot introspect {cls!r}: not a class")


def _qualified(klass: type) -> str:
    return f"{klass.__module__}.{klass.__qualname__}"


def _is_method_like(attr: Any) -> bool:
    return (
        isinstance(attr, (staticmethod, classmethod))
        or inspect.isfunction(attr)
        or inspect.ismethoddescriptor(attr)
        or inspect.isbuiltin(attr)
    )


def _method_info(name: str, attr: Any, declaring: str) -> MethodInfo | None:
    if isinstance(attr, functools.cached_property):
        return None
    if isinstance(attr, staticmethod):
        func, kind, bound = attr.__func__, "static", False
    elif isinstance(attr, classmethod):
        func, kind, bound = attr.__func__, "class", True
    elif inspect.isfunction(attr):
        func, kind, bound = attr, "instance", True
    elif inspect.ismethoddescriptor(attr) or inspect.isbuiltin(attr):
        # C-level methods: str.upper, dict.fromkeys, ...
        func, bound = attr, True
        kind = "class" if type(attr).__name__ == "classmethod_descriptor" else "instance"
    else:
        return None

    params, return_type, required_kwonly = _signature_params(func, skip_first=bound)
    return MethodInfo(
        name=name,
        function=func,
        kind=kind,
        params=params,
        return_type=return_type,
        declaring_class=declaring,
        is_async=inspect.iscoroutinefunction(func),
        has_required_kwonly=required_kwonly,
    )


def _signature_params(
    func, skip_first: bool,
) -> tuple[tuple[ParamInfo, ...] | None, Any, bool]:
    """Return (positional parameters, return type, has required keyword-only).

    Parameters are None when the signature is unreadable.
    """
    try:
        sig = inspect.signature(func)
    except (TypeError, ValueError):
        return None, None, False

    plist = list(sig.parameters.values())
    if skip_first and plist and plist[0].kind in _POSITIONAL:
        plist = plist[1:]

    params = []
    required_kwonly = False
    for p in plist:
        if p.kind is inspect.Parameter.VAR_POSITIONAL:
            params.append(ParamInfo(
                name=p.name,
                annotation=_empty_to_none(p.annotation),
                variadic=True,
            ))
        elif p.kind in _POSITIONAL:
            params.append(ParamInfo(
                name=p.name,
                annotation=_empty_to_none(p.annotation),
                has_default=p.default is not inspect.Parameter.empty,
            ))
        elif p.kind is inspect.Parameter.KEYWORD_ONLY:
            required_kwonly = required_kwonly or p.default is inspect.Parameter.empty
        # **kwargs cannot be filled positionally

    return tuple(params), _empty_to_none(sig.return_annotation), required_kwonly


def _empty_to_none(annotation: Any) -> Any:
    if annotation is inspect.Parameter.empty or annotation is inspect.Signature.empty:
        return None
    return annotation
