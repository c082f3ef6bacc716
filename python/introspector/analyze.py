"""Command dispatcher for introspector.

Routes --command values to the appropriate Introspector call.
Called from __main__.py.
"""

from __future__ import annotations

import importlib
import inspect

from .introspector import Introspector


def dispatch(
    command: str,
    target: str,
    args: dict,
    introspector: Introspector | None = None,
) -> dict:
    """Dispatch a command to the appropriate introspection function.

    Args:
        command: Command name
        target: Class reference as "package.module:QualName"
        args: Extra arguments dict
        introspector: Shared Introspector; a throwaway one is created if None

    Returns:
        JSON-serialisable dict result
    """
    if introspector is None:
        introspector = Introspector()

    if command == "describe":
        cls = resolve_class(target)
        class_map = introspector.get_class_map(cls)
        field_map = introspector.get_field_map(cls)
        result = class_map.to_dict()
        result["fields"] = field_map.to_dict()["fields"]
        result["target"] = target
        return result

    elif command == "method":
        cls = resolve_class(target)
        name = args.get("name", "")
        method = introspector.get_method(cls, name, args.get("args", []))
        return {
            "target": target,
            "name": name,
            "found": method is not None,
            "method": None if method is None else {
                "name": method.name,
                "kind": method.kind,
                "params": None if method.params is None else [p.name for p in method.params],
                "declaring_class": method.declaring_class,
                "is_async": method.is_async,
            },
        }

    elif command == "field":
        cls = resolve_class(target)
        name = args.get("name", "")
        field = introspector.get_field(cls, name)
        return {
            "target": target,
            "name": name,
            "found": field is not None,
            "field": None if field is None else {
                "name": field.name,
                "kind": field.kind,
                "declaring_class": field.declaring_class,
            },
        }

    elif command == "stats":
        return introspector.cache.stats()

    elif command == "clear":
        introspector.cache.clear()
        return introspector.cache.stats()

    else:
        return {"error": "UnknownCommand", "message": f"Unknown command: {command}"}


def resolve_class(target: str) -> type:
    """Import ``module:QualName`` and return the class it names.

    Raises:
        ValueError: malformed target, or the name is not a class
        ImportError: module cannot be imported
        AttributeError: module has no such attribute
    """
    module_name, sep, qualname = target.partition(":")
    if not sep or not module_name or not qualname:
        raise ValueError(f"Expected 'module:QualName', got {target!r}")

    obj = importlib.import_module(module_name)
    for part in qualname.split("."):
        obj = getattr(obj, part)
    if not inspect.isclass(obj):
        raise ValueError(f"{target} is not a class")
    return obj
