"""Tests for argument conversion and method applicability."""

import logging
from typing import Any

import pytest

from introspector.conversion import TypeConversionHandler
from introspector.extractors import ClassMapBuilder


class Calculator:
    def add(self, a: int, b: int) -> int:
        return a + b

    def scale(self, factor: float, label: str = "x"):
        pass

    def toggle(self, flag: bool):
        pass

    def anything(self, value, other: Any = None):
        pass

    def forward(self, ref: "Calculator"):
        pass

    def total(self, first: int, *rest: int):
        pass


def test_direct_instance_needs_no_converter():
    handler = TypeConversionHandler()
    assert handler.get_needed_converter(int, int) is None
    assert handler.get_needed_converter(int, bool) is None
    assert handler.is_convertible(int, 3)


def test_standard_converters():
    handler = TypeConversionHandler()

    assert handler.get_needed_converter(float, int)(2) == 2.0
    assert handler.get_needed_converter(int, str)("12") == 12
    assert handler.get_needed_converter(str, int)(5) == "5"
    assert handler.get_needed_converter(bool, str)("Yes") is True
    assert handler.get_needed_converter(bool, str)("off") is False
    assert handler.get_needed_converter(bool, int)(0) is False


def test_bool_converter_rejects_unknown_strings():
    converter = TypeConversionHandler().get_needed_converter(bool, str)
    with pytest.raises(ValueError):
        converter("maybe")


def test_unknown_conversion():
    handler = TypeConversionHandler()
    assert handler.get_needed_converter(int, list) is None
    assert not handler.is_convertible(int, [1])


def test_none_and_unchecked_annotations_accept_everything():
    handler = TypeConversionHandler()
    assert handler.is_convertible(int, None)
    assert handler.is_convertible(None, object())
    assert handler.is_convertible(Any, object())
    assert handler.is_convertible(object, 1)
    assert handler.is_convertible("Calculator", 1)


def test_add_converter(caplog):
    handler = TypeConversionHandler()

    with caplog.at_level(logging.DEBUG, logger="introspector.conversion"):
        handler.add_converter(list, str, lambda s: s.split(","))

    assert handler.get_needed_converter(list, str)("a,b") == ["a", "b"]
    assert any(r.message == "conversion.converter_added" for r in caplog.records)


def test_constructor_converters_override_standard():
    handler = TypeConversionHandler({(int, str): lambda s: int(s, 16)})
    assert handler.get_needed_converter(int, str)("ff") == 255


def test_find_method_checks_arity_and_types():
    class_map = ClassMapBuilder().build(Calculator, TypeConversionHandler())

    assert class_map.find_method("add", [1, 2]) is not None
    assert class_map.find_method("add", ["1", 2]) is not None
    assert class_map.find_method("add", [1]) is None
    assert class_map.find_method("add", [1, 2, 3]) is None
    assert class_map.find_method("add", [[1], 2]) is None
    assert class_map.find_method("scale", [2]) is not None
    assert class_map.find_method("scale", [2.5, 7]) is not None
    assert class_map.find_method("toggle", ["true"]) is not None
    assert class_map.find_method("anything", [object()]) is not None
    assert class_map.find_method("forward", [1]) is not None
    assert class_map.find_method("total", [1, 2, 3, 4]) is not None
    assert class_map.find_method("total", [1, 2, [3]]) is None
    assert class_map.find_method("missing", []) is None


def test_coerce_arguments():
    class_map = ClassMapBuilder().build(Calculator, TypeConversionHandler())

    add = class_map.find_method("add", ["4", 5])
    assert class_map.coerce_arguments(add, ["4", 5]) == [4, 5]

    scale = class_map.find_method("scale", [2, 9])
    coerced = class_map.coerce_arguments(scale, [2, 9])
    assert coerced == [2.0, "9"]
    assert isinstance(coerced[0], float)

    total = class_map.find_method("total", [1, "2", "3"])
    assert class_map.coerce_arguments(total, [1, "2", "3"]) == [1, 2, 3]

    toggle = class_map.find_method("toggle", [None])
    assert class_map.coerce_arguments(toggle, [None]) == [None]


class Job:
    def run(self, *, retries):
        pass

    def run_later(self, delay: int, *, retries: int = 3):
        pass

    def submit(self, *items, priority):
        pass


def test_required_keyword_only_not_positionally_applicable():
    class_map = ClassMapBuilder().build(Job, TypeConversionHandler())

    assert class_map.methods["run"].has_required_kwonly is True
    assert class_map.find_method("run", []) is None
    assert class_map.find_method("run", [1]) is None
    assert class_map.find_method("submit", [1, 2]) is None


def test_optional_keyword_only_still_applicable():
    class_map = ClassMapBuilder().build(Job, TypeConversionHandler())

    assert class_map.methods["run_later"].has_required_kwonly is False
    assert class_map.find_method("run_later", [5]) is not None
    assert class_map.find_method("run_later", [5, 3]) is None
