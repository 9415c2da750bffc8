from datetime import date
from enum import Enum, IntEnum
from uuid import UUID

import pytest

from routespec.annotations import Min, Trim
from routespec.binding.parsers import ListParser, ScalarParser
from routespec.errors import ValidationFailure
from routespec.types import resolve_type


class Status(Enum):
    OPEN = "open"
    CLOSED = "closed"


class Priority(IntEnum):
    LOW = 1
    HIGH = 2


def scalar(hint, constraints=(), allow_empty=False):
    return ScalarParser(resolve_type(hint), constraints, allow_empty, "form", True)


class TestScalarParser:
    def test_absent_is_no_value(self):
        assert scalar(int).build("limit", {}) is None

    def test_first_value_wins(self):
        assert scalar(int).build("limit", {"limit": ["5", "7"]}) == 5

    def test_malformed_value(self):
        with pytest.raises(ValidationFailure) as exc_info:
            scalar(int).build("limit", {"limit": ["abc"]})
        assert exc_info.value.field == "limit"
        assert exc_info.value.message == "Invalid value for limit: 'abc'"

    def test_float(self):
        assert scalar(float).build("price", {"price": ["2.5"]}) == 2.5
        assert scalar(float).build("price", {"price": ["-1e3"]}) == -1000.0

    @pytest.mark.parametrize("raw", ["nan", "NaN", "inf", "-Infinity", "1e999"])
    def test_non_finite_float_rejected(self, raw):
        with pytest.raises(ValidationFailure) as exc_info:
            scalar(float).build("price", {"price": [raw]})
        assert exc_info.value.field == "price"

    @pytest.mark.parametrize("raw", [" 10", "1_0", "10 ", "١٠", "0x10"])
    def test_integer_syntax_is_strict(self, raw):
        with pytest.raises(ValidationFailure):
            scalar(int).build("limit", {"limit": [raw]})

    def test_signed_integer(self):
        assert scalar(int).build("offset", {"offset": ["-3"]}) == -3
        assert scalar(int).build("offset", {"offset": ["+3"]}) == 3

    def test_float_syntax_is_strict(self):
        with pytest.raises(ValidationFailure):
            scalar(float).build("price", {"price": [" 1_0.5 "]})

    def test_bool_case_insensitive(self):
        assert scalar(bool).build("flag", {"flag": ["TRUE"]}) is True
        assert scalar(bool).build("flag", {"flag": ["false"]}) is False
        with pytest.raises(ValidationFailure):
            scalar(bool).build("flag", {"flag": ["yes"]})

    def test_uuid_and_date(self):
        raw = "3fa85f64-5717-4562-b3fc-2c963f66afa6"
        assert scalar(UUID).build("id", {"id": [raw]}) == UUID(raw)
        assert scalar(date).build("day", {"day": ["2024-02-29"]}) == date(2024, 2, 29)

    def test_enum_by_value_then_name(self):
        assert scalar(Status).build("status", {"status": ["open"]}) is Status.OPEN
        assert scalar(Status).build("status", {"status": ["CLOSED"]}) is Status.CLOSED
        with pytest.raises(ValidationFailure):
            scalar(Status).build("status", {"status": ["pending"]})

    def test_int_enum_by_value(self):
        assert scalar(Priority).build("priority", {"priority": ["2"]}) is Priority.HIGH

    def test_empty_string_is_a_string(self):
        assert scalar(str).build("q", {"q": [""]}) == ""

    def test_empty_non_string_rejected(self):
        with pytest.raises(ValidationFailure) as exc_info:
            scalar(int).build("limit", {"limit": [""]})
        assert exc_info.value.message == "limit must not be empty"

    def test_empty_non_string_allowed(self):
        assert scalar(int, allow_empty=True).build("limit", {"limit": [""]}) is None

    def test_constraints_applied(self):
        assert scalar(str, (Trim(),)).build("q", {"q": ["  hi "]}) == "hi"
        with pytest.raises(ValidationFailure):
            scalar(int, (Min(1),)).build("limit", {"limit": ["0"]})


class TestListParser:
    def test_exploded_form(self):
        parser = ListParser(list, scalar(int), "form", True)
        assert parser.build("ids", {"ids": ["1", "2"]}) == [1, 2]

    def test_simple_style_splits_commas(self):
        item = ScalarParser(resolve_type(int), (), False, "simple", False)
        parser = ListParser(list, item, "simple", False)
        assert parser.build("ids", {"ids": ["1,2", "3"]}) == [1, 2, 3]

    def test_container_type(self):
        parser = ListParser(set, scalar(str), "form", True)
        assert parser.build("tags", {"tags": ["a", "b", "a"]}) == {"a", "b"}

    def test_absent(self):
        assert ListParser(list, scalar(int), "form", True).build("ids", {}) is None

    def test_item_constraints(self):
        parser = ListParser(list, scalar(int, (Min(1),)), "form", True)
        with pytest.raises(ValidationFailure):
            parser.build("ids", {"ids": ["1", "0"]})
