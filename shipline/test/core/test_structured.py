from __future__ import annotations

from shipline.core.structured import (
    as_obj_list,
    as_str_dict,
    get_bool,
    get_str,
    get_str_list,
    get_table,
    is_str_dict,
)


def test_is_str_dict() -> None:
    assert is_str_dict({"a": 1})
    assert not is_str_dict({1: "a"})
    assert not is_str_dict(["a"])


def test_as_helpers() -> None:
    assert as_str_dict({"a": 1}) == {"a": 1}
    assert as_str_dict("x") is None
    assert as_obj_list([1, "b"]) == [1, "b"]
    assert as_obj_list({"a": 1}) is None


def test_get_str_strips_and_rejects_empty() -> None:
    table: dict[str, object] = {"a": "  x ", "b": "   ", "c": 3}
    assert get_str(table, "a") == "x"
    assert get_str(table, "b") is None
    assert get_str(table, "c") is None
    assert get_str(table, "missing") is None


def test_get_bool_only_accepts_bools() -> None:
    table: dict[str, object] = {"yes": True, "no": False, "str": "true"}
    assert get_bool(table, "yes") is True
    assert get_bool(table, "no") is False
    assert get_bool(table, "str") is None


def test_get_table() -> None:
    table: dict[str, object] = {"t": {"k": "v"}, "s": "x"}
    assert get_table(table, "t") == {"k": "v"}
    assert get_table(table, "s") is None


def test_get_str_list() -> None:
    table: dict[str, object] = {
        "cmd": ["cargo", "build"],
        "mixed": ["cargo", 1],
        "blank": ["cargo", " "],
        "empty": [],
    }
    assert get_str_list(table, "cmd") == ["cargo", "build"]
    assert get_str_list(table, "mixed") is None
    assert get_str_list(table, "blank") is None
    assert get_str_list(table, "empty") is None
    assert get_str_list(table, "missing") is None
