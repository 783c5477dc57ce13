"""
Test the validation rules, message rendering and the aggregated
ValidationError tree.
"""

import pytest

from starorm import Validation, ValidationError, register_messages, register_rule
from starorm.validation import rules, set_translator


@pytest.mark.parametrize("rule, args, expected", [
    (rules.not_empty, [""], False),
    (rules.not_empty, [[]], False),
    (rules.not_empty, [0], True),
    (rules.not_empty, ["0"], True),
    (rules.min_length, ["abc", 4], False),
    (rules.max_length, ["abc", 3], True),
    (rules.exact_length, ["abc", [2, 3]], True),
    (rules.email, ["ada@example.com"], True),
    (rules.email, ["ada@"], False),
    (rules.regex, ["abc123", r"^[a-z]+\d+$"], True),
    (rules.equals, ["1", 1], False),
    (rules.digit, ["123"], True),
    (rules.digit, ["12.3"], False),
    (rules.numeric, ["-12.5"], True),
    (rules.range_, [5, 1, 10], True),
    (rules.range_, [11, 1, 10], False),
    (rules.in_array, ["b", ["a", "b"]], True),
    (rules.url, ["https://example.com/path"], True),
    (rules.url, ["example"], False),
])
def test_rules(rule, args, expected):
    assert rule(*args) is expected


def test_check_and_raw_errors():
    validation = (
        Validation({"name": "", "age": "x", "nickname": ""})
        .rule("name", "not_empty")
        .rule("age", "digit")
        .rule("nickname", "min_length", [":value", 3])
    )
    assert not validation.check()
    # Empty values skip every rule except not_empty and matches
    assert validation.errors() == {
        "name": ["not_empty", [""]],
        "age": ["digit", ["x"]],
    }


def test_first_failing_rule_stops_the_field():
    validation = Validation({"code": "abcdef"}).rules("code", [
        ("max_length", [":value", 3]),
        ("digit",),
    ])
    validation.check()
    assert validation.errors() == {"code": ["max_length", ["abcdef", 3]]}


def test_bound_parameters_and_callables():
    seen = {}

    def taken(validation, field, value):
        seen["args"] = (validation, field, value)
        return value != "admin"

    validation = Validation({"login": "admin"}).rule("login", taken, [":validation", ":field", ":value"])
    assert not validation.check()
    assert seen["args"] == (validation, "login", "admin")
    assert validation.errors()["login"][0] == "taken"


def test_matches():
    validation = Validation({"password": "secret", "confirm": "other"})
    validation.rule("confirm", "matches", [":data", ":field", "password"]).label("confirm", "confirmation")
    assert not validation.check()
    assert validation.errors("forms") == {"confirm": "confirmation must be the same as password"}


def test_message_lookup_order():
    register_messages("forms/user", {
        "email": {"email": "Enter a valid address", "default": "Email problem"},
        "min_length": ":field needs :param2+ characters",
    })
    validation = (
        Validation({"email": "nope", "username": "ab", "bio": "x" * 5})
        .rule("email", "email")
        .rule("username", "min_length", [":value", 3])
        .rule("bio", "max_length", [":value", 4])
    )
    validation.check()

    assert validation.errors("forms/user") == {
        "email": "Enter a valid address",
        "username": "username needs 3+ characters",
        "bio": "bio must not exceed 4 characters long",
    }


def test_unknown_rule_message_falls_back_to_path():
    register_rule("even", lambda value: int(value) % 2 == 0)
    validation = Validation({"n": "3"}).rule("n", "even")
    validation.check()
    assert validation.errors("numbers") == {"n": "numbers.n.even"}


def test_translator():
    set_translator(lambda text: text.replace("must not be empty", "is required"))
    try:
        validation = Validation({"title": None}).rule("title", "not_empty")
        validation.check()
        assert validation.errors("posts") == {"title": "title is required"}
        assert validation.errors("posts", translate=False) == {"title": "title must not be empty"}
    finally:
        set_translator(None)


def test_copy_keeps_rules_for_other_data():
    validation = Validation({"a": ""}).rule("a", "not_empty")
    other = validation.copy({"a": "filled"})
    assert other.check()
    assert not validation.check()


def failed(data, field, rule="not_empty"):
    validation = Validation(data).rule(field, rule)
    validation.check()
    return validation


def test_error_tree_flattens_with_external():
    error = ValidationError("user", failed({"username": ""}, "username"))
    error.add_object("_external", failed({"password": ""}, "password"))

    assert error.errors() == {
        "username": ["not_empty", [""]],
        "_external": {"password": ["not_empty", [""]]},
    }
    register_messages("models/user/_external", {"password": {"not_empty": "Choose a password"}})
    assert error.errors("models") == {
        "username": "username must not be empty",
        "_external": {"password": "Choose a password"},
    }


def test_error_tree_has_many_nodes():
    error = ValidationError("post", failed({"title": ""}, "title"))
    error.add_object("comments", failed({"body": ""}, "body"), has_many=True)
    error.add_object("comments", failed({"body": None}, "body"), has_many=True)
    error.add_object("tags", failed({"name": ""}, "name"), has_many="first")

    errors = error.errors()
    assert errors["comments"] == {
        0: {"body": ["not_empty", [""]]},
        1: {"body": ["not_empty", [None]]},
    }
    assert errors["tags"] == {"first": {"name": ["not_empty", [""]]}}
    assert error.objects()["comments"]["_has_many"] is True


def test_merge():
    child = ValidationError("profile", failed({"bio": ""}, "bio"))
    error = ValidationError("user", failed({"username": ""}, "username")).merge(child)

    assert error.errors()["profile"] == {"bio": ["not_empty", [""]]}
    assert error.alias() == "user"
    assert "username" in str(error)
