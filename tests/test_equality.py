"""Tests for declaration equality."""
import json

from as3_agent.dispatch.equality import canonicalize, deep_equal_json


DECL = json.dumps({
    "class": "AS3",
    "declaration": {
        "class": "ADC",
        "schemaVersion": "3.20.0",
        "tenant1": {"class": "Tenant", "app": {"class": "Application", "members": [1, 2, 3]}},
    },
})


class TestDeepEqualJSON:
    """Tests for deep_equal_json."""

    def test_same_document_is_equal(self):
        """A declaration equals itself."""
        assert deep_equal_json(DECL, DECL) is True

    def test_both_empty_are_equal(self):
        """Two empty declarations are equal."""
        assert deep_equal_json("", "") is True

    def test_empty_vs_document(self):
        """Empty never equals a real declaration."""
        assert deep_equal_json("", DECL) is False
        assert deep_equal_json(DECL, "") is False

    def test_key_order_and_whitespace_ignored(self):
        """Formatting differences do not matter."""
        a = '{"a": 1, "b": {"c": true, "d": null}}'
        b = '{\n  "b": {"d": null,   "c": true},\n  "a": 1\n}'
        assert deep_equal_json(a, b) is True

    def test_array_order_matters(self):
        """Arrays are compared in order."""
        assert deep_equal_json('{"a": [1, 2]}', '{"a": [2, 1]}') is False

    def test_scalar_values_matter(self):
        """Different scalar values are not equal."""
        assert deep_equal_json('{"a": "x"}', '{"a": "y"}') is False
        assert deep_equal_json('{"a": 1}', '{"a": "1"}') is False

    def test_bool_is_not_number(self):
        """true and 1 are different JSON values."""
        assert deep_equal_json('{"a": true}', '{"a": 1}') is False
        assert deep_equal_json('[false]', '[0]') is False

    def test_int_and_float_compare_by_value(self):
        """1 and 1.0 are the same JSON number."""
        assert deep_equal_json('{"a": 1}', '{"a": 1.0}') is True

    def test_malformed_is_never_equal(self):
        """Unparseable input fails closed."""
        bad = '{"a": 1'
        assert deep_equal_json(bad, DECL) is False
        assert deep_equal_json(DECL, bad) is False
        assert deep_equal_json(bad, bad) is False

    def test_malformed_vs_empty(self):
        """Malformed input does not equal an empty declaration either."""
        assert deep_equal_json("", "not json") is False

    def test_nan_is_malformed(self):
        """Non-standard constants count as malformed."""
        assert deep_equal_json('{"a": NaN}', '{"a": NaN}') is False


class TestCanonicalize:
    """Tests for the canonical structural form."""

    def test_objects_sorted(self):
        """Key order does not change the canonical form."""
        assert canonicalize({"b": 1, "a": 2}) == canonicalize({"a": 2, "b": 1})

    def test_nested_tagging(self):
        """Every JSON type is tagged."""
        tree = canonicalize({"x": [None, True, 2, "s"]})
        assert tree == (
            "object",
            (("x", ("array", (("null",), ("bool", True), ("number", 2), ("string", "s")))),),
        )
