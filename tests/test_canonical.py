"""Tests for RFC 8785 canonical JSON serialization."""

import json
import math

import pytest

from trustanchor import UNDEFINED, canonical_bytes, canonical_json, signing_payload
from trustanchor.canonical import utf8_bytes


class TestCanonicalJson:
    """Structural rules: ordering, whitespace, literals."""

    def test_sorted_keys(self):
        assert canonical_json({"z": 1, "a": 2, "m": 3}) == '{"a":2,"m":3,"z":1}'

    def test_no_whitespace(self):
        result = canonical_json({"foo": [1, 2, {"bar": True}], "baz": "a b"})
        assert result == '{"baz":"a b","foo":[1,2,{"bar":true}]}'

    def test_nested_sorting(self):
        assert canonical_json({"b": {"d": 1, "c": 2}, "a": 0}) == '{"a":0,"b":{"c":2,"d":1}}'

    def test_insertion_order_irrelevant(self):
        first = {"x": {"k2": [1, {"b": 1, "a": 2}], "k1": None}, "y": "v"}
        second = {"y": "v", "x": {"k1": None, "k2": [1, {"a": 2, "b": 1}]}}
        assert canonical_json(first) == canonical_json(second)

    def test_literals(self):
        assert canonical_json(None) == "null"
        assert canonical_json(True) == "true"
        assert canonical_json(False) == "false"
        assert canonical_json({"key": None}) == '{"key":null}'

    def test_array_order_preserved(self):
        assert canonical_json([3, 1, 2]) == "[3,1,2]"
        assert canonical_json((3, 1, 2)) == "[3,1,2]"

    def test_undefined_members_omitted(self):
        assert canonical_json({"a": 1, "b": UNDEFINED, "c": 3}) == '{"a":1,"c":3}'

    def test_undefined_in_array_is_null(self):
        assert canonical_json([1, UNDEFINED]) == "[1,null]"
        assert canonical_json(UNDEFINED) == "null"

    def test_keys_sorted_by_utf16_code_unit(self):
        # U+1F600 encodes as surrogates D83D DE00, which sort before U+FFFF
        assert canonical_json({"\uffff": 2, "\U0001F600": 1}) == '{"\U0001F600":1,"\uffff":2}'

    def test_unsupported_type_rejected(self):
        with pytest.raises(TypeError):
            canonical_json({"when": object()})

    def test_non_string_key_rejected(self):
        with pytest.raises(TypeError):
            canonical_json({1: "one"})


class TestCanonicalNumbers:
    """ECMAScript Number::toString parity."""

    @pytest.mark.parametrize("value, expected", [
        (42, "42"),
        (-17, "-17"),
        (0, "0"),
        (1.0, "1"),
        (-0.0, "0"),
        (3.14, "3.14"),
        (0.1, "0.1"),
        (100.0, "100"),
        (1e-6, "0.000001"),
        (1e-7, "1e-7"),
        (123e-20, "1.23e-18"),
        (1e20, "100000000000000000000"),
        (1e21, "1e+21"),
        (2.0**60, "1152921504606847000"),
        (2**53 - 2, "9007199254740990"),
        (2**53 + 1, "9007199254740992"),
        (-(10**25), "-1e+25"),
    ])
    def test_number_formatting(self, value, expected):
        assert canonical_json(value) == expected

    @pytest.mark.parametrize("value", [math.nan, math.inf, -math.inf, 10**400])
    def test_non_finite_is_null(self, value):
        assert canonical_json(value) == "null"

    def test_bool_is_not_number(self):
        assert canonical_json([True, 1]) == "[true,1]"


class TestCanonicalStrings:

    def test_escapes(self):
        assert canonical_json("hello\nworld") == '"hello\\nworld"'
        assert canonical_json('quote"back\\slash') == '"quote\\"back\\\\slash"'
        assert canonical_json("\x01\x1f") == '"\\u0001\\u001f"'

    def test_non_ascii_emitted_raw(self):
        assert canonical_json("café ✓") == '"café ✓"'
        assert canonical_bytes("é") == '"é"'.encode("utf-8")

    def test_lone_surrogates_escaped(self):
        text = json.loads('"\\ud800x\\udc00"')
        assert canonical_json(text) == '"\\ud800x\\udc00"'
        assert canonical_bytes(text) == b'"\\ud800x\\udc00"'

    def test_lone_surrogate_after_backslash(self):
        assert canonical_json("\\\ud800") == '"\\\\\\ud800"'

    def test_split_surrogate_pair_joined(self):
        assert canonical_json("\ud83d\ude00") == '"\U0001F600"'

    def test_lone_surrogate_in_key(self):
        assert canonical_bytes({"\udfff": 1, "a": 2}) == b'{"a":2,"\\udfff":1}'


class TestUtf8Bytes:

    def test_plain_text(self):
        assert utf8_bytes("é") == b"\xc3\xa9"

    def test_lone_surrogate_replaced(self):
        assert utf8_bytes("a\udc00") == b"a\xef\xbf\xbd"

    def test_split_pair_joined(self):
        assert utf8_bytes("\ud83d\ude00") == "\U0001F600".encode("utf-8")


class TestSigningPayload:

    def test_excludes_signatures(self):
        bundle = {"bundle_id": "b", "signatures": [{"signature_id": "s"}]}
        assert signing_payload(bundle) == b'{"bundle_id":"b"}'

    def test_does_not_mutate_bundle(self):
        bundle = {"bundle_id": "b", "signatures": []}
        signing_payload(bundle)
        assert "signatures" in bundle
