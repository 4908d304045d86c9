"""Tests for DynamoDB typed-attribute decoding."""

import copy

from app.streamer.attribute_decoder import decode_image, decode_value


def test_scalar_types():
    """Test decoding of string, number and boolean values."""
    assert decode_value({"S": "hello"}) == "hello"
    assert decode_value({"N": "42"}) == 42
    assert decode_value({"N": "-3.5"}) == -3.5
    assert decode_value({"N": "1e3"}) == 1000.0
    assert decode_value({"BOOL": True}) is True
    assert decode_value({"BOOL": False}) is False
    assert decode_value({"NULL": True}) is None


def test_nested_map_and_list():
    """Test recursion through maps and lists."""
    image = {
        "entityType": {"S": "Save"},
        "meta": {"M": {"views": {"N": "7"}, "tags": {"L": [{"S": "a"}, {"M": {"deep": {"BOOL": True}}}]}}},
        "scores": {"L": [{"N": "1"}, {"N": "2.5"}, {"L": [{"S": "x"}]}]},
    }

    assert decode_image(image) == {
        "entityType": "Save",
        "meta": {"views": 7, "tags": ["a", {"deep": True}]},
        "scores": [1, 2.5, ["x"]],
    }


def test_sets():
    """Test string and number sets decode to lists."""
    assert decode_value({"SS": ["a", "b"]}) == ["a", "b"]
    assert decode_value({"NS": ["1", "2.5"]}) == [1, 2.5]


def test_unknown_tag_passes_raw_value_through():
    """Test that unknown type tags return the wrapped value unchanged."""
    assert decode_value({"B": "aGVsbG8="}) == "aGVsbG8="
    assert decode_value({"XYZ": {"anything": 1}}) == {"anything": 1}


def test_malformed_values_pass_through():
    """Test that malformed input is returned inertly."""
    assert decode_value("plain") == "plain"
    assert decode_value({"S": "a", "N": "1"}) == {"S": "a", "N": "1"}
    assert decode_value({"N": "not-a-number"}) == "not-a-number"
    assert decode_value({"L": "not-a-list"}) == "not-a-list"
    assert decode_image({}) == {}
    assert decode_image(None) == {}


def test_decoding_is_idempotent_and_pure():
    """Test that decoding twice gives identical output and leaves the input untouched."""
    image = {
        "title": {"S": "Steakhouse"},
        "comments": {"BOOL": True},
        "nested": {"M": {"list": {"L": [{"N": "1"}]}}},
    }
    original = copy.deepcopy(image)

    first = decode_image(image)
    second = decode_image(image)

    assert first == second
    assert image == original
    first["nested"]["list"].append(2)
    assert decode_image(image)["nested"]["list"] == [1]
