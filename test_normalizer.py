"""Tests for document normalization."""

import pytest

from app.streamer.normalizer import is_valid_comments, is_valid_http_url, normalize_document


@pytest.mark.parametrize("value", [None, True, False, 0, "", "   ", "true", "FALSE", " True ", ["x"], {"a": 1}])
def test_invalid_comments_are_dropped(value):
    """Test that non-text, empty or boolean-looking comments are removed."""
    document = {"entityType": "Save", "comments": value}

    normalize_document(document)

    assert "comments" not in document


def test_valid_comments_are_kept():
    """Test that real comment text survives unchanged."""
    document = {"comments": "  great place, truly  "}

    normalize_document(document)

    assert document["comments"] == "  great place, truly  "
    assert is_valid_comments("trueish")


@pytest.mark.parametrize(
    "value", [None, False, "", "true", "ftp://example.com/a.png", "example.com/a.png", "http://", "https:// x", 42]
)
def test_invalid_third_party_image_is_dropped(value):
    """Test that anything but an http(s) URL is removed."""
    document = {"thirdPartyImage": value}

    normalize_document(document)

    assert "thirdPartyImage" not in document


@pytest.mark.parametrize("value", ["http://cdn.example.com/a.png", "HTTPS://example.com/img?size=2"])
def test_valid_third_party_image_is_kept(value):
    """Test that http(s) URLs survive."""
    document = {"thirdPartyImage": value}

    normalize_document(document)

    assert document["thirdPartyImage"] == value


def test_absent_fields_are_left_absent():
    """Test that normalization never adds fields."""
    document = {"title": "t"}

    assert normalize_document(document) is document
    assert document == {"title": "t"}


def test_url_validation():
    """Test the URL predicate directly."""
    assert is_valid_http_url("https://example.com")
    assert not is_valid_http_url("mailto:someone@example.com")
