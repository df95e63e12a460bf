"""Tests for code, name and slug validation."""

import pytest

from mdmengine.errors import ValidationError
from mdmengine.utils.name_validator import (
    InvalidNameError,
    slugify,
    validate_code,
    validate_model_name,
    validate_slug,
)


class TestValidateCode:
    """Test attribute code validation."""

    @pytest.mark.parametrize("code", ["email", "first_name", "Field2", "a"])
    def test_valid_codes(self, code):
        validate_code(code)

    @pytest.mark.parametrize("code", ["", "2fast", "_private", "has space", "dash-ed", "a" * 64])
    def test_invalid_codes(self, code):
        with pytest.raises(InvalidNameError):
            validate_code(code)

    def test_invalid_name_is_validation_error(self):
        with pytest.raises(ValidationError) as exc:
            validate_code("bad code")
        assert exc.value.reason == "name"
        assert "must start with a letter" in str(exc.value)


class TestModelNames:
    """Test data model name validation."""

    def test_strips_whitespace(self):
        assert validate_model_name("  Customers ") == "Customers"

    @pytest.mark.parametrize("name", ["", "   ", None, "bad\x00name", "x" * 256])
    def test_invalid(self, name):
        with pytest.raises(InvalidNameError):
            validate_model_name(name)


class TestSlugs:
    """Test slug derivation."""

    @pytest.mark.parametrize(
        "name,expected",
        [
            ("Customer Accounts", "customer-accounts"),
            ("  Hello,   World!  ", "hello-world"),
            ("Already-a--slug", "already-a-slug"),
            ("Über Daten", "ber-daten"),
            ("2024 Plan", "2024-plan"),
        ],
    )
    def test_slugify(self, name, expected):
        assert slugify(name) == expected

    def test_validate_slug_normalizes(self):
        assert validate_slug("My Slug") == "my-slug"

    def test_validate_slug_rejects_empty_result(self):
        with pytest.raises(InvalidNameError):
            validate_slug("!!!")
