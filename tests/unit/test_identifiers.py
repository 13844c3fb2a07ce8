"""Tests for identifier validation (task keys, store keys, versions, roots)."""

import pytest

from muskoka.domain.exceptions import ValidationException
from muskoka.domain.identifiers import (
    is_valid_client_name,
    is_valid_key,
    is_valid_root,
    is_valid_task_key,
    is_valid_version,
    require_key,
    require_task_key,
    require_version,
)
from muskoka.shared.utils.generators import generate_cuid, generate_result_key


@pytest.mark.parametrize("value", ["mainnet", "minimal", "zrnt", "lighthouse-2", "a_b"])
def test_valid_keys(value: str) -> None:
    """Plain names are accepted as store map keys."""
    assert is_valid_key(value)
    assert is_valid_client_name(value)


@pytest.mark.parametrize("value", ["", "_hidden", "-dash", "__name__", "a.b", "a/b", "x" * 200, 7, None])
def test_invalid_keys(value: object) -> None:
    """Leading underscore/hyphen, separators, overlong and non-strings are rejected."""
    assert not is_valid_key(value)


@pytest.mark.parametrize("value", ["v1.0", "v0.12.3", "1.0.0-rc.1", "dev"])
def test_valid_versions(value: str) -> None:
    assert is_valid_version(value)


@pytest.mark.parametrize("value", ["", ".v1", "v1 0", "v1/0"])
def test_invalid_versions(value: str) -> None:
    assert not is_valid_version(value)


def test_root_must_be_lowercase_prefixed_32_bytes() -> None:
    """Post-state roots are 0x + 64 lowercase hex digits."""
    assert is_valid_root("0x" + "ab" * 32)
    assert not is_valid_root("ab" * 32)
    assert not is_valid_root("0x" + "AB" * 32)
    assert not is_valid_root("0x" + "ab" * 31)


def test_generated_keys_are_valid() -> None:
    """Generated task keys pass task-key validation; result keys are valid map keys."""
    assert is_valid_task_key(generate_cuid())
    result_key = generate_result_key()
    assert is_valid_key(result_key)
    assert generate_result_key() != result_key


def test_require_helpers_raise_validation_exception_with_field() -> None:
    """require_* return the value or raise ValidationException naming the field."""
    assert require_key("mainnet", "spec-config") == "mainnet"
    assert require_version("v1.0", "spec-version") == "v1.0"
    with pytest.raises(ValidationException) as exc_info:
        require_task_key("bad key!")
    assert exc_info.value.details == {"field": "key"}
    with pytest.raises(ValidationException) as exc_info:
        require_version("", "spec-version")
    assert exc_info.value.details == {"field": "spec-version"}
