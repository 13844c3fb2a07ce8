"""Identifier formats accepted at every entry point.

All user- and worker-supplied identifiers are matched against one of these
named patterns before they reach the document store. Names that become map
keys in the store (client names, configs) may not start with an underscore
or hyphen, which keeps them clear of Firestore's reserved `__*__` names.
"""

import re
from typing import Final

from muskoka.domain.exceptions import ValidationException

# Task keys: store-assigned, but arrive from clients in URLs and result messages.
TASK_KEY_PATTERN: Final = re.compile(r"^[-0-9a-zA-Z=][-_0-9a-zA-Z=]{0,128}$")

# Used as map keys in the store (spec config, worker client names).
KEY_PATTERN: Final = re.compile(r"^[0-9a-zA-Z][-_0-9a-zA-Z]{0,128}$")
CLIENT_NAME_PATTERN: Final = KEY_PATTERN

# Versions are only stored as values and may contain dots.
VERSION_PATTERN: Final = re.compile(r"^[0-9a-zA-Z][-_.0-9a-zA-Z]{0,128}$")

# Hex encoded bytes32 with 0x prefix (post-state root).
ROOT_PATTERN: Final = re.compile(r"^0x[0-9a-f]{64}$")


def _matches(pattern: re.Pattern[str], value: object) -> bool:
    return isinstance(value, str) and pattern.fullmatch(value) is not None


def is_valid_task_key(value: object) -> bool:
    """Return True if value is a well-formed task key."""
    return _matches(TASK_KEY_PATTERN, value)


def is_valid_key(value: object) -> bool:
    """Return True if value may be used as a store map key (e.g. spec config)."""
    return _matches(KEY_PATTERN, value)


def is_valid_client_name(value: object) -> bool:
    """Return True if value is a well-formed worker client name."""
    return _matches(CLIENT_NAME_PATTERN, value)


def is_valid_version(value: object) -> bool:
    """Return True if value is a well-formed spec or client version."""
    return _matches(VERSION_PATTERN, value)


def is_valid_root(value: object) -> bool:
    """Return True if value is a 0x-prefixed, lowercase, 32-byte hex digest."""
    return _matches(ROOT_PATTERN, value)


def require_task_key(value: object, field: str = "key") -> str:
    """Return value if it is a valid task key, else raise ValidationException."""
    if not is_valid_task_key(value):
        raise ValidationException("task key is invalid", field=field)
    return value  # type: ignore[return-value]


def require_version(value: object, field: str) -> str:
    """Return value if it is a valid version, else raise ValidationException."""
    if not is_valid_version(value):
        raise ValidationException(f"{field} is invalid", field=field)
    return value  # type: ignore[return-value]


def require_key(value: object, field: str) -> str:
    """Return value if it is a valid store key, else raise ValidationException."""
    if not is_valid_key(value):
        raise ValidationException(f"{field} is invalid", field=field)
    return value  # type: ignore[return-value]
