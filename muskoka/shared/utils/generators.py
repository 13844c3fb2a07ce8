"""ID and value generators (task keys, result keys)."""

import secrets

from cuid2 import cuid_wrapper

cuid_generator = cuid_wrapper()

# 128 bits of entropy; hex so the key is never one of Firestore's reserved `__*__` names.
RESULT_KEY_BYTES = 16


def generate_cuid() -> str:
    """Generate a collision-resistant unique identifier (CUID2), used as task key.

    Returns:
        A new CUID string.
    """
    result = cuid_generator()
    if not isinstance(result, str):
        raise TypeError(
            f"Expected str from cuid_generator, got {type(result).__name__}"
        )
    return result


def generate_result_key() -> str:
    """Return a fresh random key for one result entry (independent of its content)."""
    return secrets.token_hex(RESULT_KEY_BYTES)
