"""
Utility functions for value coercion, hashing, and JSON pointer handling.
"""

import hashlib
import json
from typing import Any, Dict, List, Union


PointerToken = Union[str, int]


def get_value(value: Any) -> Any:
    """
    Coerce a missing field value to an empty string.

    Args:
        value: Raw field value

    Returns:
        The value, or '' when it is None
    """
    if value is None:
        return ''
    return value


def calculate_sha256(data: bytes) -> str:
    """
    Calculate SHA256 hash of data.

    Args:
        data: Bytes to hash

    Returns:
        Hexadecimal hash string
    """
    return hashlib.sha256(data).hexdigest()


def short_hash(full_hash: str, length: int = 16) -> str:
    """
    Get a shortened version of a hash for display.

    Args:
        full_hash: Full hash string
        length: Number of characters to return

    Returns:
        Shortened hash string
    """
    if not full_hash:
        return ''
    return full_hash[:length]


def schema_fingerprint(schema: Dict[str, Any]) -> str:
    """
    Compute a structural fingerprint of a schema.

    Two schemas with the same content produce the same fingerprint regardless
    of key order or object identity.

    Args:
        schema: JSON schema dictionary

    Returns:
        Hexadecimal hash string
    """
    canonical = json.dumps(schema, sort_keys=True, separators=(',', ':'), default=str)
    return calculate_sha256(canonical.encode('utf-8'))


def _escape_token(token: PointerToken) -> str:
    return str(token).replace('~', '~0').replace('/', '~1')


def _unescape_token(token: str) -> str:
    return token.replace('~1', '/').replace('~0', '~')


def to_json_pointer(tokens: List[PointerToken], prefix: str = '') -> str:
    """
    Join path tokens into a JSON pointer.

    Args:
        tokens: Path tokens (keys and array indexes)
        prefix: Leading marker, e.g. '#' for schema paths

    Returns:
        Pointer string; empty tokens give '' (or the bare prefix)
    """
    if not tokens:
        return prefix
    return prefix + '/' + '/'.join(_escape_token(t) for t in tokens)


def parse_json_pointer(pointer: str) -> List[str]:
    """
    Split a JSON pointer into its unescaped tokens.

    Accepts both instance pointers ('/title') and schema pointers
    ('#/allOf/0/if').

    Args:
        pointer: Pointer string

    Returns:
        List of tokens (empty for '' or '#')
    """
    if not pointer:
        return []
    if pointer.startswith('#'):
        pointer = pointer[1:]
    if not pointer:
        return []
    if pointer.startswith('/'):
        pointer = pointer[1:]
    return [_unescape_token(t) for t in pointer.split('/')]
