"""
Encoding of component IDs.

Wire tokens are opaque surrogates: the unpadded URL-safe base64 form of the
16-byte store key, 22 characters long. Argument lists are stored as a blob in
which every argument is written as ``<length>:<text>``, so argument content
can never be mistaken for a separator.
"""

import re
import uuid
import base64
import binascii
from typing import Sequence

from .errors import MalformedComponentIdError

TOKEN_LENGTH = 22
TOKEN_PATTERN = re.compile(r"^[A-Za-z0-9_-]{22}$")


def new_key() -> str:
    """Create a fresh store key."""
    return uuid.uuid4().hex


def encode_key(key: str) -> str:
    """Turn a store key into a wire token."""
    try:
        raw = uuid.UUID(hex=key).bytes
    except (ValueError, TypeError) as e:
        raise MalformedComponentIdError(f"Not a store key: {key!r}") from e
    return base64.urlsafe_b64encode(raw).decode("ascii").rstrip("=")


def decode_token(token: str) -> str:
    """
    Turn a wire token back into its store key.

    Raises:
        MalformedComponentIdError: If the token was not produced by encode_key
    """
    if not isinstance(token, str) or not TOKEN_PATTERN.match(token):
        raise MalformedComponentIdError("Token does not match the wire format")

    try:
        raw = base64.urlsafe_b64decode(token + "==")
    except (binascii.Error, ValueError) as e:
        raise MalformedComponentIdError("Token is not valid base64") from e

    if len(raw) != 16:
        raise MalformedComponentIdError("Token has the wrong payload size")

    key = uuid.UUID(bytes=raw).hex
    # Reject non-canonical spellings of the same bytes
    if encode_key(key) != token:
        raise MalformedComponentIdError("Token is not canonical")
    return key


def encode_args(args: Sequence[str]) -> str:
    """Serialise an argument list with explicit length prefixes."""
    return "".join(f"{len(arg)}:{arg}" for arg in args)


def decode_args(blob: str) -> tuple[str, ...]:
    """
    Inverse of encode_args.

    Raises:
        MalformedComponentIdError: If the blob is truncated or corrupt
    """
    args = []
    pos = 0
    while pos < len(blob):
        colon = blob.find(":", pos)
        if colon == -1:
            raise MalformedComponentIdError("Argument blob is missing a length prefix")

        length_text = blob[pos:colon]
        if not (length_text.isascii() and length_text.isdigit()):
            raise MalformedComponentIdError(f"Bad argument length: {length_text!r}")

        start = colon + 1
        end = start + int(length_text)
        if end > len(blob):
            raise MalformedComponentIdError("Argument blob is truncated")

        args.append(blob[start:end])
        pos = end

    return tuple(args)
