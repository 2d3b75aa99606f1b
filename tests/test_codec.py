"""Tests for component ID encoding."""

import random
import pytest

from botcore import codec
from botcore.errors import MalformedComponentIdError


def random_args(rng, count):
    alphabet = "ab:1 0\n\t!é漢😀"
    return tuple(
        "".join(rng.choice(alphabet) for _ in range(rng.randint(0, 12)))
        for _ in range(count)
    )


class TestTokens:
    """Test surrogate key <-> wire token conversion."""

    def test_token_round_trip(self):
        """Test that a key survives encoding to a token."""
        key = codec.new_key()

        token = codec.encode_key(key)

        assert codec.decode_token(token) == key

    def test_token_length_fixed(self):
        """Test that every token is 22 characters."""
        for _ in range(50):
            assert len(codec.encode_key(codec.new_key())) == codec.TOKEN_LENGTH

    def test_token_alphabet(self):
        """Test that tokens only use URL-safe characters."""
        for _ in range(50):
            token = codec.encode_key(codec.new_key())
            assert codec.TOKEN_PATTERN.match(token)

    def test_new_keys_unique(self):
        """Test that fresh keys never collide."""
        keys = {codec.new_key() for _ in range(1000)}

        assert len(keys) == 1000

    @pytest.mark.parametrize("token", [
        "!!garbage!!",
        "",
        "short",
        "a" * 23,
        "a" * 21 + "!",
        "a" * 21 + "=",
    ])
    def test_malformed_tokens_rejected(self, token):
        """Test that tokens not produced by encode_key are rejected."""
        with pytest.raises(MalformedComponentIdError):
            codec.decode_token(token)

    def test_non_canonical_token_rejected(self):
        """Test that trailing bits outside the 16 bytes are rejected."""
        token = codec.encode_key(codec.new_key())
        last = token[-1]
        # The low bits of the last character are padding; flip one of them
        alphabet = "ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz0123456789-_"
        tweaked = token[:-1] + alphabet[alphabet.index(last) ^ 1]

        with pytest.raises(MalformedComponentIdError):
            codec.decode_token(tweaked)

    def test_non_string_token_rejected(self):
        with pytest.raises(MalformedComponentIdError):
            codec.decode_token(None)


class TestArgs:
    """Test length-prefixed argument blobs."""

    def test_empty(self):
        assert codec.encode_args([]) == ""
        assert codec.decode_args("") == ()

    def test_simple(self):
        """Test the exact blob layout."""
        assert codec.encode_args(["u42", "yes"]) == "3:u423:yes"

    def test_separator_inside_argument(self):
        """Test that colons and digits in arguments are not confused with prefixes."""
        args = ("3:abc", "", ":", "10:")

        assert codec.decode_args(codec.encode_args(args)) == args

    def test_random_round_trip(self):
        """Test round-trip over generated argument lists."""
        rng = random.Random(1234)
        for _ in range(200):
            args = random_args(rng, rng.randint(0, 6))
            assert codec.decode_args(codec.encode_args(args)) == args

    @pytest.mark.parametrize("blob", [
        "abc",
        "5:abc",
        "x:abc",
        "3abc",
        "-1:a",
        "²:a",
    ])
    def test_corrupt_blob_rejected(self, blob):
        with pytest.raises(MalformedComponentIdError):
            codec.decode_args(blob)
