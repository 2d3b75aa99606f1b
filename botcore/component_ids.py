"""
Component ID generator.

Handlers mint short tokens for the buttons and menus they send. When the
platform later reports a click carrying such a token, the dispatcher resolves
it back into the owning handler prefix and the original arguments.
"""

import logging
import threading
from typing import Optional, Sequence

from . import codec
from .errors import (
    ExpiredComponentIdError,
    InvalidComponentIdError,
    StorageUnavailableError,
)
from .models import Lifespan, ResolvedComponentId
from .storage import ComponentIdStore

logger = logging.getLogger(__name__)

DEFAULT_MAX_TOKEN_LENGTH = 100
DEFAULT_MAX_ARGS_LENGTH = 4000


class ComponentIdGenerator:
    """Mints and resolves component IDs backed by a ComponentIdStore."""

    def __init__(
        self,
        store: ComponentIdStore,
        max_token_length: int = DEFAULT_MAX_TOKEN_LENGTH,
        max_args_length: int = DEFAULT_MAX_ARGS_LENGTH
    ):
        if max_token_length < codec.TOKEN_LENGTH:
            raise ValueError(
                f"max_token_length must be at least {codec.TOKEN_LENGTH}, "
                f"got {max_token_length}"
            )

        self.store = store
        self.max_token_length = max_token_length
        self.max_args_length = max_args_length

        self._stop_event = threading.Event()
        self._eviction_thread: Optional[threading.Thread] = None

    def mint(
        self,
        handler_prefix: str,
        args: Sequence[str] = (),
        lifespan: Lifespan = Lifespan.REGULAR
    ) -> str:
        """
        Create a new component ID.

        Args:
            handler_prefix: Prefix of the handler that will receive the event
            args: Ordered string arguments handed back on resolve
            lifespan: REGULAR IDs expire after prolonged non-use

        Returns:
            Wire token to put into a button or menu

        Raises:
            InvalidComponentIdError: If prefix or arguments are not admissible
            StorageUnavailableError: If the payload could not be persisted
        """
        if not isinstance(handler_prefix, str) or not handler_prefix:
            raise InvalidComponentIdError("handler_prefix must be a non-empty string")
        try:
            handler_prefix.encode("utf-8")
        except UnicodeEncodeError as e:
            raise InvalidComponentIdError(
                f"handler_prefix must be valid UTF-8 text: {e.reason}"
            ) from e
        if isinstance(args, str):
            raise InvalidComponentIdError("args must be a sequence of strings, not a string")
        if not isinstance(lifespan, Lifespan):
            raise InvalidComponentIdError(f"Unknown lifespan: {lifespan!r}")

        args = tuple(args)
        for arg in args:
            if not isinstance(arg, str):
                raise InvalidComponentIdError(
                    f"Component ID arguments must be strings, got {type(arg).__name__}"
                )
            try:
                arg.encode("utf-8")
            except UnicodeEncodeError as e:
                raise InvalidComponentIdError(
                    f"Component ID arguments must be valid UTF-8 text: {e.reason}"
                ) from e

        blob = codec.encode_args(args)
        if len(blob) > self.max_args_length:
            raise InvalidComponentIdError(
                f"Arguments too long: {len(blob)} > {self.max_args_length} characters"
            )

        key = self.store.put(handler_prefix, blob, lifespan)
        token = codec.encode_key(key)

        if len(token) > self.max_token_length:
            # Unreachable with the fixed-size surrogate encoding
            self.store.purge(key)
            raise InvalidComponentIdError("Encoded token exceeds the platform limit")

        logger.debug(f"Minted component ID for '{handler_prefix}' ({lifespan.value})")
        return token

    def resolve(self, token: str) -> ResolvedComponentId:
        """
        Restore the handler prefix, arguments and lifespan of a token.

        Raises:
            MalformedComponentIdError: If the token does not decode
            ExpiredComponentIdError: If the entry is no longer stored
            StorageUnavailableError: If the store could not be read
        """
        key = codec.decode_token(token)
        entry = self.store.get(key)

        if entry is None:
            raise ExpiredComponentIdError("Component ID is unknown or has expired")

        return ResolvedComponentId(
            handler_prefix=entry.handler_prefix,
            args=codec.decode_args(entry.args_blob),
            lifespan=entry.lifespan,
        )

    def sweep(self) -> int:
        """Evict expired REGULAR IDs now."""
        return self.store.sweep()

    def start_eviction(self, interval: float) -> None:
        """Start a background thread that sweeps every interval seconds."""
        if self._eviction_thread is not None and self._eviction_thread.is_alive():
            return

        self._stop_event.clear()
        self._eviction_thread = threading.Thread(
            target=self._eviction_loop,
            args=(interval,),
            name="component-id-eviction",
            daemon=True,
        )
        self._eviction_thread.start()
        logger.info(f"Component ID eviction every {interval:.0f}s")

    def stop_eviction(self, timeout: Optional[float] = None) -> None:
        """Stop the background sweeper."""
        self._stop_event.set()
        if self._eviction_thread is not None:
            self._eviction_thread.join(timeout)
            self._eviction_thread = None

    def _eviction_loop(self, interval: float) -> None:
        while not self._stop_event.wait(interval):
            try:
                self.sweep()
            except (StorageUnavailableError, OSError) as e:
                logger.error(f"Component ID sweep failed: {e}")
            except Exception:
                logger.exception("Component ID sweep failed")
