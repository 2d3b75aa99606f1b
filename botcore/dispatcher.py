"""
Central interaction dispatcher for the Slack bot.

Handles:
- Routing slash commands to the function that owns them
- Resolving button and menu component IDs back to their handler and arguments
- Expired and malformed component IDs
- Error handling and logging
- Draining in-flight events on shutdown
"""

import logging
import threading
from enum import Enum
from collections import Counter
from concurrent.futures import Future, ThreadPoolExecutor, wait
from typing import Optional, Callable

from .component_ids import ComponentIdGenerator
from .errors import (
    ExpiredComponentIdError,
    MalformedComponentIdError,
    StorageUnavailableError,
)
from .models import (
    BotFunction,
    EventKind,
    FunctionContext,
    FunctionResponse,
    Handler,
    InteractionEvent,
    Reply,
)
from .plugin_loader import PluginLoader
from .registry import HandlerRegistry

logger = logging.getLogger(__name__)

Sink = Callable[[Reply], None]

EXPIRED_MESSAGE = (
    "This control has expired. "
    "Please run the command again to get a fresh one."
)
ERROR_MESSAGE = (
    "An error occurred while handling your request.\n\n"
    "Please try again or contact an administrator."
)
UNAVAILABLE_MESSAGE = (
    "The bot cannot look up this control right now. Please try again later."
)


class DispatchOutcome(Enum):
    """Final state of one dispatched event."""
    ROUTED = "routed"
    EXPIRED = "expired"
    DROPPED = "dropped"
    UNROUTED = "unrouted"
    FAILED = "failed"
    REJECTED = "rejected"


class Dispatcher:
    """Central dispatcher that routes interactions to the appropriate handler."""

    def __init__(
        self,
        generator: ComponentIdGenerator,
        registry: Optional[HandlerRegistry] = None,
        max_workers: int = 8
    ):
        self.generator = generator
        self.registry = registry if registry is not None else HandlerRegistry()
        self.functions: dict[str, BotFunction] = {}
        self.stats: Counter = Counter()

        self._max_workers = max_workers
        self._executor: Optional[ThreadPoolExecutor] = None
        self._in_flight: set[Future] = set()
        self._accepting = True
        self._lock = threading.Lock()

    def load_functions(
        self,
        plugin_loader: PluginLoader,
        context: FunctionContext
    ) -> None:
        """
        Discover, load and register all function modules.

        Raises:
            DuplicateHandlerError: If two functions claim the same prefix
                or slash command
        """
        for name, func in plugin_loader.load_all_functions(context).items():
            self.add_function(name, func)

        logger.info(
            f"Loaded {len(self.functions)} functions: {list(self.functions.keys())}"
        )

    def add_function(self, name: str, func: BotFunction) -> None:
        """Register a single function under its handler prefix."""
        self.registry.register(func.get_handler())
        self.functions[name] = func

    def get_function(self, name: str) -> Optional[BotFunction]:
        """Get a function by name."""
        return self.functions.get(name)

    def get_all_function_names(self) -> list[str]:
        """Get list of all loaded function names."""
        return list(self.functions.keys())

    def dispatch(self, event: InteractionEvent, sink: Sink) -> DispatchOutcome:
        """
        Handle one interaction to completion.

        Never raises for problems caused by the event or the handler; those
        are logged, counted and, where useful, reported to the user.

        Args:
            event: The incoming interaction
            sink: Callable that presents a reply to the user

        Returns:
            The final state reached for this event
        """
        if event.kind is EventKind.SLASH:
            return self._dispatch_slash(event, sink)
        return self._dispatch_component(event, sink)

    def _dispatch_slash(self, event: InteractionEvent, sink: Sink) -> DispatchOutcome:
        handler = self.registry.lookup_command(event.command or "")
        if handler is None:
            logger.error(f"No handler registered for slash command '{event.command}'")
            self.stats["unrouted"] += 1
            return DispatchOutcome.UNROUTED

        return self._invoke(
            handler,
            lambda: handler.on_slash_command(event),
            event,
            sink
        )

    def _dispatch_component(self, event: InteractionEvent, sink: Sink) -> DispatchOutcome:
        if not event.component_id:
            logger.debug(f"Dropping {event.kind.value} event without component ID")
            self.stats["malformed"] += 1
            return DispatchOutcome.DROPPED

        try:
            resolved = self.generator.resolve(event.component_id)
        except MalformedComponentIdError as e:
            logger.debug(f"Dropping {event.kind.value} event with malformed ID: {e}")
            self.stats["malformed"] += 1
            return DispatchOutcome.DROPPED
        except ExpiredComponentIdError:
            logger.info(f"Expired component ID used by user {event.user_id}")
            self.stats["expired"] += 1
            self._send_notice(EXPIRED_MESSAGE, sink)
            return DispatchOutcome.EXPIRED
        except StorageUnavailableError as e:
            logger.error(f"Component ID store unavailable: {e}")
            self.stats["failed"] += 1
            self._send_notice(UNAVAILABLE_MESSAGE, sink)
            return DispatchOutcome.FAILED

        handler = self.registry.lookup(resolved.handler_prefix)
        if handler is None:
            logger.error(
                f"No handler registered for prefix '{resolved.handler_prefix}'"
            )
            self.stats["unrouted"] += 1
            return DispatchOutcome.UNROUTED

        if event.kind is EventKind.BUTTON:
            operation = handler.on_button_click
        else:
            operation = handler.on_selection_menu

        return self._invoke(
            handler,
            lambda: operation(event, resolved.args),
            event,
            sink
        )

    def _invoke(
        self,
        handler: Handler,
        call: Callable[[], Optional[FunctionResponse]],
        event: InteractionEvent,
        sink: Sink
    ) -> DispatchOutcome:
        try:
            response = call()
            if response is not None:
                self._send_response(response, sink)
        except Exception:
            logger.exception(
                f"Error in handler '{handler.prefix}' for {event.kind.value} event"
            )
            self.stats["failed"] += 1
            self._send_notice(ERROR_MESSAGE, sink)
            return DispatchOutcome.FAILED

        self.stats["routed"] += 1
        return DispatchOutcome.ROUTED

    def submit(self, event: InteractionEvent, sink: Sink) -> Optional[Future]:
        """
        Dispatch an event on the worker pool.

        Returns:
            Future resolving to the DispatchOutcome, or None once shutdown
            has started
        """
        with self._lock:
            if not self._accepting:
                logger.warning(f"Rejecting {event.kind.value} event during shutdown")
                self.stats["rejected"] += 1
                return None

            if self._executor is None:
                self._executor = ThreadPoolExecutor(
                    max_workers=self._max_workers,
                    thread_name_prefix="dispatch"
                )

            future = self._executor.submit(self.dispatch, event, sink)
            self._in_flight.add(future)

        future.add_done_callback(self._forget)
        return future

    def _forget(self, future: Future) -> None:
        with self._lock:
            self._in_flight.discard(future)

    def shutdown(self, timeout: float) -> int:
        """
        Stop accepting events and drain in-flight ones.

        Args:
            timeout: Seconds to wait for in-flight events

        Returns:
            Number of events abandoned after the deadline
        """
        with self._lock:
            self._accepting = False
            pending = set(self._in_flight)
            executor = self._executor

        _, not_done = wait(pending, timeout=timeout)
        if not_done:
            logger.warning(f"Abandoning {len(not_done)} in-flight events after {timeout}s")

        if executor is not None:
            executor.shutdown(wait=False, cancel_futures=True)

        for func in self.functions.values():
            try:
                func.on_shutdown()
            except Exception:
                logger.exception("Error while shutting down function")

        return len(not_done)

    def _send_notice(self, text: str, sink: Sink) -> None:
        try:
            sink(Reply(text=text, ephemeral=True))
        except Exception:
            logger.exception("Failed to deliver notice")

    def _send_response(self, response: FunctionResponse, sink: Sink) -> None:
        """Send handler replies to the user."""
        for reply in response.replies:
            sink(reply)
