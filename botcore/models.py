"""
Data models shared by the dispatcher, the component ID machinery and the
function plugins.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Optional, Any, Callable, TYPE_CHECKING
from enum import Enum

if TYPE_CHECKING:
    from .clock import SystemClock
    from .component_ids import ComponentIdGenerator
    from .config import BotConfig


class MessageResult(Enum):
    """Result of processing an interaction."""
    SUCCESS = "success"
    ERROR = "error"
    NO_ACTION = "no_action"


class Lifespan(Enum):
    """Eviction policy of a component ID."""
    REGULAR = "regular"
    PERMANENT = "permanent"


class EventKind(Enum):
    """Kind of interaction delivered by the chat platform."""
    SLASH = "slash"
    BUTTON = "button"
    MENU = "menu"


class ControlKind(Enum):
    """Interactive control attached to a reply."""
    BUTTON = "button"
    MENU = "menu"


@dataclass(frozen=True)
class ComponentId:
    """Logical content of a component ID: owning handler plus its arguments."""
    handler_prefix: str
    args: tuple[str, ...] = ()


@dataclass(frozen=True)
class ResolvedComponentId:
    """A component ID as restored from the store."""
    handler_prefix: str
    args: tuple[str, ...]
    lifespan: Lifespan

    @property
    def component_id(self) -> ComponentId:
        return ComponentId(self.handler_prefix, self.args)


@dataclass(frozen=True)
class InteractionEvent:
    """
    An incoming interaction.

    component_id is mandatory for BUTTON and MENU events, command for SLASH.
    values holds the selected option values of a MENU event.
    """
    kind: EventKind
    user_id: str
    component_id: Optional[str] = None
    command: Optional[str] = None
    text: str = ""
    values: tuple[str, ...] = ()
    payload: dict[str, Any] = field(default_factory=dict, compare=False)


@dataclass
class Control:
    """A button or selection menu carrying a minted component ID."""
    kind: ControlKind
    component_id: str
    label: str
    options: list[tuple[str, str]] = field(default_factory=list)
    style: Optional[str] = None


@dataclass
class Reply:
    """A message to present to the user."""
    text: str
    controls: list[Control] = field(default_factory=list)
    ephemeral: bool = False


@dataclass
class FunctionResponse:
    """Response from a handler operation."""
    result: MessageResult
    replies: list[Reply] = field(default_factory=list)
    error: Optional[str] = None
    metadata: dict[str, Any] = field(default_factory=dict)


@dataclass
class FunctionInfo:
    """Metadata about a function."""
    name: str
    display_name: str
    slash_command: str
    description: str
    help_text: str
    version: str = "1.0.0"


def no_op(event: InteractionEvent, *args: Any) -> None:
    """Default for a capability a handler does not provide."""
    return None


SlashOperation = Callable[[InteractionEvent], Optional[FunctionResponse]]
ComponentOperation = Callable[[InteractionEvent, tuple[str, ...]], Optional[FunctionResponse]]


@dataclass(frozen=True)
class Handler:
    """
    Routing record for one handler prefix.

    The dispatcher picks the operation from the event kind. Operations a
    handler does not supply stay at no_op.
    """
    prefix: str
    slash_command: Optional[str] = None
    on_slash_command: SlashOperation = no_op
    on_button_click: ComponentOperation = no_op
    on_selection_menu: ComponentOperation = no_op


@dataclass
class FunctionContext:
    """Long-lived services handed to every function at construction."""
    generator: "ComponentIdGenerator"
    config: "BotConfig"
    clock: "SystemClock"


class BotFunction(ABC):
    """
    Abstract base class that all function modules must implement.

    Each function is responsible for:
    - Providing metadata about itself
    - Building the handler record the dispatcher routes to
    """

    @abstractmethod
    def get_info(self) -> FunctionInfo:
        """Return metadata about this function."""
        pass

    @abstractmethod
    def get_handler(self) -> Handler:
        """Return the routing record for this function."""
        pass

    def on_shutdown(self) -> None:
        """
        Called once when the bot stops.
        Override to release clients or sessions.
        """
        pass
