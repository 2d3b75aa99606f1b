"""
Core module for the interactive Slack bot.

Contains shared infrastructure for component IDs, routing, rate limiting,
storage, and function management.
"""

from .models import (
    BotFunction,
    ComponentId,
    Control,
    ControlKind,
    EventKind,
    FunctionContext,
    FunctionInfo,
    FunctionResponse,
    Handler,
    InteractionEvent,
    Lifespan,
    MessageResult,
    Reply,
    ResolvedComponentId,
    no_op,
)
from .clock import SystemClock, FakeClock
from .config import BotConfig
from .errors import (
    BotError,
    ConfigurationError,
    DuplicateHandlerError,
    ComponentIdError,
    MalformedComponentIdError,
    ExpiredComponentIdError,
    InvalidComponentIdError,
    StorageUnavailableError,
    RateLimitedError,
)
from .storage import ComponentIdStore
from .component_ids import ComponentIdGenerator
from .rate_limiter import RateLimiter
from .registry import HandlerRegistry
from .dispatcher import Dispatcher, DispatchOutcome
from .plugin_loader import PluginLoader

__all__ = [
    'BotFunction',
    'ComponentId',
    'Control',
    'ControlKind',
    'EventKind',
    'FunctionContext',
    'FunctionInfo',
    'FunctionResponse',
    'Handler',
    'InteractionEvent',
    'Lifespan',
    'MessageResult',
    'Reply',
    'ResolvedComponentId',
    'no_op',
    'SystemClock',
    'FakeClock',
    'BotConfig',
    'BotError',
    'ConfigurationError',
    'DuplicateHandlerError',
    'ComponentIdError',
    'MalformedComponentIdError',
    'ExpiredComponentIdError',
    'InvalidComponentIdError',
    'StorageUnavailableError',
    'RateLimitedError',
    'ComponentIdStore',
    'ComponentIdGenerator',
    'RateLimiter',
    'HandlerRegistry',
    'Dispatcher',
    'DispatchOutcome',
    'PluginLoader',
]
