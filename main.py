"""
Interactive Slack Bot - Main Entry Point

Central bot that:
- Routes slash commands to the function that owns them
- Routes button clicks and menu selections through component IDs
- Sweeps expired component IDs in the background
"""

import os
import re
import sys
import json
import signal
import argparse
import logging
from pathlib import Path
from typing import Optional
from dotenv import load_dotenv

from slack_bolt import App
from slack_bolt.adapter.socket_mode import SocketModeHandler

from botcore.blocks import render_message
from botcore.clock import SystemClock
from botcore.component_ids import ComponentIdGenerator
from botcore.config import BotConfig
from botcore.dispatcher import Dispatcher
from botcore.models import EventKind, FunctionContext, InteractionEvent, Reply
from botcore.plugin_loader import PluginLoader
from botcore.storage import ComponentIdStore, get_db_path

BOT_DIR = Path(__file__).parent

# Configure logging
logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

MENU_ACTION_TYPES = {"static_select", "external_select", "multi_static_select"}


def parse_args():
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(description="Interactive Slack Bot")
    parser.add_argument(
        "--config",
        type=str,
        default=None,
        help="Path to bot config JSON file (e.g., bots/slack_bot.json)"
    )
    return parser.parse_args()


def load_environment(env_file: str | None = None):
    """Load and validate environment variables."""
    if env_file:
        env_path = BOT_DIR / env_file
    else:
        env_path = BOT_DIR / ".env"
    load_dotenv(env_path)

    required_vars = ["SLACK_BOT_TOKEN", "SLACK_APP_TOKEN"]
    missing = [var for var in required_vars if not os.getenv(var)]

    if missing:
        logger.error(
            f"Missing required environment variables: {', '.join(missing)}"
        )
        sys.exit(1)


def load_config(config_file: Optional[str]) -> BotConfig:
    """Read the optional JSON bot config on top of the environment."""
    raw = {}
    if config_file:
        config_path = BOT_DIR / config_file
        with open(config_path) as f:
            raw = json.load(f)
        logger.info(f"Loaded bot config: {raw.get('name', config_file)}")

    load_environment(raw.get("env_file"))
    return BotConfig.from_env().merged_with(raw)


def build_dispatcher(config: BotConfig, clock: SystemClock) -> Dispatcher:
    """Create the component ID machinery and load all functions."""
    store = ComponentIdStore(
        config.db_path or get_db_path(),
        regular_ttl=config.regular_ttl,
        clock=clock
    )
    generator = ComponentIdGenerator(store, max_token_length=config.wire_token_max_length)

    dispatcher = Dispatcher(generator, max_workers=config.dispatch_workers)
    context = FunctionContext(generator=generator, config=config, clock=clock)
    dispatcher.load_functions(PluginLoader(allowed_functions=config.functions), context)

    return dispatcher


def make_sink(respond):
    """Adapt Slack's respond() to the dispatcher's reply sink."""

    def sink(reply: Reply) -> None:
        respond(**render_message(reply))

    return sink


# ============================================================================
# EVENT TRANSLATION
# ============================================================================

def slash_event(command: dict) -> InteractionEvent:
    """Translate a Slack slash command payload."""
    return InteractionEvent(
        kind=EventKind.SLASH,
        user_id=command["user_id"],
        command=command["command"],
        text=command.get("text", ""),
        payload=command,
    )


def action_event(body: dict, action: dict) -> InteractionEvent:
    """Translate a Slack block action payload."""
    if action.get("type") in MENU_ACTION_TYPES:
        selected = action.get("selected_options") or [action.get("selected_option") or {}]
        values = tuple(option["value"] for option in selected if option.get("value"))
        kind = EventKind.MENU
    else:
        values = ()
        kind = EventKind.BUTTON

    return InteractionEvent(
        kind=kind,
        user_id=body["user"]["id"],
        component_id=action.get("action_id"),
        values=values,
        payload=body,
    )


def register_handlers(app: App, dispatcher: Dispatcher) -> None:
    """Register slash commands for all loaded functions and the action router."""

    def handle_command(ack, command, respond):
        ack()
        logger.info(f"User {command['user_id']} ran {command['command']}")
        dispatcher.submit(slash_event(command), make_sink(respond))

    for command in dispatcher.registry.commands():
        app.command(command)(handle_command)
        logger.info(f"Registered slash command: {command}")

    @app.action(re.compile(".*"))
    def handle_action(ack, body, action, respond):
        ack()
        dispatcher.submit(action_event(body, action), make_sink(respond))


# ============================================================================
# MAIN
# ============================================================================

def main():
    """Start the bot."""
    args = parse_args()
    config = load_config(args.config)
    clock = SystemClock()

    logger.info("Starting Interactive Slack Bot...")

    dispatcher = build_dispatcher(config, clock)
    dispatcher.generator.start_eviction(config.sweep_interval)

    app = App(token=os.environ["SLACK_BOT_TOKEN"])
    register_handlers(app, dispatcher)

    handler = SocketModeHandler(app, os.environ["SLACK_APP_TOKEN"])

    def shutdown(signum, frame):
        logger.info("Shutting down...")
        handler.close()
        abandoned = dispatcher.shutdown(config.shutdown_timeout)
        dispatcher.generator.stop_eviction(timeout=5)
        logger.info(f"Stopped ({abandoned} events abandoned)")
        sys.exit(0)

    signal.signal(signal.SIGTERM, shutdown)
    signal.signal(signal.SIGINT, shutdown)

    logger.info(f"Loaded {len(dispatcher.functions)} functions")
    logger.info("Bot is running! Press Ctrl+C to stop.")
    handler.start()


if __name__ == "__main__":
    main()
