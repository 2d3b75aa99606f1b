"""
Code Eval - BotFunction Implementation

Sends code snippets to a remote interpreter and posts the result, with
buttons to run the snippet again or reset the session and a menu to rerun it
with the startup script.
"""

import logging
from typing import Optional

from botcore.errors import InvalidComponentIdError, StorageUnavailableError
from botcore.models import (
    BotFunction,
    Control,
    ControlKind,
    FunctionContext,
    FunctionInfo,
    FunctionResponse,
    Handler,
    InteractionEvent,
    MessageResult,
    Reply,
)
from botcore.rate_limiter import RateLimiter

from .tools.eval_client import EvalClient, EvalError, ConnectionFailedError
from .tools.evaluator import EvalService
from .tools.models import Anonymous, Identity, KnownUser

logger = logging.getLogger(__name__)

PREFIX = "eval"
ONCE_KEYWORD = "once"

ACTION_RERUN = "rerun"
ACTION_CLOSE = "close"
ACTION_STARTUP = "startup"

MODE_SESSION = "session"
MODE_ONCE = "once"

STARTUP_OPTIONS = [
    ("Without startup script", "none"),
    ("With startup script", "default"),
]


class CodeEvalFunction(BotFunction):
    """
    Code evaluation function.

    `/eval <code>` runs the code in the caller's session, `/eval once <code>`
    in a throwaway one. Controls on the reply only work for the caller.
    """

    def __init__(self, context: FunctionContext, service: Optional[EvalService] = None):
        self.generator = context.generator
        config = context.config

        if service is None:
            service = EvalService(
                client=EvalClient(config.eval_base_url, timeout=config.eval_timeout),
                rate_limiter=RateLimiter(
                    config.rate_limit_window,
                    config.rate_limit_capacity
                ),
                clock=context.clock,
            )
        self.service = service

        self._handler = Handler(
            prefix=PREFIX,
            slash_command=self.get_info().slash_command,
            on_slash_command=self.on_slash_command,
            on_button_click=self.on_button_click,
            on_selection_menu=self.on_selection_menu,
        )

    def get_info(self) -> FunctionInfo:
        return FunctionInfo(
            name="code_eval",
            display_name="Code Eval",
            slash_command="/eval",
            description="Evaluate code snippets on a remote interpreter",
            help_text=(
                "*Code Eval Help*\n\n"
                "*Commands:*\n"
                "- `/eval <code>` - Run code in your personal session\n"
                "- `/eval once <code>` - Run code in a fresh, throwaway session\n"
                "- `/eval help` - Show this message\n\n"
                "*Buttons:*\n"
                "- *Run again* - Evaluate the same snippet again\n"
                "- *Reset session* - Forget everything defined in your session\n"
                "- *Startup script* menu - Rerun with or without the startup script"
            ),
            version="1.0.0"
        )

    def get_handler(self) -> Handler:
        return self._handler

    def on_shutdown(self) -> None:
        self.service.client.close()

    def on_slash_command(self, event: InteractionEvent) -> FunctionResponse:
        """Evaluate the code given to the slash command."""
        text = event.text.strip()

        if not text or text.lower() == "help":
            return FunctionResponse(
                result=MessageResult.SUCCESS,
                replies=[Reply(text=self.get_info().help_text, ephemeral=True)]
            )

        identity: Identity = KnownUser(event.user_id)
        first, _, rest = text.partition(" ")
        if first.lower() == ONCE_KEYWORD and rest.strip():
            identity = Anonymous()
            text = rest.strip()

        return self._evaluate(event.user_id, identity, text, startup_script=False)

    def on_button_click(
        self,
        event: InteractionEvent,
        args: tuple[str, ...]
    ) -> FunctionResponse:
        """Handle Run again and Reset session."""
        if not args:
            return self._no_action()

        action, owner = args[0], args[1] if len(args) > 1 else None
        if owner != event.user_id:
            return self._not_owner()

        if action == ACTION_RERUN and len(args) == 5:
            _, _, mode, startup, code = args
            identity = KnownUser(owner) if mode == MODE_SESSION else Anonymous()
            return self._evaluate(owner, identity, code, startup_script=startup == "1")

        if action == ACTION_CLOSE:
            return self._close_session(owner)

        logger.warning(f"Unknown code eval button arguments: {args[:1]}")
        return self._no_action()

    def on_selection_menu(
        self,
        event: InteractionEvent,
        args: tuple[str, ...]
    ) -> FunctionResponse:
        """Handle the startup script menu."""
        if len(args) != 4 or args[0] != ACTION_STARTUP:
            return self._no_action()

        _, owner, mode, code = args
        if owner != event.user_id:
            return self._not_owner()

        if not event.values:
            return self._no_action()

        identity = KnownUser(owner) if mode == MODE_SESSION else Anonymous()
        return self._evaluate(
            owner,
            identity,
            code,
            startup_script=event.values[0] == "default"
        )

    def _evaluate(
        self,
        user_id: str,
        identity: Identity,
        code: str,
        startup_script: bool
    ) -> FunctionResponse:
        try:
            reply, evaluated = self.service.evaluate_and_respond(
                identity,
                code,
                show_code=True,
                startup_script=startup_script
            )
        except ConnectionFailedError as e:
            logger.error(f"Interpreter unreachable: {e}")
            return self._error(
                "The code interpreter is not reachable right now. Please try again later."
            )
        except EvalError as e:
            logger.error(f"Interpreter request failed: {e}")
            return self._error(
                "The code interpreter could not process your snippet. Please try again."
            )

        if evaluated:
            reply.controls = self._build_controls(user_id, identity, code, startup_script)

        return FunctionResponse(
            result=MessageResult.SUCCESS if evaluated else MessageResult.NO_ACTION,
            replies=[reply],
            metadata={"evaluated": evaluated}
        )

    def _build_controls(
        self,
        user_id: str,
        identity: Identity,
        code: str,
        startup_script: bool
    ) -> list[Control]:
        """Mint the controls for a result, or none if that is not possible."""
        mode = MODE_SESSION if isinstance(identity, KnownUser) else MODE_ONCE

        try:
            controls = [
                Control(
                    kind=ControlKind.BUTTON,
                    component_id=self.generator.mint(
                        PREFIX,
                        [ACTION_RERUN, user_id, mode, "1" if startup_script else "0", code]
                    ),
                    label="Run again",
                    style="primary",
                ),
                Control(
                    kind=ControlKind.MENU,
                    component_id=self.generator.mint(
                        PREFIX,
                        [ACTION_STARTUP, user_id, mode, code]
                    ),
                    label="Startup script",
                    options=list(STARTUP_OPTIONS),
                ),
            ]
            if mode == MODE_SESSION:
                controls.append(Control(
                    kind=ControlKind.BUTTON,
                    component_id=self.generator.mint(PREFIX, [ACTION_CLOSE, user_id]),
                    label="Reset session",
                    style="danger",
                ))
        except InvalidComponentIdError as e:
            logger.info(f"Snippet too long for controls: {e}")
            return []
        except StorageUnavailableError as e:
            logger.error(f"Could not mint controls: {e}")
            return []

        return controls

    def _close_session(self, user_id: str) -> FunctionResponse:
        try:
            self.service.client.close_session(user_id)
        except EvalError as e:
            logger.error(f"Failed to close session: {e}")
            return self._error("Your session could not be reset. Please try again later.")

        return FunctionResponse(
            result=MessageResult.SUCCESS,
            replies=[Reply(text="Your session has been reset.", ephemeral=True)]
        )

    def _not_owner(self) -> FunctionResponse:
        return FunctionResponse(
            result=MessageResult.NO_ACTION,
            replies=[Reply(
                text="Only the person who ran this snippet can use these controls.",
                ephemeral=True
            )]
        )

    def _no_action(self) -> FunctionResponse:
        return FunctionResponse(result=MessageResult.NO_ACTION)

    def _error(self, message: str) -> FunctionResponse:
        return FunctionResponse(
            result=MessageResult.ERROR,
            replies=[Reply(text=message, ephemeral=True)],
            error=message
        )


def get_function(context: FunctionContext) -> BotFunction:
    """Factory function called by plugin loader."""
    return CodeEvalFunction(context)
