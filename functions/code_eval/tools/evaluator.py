"""
Bridge between the bot and the remote interpreter.

Applies the rate limit, picks a one-off or per-user session and renders the
reply. Used by the slash command as well as by the buttons it attaches.
"""

import logging
from typing import Optional

from botcore.clock import SystemClock, format_relative
from botcore.errors import RateLimitedError
from botcore.models import Reply
from botcore.rate_limiter import RateLimiter

from .eval_client import EvalClient
from .models import Identity, KnownUser
from .renderer import ResultRenderer, author_line

logger = logging.getLogger(__name__)


class EvalService:
    """Rate-limited code evaluation."""

    def __init__(
        self,
        client: EvalClient,
        rate_limiter: RateLimiter,
        clock: Optional[SystemClock] = None,
        renderer: Optional[ResultRenderer] = None
    ):
        self.client = client
        self.rate_limiter = rate_limiter
        self.clock = clock or SystemClock()
        self.renderer = renderer or ResultRenderer()

    def evaluate_and_respond(
        self,
        identity: Identity,
        code: str,
        show_code: bool = True,
        startup_script: bool = False
    ) -> tuple[Reply, bool]:
        """
        Evaluate code and build the reply.

        Returns:
            (reply, evaluated) where evaluated is False if rate-limited

        Raises:
            ConnectionFailedError: If the interpreter cannot be reached
            RequestFailedError: If the interpreter answers with an error
        """
        try:
            self.check_rate_limit()
        except RateLimitedError as e:
            return self._rate_limited_reply(identity, e), False

        if isinstance(identity, KnownUser):
            result = self.client.eval_session(code, identity.session_id, startup_script)
        else:
            result = self.client.eval_once(code, startup_script)

        logger.info(
            f"Evaluated snippet ({result.status.value}) "
            f"for {'session' if isinstance(identity, KnownUser) else 'one-off'} run"
        )

        text = self.renderer.render(identity, code if show_code else None, result)
        return Reply(text=text), True

    def check_rate_limit(self) -> None:
        """
        Take one slot of the rate limit.

        Raises:
            RateLimitedError: With retry_at as the wall-clock instant of the
                next free slot
        """
        now = self.clock.monotonic()
        if self.rate_limiter.allow(now):
            return

        wait = self.rate_limiter.next_allowed(now) - now
        logger.info(f"Evaluation rate-limited for {wait:.1f}s")
        raise RateLimitedError("Evaluation rate limit reached", retry_at=self.clock.now() + wait)

    def _rate_limited_reply(self, identity: Identity, error: RateLimitedError) -> Reply:
        wait = error.retry_at - self.clock.now()
        text = f"You are currently rate-limited. Please try again {format_relative(wait)}."
        header = author_line(identity)
        if header:
            text = f"*{header}*\n{text}"
        return Reply(text=text, ephemeral=True)
