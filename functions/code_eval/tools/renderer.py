"""
Formatting of evaluation results for Slack.
"""

from typing import Optional

from .models import EvalResult, Identity, KnownUser, SnippetStatus

MAX_CODE_LENGTH = 1000
MAX_OUTPUT_LENGTH = 1500

STATUS_LABELS = {
    SnippetStatus.VALID: ":white_check_mark: Success",
    SnippetStatus.RECOVERABLE_DEFINED: ":warning: Defined with unresolved references",
    SnippetStatus.RECOVERABLE_NOT_DEFINED: ":warning: Not defined, unresolved references",
    SnippetStatus.REJECTED: ":x: Rejected",
    SnippetStatus.ABORTED: ":stop_sign: Aborted",
    SnippetStatus.UNKNOWN: ":grey_question: Unknown status",
}


def _code_block(text: str, limit: int) -> str:
    if len(text) > limit:
        text = text[:limit] + "\n... (truncated)"
    # Keep user content from closing the block early
    return "```" + text.replace("```", "`\u200b``") + "```"


def author_line(identity: Identity) -> Optional[str]:
    """Header naming whose result this is, if known."""
    if isinstance(identity, KnownUser):
        return f"<@{identity.user_id}>'s result"
    return None


class ResultRenderer:
    """Turns an EvalResult into message text."""

    def render(
        self,
        identity: Identity,
        code: Optional[str],
        result: EvalResult
    ) -> str:
        """
        Render a result.

        Args:
            identity: Who ran the code
            code: Source to echo back, or None to omit it
            result: Interpreter reply
        """
        lines = []

        header = author_line(identity)
        if header:
            lines.append(f"*{header}*")

        lines.append(f"*Status:* {STATUS_LABELS[result.status]}")
        if isinstance(identity, KnownUser):
            lines.append("_Evaluated in your session._")

        if code is not None:
            lines.append("*Code:*")
            lines.append(_code_block(code, MAX_CODE_LENGTH))

        if result.compile_errors:
            lines.append("*Compilation errors:*")
            lines.append(_code_block("\n".join(result.compile_errors), MAX_OUTPUT_LENGTH))

        if result.exception is not None:
            message = result.exception.message or ""
            lines.append(f"*Exception:* `{result.exception.exception_class}` {message}".rstrip())

        if result.result:
            lines.append("*Result:*")
            lines.append(_code_block(result.result, MAX_OUTPUT_LENGTH))

        if result.stdout:
            lines.append("*Output:*")
            lines.append(_code_block(result.stdout, MAX_OUTPUT_LENGTH))
            if result.stdout_overflow:
                lines.append("_Output was too long and has been cut by the interpreter._")

        if result.aborted:
            lines.append("_The evaluation was aborted, e.g. because it took too long._")

        return "\n".join(lines)
