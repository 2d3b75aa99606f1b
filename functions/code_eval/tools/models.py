"""
Data models for the Code Eval function.
"""

from dataclasses import dataclass, field
from typing import Optional, Union
from enum import Enum


@dataclass(frozen=True)
class Anonymous:
    """Evaluation without a session; nothing carries over between runs."""

    @property
    def session_id(self) -> None:
        return None


@dataclass(frozen=True)
class KnownUser:
    """Evaluation in the user's own persistent session."""
    user_id: str

    @property
    def session_id(self) -> str:
        return self.user_id


Identity = Union[Anonymous, KnownUser]


class SnippetStatus(Enum):
    """Evaluation status reported by the interpreter."""
    VALID = "VALID"
    RECOVERABLE_DEFINED = "RECOVERABLE_DEFINED"
    RECOVERABLE_NOT_DEFINED = "RECOVERABLE_NOT_DEFINED"
    REJECTED = "REJECTED"
    ABORTED = "ABORTED"
    UNKNOWN = "UNKNOWN"

    @classmethod
    def from_string(cls, value: Optional[str]) -> "SnippetStatus":
        try:
            return cls(value)
        except ValueError:
            return cls.UNKNOWN


@dataclass
class EvalException:
    """Exception thrown by the evaluated code."""
    exception_class: str
    message: Optional[str] = None

    @classmethod
    def from_dict(cls, data: dict) -> "EvalException":
        return cls(
            exception_class=data.get("exceptionClass", "Exception"),
            message=data.get("exceptionMessage"),
        )


@dataclass
class EvalResult:
    """Reply of the remote interpreter for one evaluation."""
    status: SnippetStatus
    snippet_type: Optional[str] = None
    snippet_id: Optional[str] = None
    source: Optional[str] = None
    result: Optional[str] = None
    stdout: str = ""
    stdout_overflow: bool = False
    exception: Optional[EvalException] = None
    compile_errors: list[str] = field(default_factory=list)
    aborted: bool = False

    @property
    def succeeded(self) -> bool:
        return (
            self.status in (SnippetStatus.VALID, SnippetStatus.RECOVERABLE_DEFINED)
            and self.exception is None
            and not self.compile_errors
        )

    @classmethod
    def from_dict(cls, data: dict) -> "EvalResult":
        snippet = data.get("snippet") or {}
        exception = data.get("exception")
        return cls(
            status=SnippetStatus.from_string(data.get("status")),
            snippet_type=data.get("type"),
            snippet_id=data.get("id"),
            source=data.get("source") or snippet.get("source"),
            result=data.get("result"),
            stdout=data.get("stdout") or "",
            stdout_overflow=bool(data.get("stdoutOverflow", False)),
            exception=EvalException.from_dict(exception) if exception else None,
            compile_errors=list(data.get("errors") or []),
            aborted=data.get("abortion") is not None or data.get("status") == "ABORTED",
        )
