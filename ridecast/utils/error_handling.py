"""Exceptions and error-capture utilities."""

import logging
import time
import traceback
from dataclasses import dataclass, field
from typing import Any, Dict

logger = logging.getLogger(__name__)


class RidecastError(Exception):
    """Base class for errors raised by the harness itself."""


class InvalidBoundary(RidecastError, ValueError):
    """A split boundary lies outside the series or leaves one side empty."""


class NonConvergence(RidecastError, RuntimeError):
    """Model optimisation did not converge within the library's iteration budget."""

    def __init__(self, model_type: str, detail: str = ""):
        self.model_type = model_type
        self.detail = detail
        message = f"{model_type} fit did not converge"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)


class NonConvergenceWarning(UserWarning):
    """Emitted instead of NonConvergence when the fitter runs in lenient mode."""


@dataclass
class RecoveryContext:
    """Captures context for a failed pipeline step, for reporting and debugging."""
    run_id: str
    timestamp: float = field(default_factory=time.time)
    exception_type: str = ""
    exception_message: str = ""
    stack_trace: str = ""
    local_variables: Dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_exception(cls, run_id: str, exc: BaseException) -> "RecoveryContext":
        """
        Create context from an exception.
        Captures locals from the frame where the exception was raised.
        """
        stack_trace = "".join(traceback.format_tb(exc.__traceback__))

        locals_repr = {}
        if exc.__traceback__:
            ptr = exc.__traceback__
            while ptr.tb_next:
                ptr = ptr.tb_next
            frame = ptr.tb_frame

            for k, v in frame.f_locals.items():
                try:
                    val_str = str(v)
                    if len(val_str) > 500:
                        val_str = val_str[:500] + "..."
                    locals_repr[k] = val_str
                except Exception:
                    locals_repr[k] = "<unprintable>"

        return cls(
            run_id=run_id,
            exception_type=type(exc).__name__,
            exception_message=str(exc),
            stack_trace=stack_trace,
            local_variables=locals_repr,
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "run_id": self.run_id,
            "timestamp": self.timestamp,
            "exception_type": self.exception_type,
            "exception_message": self.exception_message,
            "stack_trace": self.stack_trace,
            "local_variables": self.local_variables,
        }
