from typing import Dict, Any, Optional
import asyncio


# Cancellation is the standard asyncio signal; it is never wrapped.
CancelledError = asyncio.CancelledError


class LocanaraError(Exception):
    """Base class for every error raised by the orchestration core"""

    def __init__(self, reason: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(reason)
        self.reason = reason
        self.details: Dict[str, Any] = details or {}

    def to_dict(self) -> Dict[str, Any]:
        """Serialize the error for logs and API envelopes"""

        return {
            "type": type(self).__name__,
            "reason": self.reason,
            "details": {key: repr(value) for key, value in self.details.items()},
        }


class ConfigurationError(LocanaraError):
    """Raised for unknown branches, tools or chains and invalid wiring"""


class InvalidInputError(LocanaraError):
    """Raised when a guardrail blocks input or a template lacks values"""


class ExecutionError(LocanaraError):
    """Raised on backend failure or an unparsable model response"""


class ResourceExhaustedError(LocanaraError):
    """Raised when the agent runs out of steps with nothing to answer"""
