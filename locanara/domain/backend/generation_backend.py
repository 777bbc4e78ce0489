from abc import ABC, abstractmethod
from typing import AsyncIterator, Optional
import time
import structlog

from locanara.domain.errors import ConfigurationError, ExecutionError, LocanaraError
from locanara.domain.models.chain_io import GenerationConfig, ModelResponse

logger = structlog.get_logger(__name__)


class GenerationBackend(ABC):
    """Opaque text-generation capability consumed by the core

    Platform models (Apple Intelligence, Gemini Nano, llama.cpp, ...) live
    behind this interface; the core never depends on which one it gets.
    """

    name: str = "backend"

    @property
    @abstractmethod
    def is_ready(self) -> bool:
        """Whether the backend can serve a request right now"""

    @property
    @abstractmethod
    def max_context_tokens(self) -> int:
        """Size of the model context window in tokens"""

    @abstractmethod
    async def generate(self, prompt: str, config: Optional[GenerationConfig] = None) -> ModelResponse:
        """Generate a complete response for ``prompt``"""

    @abstractmethod
    def stream(self, prompt: str, config: Optional[GenerationConfig] = None) -> AsyncIterator[str]:
        """Yield the response as a finite ordered sequence of fragments"""


async def generate_text(
    backend: GenerationBackend,
    prompt: str,
    config: Optional[GenerationConfig] = None,
) -> ModelResponse:
    """Call ``backend.generate`` with readiness checks and error wrapping

    Cancellation propagates untouched; any other failure surfaces as
    ``ExecutionError``.
    """

    _ensure_ready(backend)
    start = time.monotonic()
    try:
        response = await backend.generate(prompt, config)
    except LocanaraError:
        raise
    except Exception as exc:
        logger.warning("Backend generation failed", backend=backend.name, error=str(exc))
        raise ExecutionError(
            f"Backend '{backend.name}' failed to generate: {exc}",
            details={"backend": backend.name},
        ) from exc

    if response.processing_time_ms is None:
        elapsed = int((time.monotonic() - start) * 1000)
        response = response.model_copy(update={"processing_time_ms": elapsed})
    return response


async def stream_text(
    backend: GenerationBackend,
    prompt: str,
    config: Optional[GenerationConfig] = None,
) -> AsyncIterator[str]:
    """Iterate ``backend.stream`` with the same guarantees as generate_text"""

    _ensure_ready(backend)
    try:
        async for fragment in backend.stream(prompt, config):
            yield fragment
    except LocanaraError:
        raise
    except Exception as exc:
        logger.warning("Backend stream failed", backend=backend.name, error=str(exc))
        raise ExecutionError(
            f"Backend '{backend.name}' failed while streaming: {exc}",
            details={"backend": backend.name},
        ) from exc


def _ensure_ready(backend: GenerationBackend) -> None:
    if not backend.is_ready:
        raise ExecutionError(
            f"Backend '{backend.name}' is not ready",
            details={"backend": backend.name},
        )


_default_backend: Optional[GenerationBackend] = None


def set_default_backend(backend: GenerationBackend) -> None:
    """Register the backend used when a component is built without one"""

    global _default_backend
    _default_backend = backend
    logger.info("Default backend registered", backend=backend.name)


def get_default_backend() -> GenerationBackend:
    """Return the registered default backend"""

    if _default_backend is None:
        raise ConfigurationError(
            "No generation backend was given and no default backend is registered; "
            "call set_default_backend() at startup"
        )
    return _default_backend


def reset_default_backend() -> None:
    """Forget the registered default backend"""

    global _default_backend
    _default_backend = None


def resolve_backend(backend: Optional[GenerationBackend]) -> GenerationBackend:
    return backend if backend is not None else get_default_backend()
