from typing import Any, AsyncIterator, Dict, Optional
import time
import structlog
from langchain_core.language_models import BaseLanguageModel
from langchain_core.messages import BaseMessage

from locanara.domain.backend.generation_backend import GenerationBackend
from locanara.domain.models.chain_io import GenerationConfig, ModelResponse

logger = structlog.get_logger(__name__)

# GenerationConfig field -> model call keyword; None drops the field
DEFAULT_PARAMETER_MAP: Dict[str, Optional[str]] = {
    "temperature": "temperature",
    "top_k": "top_k",
    "max_tokens": "max_tokens",
}


def _content_text(result: Any) -> str:
    if isinstance(result, BaseMessage):
        content = result.content
        if isinstance(content, str):
            return content
        # Multi-part content: keep the text parts
        return "".join(
            part if isinstance(part, str) else str(part.get("text", ""))
            for part in content
        )
    return str(result)


class LangChainBackend(GenerationBackend):
    """Adapt a langchain-core chat or completion model to the backend contract

    Useful for desktop development and tests where no on-device model is
    available; any model exposing ``ainvoke``/``astream`` works.
    """

    def __init__(
        self,
        model: BaseLanguageModel,
        name: str = "langchain",
        max_context_tokens: int = 4096,
        parameter_map: Optional[Dict[str, Optional[str]]] = None,
    ):
        self.model = model
        self.name = name
        self._max_context_tokens = max_context_tokens
        self.parameter_map = DEFAULT_PARAMETER_MAP if parameter_map is None else parameter_map

    @property
    def is_ready(self) -> bool:
        return True

    @property
    def max_context_tokens(self) -> int:
        return self._max_context_tokens

    def _bound(self, config: Optional[GenerationConfig]):
        if config is None:
            return self.model

        kwargs = {}
        for field, value in config.as_kwargs().items():
            keyword = self.parameter_map.get(field)
            if keyword:
                kwargs[keyword] = value
        return self.model.bind(**kwargs) if kwargs else self.model

    async def generate(self, prompt: str, config: Optional[GenerationConfig] = None) -> ModelResponse:
        start = time.monotonic()
        result = await self._bound(config).ainvoke(prompt)
        elapsed = int((time.monotonic() - start) * 1000)

        logger.debug("LangChain generation finished", backend=self.name, duration_ms=elapsed)
        return ModelResponse(text=_content_text(result), processing_time_ms=elapsed)

    async def stream(self, prompt: str, config: Optional[GenerationConfig] = None) -> AsyncIterator[str]:
        async for chunk in self._bound(config).astream(prompt):
            text = _content_text(chunk)
            if text:
                yield text
