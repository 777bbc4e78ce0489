import asyncio
from typing import AsyncIterator, List, Optional, Sequence, Union

from locanara.domain.backend.generation_backend import GenerationBackend
from locanara.domain.chain.base_chain import Chain
from locanara.domain.models.chain_io import ChainInput, ChainOutput, GenerationConfig, ModelResponse

Scripted = Union[str, BaseException]


class FakeBackend(GenerationBackend):
    """Backend replaying scripted responses and recording every prompt"""

    def __init__(
        self,
        responses: Sequence[Scripted] = (),
        default: Optional[str] = None,
        ready: bool = True,
        delay: float = 0.0,
        chunk_size: int = 3,
        name: str = "fake",
    ):
        self.responses: List[Scripted] = list(responses)
        self.default = default
        self.ready = ready
        self.delay = delay
        self.chunk_size = chunk_size
        self.name = name
        self.prompts: List[str] = []
        self.configs: List[Optional[GenerationConfig]] = []

    @property
    def is_ready(self) -> bool:
        return self.ready

    @property
    def max_context_tokens(self) -> int:
        return 4096

    def _next(self, prompt: str, config: Optional[GenerationConfig]) -> str:
        self.prompts.append(prompt)
        self.configs.append(config)
        if self.responses:
            item = self.responses.pop(0)
        elif self.default is not None:
            item = self.default
        else:
            raise AssertionError("FakeBackend ran out of scripted responses")
        if isinstance(item, BaseException):
            raise item
        return item

    async def generate(self, prompt: str, config: Optional[GenerationConfig] = None) -> ModelResponse:
        if self.delay:
            await asyncio.sleep(self.delay)
        return ModelResponse(text=self._next(prompt, config), processing_time_ms=1)

    async def stream(self, prompt: str, config: Optional[GenerationConfig] = None) -> AsyncIterator[str]:
        text = self._next(prompt, config)
        for start in range(0, len(text), self.chunk_size):
            if self.delay:
                await asyncio.sleep(self.delay)
            yield text[start:start + self.chunk_size]


class EchoChain(Chain):
    """Chain returning ``prefix + text`` after an optional delay"""

    def __init__(self, name: str, prefix: str = "", delay: float = 0.0, metadata=None):
        self.name = name
        self.description = f"echo {name}"
        self.prefix = prefix
        self.delay = delay
        self.metadata = metadata or {}
        self.calls: List[ChainInput] = []
        self.cancelled = False

    async def invoke(self, input: ChainInput) -> ChainOutput:
        self.calls.append(input)
        try:
            if self.delay:
                await asyncio.sleep(self.delay)
        except asyncio.CancelledError:
            self.cancelled = True
            raise
        text = self.prefix + input.text
        metadata = dict(input.metadata)
        metadata.update(self.metadata)
        return ChainOutput(value=text, text=text, metadata=metadata)


class FailingChain(Chain):
    def __init__(self, name: str, error: BaseException, delay: float = 0.0):
        self.name = name
        self.error = error
        self.delay = delay
        self.calls = 0

    async def invoke(self, input: ChainInput) -> ChainOutput:
        self.calls += 1
        if self.delay:
            await asyncio.sleep(self.delay)
        raise self.error
