from abc import ABC, abstractmethod
from typing import Optional
import time
import structlog

from locanara.domain.backend.generation_backend import (
    GenerationBackend,
    generate_text,
    resolve_backend,
)
from locanara.domain.chain.output_parser import OutputParser
from locanara.domain.models.chain_io import ChainInput, ChainOutput, GenerationConfig
from locanara.domain.prompt.prompt_template import PromptTemplate, format_values
from locanara.infrastructure.observability.logging import locanara_logger

logger = structlog.get_logger(__name__)


class Chain(ABC):
    """Base unit of work: ``invoke(ChainInput) -> ChainOutput``

    Implementations never mutate their input and raise ``ExecutionError``
    when the backend or result parsing fails.
    """

    name: str = "Chain"
    description: str = ""

    @abstractmethod
    async def invoke(self, input: ChainInput) -> ChainOutput:
        """Run the chain once"""

    async def run(self, text: str, **metadata: str) -> ChainOutput:
        """Shorthand for ``invoke(ChainInput(text=text, metadata=metadata))``"""
        return await self.invoke(ChainInput(text=text, metadata=metadata))

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r})"


class ModelChain(Chain):
    """Leaf chain: prompt template + backend + generation config

    Without a template the input text is sent to the backend verbatim.
    With an ``output_parser`` its format instructions are appended to the
    prompt and ``value`` is the parsed result; ``text`` stays the raw reply.
    The backend is resolved at invocation time so a default registered
    after construction is still picked up.
    """

    def __init__(
        self,
        backend: Optional[GenerationBackend] = None,
        prompt_template: Optional[PromptTemplate] = None,
        config: Optional[GenerationConfig] = None,
        output_parser: Optional[OutputParser] = None,
        name: str = "ModelChain",
        description: str = "Generates text with the on-device model",
    ):
        self.backend = backend
        self.prompt_template = prompt_template
        self.config = config
        self.output_parser = output_parser
        self.name = name
        self.description = description

    def build_prompt(self, input: ChainInput) -> str:
        if self.prompt_template is None:
            prompt = input.text
        else:
            prompt = self.prompt_template.format(format_values(input.text, input.metadata))

        instructions = self.output_parser.format_instructions if self.output_parser else ""
        return f"{prompt}\n\n{instructions}" if instructions else prompt

    async def invoke(self, input: ChainInput) -> ChainOutput:
        backend = resolve_backend(self.backend)
        prompt = self.build_prompt(input)

        start = time.monotonic()
        locanara_logger.log_chain_event("started", self.name, {"prompt_length": len(prompt)})
        response = await generate_text(backend, prompt, self.config)
        elapsed = int((time.monotonic() - start) * 1000)

        logger.debug("Model chain finished", chain=self.name, backend=backend.name, duration_ms=elapsed)
        locanara_logger.log_chain_event("completed", self.name, {"output_length": len(response.text)})

        value = response.text
        if self.output_parser is not None:
            value = self.output_parser.parse(response.text)

        return ChainOutput(
            value=value,
            text=response.text,
            metadata=dict(input.metadata),
            processing_time_ms=response.processing_time_ms if response.processing_time_ms is not None else elapsed,
        )
