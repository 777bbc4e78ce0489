from typing import AsyncIterator, List, Optional, Sequence
import uuid
import structlog

from locanara.domain.backend.generation_backend import (
    GenerationBackend,
    generate_text,
    resolve_backend,
    stream_text,
)
from locanara.domain.chain.base_chain import Chain
from locanara.domain.context.memory.base_memory import Memory, MemoryEntry, render_history
from locanara.domain.context.memory.buffer_memory import BufferMemory
from locanara.domain.guardrail.guardrail import Guardrail
from locanara.domain.guardrail.guarded_chain import apply_input_guardrails, apply_output_guardrails
from locanara.domain.models.chain_io import ChainInput, ChainOutput, GenerationConfig
from locanara.domain.streaming.streaming_handler import StreamingHandler

logger = structlog.get_logger(__name__)


class Session:
    """Stateful chat over one backend, one memory and optional guardrails

    A session is not safe for overlapping ``send``/``stream`` calls: memory
    is loaded before and saved after the backend call, so callers must
    serialize turns on one instance. Output guardrails default to the
    input guardrails.
    """

    def __init__(
        self,
        backend: Optional[GenerationBackend] = None,
        memory: Optional[Memory] = None,
        guardrails: Sequence[Guardrail] = (),
        output_guardrails: Optional[Sequence[Guardrail]] = None,
        system_prompt: Optional[str] = None,
        config: GenerationConfig = GenerationConfig.CONVERSATIONAL,
    ):
        self.id = str(uuid.uuid4())
        self.backend = backend
        self.memory = memory if memory is not None else BufferMemory()
        self.guardrails: List[Guardrail] = list(guardrails)
        self.output_guardrails: List[Guardrail] = list(
            guardrails if output_guardrails is None else output_guardrails
        )
        self.system_prompt = system_prompt
        self.config = config

    def build_prompt(self, entries: Sequence[MemoryEntry], message: str) -> str:
        parts = []
        if self.system_prompt:
            parts.append(self.system_prompt + "\n")
        if entries:
            parts.append(render_history(entries))
        parts.append(f"User: {message}")
        parts.append("Assistant:")
        return "\n".join(parts)

    async def _prepare(self, message: str):
        input = await apply_input_guardrails(self.guardrails, ChainInput(text=message))
        entries = await self.memory.load(input)
        return input, self.build_prompt(entries, input.text)

    async def send(self, message: str) -> str:
        """Run one chat turn and return the reply text"""

        with structlog.contextvars.bound_contextvars(session_id=self.id):
            backend = resolve_backend(self.backend)
            input, prompt = await self._prepare(message)

            response = await generate_text(backend, prompt, self.config)
            text = response.text.strip()
            output = await apply_output_guardrails(
                self.output_guardrails,
                ChainOutput(value=text, text=text, processing_time_ms=response.processing_time_ms),
            )

            await self.memory.save(input, output)
            logger.info("Session turn completed", memory_tokens=self.memory.estimated_token_count)
            return output.text

    async def stream(self, message: str) -> AsyncIterator[str]:
        """Stream one chat turn

        Output guardrails run on the assembled reply once the stream ends;
        memory is written only if the stream completes and passes them.
        """

        backend = resolve_backend(self.backend)
        with structlog.contextvars.bound_contextvars(session_id=self.id):
            input, prompt = await self._prepare(message)

        async def save_turn(text: str) -> None:
            text = text.strip()
            output = await apply_output_guardrails(
                self.output_guardrails,
                ChainOutput(value=text, text=text),
            )
            await self.memory.save(input, output)
            logger.info("Session stream completed", session_id=self.id)

        handler = StreamingHandler(on_complete=save_turn)
        async for fragment in handler.relay(stream_text(backend, prompt, self.config)):
            yield fragment

    async def run(self, chain: Chain, text: str) -> ChainOutput:
        """Run a chain in this session's context without touching memory"""

        with structlog.contextvars.bound_contextvars(session_id=self.id):
            return await chain.invoke(ChainInput(text=text))

    async def history(self) -> List[MemoryEntry]:
        return await self.memory.load()

    async def reset(self):
        """Clear session memory"""

        await self.memory.clear()
        logger.info("Session reset", session_id=self.id)
