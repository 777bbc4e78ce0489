from typing import AsyncIterator, Dict, Optional
import time
import structlog
from pydantic import BaseModel, ConfigDict

from locanara.domain.backend.generation_backend import (
    GenerationBackend,
    generate_text,
    resolve_backend,
    stream_text,
)
from locanara.domain.chain.base_chain import Chain
from locanara.domain.context.memory.base_memory import Memory, render_history
from locanara.domain.models.chain_io import ChainInput, ChainOutput, GenerationConfig
from locanara.domain.prompt.prompt_template import PromptTemplate
from locanara.domain.streaming.streaming_handler import StreamingHandler
from locanara.infrastructure.observability.logging import locanara_logger

logger = structlog.get_logger(__name__)

DEFAULT_SYSTEM_PROMPT = "You are a friendly, helpful assistant."

CHAT_TEMPLATE = PromptTemplate(
    "System instruction: {system_prompt}\n"
    "{language_instruction}\n\n"
    "{history}"
    "User: {text}\n"
    "Assistant:",
    input_variables=["system_prompt", "language_instruction", "history", "text"],
)

# (script name, inclusive code point ranges)
_SCRIPTS = (
    ("Korean", ((0xAC00, 0xD7AF), (0x1100, 0x11FF), (0x3130, 0x318F))),
    ("Japanese", ((0x3040, 0x309F), (0x30A0, 0x30FF))),
    ("Chinese", ((0x4E00, 0x9FFF),)),
    ("Arabic", ((0x0600, 0x06FF),)),
    ("Russian", ((0x0400, 0x04FF),)),
    ("Thai", ((0x0E00, 0x0E7F),)),
)


def detect_language(text: str) -> str:
    """Guess the dominant language of ``text`` from its Unicode scripts"""

    counts: Dict[str, int] = {name: 0 for name, _ in _SCRIPTS}
    counts["English"] = 0

    for char in text:
        code = ord(char)
        if ("a" <= char <= "z") or ("A" <= char <= "Z"):
            counts["English"] += 1
            continue
        for name, ranges in _SCRIPTS:
            if any(low <= code <= high for low, high in ranges):
                counts[name] += 1
                break

    language, count = max(counts.items(), key=lambda item: item[1])
    return language if count > 0 else "English"


class ChatResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    message: str
    can_continue: bool = True


class ChatChain(Chain):
    """Conversational chain with optional memory

    The reply language follows the user's message. The turn is saved to
    memory after the backend answers; ``stream_run`` saves only once the
    stream has completed.
    """

    def __init__(
        self,
        backend: Optional[GenerationBackend] = None,
        memory: Optional[Memory] = None,
        system_prompt: str = DEFAULT_SYSTEM_PROMPT,
        config: GenerationConfig = GenerationConfig.CONVERSATIONAL,
        name: str = "ChatChain",
    ):
        self.backend = backend
        self.memory = memory
        self.system_prompt = system_prompt
        self.config = config
        self.name = name
        self.description = "Holds a conversation with the user"

    async def build_prompt(self, input: ChainInput) -> str:
        history = ""
        if self.memory is not None:
            entries = await self.memory.load(input)
            if entries:
                history = render_history(entries) + "\n"

        language = detect_language(input.text)
        logger.debug("Chat language detected", chain=self.name, language=language)

        return CHAT_TEMPLATE.format({
            "system_prompt": self.system_prompt,
            "language_instruction": (
                f"IMPORTANT: You MUST reply in {language}. Do NOT reply in any other language."
            ),
            "history": history,
            "text": input.text,
        })

    async def invoke(self, input: ChainInput) -> ChainOutput[ChatResult]:
        backend = resolve_backend(self.backend)
        prompt = await self.build_prompt(input)

        response = await generate_text(backend, prompt, self.config)
        message = response.text.strip()

        output = ChainOutput(
            value=ChatResult(message=message),
            text=message,
            metadata=dict(input.metadata),
            processing_time_ms=response.processing_time_ms,
        )
        if self.memory is not None:
            await self.memory.save(input, output)

        locanara_logger.log_chain_event("completed", self.name, {"output_length": len(message)})
        return output

    async def run(self, text: str) -> ChatResult:
        output = await self.invoke(ChainInput(text=text))
        return output.typed(ChatResult)

    async def stream_run(self, text: str) -> AsyncIterator[str]:
        """Yield reply fragments in order; memory is written on completion only"""

        input = ChainInput(text=text)
        backend = resolve_backend(self.backend)
        prompt = await self.build_prompt(input)
        start = time.monotonic()

        async def save_turn(message: str) -> None:
            if self.memory is None:
                return
            await self.memory.save(input, ChainOutput(
                value=ChatResult(message=message),
                text=message,
                metadata=dict(input.metadata),
                processing_time_ms=int((time.monotonic() - start) * 1000),
            ))

        handler = StreamingHandler(on_complete=save_turn)
        async for fragment in handler.relay(stream_text(backend, prompt, self.config)):
            yield fragment

        locanara_logger.log_chain_event("streamed", self.name, {"fragments": handler.fragment_count})
