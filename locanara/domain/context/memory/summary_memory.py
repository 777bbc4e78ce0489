from typing import List, Optional
import structlog

from locanara.domain.backend.generation_backend import (
    GenerationBackend,
    generate_text,
    resolve_backend,
)
from locanara.domain.context.memory.base_memory import (
    Memory,
    MemoryEntry,
    MemoryRole,
    total_tokens,
)
from locanara.domain.errors import ConfigurationError, ExecutionError
from locanara.domain.models.chain_io import ChainInput, ChainOutput, GenerationConfig
from locanara.infrastructure.config.settings import get_settings
from locanara.infrastructure.observability.logging import locanara_logger

logger = structlog.get_logger(__name__)

SUMMARY_PREFIX = "Previous conversation summary: "


class SummaryMemory(Memory):
    """Verbatim recent window plus one running summary of everything older

    Compression is eager: as soon as a ``save`` leaves more than
    ``recent_window_size`` verbatim entries, every entry older than the
    window (together with the existing summary) is summarized by the
    backend into a single ``system`` entry. When the backend fails the
    overflow stays verbatim and is retried on the next ``save``. State is
    replaced only after the backend call returns, so a cancelled ``save``
    changes nothing.
    """

    def __init__(
        self,
        backend: Optional[GenerationBackend] = None,
        recent_window_size: Optional[int] = None,
        config: GenerationConfig = GenerationConfig.STRUCTURED,
    ):
        self.backend = backend
        self.recent_window_size = (
            get_settings().summary_window if recent_window_size is None else recent_window_size
        )
        if self.recent_window_size < 1:
            raise ConfigurationError("recent_window_size must be at least 1")
        self.config = config

        self._summary: Optional[MemoryEntry] = None
        self._recent: List[MemoryEntry] = []

    @property
    def summary(self) -> Optional[str]:
        if self._summary is None:
            return None
        return self._summary.content[len(SUMMARY_PREFIX):]

    @property
    def entries(self) -> List[MemoryEntry]:
        head = [self._summary] if self._summary is not None else []
        return head + list(self._recent)

    async def load(self, query: Optional[ChainInput] = None) -> List[MemoryEntry]:
        return self.entries

    async def save(self, input: ChainInput, output: ChainOutput) -> None:
        recent = self._recent + [
            MemoryEntry(role=MemoryRole.USER, content=input.text),
            MemoryEntry(role=MemoryRole.ASSISTANT, content=output.text),
        ]

        overflow_count = len(recent) - self.recent_window_size
        if overflow_count <= 0:
            self._recent = recent
            locanara_logger.log_memory_update("summary", "save", {"entries": len(recent)})
            return

        overflow = recent[:overflow_count]
        window = recent[overflow_count:]

        try:
            summary_text = await self._summarize(overflow)
        except ExecutionError as exc:
            # Keep everything verbatim and retry on the next save
            logger.warning("Summarization failed, keeping entries", error=exc.reason, pending=len(overflow))
            self._recent = recent
            locanara_logger.log_memory_update("summary", "compress_failed", {"pending": len(overflow)})
            return

        self._summary = MemoryEntry(
            role=MemoryRole.SYSTEM,
            content=SUMMARY_PREFIX + summary_text,
            timestamp=overflow[-1].timestamp,
        )
        self._recent = window
        locanara_logger.log_memory_update(
            "summary",
            "compress",
            {"compressed": len(overflow), "entries": len(window)},
        )

    async def _summarize(self, overflow: List[MemoryEntry]) -> str:
        backend = resolve_backend(self.backend)
        conversation = "\n".join(f"{entry.role.value}: {entry.content}" for entry in overflow)

        parts = []
        if self._summary is not None:
            parts.append(f"Existing summary: {self.summary}\n")
        parts.append("Summarize this conversation concisely, keeping names, facts and decisions:")
        parts.append(conversation)

        response = await generate_text(backend, "\n".join(parts), self.config)
        return response.text.strip()

    async def clear(self) -> None:
        self._summary = None
        self._recent = []
        locanara_logger.log_memory_update("summary", "clear")

    @property
    def estimated_token_count(self) -> int:
        return total_tokens(self.entries)
