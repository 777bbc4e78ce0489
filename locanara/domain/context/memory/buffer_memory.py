from typing import List, Optional

from locanara.domain.context.memory.base_memory import (
    Memory,
    MemoryEntry,
    MemoryRole,
    total_tokens,
)
from locanara.domain.errors import ConfigurationError
from locanara.domain.models.chain_io import ChainInput, ChainOutput
from locanara.infrastructure.config.settings import get_settings
from locanara.infrastructure.observability.logging import locanara_logger


class BufferMemory(Memory):
    """Sliding window over the most recent entries

    After every ``save`` the buffer holds at most ``max_entries`` entries
    and at most ``max_tokens`` estimated tokens. Eviction is strict FIFO,
    one entry at a time, so a single entry larger than ``max_tokens`` is
    evicted as well.
    """

    def __init__(self, max_entries: Optional[int] = None, max_tokens: Optional[int] = None):
        settings = get_settings()
        self.max_entries = settings.buffer_max_entries if max_entries is None else max_entries
        self.max_tokens = settings.buffer_max_tokens if max_tokens is None else max_tokens

        if self.max_entries < 1:
            raise ConfigurationError("max_entries must be at least 1")
        if self.max_tokens < 1:
            raise ConfigurationError("max_tokens must be at least 1")

        self._entries: List[MemoryEntry] = []

    @property
    def entries(self) -> List[MemoryEntry]:
        return list(self._entries)

    async def load(self, query: Optional[ChainInput] = None) -> List[MemoryEntry]:
        return list(self._entries)

    async def save(self, input: ChainInput, output: ChainOutput) -> None:
        entries = self._entries + [
            MemoryEntry(role=MemoryRole.USER, content=input.text),
            MemoryEntry(role=MemoryRole.ASSISTANT, content=output.text),
        ]

        evicted = 0
        while entries and (len(entries) > self.max_entries or total_tokens(entries) > self.max_tokens):
            entries.pop(0)
            evicted += 1

        self._entries = entries
        locanara_logger.log_memory_update(
            "buffer",
            "save",
            {"entries": len(entries), "evicted": evicted, "tokens": total_tokens(entries)},
        )

    async def clear(self) -> None:
        self._entries = []
        locanara_logger.log_memory_update("buffer", "clear")

    @property
    def estimated_token_count(self) -> int:
        return total_tokens(self._entries)
