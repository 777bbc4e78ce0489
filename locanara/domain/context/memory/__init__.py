from locanara.domain.context.memory.base_memory import (
    Memory,
    MemoryEntry,
    MemoryRole,
    estimate_tokens,
    render_history,
)
from locanara.domain.context.memory.buffer_memory import BufferMemory
from locanara.domain.context.memory.summary_memory import SummaryMemory

__all__ = [
    "BufferMemory",
    "Memory",
    "MemoryEntry",
    "MemoryRole",
    "SummaryMemory",
    "estimate_tokens",
    "render_history",
]
