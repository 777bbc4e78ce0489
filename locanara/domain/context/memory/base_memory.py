from abc import ABC, abstractmethod
from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional, Sequence
import math

from langchain_core.messages import AIMessage, BaseMessage, HumanMessage, SystemMessage, get_buffer_string
from pydantic import BaseModel, ConfigDict, Field, computed_field

from locanara.domain.models.chain_io import ChainInput, ChainOutput


class MemoryRole(str, Enum):
    USER = "user"
    ASSISTANT = "assistant"
    SYSTEM = "system"


def estimate_tokens(text: str) -> int:
    """Length heuristic: one token per four UTF-8 bytes, rounded up"""
    return math.ceil(len(text.encode("utf-8")) / 4)


class MemoryEntry(BaseModel):
    """One remembered message, in insertion order"""
    model_config = ConfigDict(frozen=True)

    role: MemoryRole
    content: str
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @computed_field
    @property
    def token_estimate(self) -> int:
        return estimate_tokens(self.content)

    def to_message(self) -> BaseMessage:
        """Convert to the langchain message used for prompt serialization"""

        if self.role == MemoryRole.USER:
            return HumanMessage(content=self.content)
        if self.role == MemoryRole.ASSISTANT:
            return AIMessage(content=self.content)
        return SystemMessage(content=self.content)


def total_tokens(entries: Sequence[MemoryEntry]) -> int:
    return sum(entry.token_estimate for entry in entries)


class Memory(ABC):
    """Conversation memory strategy

    Instances assume a single writer; callers that share one across
    concurrent tasks must serialize ``save`` themselves.
    """

    @abstractmethod
    async def load(self, query: Optional[ChainInput] = None) -> List[MemoryEntry]:
        """Return the remembered entries in chronological order"""

    @abstractmethod
    async def save(self, input: ChainInput, output: ChainOutput) -> None:
        """Remember one user/assistant turn"""

    @abstractmethod
    async def clear(self) -> None:
        """Forget everything"""

    @property
    @abstractmethod
    def estimated_token_count(self) -> int:
        """Sum of ``token_estimate`` over the stored entries"""


def render_history(entries: Sequence[MemoryEntry]) -> str:
    """Serialize entries as ``User:`` / ``Assistant:`` / ``System:`` lines"""

    if not entries:
        return ""
    return get_buffer_string(
        [entry.to_message() for entry in entries],
        human_prefix="User",
        ai_prefix="Assistant",
    )
