"""On-device AI orchestration: chains, memory, guardrails, sessions and agents"""

from locanara.domain.backend.generation_backend import (
    GenerationBackend,
    get_default_backend,
    reset_default_backend,
    set_default_backend,
)
from locanara.domain.chain.base_chain import Chain, ModelChain
from locanara.domain.chain.chain_executor import ChainExecutionRecord, ChainExecutor
from locanara.domain.chain.chat_chain import ChatChain, ChatResult
from locanara.domain.chain.combinators import ConditionalChain, ParallelChain, SequentialChain
from locanara.domain.chain.output_parser import (
    JSONOutputParser,
    ListOutputParser,
    OutputParser,
    TextOutputParser,
)
from locanara.domain.chain.pipeline import Pipeline
from locanara.domain.context.memory import (
    BufferMemory,
    Memory,
    MemoryEntry,
    MemoryRole,
    SummaryMemory,
)
from locanara.domain.errors import (
    CancelledError,
    ConfigurationError,
    ExecutionError,
    InvalidInputError,
    LocanaraError,
    ResourceExhaustedError,
)
from locanara.domain.guardrail.guarded_chain import GuardedChain
from locanara.domain.guardrail.guardrail import (
    Blocked,
    ContentFilterGuardrail,
    Guardrail,
    GuardrailResult,
    InputLengthGuardrail,
    Modified,
    Passed,
)
from locanara.domain.models.agent_state import FINAL_ANSWER, AgentResult, AgentStatus, AgentStep
from locanara.domain.models.chain_io import ChainInput, ChainOutput, GenerationConfig, ModelResponse
from locanara.domain.orchestration.core.agent import Agent, AgentConfig
from locanara.domain.orchestration.session.session import Session
from locanara.domain.prompt.prompt_template import PromptTemplate
from locanara.domain.tool.tool_registry import ToolRegistry
from locanara.domain.tool.tools import FunctionTool, LocalSearchTool, Tool

__version__ = "0.1.0"

__all__ = [
    "Agent",
    "AgentConfig",
    "AgentResult",
    "AgentStatus",
    "AgentStep",
    "Blocked",
    "BufferMemory",
    "CancelledError",
    "Chain",
    "ChainExecutionRecord",
    "ChainExecutor",
    "ChainInput",
    "ChainOutput",
    "ChatChain",
    "ChatResult",
    "ConditionalChain",
    "ConfigurationError",
    "ContentFilterGuardrail",
    "ExecutionError",
    "FINAL_ANSWER",
    "FunctionTool",
    "GenerationBackend",
    "GenerationConfig",
    "GuardedChain",
    "Guardrail",
    "GuardrailResult",
    "InputLengthGuardrail",
    "InvalidInputError",
    "JSONOutputParser",
    "ListOutputParser",
    "LocalSearchTool",
    "LocanaraError",
    "Memory",
    "MemoryEntry",
    "MemoryRole",
    "ModelChain",
    "ModelResponse",
    "Modified",
    "OutputParser",
    "ParallelChain",
    "Passed",
    "Pipeline",
    "PromptTemplate",
    "ResourceExhaustedError",
    "SequentialChain",
    "Session",
    "SummaryMemory",
    "TextOutputParser",
    "Tool",
    "ToolRegistry",
    "get_default_backend",
    "reset_default_backend",
    "set_default_backend",
]
