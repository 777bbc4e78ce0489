from typing import Any, Dict, List, Literal, Optional, TypedDict
import re
import uuid
import structlog
from langgraph.graph import StateGraph, END
from pydantic import BaseModel, ConfigDict, Field

from locanara.domain.backend.generation_backend import (
    GenerationBackend,
    generate_text,
    resolve_backend,
)
from locanara.domain.chain.base_chain import Chain
from locanara.domain.context.memory.base_memory import Memory, render_history
from locanara.domain.errors import (
    ConfigurationError,
    ExecutionError,
    LocanaraError,
    ResourceExhaustedError,
)
from locanara.domain.models.agent_state import (
    FINAL_ANSWER,
    AgentPhase,
    AgentResult,
    AgentStatus,
    AgentStep,
    best_effort_answer,
)
from locanara.domain.models.chain_io import ChainInput, ChainOutput, GenerationConfig
from locanara.domain.tool.tool_executor import ToolExecutor
from locanara.domain.tool.tool_registry import ToolRegistry
from locanara.domain.tool.tool_validator import ToolValidator
from locanara.domain.tool.tools import Tool
from locanara.infrastructure.config.settings import get_settings
from locanara.infrastructure.observability.logging import locanara_logger, metrics

logger = structlog.get_logger(__name__)

DEFAULT_AGENT_PROMPT = "You are a helpful on-device AI assistant."

_LABEL = re.compile(r"^\s*(thought|action|input|observation)\s*:\s?(.*)$", re.IGNORECASE)


def parse_agent_response(text: str) -> AgentStep:
    """Parse ``Thought: / Action: / Input:`` out of a model response

    ``Thought`` is optional, ``Action`` and ``Input`` are required. Thought
    and Input may continue over several lines; a repeated label or an
    ``Observation:`` line ends parsing, since the model has started to
    invent the next step.
    """

    fields: Dict[str, List[str]] = {}
    current: Optional[str] = None

    for line in text.splitlines():
        match = _LABEL.match(line)
        if match:
            label = match.group(1).lower()
            if label == "observation" or label in fields:
                break
            fields[label] = [match.group(2)]
            current = label
        elif current in ("thought", "input"):
            fields[current].append(line)

    if "action" not in fields or "input" not in fields:
        raise ExecutionError(
            "Agent response does not follow the Thought/Action/Input format",
            details={"raw_response": text},
        )

    action = fields["action"][0].strip()
    if not action:
        raise ExecutionError("Agent response has an empty action", details={"raw_response": text})

    return AgentStep(
        thought="\n".join(fields.get("thought", [])).strip(),
        action=action,
        action_input="\n".join(fields["input"]).strip(),
    )


class AgentConfig(BaseModel):
    """Configuration for an agent run"""
    model_config = ConfigDict(arbitrary_types_allowed=True)

    max_steps: int = Field(default_factory=lambda: get_settings().agent_max_steps)
    tools: List[Tool] = Field(default_factory=list)
    chains: List[Chain] = Field(default_factory=list)
    system_prompt: Optional[str] = None


class AgentGraphState(TypedDict):
    """State for the reasoning graph"""
    query: str
    context: str
    steps: List[AgentStep]
    pending: Optional[AgentStep]
    observation: Optional[str]
    reasoning_calls: int
    answer: Optional[str]
    status: Optional[AgentStatus]


class Agent:
    """Step-bounded ReAct loop over tools and chains, built on LangGraph

    Every reasoning call is one step. The loop ends when the model answers
    with ``FINAL_ANSWER`` or after ``max_steps`` calls, in which case the
    result is flagged as step-exhausted and carries a best-effort answer.
    Failures are raised with the trace so far in ``details["steps"]``.
    """

    def __init__(
        self,
        backend: Optional[GenerationBackend] = None,
        config: Optional[AgentConfig] = None,
        memory: Optional[Memory] = None,
        generation_config: GenerationConfig = GenerationConfig.CONVERSATIONAL,
    ):
        self.config = config or AgentConfig()
        if self.config.max_steps < 1:
            raise ConfigurationError(
                f"max_steps must be at least 1, got {self.config.max_steps}",
                details={"max_steps": self.config.max_steps},
            )
        ToolValidator.validate_capabilities(self.config.tools, self.config.chains)

        self.backend = backend
        self.memory = memory
        self.generation_config = generation_config
        self.registry = ToolRegistry(self.config.tools)
        self.chains: Dict[str, Chain] = {chain.name: chain for chain in self.config.chains}
        self.tool_executor = ToolExecutor()
        self.workflow = self._create_workflow()

    def _create_workflow(self):
        """Create the reasoning/acting/observing graph"""

        workflow = StateGraph(AgentGraphState)

        workflow.add_node("reasoning", self.reasoning_node)
        workflow.add_node("acting", self.acting_node)
        workflow.add_node("observing", self.observing_node)
        workflow.add_node("exhausted", self.exhausted_node)

        workflow.set_entry_point("reasoning")

        workflow.add_conditional_edges(
            "reasoning",
            self.route_after_reasoning,
            {"done": END, "act": "acting"},
        )
        workflow.add_edge("acting", "observing")
        workflow.add_conditional_edges(
            "observing",
            self.route_after_observing,
            {"continue": "reasoning", "exhausted": "exhausted"},
        )
        workflow.add_edge("exhausted", END)

        return workflow.compile()

    def build_prompt(self, state: AgentGraphState) -> str:
        lines = [self.config.system_prompt or DEFAULT_AGENT_PROMPT]
        lines.append("\nAvailable tools:\n" + (self.registry.describe() or "(none)"))
        chain_lines = "\n".join(
            f"- {chain.name}: {chain.description or 'on-device AI chain'}" for chain in self.chains.values()
        )
        lines.append("\nAvailable chains:\n" + (chain_lines or "(none)"))
        if state["context"]:
            lines.append("\nConversation context:\n" + state["context"])
        lines.append(f"\nUser query: {state['query']}")
        if state["steps"]:
            lines.append("\n" + "\n\n".join(step.render() for step in state["steps"]))
        lines.append("\nRespond in this format:")
        lines.append("Thought: <your reasoning>")
        lines.append(f"Action: <tool_id or chain_name or {FINAL_ANSWER}>")
        lines.append("Input: <input to the action>")
        return "\n".join(lines)

    async def reasoning_node(self, state: AgentGraphState) -> Dict[str, Any]:
        """Ask the model for the next thought and action"""

        step_number = state["reasoning_calls"] + 1
        try:
            backend = resolve_backend(self.backend)
            response = await generate_text(backend, self.build_prompt(state), self.generation_config)
            step = parse_agent_response(response.text)
        except LocanaraError as exc:
            locanara_logger.log_agent_transition(AgentPhase.REASONING, AgentPhase.FAILED, step_number)
            raise _with_trace(exc, state["steps"])

        if step.action == FINAL_ANSWER:
            locanara_logger.log_agent_transition(AgentPhase.REASONING, AgentPhase.DONE, step_number, step.action)
            return {
                "steps": state["steps"] + [step],
                "pending": None,
                "reasoning_calls": step_number,
                "answer": step.action_input,
                "status": AgentStatus.COMPLETED,
            }

        locanara_logger.log_agent_transition(AgentPhase.REASONING, AgentPhase.ACTING, step_number, step.action)
        return {"pending": step, "reasoning_calls": step_number}

    async def acting_node(self, state: AgentGraphState) -> Dict[str, Any]:
        """Dispatch the pending action to a tool or chain"""

        step = state["pending"]
        try:
            observation = await self._dispatch(step.action, step.action_input)
        except LocanaraError as exc:
            locanara_logger.log_agent_transition(
                AgentPhase.ACTING, AgentPhase.FAILED, state["reasoning_calls"], step.action
            )
            raise _with_trace(exc, state["steps"] + [step])

        locanara_logger.log_agent_transition(
            AgentPhase.ACTING, AgentPhase.OBSERVING, state["reasoning_calls"], step.action
        )
        return {"observation": observation}

    async def observing_node(self, state: AgentGraphState) -> Dict[str, Any]:
        """Record the observation in the trace"""

        step = state["pending"].model_copy(update={"observation": state["observation"]})
        return {"steps": state["steps"] + [step], "pending": None, "observation": None}

    async def exhausted_node(self, state: AgentGraphState) -> Dict[str, Any]:
        """Out of steps: settle for the best answer in the trace"""

        locanara_logger.log_agent_transition(AgentPhase.OBSERVING, AgentPhase.FAILED, state["reasoning_calls"])
        answer = best_effort_answer(state["steps"])
        if answer is None:
            raise ResourceExhaustedError(
                f"Agent reached {self.config.max_steps} steps without an answer",
                details={"steps": list(state["steps"])},
            )

        logger.warning("Agent step limit reached", max_steps=self.config.max_steps)
        return {"answer": answer, "status": AgentStatus.STEPS_EXHAUSTED}

    def route_after_reasoning(self, state: AgentGraphState) -> Literal["done", "act"]:
        return "done" if state.get("status") == AgentStatus.COMPLETED else "act"

    def route_after_observing(self, state: AgentGraphState) -> Literal["continue", "exhausted"]:
        if state["reasoning_calls"] >= self.config.max_steps:
            return "exhausted"
        locanara_logger.log_agent_transition(AgentPhase.OBSERVING, AgentPhase.REASONING, state["reasoning_calls"])
        return "continue"

    async def _dispatch(self, action: str, action_input: str) -> str:
        tool = self.registry.get_tool(action)
        if tool is not None:
            return await self.tool_executor.execute_tool(tool, action_input)

        chain = self.chains.get(action)
        if chain is not None:
            try:
                output = await chain.invoke(ChainInput(text=action_input))
            except LocanaraError:
                raise
            except Exception as exc:
                raise ExecutionError(f"Chain '{action}' failed: {exc}", details={"chain": action}) from exc
            return output.text

        raise ConfigurationError(
            f"Unknown action '{action}'",
            details={"action": action, "available": list(self.registry.tools) + list(self.chains)},
        )

    async def run(self, query: str) -> AgentResult:
        """Answer ``query``, returning the full reasoning trace"""

        with structlog.contextvars.bound_contextvars(run_id=str(uuid.uuid4())):
            input = ChainInput(text=query)
            context = ""
            if self.memory is not None:
                context = render_history(await self.memory.load(input))

            initial_state: AgentGraphState = {
                "query": query,
                "context": context,
                "steps": [],
                "pending": None,
                "observation": None,
                "reasoning_calls": 0,
                "answer": None,
                "status": None,
            }

            final_state = await self.workflow.ainvoke(
                initial_state,
                config={"recursion_limit": self.config.max_steps * 3 + 5},
            )

            result = AgentResult(
                answer=final_state["answer"],
                total_steps=final_state["reasoning_calls"],
                steps=final_state["steps"],
                status=final_state["status"],
            )

            if result.status == AgentStatus.COMPLETED and self.memory is not None:
                await self.memory.save(input, ChainOutput(value=result.answer, text=result.answer))

            metrics.increment_counter("agent.runs", tags={"status": result.status.value})
            logger.info("Agent run finished", status=result.status.value, total_steps=result.total_steps)
            return result


def _with_trace(exc: LocanaraError, steps: List[AgentStep]) -> LocanaraError:
    exc.details.setdefault("steps", list(steps))
    return exc
