from typing import List, Optional, Sequence
from pydantic import BaseModel, ConfigDict, Field, computed_field
from enum import Enum


FINAL_ANSWER = "FINAL_ANSWER"


class AgentPhase(str, Enum):
    """Phase of the reasoning loop"""
    REASONING = "reasoning"
    ACTING = "acting"
    OBSERVING = "observing"
    DONE = "done"
    FAILED = "failed"


class AgentStatus(str, Enum):
    """How an agent run ended"""
    COMPLETED = "completed"
    STEPS_EXHAUSTED = "steps_exhausted"


class AgentStep(BaseModel):
    """One thought/action/observation triple of the reasoning trace"""
    model_config = ConfigDict(frozen=True)

    thought: str = Field(default="", description="Model reasoning for this step")
    action: str = Field(description="Tool id, chain name or FINAL_ANSWER")
    action_input: str = Field(default="", description="Text handed to the action")
    observation: Optional[str] = Field(None, description="Output of the dispatched action")

    def render(self) -> str:
        """Render the step the way it is replayed to the model"""

        lines = [
            f"Thought: {self.thought}",
            f"Action: {self.action}",
            f"Input: {self.action_input}",
        ]
        if self.observation is not None:
            lines.append(f"Observation: {self.observation}")
        return "\n".join(lines)


class AgentResult(BaseModel):
    """Outcome of an agent run, always carrying the full trace"""
    model_config = ConfigDict(frozen=True)

    answer: str
    total_steps: int = Field(ge=0)
    steps: List[AgentStep] = Field(default_factory=list)
    status: AgentStatus = Field(default=AgentStatus.COMPLETED)

    @computed_field
    @property
    def step_limit_reached(self) -> bool:
        return self.status == AgentStatus.STEPS_EXHAUSTED


def best_effort_answer(steps: Sequence[AgentStep]) -> Optional[str]:
    """Last observation, else last non-empty thought, else None"""

    for step in reversed(steps):
        if step.observation:
            return step.observation
    for step in reversed(steps):
        if step.thought:
            return step.thought
    return None
