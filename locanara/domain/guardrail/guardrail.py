from abc import ABC, abstractmethod
from typing import Annotated, Iterable, Literal, Union
from pydantic import BaseModel, ConfigDict, Field

from locanara.domain.models.chain_io import ChainInput, ChainOutput


class Passed(BaseModel):
    model_config = ConfigDict(frozen=True)
    kind: Literal["passed"] = "passed"


class Blocked(BaseModel):
    model_config = ConfigDict(frozen=True)
    kind: Literal["blocked"] = "blocked"
    reason: str


class Modified(BaseModel):
    model_config = ConfigDict(frozen=True)
    kind: Literal["modified"] = "modified"
    new_text: str
    reason: str


GuardrailResult = Annotated[Union[Passed, Blocked, Modified], Field(discriminator="kind")]

PASSED = Passed()


class Guardrail(ABC):
    """Validation or transformation applied around a chain"""

    name: str = "Guardrail"

    @abstractmethod
    async def check_input(self, input: ChainInput) -> GuardrailResult:
        """Check input before it reaches the model"""

    async def check_output(self, output: ChainOutput) -> GuardrailResult:
        """Check output before it is returned to the caller"""
        return PASSED


class InputLengthGuardrail(Guardrail):
    """Keep input within the model's character budget"""

    name = "InputLengthGuardrail"

    def __init__(self, max_characters: int = 16000, truncate: bool = True):
        self.max_characters = max_characters
        self.truncate = truncate

    async def check_input(self, input: ChainInput) -> GuardrailResult:
        length = len(input.text)
        if length <= self.max_characters:
            return PASSED
        if self.truncate:
            return Modified(
                new_text=input.text[:self.max_characters],
                reason=f"Input truncated from {length} to {self.max_characters} characters",
            )
        return Blocked(reason=f"Input exceeds maximum length of {self.max_characters} characters")


class ContentFilterGuardrail(Guardrail):
    """Block text containing any of the patterns, ignoring case"""

    name = "ContentFilterGuardrail"

    def __init__(self, blocked_patterns: Iterable[str] = ()):
        self.blocked_patterns = [pattern for pattern in blocked_patterns if pattern]
        self._folded = [pattern.casefold() for pattern in self.blocked_patterns]

    def _matches(self, text: str) -> bool:
        folded = text.casefold()
        return any(pattern in folded for pattern in self._folded)

    async def check_input(self, input: ChainInput) -> GuardrailResult:
        if self._matches(input.text):
            return Blocked(reason="Input contains blocked content")
        return PASSED

    async def check_output(self, output: ChainOutput) -> GuardrailResult:
        if self._matches(output.text):
            return Blocked(reason="Output contains blocked content")
        return PASSED
