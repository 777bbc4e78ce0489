from typing import Dict, Any, ClassVar, Generic, Optional, Type, TypeVar
from pydantic import BaseModel, ConfigDict, Field


ValueT = TypeVar("ValueT")
TypedT = TypeVar("TypedT")


class ChainInput(BaseModel):
    """Input handed to a chain for a single invocation"""
    model_config = ConfigDict(frozen=True)

    text: str = Field(description="Primary text the chain operates on")
    metadata: Dict[str, str] = Field(default_factory=dict, description="String key/value side channel")

    def with_text(self, text: str) -> "ChainInput":
        """Return a copy carrying new text and a copy of the metadata"""
        return ChainInput(text=text, metadata=dict(self.metadata))


class ChainOutput(BaseModel, Generic[ValueT]):
    """Result of a chain invocation

    ``value`` carries the producing chain's typed result while ``text`` is
    the plain-text rendering that the next chain in a pipeline consumes.
    """
    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    value: ValueT
    text: str
    metadata: Dict[str, str] = Field(default_factory=dict)
    processing_time_ms: Optional[int] = None

    def typed(self, expected: Type[TypedT]) -> TypedT:
        """Return ``value`` as ``expected`` or fail loudly on a mismatch"""

        if not isinstance(self.value, expected):
            raise TypeError(
                f"Chain output value is {type(self.value).__name__}, "
                f"expected {expected.__name__}"
            )
        return self.value


class GenerationConfig(BaseModel):
    """Sampling parameters forwarded to the generation backend"""
    model_config = ConfigDict(frozen=True)

    temperature: Optional[float] = Field(None, ge=0.0, le=2.0)
    top_k: Optional[int] = Field(None, ge=1)
    max_tokens: Optional[int] = Field(None, ge=1)

    STRUCTURED: ClassVar["GenerationConfig"]
    CREATIVE: ClassVar["GenerationConfig"]
    CONVERSATIONAL: ClassVar["GenerationConfig"]

    def as_kwargs(self) -> Dict[str, Any]:
        """Only the parameters that were actually set"""
        return self.model_dump(exclude_none=True)


GenerationConfig.STRUCTURED = GenerationConfig(temperature=0.2, top_k=16)
GenerationConfig.CREATIVE = GenerationConfig(temperature=0.8, top_k=40)
GenerationConfig.CONVERSATIONAL = GenerationConfig(temperature=0.7, top_k=40)


class ModelResponse(BaseModel):
    """Text produced by one backend generation call"""
    model_config = ConfigDict(frozen=True)

    text: str
    processing_time_ms: Optional[int] = None
