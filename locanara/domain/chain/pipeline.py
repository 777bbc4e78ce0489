from typing import Generic, List, Sequence, Type, TypeVar
import structlog

from locanara.domain.chain.base_chain import Chain
from locanara.domain.chain.combinators import SequentialChain
from locanara.domain.errors import ExecutionError
from locanara.domain.models.chain_io import ChainInput

logger = structlog.get_logger(__name__)

OutputT = TypeVar("OutputT")
NextT = TypeVar("NextT")


class Pipeline(Generic[OutputT]):
    """Run steps in sequence and return the last step's value as ``OutputT``

    The result type always follows the last step: ``then`` appends a step
    and re-types the pipeline. Steps are piped exactly like
    ``SequentialChain``.

        pipeline = Pipeline([summarize], str).then(classify, Category)
        category = await pipeline.run(article)
    """

    def __init__(self, steps: Sequence[Chain], output_type: Type[OutputT], name: str = "Pipeline"):
        self.steps: List[Chain] = list(steps)
        self.output_type = output_type
        self.name = name

    def then(self, step: Chain, output_type: Type[NextT]) -> "Pipeline[NextT]":
        return Pipeline(self.steps + [step], output_type, name=self.name)

    async def invoke(self, input: ChainInput) -> OutputT:
        if not self.steps:
            raise ExecutionError("Pipeline has no steps", details={"pipeline": self.name})

        output = await SequentialChain(self.steps, name=self.name).invoke(input)
        try:
            return output.typed(self.output_type)
        except TypeError as exc:
            logger.warning("Pipeline output type mismatch", pipeline=self.name, error=str(exc))
            raise ExecutionError(
                f"Pipeline output type mismatch: expected {self.output_type.__name__}",
                details={"pipeline": self.name, "last_step": self.steps[-1].name},
            ) from exc

    async def run(self, text: str, **metadata: str) -> OutputT:
        return await self.invoke(ChainInput(text=text, metadata=metadata))
