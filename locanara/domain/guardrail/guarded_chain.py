from typing import Optional, Sequence
import structlog

from locanara.domain.chain.base_chain import Chain
from locanara.domain.chain.chat_chain import ChatResult
from locanara.domain.errors import ExecutionError, InvalidInputError
from locanara.domain.guardrail.guardrail import Blocked, Guardrail, Modified
from locanara.domain.models.chain_io import ChainInput, ChainOutput

logger = structlog.get_logger(__name__)


async def apply_input_guardrails(guardrails: Sequence[Guardrail], input: ChainInput) -> ChainInput:
    """Run input checks in order

    The first ``Blocked`` raises ``InvalidInputError``; ``Modified`` results
    replace the working text and are cumulative.
    """

    current = input
    for guardrail in guardrails:
        result = await guardrail.check_input(current)
        if isinstance(result, Blocked):
            logger.info("Input blocked", guardrail=guardrail.name, reason=result.reason)
            raise InvalidInputError(
                f"Blocked by {guardrail.name}: {result.reason}",
                details={"guardrail": guardrail.name},
            )
        if isinstance(result, Modified):
            logger.debug("Input modified", guardrail=guardrail.name, reason=result.reason)
            current = current.with_text(result.new_text)
    return current


def _replace_text(output: ChainOutput, new_text: str) -> ChainOutput:
    value = output.value
    if isinstance(value, str):
        value = new_text
    elif isinstance(value, ChatResult):
        value = value.model_copy(update={"message": new_text})
    else:
        logger.debug("Output value kept", value_type=type(value).__name__)
    return output.model_copy(update={"text": new_text, "value": value})


async def apply_output_guardrails(guardrails: Sequence[Guardrail], output: ChainOutput) -> ChainOutput:
    """Run output checks in order

    A block raises ``ExecutionError`` since the wrapped chain has already
    run. A modification replaces ``text``; ``value`` follows it when it is a
    plain string or a ``ChatResult`` and is otherwise left as produced.
    """

    current = output
    for guardrail in guardrails:
        result = await guardrail.check_output(current)
        if isinstance(result, Blocked):
            logger.info("Output blocked", guardrail=guardrail.name, reason=result.reason)
            raise ExecutionError(
                f"Output blocked by {guardrail.name}: {result.reason}",
                details={"guardrail": guardrail.name},
            )
        if isinstance(result, Modified):
            logger.debug("Output modified", guardrail=guardrail.name, reason=result.reason)
            current = _replace_text(current, result.new_text)
    return current


class GuardedChain(Chain):
    """Wrap a chain with input and output guardrails

    Without explicit ``output_guardrails`` the input guardrails are also
    applied to the output.
    """

    def __init__(
        self,
        chain: Chain,
        guardrails: Sequence[Guardrail],
        output_guardrails: Optional[Sequence[Guardrail]] = None,
        name: Optional[str] = None,
    ):
        self.chain = chain
        self.guardrails = list(guardrails)
        self.output_guardrails = list(guardrails if output_guardrails is None else output_guardrails)
        self.name = name or f"Guarded({chain.name})"
        self.description = chain.description

    async def invoke(self, input: ChainInput) -> ChainOutput:
        checked = await apply_input_guardrails(self.guardrails, input)
        output = await self.chain.invoke(checked)
        return await apply_output_guardrails(self.output_guardrails, output)
