from typing import Callable, Dict, Hashable, List, Mapping, Sequence
import asyncio
import time
import structlog

from locanara.domain.chain.base_chain import Chain
from locanara.domain.errors import ConfigurationError, ExecutionError, LocanaraError
from locanara.domain.models.chain_io import ChainInput, ChainOutput
from locanara.infrastructure.observability.logging import locanara_logger

logger = structlog.get_logger(__name__)


def _elapsed_ms(start: float) -> int:
    return int((time.monotonic() - start) * 1000)


class SequentialChain(Chain):
    """Pipe each chain's output text into the next chain

    Metadata is merged key-wise with later chains overwriting earlier keys.
    The first failure aborts the pipeline and propagates unchanged.
    """

    def __init__(self, chains: Sequence[Chain], name: str = "SequentialChain", description: str = ""):
        if not chains:
            raise ConfigurationError("SequentialChain needs at least one chain")
        self.chains: List[Chain] = list(chains)
        self.name = name
        self.description = description or " -> ".join(chain.name for chain in self.chains)

    async def invoke(self, input: ChainInput) -> ChainOutput:
        start = time.monotonic()
        metadata: Dict[str, str] = dict(input.metadata)
        current = input
        output = None

        for index, chain in enumerate(self.chains):
            logger.debug("Sequential step", chain=self.name, step=index, inner=chain.name)
            output = await chain.invoke(current)
            metadata.update(output.metadata)
            current = ChainInput(text=output.text, metadata=dict(metadata))

        locanara_logger.log_chain_event("completed", self.name, {"steps": len(self.chains)})
        return output.model_copy(update={
            "metadata": metadata,
            "processing_time_ms": _elapsed_ms(start),
        })


class ParallelChain(Chain):
    """Run every chain concurrently on a copy of the same input

    ``text`` is always the first chain's text by list order, ``value`` the
    list of branch outputs in list order, and ``metadata`` carries each
    branch's text under the branch name. Fail-fast: the first failing branch
    (by list order among those already finished) cancels the rest. Its
    error is re-raised unchanged when it is a ``LocanaraError`` and wrapped
    in ``ExecutionError`` otherwise.
    """

    def __init__(self, chains: Sequence[Chain], name: str = "ParallelChain", description: str = ""):
        if not chains:
            raise ConfigurationError("ParallelChain needs at least one chain")

        names = [chain.name for chain in chains]
        duplicates = sorted({chain_name for chain_name in names if names.count(chain_name) > 1})
        if duplicates:
            raise ConfigurationError(
                f"ParallelChain branch names must be unique: {', '.join(duplicates)}",
                details={"duplicates": duplicates},
            )

        self.chains: List[Chain] = list(chains)
        self.name = name
        self.description = description or " | ".join(names)

    async def invoke(self, input: ChainInput) -> ChainOutput[List[ChainOutput]]:
        start = time.monotonic()
        tasks = [
            asyncio.create_task(chain.invoke(input.model_copy(deep=True)), name=f"{self.name}:{chain.name}")
            for chain in self.chains
        ]

        try:
            done, pending = await asyncio.wait(tasks, return_when=asyncio.FIRST_EXCEPTION)
        except asyncio.CancelledError:
            await _cancel_all(tasks)
            raise

        failed = [task for task in tasks if task in done and not task.cancelled() and task.exception() is not None]
        if failed:
            await _cancel_all(pending)
            error = failed[0].exception()
            branch = self.chains[tasks.index(failed[0])].name
            logger.warning("Parallel branch failed", chain=self.name, branch=branch, error=str(error))
            if isinstance(error, LocanaraError):
                raise error
            raise ExecutionError(
                f"Parallel branch {branch} failed: {error}",
                details={"branch": branch},
            ) from error

        outputs = [task.result() for task in tasks]
        metadata: Dict[str, str] = dict(input.metadata)
        for output in outputs:
            metadata.update(output.metadata)
        for chain, output in zip(self.chains, outputs):
            metadata[chain.name] = output.text

        locanara_logger.log_chain_event("completed", self.name, {"branches": len(self.chains)})
        return ChainOutput(
            value=outputs,
            text=outputs[0].text,
            metadata=metadata,
            processing_time_ms=_elapsed_ms(start),
        )


async def _cancel_all(tasks) -> None:
    for task in tasks:
        task.cancel()
    # Wait so no branch outlives the parallel chain
    await asyncio.gather(*tasks, return_exceptions=True)


class ConditionalChain(Chain):
    """Route the input to the branch selected by ``condition``

    There is no implicit default branch; an unmatched key is a wiring
    error.
    """

    def __init__(
        self,
        condition: Callable[[ChainInput], Hashable],
        branches: Mapping[Hashable, Chain],
        name: str = "ConditionalChain",
        description: str = "",
    ):
        if not branches:
            raise ConfigurationError("ConditionalChain needs at least one branch")
        self.condition = condition
        self.branches: Dict[Hashable, Chain] = dict(branches)
        self.name = name
        self.description = description or f"Routes to one of: {', '.join(str(key) for key in self.branches)}"

    async def invoke(self, input: ChainInput) -> ChainOutput:
        key = self.condition(input)
        chain = self.branches.get(key)
        if chain is None:
            raise ConfigurationError(
                f"No branch for key {key!r} in {self.name}",
                details={"key": key, "branches": list(self.branches)},
            )

        logger.debug("Conditional branch selected", chain=self.name, key=str(key), branch=chain.name)
        return await chain.invoke(input)
