from datetime import datetime, timezone
from typing import List, Optional
import asyncio
import time
import structlog
from pydantic import BaseModel, Field

from locanara.domain.chain.base_chain import Chain
from locanara.domain.errors import ConfigurationError, ExecutionError
from locanara.domain.models.chain_io import ChainInput, ChainOutput
from locanara.infrastructure.config.settings import get_settings
from locanara.infrastructure.observability.logging import metrics

logger = structlog.get_logger(__name__)


class ChainExecutionRecord(BaseModel):
    """One attempt to run a chain"""

    chain_name: str
    input: str
    output: Optional[str] = None
    processing_time_ms: int
    success: bool
    attempt: int = Field(ge=1)
    error: Optional[str] = None
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class ChainExecutor:
    """Run chains with timing, retries and an execution history

    Only ``ExecutionError`` is retried. Configuration and input errors
    surface on the first attempt, and cancellation is never retried.
    """

    def __init__(self, max_retries: Optional[int] = None, retry_delay: float = 0.1):
        self.max_retries = get_settings().chain_max_retries if max_retries is None else max_retries
        if self.max_retries < 0:
            raise ConfigurationError("max_retries cannot be negative")
        self.retry_delay = retry_delay
        self.history: List[ChainExecutionRecord] = []

    async def execute(self, chain: Chain, input: ChainInput) -> ChainOutput:
        attempt = 0
        while True:
            attempt += 1
            start = time.monotonic()
            try:
                output = await chain.invoke(input)
            except ExecutionError as exc:
                elapsed = int((time.monotonic() - start) * 1000)
                self._record(chain, input, None, elapsed, False, attempt, exc.reason)
                metrics.increment_counter("chain.failures", tags={"chain": chain.name})

                if attempt > self.max_retries:
                    raise
                logger.warning(
                    "Chain failed, retrying",
                    chain=chain.name,
                    attempt=attempt,
                    max_retries=self.max_retries,
                    error=exc.reason,
                )
                await asyncio.sleep(self.retry_delay)
                continue

            elapsed = int((time.monotonic() - start) * 1000)
            self._record(chain, input, output.text, elapsed, True, attempt)
            metrics.record_latency("chain", elapsed, tags={"chain": chain.name})
            metrics.increment_counter("chain.executions", tags={"chain": chain.name})
            return output

    async def run(self, chain: Chain, text: str) -> ChainOutput:
        return await self.execute(chain, ChainInput(text=text))

    def _record(
        self,
        chain: Chain,
        input: ChainInput,
        output: Optional[str],
        elapsed: int,
        success: bool,
        attempt: int,
        error: Optional[str] = None,
    ):
        self.history.append(ChainExecutionRecord(
            chain_name=chain.name,
            input=input.text,
            output=output,
            processing_time_ms=elapsed,
            success=success,
            attempt=attempt,
            error=error,
        ))

    def clear_history(self):
        self.history.clear()
