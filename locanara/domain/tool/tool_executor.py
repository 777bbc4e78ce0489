import time
import structlog

from locanara.domain.errors import ExecutionError, LocanaraError
from locanara.domain.tool.tools import Tool
from locanara.infrastructure.observability.logging import locanara_logger, metrics

logger = structlog.get_logger(__name__)


class ToolExecutor:
    """Invoke tools with timing and structured logging

    Raw tool exceptions are wrapped into ``ExecutionError``; errors from
    the taxonomy and cancellation pass through unchanged.
    """

    async def execute_tool(self, tool: Tool, input_text: str) -> str:
        start = time.monotonic()
        try:
            output = await tool.invoke(input_text)
        except LocanaraError as exc:
            self._report(tool, input_text, start, error=exc.reason)
            raise
        except Exception as exc:
            self._report(tool, input_text, start, error=str(exc))
            raise ExecutionError(
                f"Tool '{tool.id}' failed: {exc}",
                details={"tool_id": tool.id},
            ) from exc

        self._report(tool, input_text, start, output=output)
        return output

    def _report(self, tool: Tool, input_text: str, start: float, output=None, error=None):
        duration_ms = (time.monotonic() - start) * 1000
        success = error is None

        locanara_logger.log_tool_execution(
            tool_id=tool.id,
            input_text=input_text,
            output_text=output,
            duration_ms=duration_ms,
            success=success,
            error=error,
        )
        metrics.record_latency("tool", duration_ms, tags={"tool": tool.id})
        if not success:
            logger.warning("Tool execution failed", tool_id=tool.id, error=error)
            metrics.increment_counter("tool.failures", tags={"tool": tool.id})
