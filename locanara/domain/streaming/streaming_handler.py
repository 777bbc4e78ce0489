from typing import AsyncIterator, Awaitable, Callable, Dict, List, Optional
import time
import structlog

logger = structlog.get_logger(__name__)

FragmentHandler = Callable[[str], Awaitable[None]]
CompletionHandler = Callable[[str], Awaitable[None]]


class StreamingHandler:
    """Relays model fragments and commits the assembled text on completion

    ``relay`` yields every fragment in order. Only when the source stream
    is exhausted is the full text assembled and ``on_complete`` awaited; a
    failed, cancelled or abandoned stream never reaches it, which is what
    keeps half-formed turns out of memory.
    """

    def __init__(self, on_complete: Optional[CompletionHandler] = None):
        self.on_complete = on_complete
        self.event_handlers: Dict[str, List[FragmentHandler]] = {}
        self.text: Optional[str] = None
        self.fragment_count = 0

    @property
    def completed(self) -> bool:
        return self.text is not None

    def register_event_handler(self, event_type: str, handler: FragmentHandler):
        """Register an async handler for ``fragment`` or ``complete`` events"""

        if event_type not in ("fragment", "complete"):
            raise ValueError(f"Unknown stream event type: {event_type}")
        self.event_handlers.setdefault(event_type, []).append(handler)

    async def relay(self, fragments: AsyncIterator[str]) -> AsyncIterator[str]:
        buffer: List[str] = []
        start = time.monotonic()

        async for fragment in fragments:
            buffer.append(fragment)
            self.fragment_count += 1
            await self._emit("fragment", fragment)
            yield fragment

        text = "".join(buffer)
        logger.debug(
            "Stream completed",
            fragments=len(buffer),
            length=len(text),
            duration_ms=int((time.monotonic() - start) * 1000),
        )

        if self.on_complete is not None:
            await self.on_complete(text)
        self.text = text
        await self._emit("complete", text)

    async def _emit(self, event_type: str, data: str):
        for handler in self.event_handlers.get(event_type, []):
            await handler(data)
