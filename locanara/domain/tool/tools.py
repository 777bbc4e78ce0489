from abc import ABC, abstractmethod
from typing import Awaitable, Callable, Sequence, Union
import inspect

from locanara.domain.errors import InvalidInputError


ToolHandler = Callable[[str], Union[str, Awaitable[str]]]


class Tool(ABC):
    """Named capability an agent can call with a text input"""

    id: str
    description: str
    parameter_description: str = ""

    @abstractmethod
    async def invoke(self, input: str) -> str:
        """Run the tool; may raise"""

    def describe(self) -> str:
        line = f"- {self.id}: {self.description}"
        if self.parameter_description:
            line += f" (input: {self.parameter_description})"
        return line

    def __repr__(self) -> str:
        return f"{type(self).__name__}(id={self.id!r})"


class FunctionTool(Tool):
    """Tool backed by a plain or async callable taking the input text"""

    def __init__(self, id: str, description: str, handler: ToolHandler, parameter_description: str = ""):
        self.id = id
        self.description = description
        self.parameter_description = parameter_description
        self.handler = handler

    async def invoke(self, input: str) -> str:
        result = self.handler(input)
        if inspect.isawaitable(result):
            result = await result
        return str(result)


class LocalSearchTool(Tool):
    """On-device, case-insensitive substring search over a document list"""

    id = "local_search"
    description = "Search through locally stored documents on-device"
    parameter_description = "The search query string"

    def __init__(self, documents: Sequence[str]):
        self.documents = list(documents)

    async def invoke(self, input: str) -> str:
        query = input.strip()
        if not query:
            raise InvalidInputError("Search query must not be empty")

        folded = query.casefold()
        results = [document for document in self.documents if folded in document.casefold()]
        return "\n".join(results) if results else "No results found."
