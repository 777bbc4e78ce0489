from abc import ABC, abstractmethod
from typing import Any, Generic, List, Optional, Type, TypeVar
from langchain_core.exceptions import OutputParserException
from langchain_core.output_parsers import JsonOutputParser, PydanticOutputParser, StrOutputParser
from pydantic import BaseModel

from locanara.domain.errors import ExecutionError

OutputT = TypeVar("OutputT")


class OutputParser(ABC, Generic[OutputT]):
    """Turn raw model text into a typed value"""

    @property
    def format_instructions(self) -> str:
        """Appended to the prompt to steer the model's output format"""
        return ""

    @abstractmethod
    def parse(self, text: str) -> OutputT:
        """Parse model output; raise ``ExecutionError`` when it cannot"""


class TextOutputParser(OutputParser[str]):
    """Pass-through, only trims surrounding whitespace"""

    def __init__(self):
        self._parser = StrOutputParser()

    def parse(self, text: str) -> str:
        return self._parser.parse(text).strip()


class ListOutputParser(OutputParser[List[str]]):
    def __init__(self, delimiter: str = "\n"):
        if not delimiter:
            raise ValueError("delimiter must not be empty")
        self.delimiter = delimiter

    @property
    def format_instructions(self) -> str:
        return f"Return items separated by {self.delimiter!r}, one per line."

    def parse(self, text: str) -> List[str]:
        return [item.strip() for item in text.split(self.delimiter) if item.strip()]


class JSONOutputParser(OutputParser[Any]):
    """Parse JSON output, optionally validated into a pydantic model

    Markdown code fences around the JSON are ignored. Without a ``model``
    the decoded JSON value is returned as is.
    """

    def __init__(self, model: Optional[Type[BaseModel]] = None):
        self.model = model
        if model is None:
            self._parser = JsonOutputParser()
        else:
            self._parser = PydanticOutputParser(pydantic_object=model)

    @property
    def format_instructions(self) -> str:
        return self._parser.get_format_instructions()

    def parse(self, text: str) -> Any:
        try:
            return self._parser.parse(text)
        except OutputParserException as exc:
            raise ExecutionError(
                "Model output is not valid JSON for the expected schema",
                details={"raw_response": text, "error": str(exc)},
            ) from exc
