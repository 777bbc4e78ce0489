from typing import List, Sequence, TYPE_CHECKING

from locanara.domain.errors import ConfigurationError
from locanara.domain.models.agent_state import FINAL_ANSWER
from locanara.domain.tool.tools import Tool

if TYPE_CHECKING:
    from locanara.domain.chain.base_chain import Chain


class ToolValidator:
    """Validate the capability names an agent dispatches on"""

    @staticmethod
    def validate_capabilities(tools: Sequence[Tool], chains: Sequence["Chain"]) -> None:
        names: List[str] = [tool.id for tool in tools] + [chain.name for chain in chains]
        errors: List[str] = []

        if any(not name or not name.strip() for name in names):
            errors.append("Tool ids and chain names must not be empty")
        if FINAL_ANSWER in names:
            errors.append(f"'{FINAL_ANSWER}' is reserved for the terminal action")

        duplicates = sorted({name for name in names if names.count(name) > 1})
        if duplicates:
            errors.append(f"Duplicate capability names: {', '.join(duplicates)}")

        if errors:
            raise ConfigurationError("; ".join(errors), details={"errors": errors})
