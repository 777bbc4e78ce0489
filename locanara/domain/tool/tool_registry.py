from typing import Dict, List, Optional

from locanara.domain.errors import ConfigurationError
from locanara.domain.tool.tools import Tool


class ToolRegistry:
    """Registry of the tools available to an agent"""

    def __init__(self, tools: Optional[List[Tool]] = None):
        self.tools: Dict[str, Tool] = {}
        for tool in tools or []:
            self.register_tool(tool)

    def register_tool(self, tool: Tool):
        """Register a new tool under its id"""

        if not tool.id:
            raise ConfigurationError("Tool id must not be empty")
        if tool.id in self.tools:
            raise ConfigurationError(f"Tool '{tool.id}' is already registered", details={"tool_id": tool.id})
        self.tools[tool.id] = tool

    def unregister_tool(self, tool_id: str) -> bool:
        return self.tools.pop(tool_id, None) is not None

    def get_available_tools(self) -> List[Tool]:
        """Get all available tools in registration order"""

        return list(self.tools.values())

    def get_tool(self, tool_id: str) -> Optional[Tool]:
        return self.tools.get(tool_id)

    def require_tool(self, tool_id: str) -> Tool:
        tool = self.tools.get(tool_id)
        if tool is None:
            raise ConfigurationError(f"Unknown tool '{tool_id}'", details={"tool_id": tool_id})
        return tool

    def search_tools(self, query: str) -> List[Tool]:
        """Search tools by id or description"""

        query_lower = query.lower()
        return [
            tool for tool in self.tools.values()
            if query_lower in tool.id.lower() or query_lower in tool.description.lower()
        ]

    def describe(self) -> str:
        """One descriptor line per tool, as shown to the model"""

        return "\n".join(tool.describe() for tool in self.tools.values())

    def __contains__(self, tool_id: str) -> bool:
        return tool_id in self.tools

    def __len__(self) -> int:
        return len(self.tools)
