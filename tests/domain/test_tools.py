import pytest

from locanara.domain.errors import ConfigurationError, ExecutionError, InvalidInputError
from locanara.domain.tool.tool_executor import ToolExecutor
from locanara.domain.tool.tool_registry import ToolRegistry
from locanara.domain.tool.tool_validator import ToolValidator
from locanara.domain.tool.tools import FunctionTool, LocalSearchTool
from locanara.infrastructure.observability.logging import metrics
from tests.fakes import EchoChain


def weather_tool():
    return FunctionTool(
        id="weather",
        description="Get current weather",
        parameter_description="city name",
        handler=lambda city: f"Sunny in {city}",
    )


@pytest.mark.asyncio
async def test_function_tool_accepts_sync_and_async_handlers():
    async def shout(text):
        return text.upper()

    assert await weather_tool().invoke("Seoul") == "Sunny in Seoul"
    assert await FunctionTool("shout", "Shout", shout).invoke("hey") == "HEY"


@pytest.mark.asyncio
async def test_local_search_is_case_insensitive():
    tool = LocalSearchTool(["Meeting notes: budget review", "Grocery list", "Budget for Q3"])

    assert await tool.invoke("BUDGET") == "Meeting notes: budget review\nBudget for Q3"
    assert await tool.invoke("holiday") == "No results found."


@pytest.mark.asyncio
async def test_local_search_requires_a_query():
    with pytest.raises(InvalidInputError):
        await LocalSearchTool(["doc"]).invoke("   ")


def test_registry_rejects_duplicate_ids():
    registry = ToolRegistry([weather_tool()])

    with pytest.raises(ConfigurationError):
        registry.register_tool(weather_tool())


def test_registry_lookup_search_and_describe():
    registry = ToolRegistry([weather_tool(), LocalSearchTool(["doc"])])

    assert "weather" in registry
    assert len(registry) == 2
    assert registry.get_tool("missing") is None
    with pytest.raises(ConfigurationError):
        registry.require_tool("missing")
    assert [tool.id for tool in registry.search_tools("documents")] == ["local_search"]
    assert registry.describe().splitlines()[0] == "- weather: Get current weather (input: city name)"
    assert registry.unregister_tool("weather") is True
    assert [tool.id for tool in registry.get_available_tools()] == ["local_search"]


@pytest.mark.asyncio
async def test_executor_wraps_raw_failures():
    cause = ValueError("bad city")

    def broken(_):
        raise cause

    with pytest.raises(ExecutionError) as exc:
        await ToolExecutor().execute_tool(FunctionTool("broken", "Breaks", broken), "x")

    assert exc.value.__cause__ is cause
    assert exc.value.details == {"tool_id": "broken"}
    assert metrics.get_metrics_summary()["tool.failures"] == 1


@pytest.mark.asyncio
async def test_executor_passes_taxonomy_errors_through():
    with pytest.raises(InvalidInputError):
        await ToolExecutor().execute_tool(LocalSearchTool([]), "")


@pytest.mark.asyncio
async def test_executor_records_latency():
    assert await ToolExecutor().execute_tool(weather_tool(), "Oslo") == "Sunny in Oslo"
    assert metrics.get_metrics_summary()["latency.tool"]["count"] == 1


def test_validator_rejects_reserved_and_duplicate_names():
    with pytest.raises(ConfigurationError, match="reserved"):
        ToolValidator.validate_capabilities([FunctionTool("FINAL_ANSWER", "x", str)], [])

    with pytest.raises(ConfigurationError, match="Duplicate"):
        ToolValidator.validate_capabilities([weather_tool()], [EchoChain("weather")])

    with pytest.raises(ConfigurationError, match="empty"):
        ToolValidator.validate_capabilities([], [EchoChain(" ")])

    ToolValidator.validate_capabilities([weather_tool()], [EchoChain("summarize")])
