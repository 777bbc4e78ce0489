import pytest
from pydantic import BaseModel

from locanara.domain.chain.base_chain import ModelChain
from locanara.domain.chain.output_parser import JSONOutputParser
from locanara.domain.chain.pipeline import Pipeline
from locanara.domain.errors import ExecutionError
from locanara.domain.prompt.prompt_template import PromptTemplate
from tests.fakes import EchoChain, FailingChain, FakeBackend


class Category(BaseModel):
    name: str


@pytest.mark.asyncio
async def test_last_step_determines_result_type():
    backend = FakeBackend(["A short summary.", '{"name": "news"}'])
    summarize = ModelChain(backend=backend, prompt_template=PromptTemplate("Summarize: {text}"), name="summarize")
    classify = ModelChain(
        backend=backend,
        prompt_template=PromptTemplate("Classify: {text}"),
        output_parser=JSONOutputParser(Category),
        name="classify",
    )

    pipeline = Pipeline([summarize], str).then(classify, Category)
    result = await pipeline.run("a long article")

    assert result == Category(name="news")
    assert backend.prompts[1].startswith("Classify: A short summary.")


@pytest.mark.asyncio
async def test_single_step_pipeline_returns_plain_value():
    pipeline = Pipeline([EchoChain("echo", prefix="> ")], str)

    assert await pipeline.run("hi", lang="en") == "> hi"


@pytest.mark.asyncio
async def test_type_mismatch_is_an_execution_error():
    pipeline = Pipeline([EchoChain("first"), EchoChain("last")], Category, name="tagging")

    with pytest.raises(ExecutionError) as exc:
        await pipeline.run("text")

    assert exc.value.details == {"pipeline": "tagging", "last_step": "last"}
    assert isinstance(exc.value.__cause__, TypeError)


@pytest.mark.asyncio
async def test_empty_pipeline_fails_at_run_time():
    pipeline = Pipeline([], str)

    with pytest.raises(ExecutionError, match="no steps"):
        await pipeline.run("text")


@pytest.mark.asyncio
async def test_step_failure_stops_the_pipeline():
    error = ExecutionError("backend offline")
    last = EchoChain("last")
    pipeline = Pipeline([FailingChain("broken", error), last], str)

    with pytest.raises(ExecutionError) as exc:
        await pipeline.run("text")

    assert exc.value is error
    assert last.calls == []
