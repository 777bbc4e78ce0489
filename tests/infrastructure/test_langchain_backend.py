import pytest
from langchain_core.language_models.fake_chat_models import FakeListChatModel

from locanara.domain.chain.base_chain import ModelChain
from locanara.domain.models.chain_io import GenerationConfig
from locanara.domain.prompt.prompt_template import PromptTemplate
from locanara.infrastructure.backend.langchain_backend import LangChainBackend


@pytest.mark.asyncio
async def test_generate_returns_model_text():
    backend = LangChainBackend(FakeListChatModel(responses=["hello there"]), name="fake-chat")

    response = await backend.generate("hi", GenerationConfig.STRUCTURED)

    assert response.text == "hello there"
    assert response.processing_time_ms is not None
    assert backend.is_ready
    assert backend.max_context_tokens == 4096


@pytest.mark.asyncio
async def test_stream_yields_all_fragments():
    backend = LangChainBackend(FakeListChatModel(responses=["streaming works"]))

    fragments = [fragment async for fragment in backend.stream("hi")]

    assert len(fragments) > 1
    assert "".join(fragments) == "streaming works"


def test_parameter_map_drops_unmapped_fields():
    model = FakeListChatModel(responses=["x"])
    backend = LangChainBackend(model, parameter_map={"top_k": None})

    assert backend._bound(GenerationConfig.STRUCTURED) is model
    assert backend._bound(None) is model


@pytest.mark.asyncio
async def test_model_chain_over_langchain_model():
    backend = LangChainBackend(FakeListChatModel(responses=["Résumé court"]))
    chain = ModelChain(
        backend=backend,
        prompt_template=PromptTemplate("Summarize: {text}"),
        config=GenerationConfig.STRUCTURED,
    )

    output = await chain.run("a very long article")

    assert output.text == "Résumé court"
