import pytest
from pydantic import TypeAdapter

from locanara.domain.chain.chat_chain import ChatChain, ChatResult
from locanara.domain.errors import ExecutionError, InvalidInputError
from locanara.domain.guardrail.guarded_chain import GuardedChain
from locanara.domain.guardrail.guardrail import (
    Blocked,
    ContentFilterGuardrail,
    Guardrail,
    GuardrailResult,
    InputLengthGuardrail,
    Modified,
    Passed,
)
from locanara.domain.models.chain_io import ChainInput, ChainOutput
from tests.fakes import EchoChain, FakeBackend


class UppercaseGuardrail(Guardrail):
    name = "UppercaseGuardrail"

    async def check_input(self, input):
        return Modified(new_text=input.text.upper(), reason="shouting")


class RedactOutputGuardrail(Guardrail):
    name = "RedactOutputGuardrail"

    async def check_input(self, input):
        return Passed()

    async def check_output(self, output):
        return Modified(new_text=output.text.replace("secret", "[redacted]"), reason="redacted")


@pytest.mark.asyncio
async def test_length_guardrail_blocks_one_over_the_limit():
    inner = EchoChain("inner")
    chain = GuardedChain(inner, [InputLengthGuardrail(max_characters=10, truncate=False)])

    with pytest.raises(InvalidInputError) as exc:
        await chain.invoke(ChainInput(text="x" * 11))

    assert "InputLengthGuardrail" in exc.value.reason
    assert inner.calls == []


@pytest.mark.asyncio
async def test_length_guardrail_passes_at_the_limit_unchanged():
    inner = EchoChain("inner")
    chain = GuardedChain(inner, [InputLengthGuardrail(max_characters=10, truncate=False)])

    output = await chain.invoke(ChainInput(text="x" * 10))

    assert output.text == "x" * 10
    assert inner.calls[0].text == "x" * 10


@pytest.mark.asyncio
async def test_length_guardrail_truncates_by_default():
    result = await InputLengthGuardrail(max_characters=4).check_input(ChainInput(text="abcdef"))

    assert result == Modified(new_text="abcd", reason="Input truncated from 6 to 4 characters")


@pytest.mark.asyncio
async def test_modifications_are_cumulative():
    inner = EchoChain("inner")
    chain = GuardedChain(inner, [InputLengthGuardrail(max_characters=5), UppercaseGuardrail()])

    await chain.invoke(ChainInput(text="abcdefgh", metadata={"k": "v"}))

    assert inner.calls[0].text == "ABCDE"
    assert inner.calls[0].metadata == {"k": "v"}


@pytest.mark.asyncio
async def test_first_block_short_circuits_later_guardrails():
    inner = EchoChain("inner")
    chain = GuardedChain(inner, [ContentFilterGuardrail(["forbidden"]), UppercaseGuardrail()])

    with pytest.raises(InvalidInputError):
        await chain.invoke(ChainInput(text="This is FORBIDDEN text"))

    assert inner.calls == []


@pytest.mark.asyncio
async def test_output_block_raises_after_inner_chain_ran():
    inner = EchoChain("inner", prefix="leaked password: ")
    chain = GuardedChain(
        inner,
        guardrails=[],
        output_guardrails=[ContentFilterGuardrail(["Password"])],
    )

    with pytest.raises(ExecutionError, match="Output blocked"):
        await chain.invoke(ChainInput(text="x"))

    assert len(inner.calls) == 1


@pytest.mark.asyncio
async def test_output_modification_replaces_text_and_value():
    chain = GuardedChain(EchoChain("inner"), [RedactOutputGuardrail()])

    output = await chain.invoke(ChainInput(text="the secret plan"))

    assert output.text == "the [redacted] plan"
    assert output.value == "the [redacted] plan"


@pytest.mark.asyncio
async def test_output_modification_keeps_chat_result_typed():
    chain = GuardedChain(ChatChain(backend=FakeBackend(["my secret recipe"])), [RedactOutputGuardrail()])

    output = await chain.invoke(ChainInput(text="share it"))

    assert output.text == "my [redacted] recipe"
    assert output.typed(ChatResult) == ChatResult(message="my [redacted] recipe")


@pytest.mark.asyncio
async def test_output_modification_leaves_structured_values_alone():
    class ListChain(EchoChain):
        async def invoke(self, input):
            return ChainOutput(value=["secret", "plan"], text="secret, plan")

    chain = GuardedChain(ListChain("lists"), [RedactOutputGuardrail()])

    output = await chain.invoke(ChainInput(text="x"))

    assert output.text == "[redacted], plan"
    assert output.value == ["secret", "plan"]


@pytest.mark.asyncio
async def test_input_guardrails_also_check_output_by_default():
    chain = GuardedChain(EchoChain("inner", prefix="spam "), [ContentFilterGuardrail(["spam"])])

    with pytest.raises(ExecutionError):
        await chain.invoke(ChainInput(text="hello"))


@pytest.mark.asyncio
async def test_content_filter_is_case_insensitive_and_symmetric():
    guardrail = ContentFilterGuardrail(["Blocked Word"])

    assert isinstance(await guardrail.check_input(ChainInput(text="a blocked word here")), Blocked)
    assert isinstance(await guardrail.check_input(ChainInput(text="all clear")), Passed)
    blocked = await guardrail.check_output(ChainOutput(value=None, text="BLOCKED WORD"))
    assert blocked == Blocked(reason="Output contains blocked content")


@pytest.mark.asyncio
async def test_length_guardrail_passes_any_output():
    guardrail = InputLengthGuardrail(max_characters=1)
    assert isinstance(await guardrail.check_output(ChainOutput(value="long", text="long")), Passed)


def test_guardrail_result_is_a_discriminated_union():
    adapter = TypeAdapter(GuardrailResult)

    assert adapter.validate_python({"kind": "blocked", "reason": "r"}) == Blocked(reason="r")
    assert isinstance(adapter.validate_python({"kind": "passed"}), Passed)
    modified = adapter.validate_python({"kind": "modified", "new_text": "n", "reason": "r"})
    assert modified.new_text == "n"


def test_guarded_chain_name_wraps_inner_name():
    assert GuardedChain(EchoChain("summarize"), []).name == "Guarded(summarize)"
