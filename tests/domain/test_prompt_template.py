import pytest

from locanara.domain.errors import InvalidInputError
from locanara.domain.prompt.prompt_template import PromptTemplate, format_values


def test_from_template_detects_variables():
    template = PromptTemplate.from_template("Translate {text} into {language}")

    assert sorted(template.input_variables) == ["language", "text"]
    assert template.format({"text": "hello", "language": "French"}) == "Translate hello into French"


def test_missing_variable_raises_invalid_input():
    template = PromptTemplate("Summarize {text} as {style}")

    with pytest.raises(InvalidInputError) as exc:
        template.format({"text": "long story"})

    assert "style" in exc.value.reason
    assert exc.value.details["missing"] == ["style"]


def test_extra_values_are_ignored():
    template = PromptTemplate("Echo: {text}")
    assert template.format({"text": "hi", "unused": "x"}) == "Echo: hi"


def test_escaped_braces_are_literal():
    template = PromptTemplate.from_template('Return JSON like {{"answer": ...}} for {text}')

    assert template.input_variables == ["text"]
    assert template.format({"text": "q"}) == 'Return JSON like {"answer": ...} for q'


def test_undeclared_placeholder_is_reported():
    template = PromptTemplate("{text} and {other}", input_variables=["text"])

    with pytest.raises(InvalidInputError) as exc:
        template.format({"text": "a"})

    assert exc.value.details["missing"] == ["other"]


def test_format_values_puts_text_over_metadata():
    values = format_values("body", {"text": "shadowed", "tone": "formal"})
    assert values == {"text": "body", "tone": "formal"}
