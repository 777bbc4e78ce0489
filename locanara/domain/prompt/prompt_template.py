from typing import Dict, List, Mapping, Optional

from langchain_core.prompts import PromptTemplate as LangChainPromptTemplate

from locanara.domain.errors import InvalidInputError


class PromptTemplate:
    """Prompt string with ``{name}`` placeholders

    Formatting is delegated to langchain-core; this wrapper pins the
    declared variables and turns missing values into ``InvalidInputError``.
    Literal braces are written as ``{{`` and ``}}``.
    """

    def __init__(self, template: str, input_variables: Optional[List[str]] = None):
        if input_variables is None:
            self._prompt = LangChainPromptTemplate.from_template(template)
        else:
            self._prompt = LangChainPromptTemplate(
                template=template,
                input_variables=list(input_variables),
            )

    @classmethod
    def from_template(cls, template: str) -> "PromptTemplate":
        """Build a template whose variables are detected from the text"""
        return cls(template)

    @property
    def template(self) -> str:
        return self._prompt.template

    @property
    def input_variables(self) -> List[str]:
        return list(self._prompt.input_variables)

    def format(self, values: Mapping[str, str]) -> str:
        """Substitute ``values`` into the template"""

        missing = [name for name in self.input_variables if name not in values]
        if missing:
            raise InvalidInputError(
                f"Missing prompt variables: {', '.join(sorted(missing))}",
                details={"missing": missing},
            )

        try:
            return self._prompt.format(**{key: values[key] for key in values})
        except KeyError as exc:
            # Placeholder present in the text but not declared in input_variables
            raise InvalidInputError(
                f"Missing prompt variable: {exc.args[0]}",
                details={"missing": [exc.args[0]]},
            ) from exc

    def __repr__(self) -> str:
        return f"PromptTemplate(input_variables={self.input_variables!r})"


def format_values(text: str, metadata: Mapping[str, str]) -> Dict[str, str]:
    """Template values for a chain input: metadata plus ``text``"""

    values = dict(metadata)
    values["text"] = text
    return values
