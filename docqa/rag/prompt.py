"""Prompt template rendering for retrieval-augmented answers."""
from string import Formatter
from typing import Sequence
import structlog

from docqa.errors import TemplateError
from docqa.rag.retriever import RetrievalResult

logger = structlog.get_logger()

DEFAULT_TEMPLATE = """
Answer the user's question based ONLY on the following context:
<context>
{context}
</context>
Question: {input}
"""

REQUIRED_SLOTS = frozenset({"context", "input"})


def template_slots(template: str) -> set:
    """Return the named fields used by a str.format template."""
    try:
        return {
            name for _, name, _, _ in Formatter().parse(template) if name is not None
        }
    except ValueError as e:
        raise TemplateError(f"Malformed prompt template: {e}") from e


class PromptComposer:
    """Fills the context and input slots of a prompt template."""

    def __init__(self, template: str = DEFAULT_TEMPLATE, separator: str = "\n\n"):
        """Initialize the composer.

        Args:
            template: str.format template with ``{context}`` and ``{input}``
            separator: Text placed between retrieved segments

        Raises:
            TemplateError: If a required slot is missing or an unknown one is used
        """
        slots = template_slots(template)

        missing = REQUIRED_SLOTS - slots
        if missing:
            raise TemplateError(
                f"Prompt template is missing slot(s): {', '.join(sorted(missing))}"
            )

        unknown = slots - REQUIRED_SLOTS
        if unknown:
            raise TemplateError(
                f"Prompt template has unknown slot(s): {', '.join(sorted(unknown))}"
            )

        self.template = template
        self.separator = separator

    def compose(self, results: Sequence[RetrievalResult], question: str) -> str:
        """Render the prompt for a question and its retrieved context.

        Args:
            results: Retrieved segments, in retrieval order
            question: User question, inserted unmodified

        Returns:
            The composed prompt
        """
        context = self.separator.join(result.content for result in results)
        prompt = self.template.format(context=context, input=question)

        logger.debug(
            "prompt_composed",
            num_chunks=len(results),
            context_chars=len(context),
            prompt_chars=len(prompt),
        )

        return prompt
