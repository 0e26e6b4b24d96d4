"""Tests for prompt template rendering."""
import pytest

from docqa.errors import TemplateError
from docqa.rag.chunker import Segment
from docqa.rag.prompt import DEFAULT_TEMPLATE, PromptComposer, template_slots
from docqa.rag.retriever import RetrievalResult


def results_for(*texts):
    return [
        RetrievalResult(segment=Segment(content=text), distance=0.1 * i, rank=i + 1)
        for i, text in enumerate(texts)
    ]


def test_default_template_has_both_slots():
    assert template_slots(DEFAULT_TEMPLATE) == {"context", "input"}


def test_compose_joins_context_in_retrieval_order():
    prompt = PromptComposer().compose(results_for("second best", "best"), "Which one?")

    assert "<context>\nsecond best\n\nbest\n</context>" in prompt
    assert prompt.rstrip().endswith("Question: Which one?")


def test_question_is_inserted_unmodified():
    question = "What does {context} mean in <tags> & {braces}?"

    prompt = PromptComposer(template="{context}|{input}").compose(results_for("ctx"), question)

    assert prompt == f"ctx|{question}"


def test_custom_separator():
    composer = PromptComposer(template="{context}/{input}", separator=" --- ")

    assert composer.compose(results_for("a", "b"), "q") == "a --- b/q"


def test_empty_context():
    assert PromptComposer(template="[{context}] {input}").compose([], "q") == "[] q"


@pytest.mark.parametrize(
    "template",
    [
        "Only a {context}",
        "Only an {input}",
        "No slots at all",
    ],
)
def test_missing_slot_raises(template):
    with pytest.raises(TemplateError, match="missing"):
        PromptComposer(template=template)


def test_unknown_slot_raises():
    with pytest.raises(TemplateError, match="unknown"):
        PromptComposer(template="{context} {input} {history}")


def test_malformed_template_raises():
    with pytest.raises(TemplateError):
        PromptComposer(template="{context} {input")
