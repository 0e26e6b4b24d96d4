"""End-to-end tests for the question answering pipeline with fake providers."""
import pytest

from docqa.errors import (
    ConfigurationError,
    DocumentNotFoundError,
    FatalError,
    TemplateError,
    TransientError,
)
from docqa.llm_client import GenerationParams
from docqa.pipeline import PipelineState, RAGPipeline
from docqa.rag.prompt import PromptComposer
from tests.fakes import (
    FailingEmbedder,
    KeywordEmbedder,
    RaggedEmbedder,
    RecordingGenerator,
    ShortQueryEmbedder,
)

ALL_STATES = [
    PipelineState.LOADING,
    PipelineState.CHUNKING,
    PipelineState.INDEXING,
    PipelineState.RETRIEVING,
    PipelineState.GENERATING,
    PipelineState.DONE,
]


class ExplodingGenerator:
    async def generate(self, prompt, params):
        raise FatalError("invalid api key", status_code=401)


@pytest.mark.asyncio
async def test_three_sentence_document_end_to_end(data_file, embedder, generator):
    pipeline = RAGPipeline(
        embedder=embedder,
        generator=generator,
        chunk_size=20,
        chunk_overlap=5,
        top_k=2,
        params=GenerationParams(model="fake-model", temperature=0.5),
    )

    result = await pipeline.run([data_file], "What do cats do?")

    assert result.ok
    assert result.state is PipelineState.DONE
    assert result.transitions == ALL_STATES
    assert result.answer.answer == generator.text
    assert result.answer.input == "What do cats do?"
    assert len(result.answer.context) == 2
    assert result.answer.usage["total_tokens"] == 15

    [prompt] = generator.prompts
    for segment in result.answer.context:
        assert segment.content in prompt
    assert "Question: What do cats do?" in prompt
    assert generator.params == [GenerationParams(model="fake-model", temperature=0.5)]


@pytest.mark.asyncio
async def test_every_segment_is_embedded_once_then_the_query(data_file, embedder, generator):
    pipeline = RAGPipeline(embedder, generator, chunk_size=20, chunk_overlap=5, top_k=2)

    await pipeline.run([data_file], "question")

    segment_texts, query_texts = embedder.calls
    assert query_texts == ["question"]
    assert len(segment_texts) == len(set(segment_texts)) >= 3


@pytest.mark.asyncio
async def test_retrieved_context_follows_similarity(tmp_path, generator):
    path = tmp_path / "animals.txt"
    path.write_text(
        "Dogs bark at the mailman.\n\nBirds sing at dawn.\n\nCats purr on the sofa.",
        encoding="utf-8",
    )
    embedder = KeywordEmbedder(["dogs", "birds", "cats"])
    pipeline = RAGPipeline(embedder, generator, chunk_size=30, chunk_overlap=0, top_k=1)

    result = await pipeline.run([path], "Why do cats purr?")

    assert [s.content.strip() for s in result.answer.context] == ["Cats purr on the sofa."]


@pytest.mark.asyncio
async def test_missing_file_fails_without_network_calls(tmp_path, embedder, generator):
    pipeline = RAGPipeline(embedder, generator)

    result = await pipeline.run([tmp_path / "nope.txt"], "question")

    assert not result.ok
    assert result.state is PipelineState.FAILED
    assert isinstance(result.error, DocumentNotFoundError)
    assert result.transitions == [PipelineState.LOADING, PipelineState.FAILED]
    assert result.answer is None
    assert embedder.calls == []
    assert generator.prompts == []


@pytest.mark.parametrize("chunk_size,overlap", [(20, 20), (20, 30)])
def test_bad_overlap_fails_before_any_work(chunk_size, overlap, generator):
    embedder = FailingEmbedder(AssertionError("embedder must not be called"))

    with pytest.raises(ConfigurationError):
        RAGPipeline(embedder, generator, chunk_size=chunk_size, chunk_overlap=overlap)

    assert embedder.calls == 0


def test_non_positive_k_is_a_configuration_error(embedder, generator):
    with pytest.raises(ConfigurationError):
        RAGPipeline(embedder, generator, top_k=0)


def test_bad_template_is_a_configuration_time_error(embedder, generator):
    with pytest.raises(TemplateError):
        RAGPipeline(embedder, generator, composer=PromptComposer(template="{context}"))


@pytest.mark.asyncio
async def test_embedder_failure_stops_in_indexing(data_file, generator):
    embedder = FailingEmbedder(TransientError("rate limited", status_code=429))
    pipeline = RAGPipeline(embedder, generator)

    result = await pipeline.run([data_file], "question")

    assert result.state is PipelineState.FAILED
    assert isinstance(result.error, TransientError)
    assert result.transitions[-2:] == [PipelineState.INDEXING, PipelineState.FAILED]
    assert embedder.calls == 1
    assert generator.prompts == []


@pytest.mark.asyncio
async def test_generation_failure_produces_no_answer(data_file, embedder):
    pipeline = RAGPipeline(embedder, ExplodingGenerator())

    result = await pipeline.run([data_file], "question")

    assert result.state is PipelineState.FAILED
    assert result.error.status_code == 401
    assert result.answer is None
    assert result.transitions[-2:] == [PipelineState.GENERATING, PipelineState.FAILED]


@pytest.mark.asyncio
async def test_pipeline_runs_only_once(data_file, embedder, generator):
    pipeline = RAGPipeline(embedder, generator)
    await pipeline.run([data_file], "question")

    with pytest.raises(RuntimeError):
        await pipeline.run([data_file], "again")


@pytest.mark.asyncio
async def test_empty_document_still_asks_with_empty_context(tmp_path, embedder):
    path = tmp_path / "empty.txt"
    path.write_text("", encoding="utf-8")
    generator = RecordingGenerator("I don't know.")

    result = await RAGPipeline(embedder, generator).run([path], "anything?")

    assert result.ok
    assert result.answer.context == []
    assert result.answer.answer == "I don't know."


@pytest.mark.asyncio
async def test_ragged_embeddings_fail_in_indexing(data_file, generator):
    embedder = RaggedEmbedder(sizes=range(2, 7))
    pipeline = RAGPipeline(embedder, generator, chunk_size=20, chunk_overlap=5)

    result = await pipeline.run([data_file], "question")

    assert result.state is PipelineState.FAILED
    assert isinstance(result.error, FatalError)
    assert result.error.kind == "FatalError"
    assert result.transitions[-2:] == [PipelineState.INDEXING, PipelineState.FAILED]
    assert len(embedder.calls) == 1
    assert generator.prompts == []


@pytest.mark.asyncio
async def test_query_dimension_mismatch_fails_in_retrieving(data_file, generator):
    pipeline = RAGPipeline(
        ShortQueryEmbedder(), generator, chunk_size=20, chunk_overlap=5
    )

    result = await pipeline.run([data_file], "question")

    assert result.state is PipelineState.FAILED
    assert isinstance(result.error, FatalError)
    assert result.transitions[-2:] == [PipelineState.RETRIEVING, PipelineState.FAILED]
    assert result.answer is None
    assert generator.prompts == []


@pytest.mark.asyncio
async def test_default_params_use_the_generator_model(data_file, embedder, generator):
    result = await RAGPipeline(embedder, generator).run([data_file], "question")

    assert generator.params == [GenerationParams()]
    assert result.answer.model == "fake-chat-model"
