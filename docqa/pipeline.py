"""Question answering pipeline over text files.

Orchestrates, once per run:
- Document loading
- Text chunking
- Embedding generation and index construction
- Retrieval for the question
- Prompt composition and answer generation
"""
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Union
import structlog

from docqa import config
from docqa.errors import ConfigurationError, DocQAError
from docqa.llm_client import Embedder, GenerationClient, GenerationParams
from docqa.rag.chunker import Segment, TextChunker
from docqa.rag.loader import TextLoader
from docqa.rag.prompt import PromptComposer
from docqa.rag.retriever import Retriever
from docqa.rag.store_faiss import VectorIndex

logger = structlog.get_logger()


class PipelineState(str, Enum):
    """Stages of a pipeline run; transitions only move forward."""

    LOADING = "loading"
    CHUNKING = "chunking"
    INDEXING = "indexing"
    RETRIEVING = "retrieving"
    GENERATING = "generating"
    DONE = "done"
    FAILED = "failed"


@dataclass(frozen=True)
class Answer:
    """Final output of a run: the question, its context and the answer."""

    input: str
    context: List[Segment]
    answer: str
    model: str
    usage: Dict[str, int] = field(default_factory=dict)


@dataclass
class PipelineResult:
    """Outcome of a run: DONE with an answer, or FAILED with the first error."""

    state: PipelineState
    answer: Optional[Answer] = None
    error: Optional[DocQAError] = None
    transitions: List[PipelineState] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.state is PipelineState.DONE


class RAGPipeline:
    """Single-shot load, chunk, index, retrieve and generate pipeline."""

    def __init__(
        self,
        embedder: Embedder,
        generator: GenerationClient,
        chunk_size: int = None,
        chunk_overlap: int = None,
        top_k: int = None,
        params: GenerationParams = None,
        composer: PromptComposer = None,
        loader: TextLoader = None,
    ):
        """Initialize the pipeline.

        Configuration is validated here, before any file or network access.

        Args:
            embedder: Embedding provider for segments and the query
            generator: LLM used to answer
            chunk_size: Chunk size in characters (default from config)
            chunk_overlap: Chunk overlap in characters (default from config)
            top_k: Number of segments to retrieve (default from config)
            params: Generation model and temperature (default from config)
            composer: Prompt composer (default template if not provided)
            loader: Document loader (UTF-8 text loader if not provided)

        Raises:
            ConfigurationError: If chunking or retrieval parameters are invalid
            TemplateError: If the default prompt template is invalid
        """
        self.embedder = embedder
        self.generator = generator
        self.chunker = TextChunker(chunk_size=chunk_size, chunk_overlap=chunk_overlap)
        self.top_k = config.RETRIEVAL_TOP_K if top_k is None else top_k
        self.params = params or GenerationParams()
        self.composer = composer or PromptComposer()
        self.loader = loader or TextLoader()

        if self.top_k <= 0:
            raise ConfigurationError(f"Retrieval k must be positive, got {self.top_k}")

        self.state: Optional[PipelineState] = None
        self.transitions: List[PipelineState] = []

        logger.info(
            "pipeline_initialized",
            chunk_size=self.chunker.chunk_size,
            chunk_overlap=self.chunker.chunk_overlap,
            top_k=self.top_k,
            model=self.params.model,
            temperature=self.params.temperature,
        )

    def _enter(self, state: PipelineState) -> None:
        if self.state in (PipelineState.DONE, PipelineState.FAILED):
            raise RuntimeError(f"Pipeline already finished in state {self.state.value}")
        logger.info(
            "pipeline_state_changed",
            previous=self.state.value if self.state else None,
            state=state.value,
        )
        self.state = state
        self.transitions.append(state)

    async def run(
        self, paths: Sequence[Union[str, Path]], question: str
    ) -> PipelineResult:
        """Answer a question about the given files.

        The first pipeline error stops the run; there is no retry and no
        partial answer.

        Args:
            paths: Text files to load
            question: Question to answer

        Returns:
            PipelineResult in state DONE or FAILED
        """
        try:
            self._enter(PipelineState.LOADING)
            documents = self.loader.load_all(paths)

            self._enter(PipelineState.CHUNKING)
            segments = self.chunker.split_documents(documents)

            self._enter(PipelineState.INDEXING)
            index = await VectorIndex.from_segments(segments, self.embedder)
            logger.info("index_ready", **index.get_stats())

            self._enter(PipelineState.RETRIEVING)
            retriever = Retriever(index, self.embedder, top_k=self.top_k)
            results = await retriever.retrieve(question)

            self._enter(PipelineState.GENERATING)
            prompt = self.composer.compose(results, question)
            generation = await self.generator.generate(prompt, self.params)

        except DocQAError as e:
            logger.error(
                "pipeline_failed",
                state=self.state.value,
                error=str(e),
                error_type=e.kind,
            )
            self._enter(PipelineState.FAILED)
            return PipelineResult(
                state=PipelineState.FAILED,
                error=e,
                transitions=list(self.transitions),
            )

        answer = Answer(
            input=question,
            context=[result.segment for result in results],
            answer=generation.text,
            model=generation.model,
            usage=generation.usage,
        )

        self._enter(PipelineState.DONE)
        logger.info(
            "pipeline_completed",
            documents=len(documents),
            segments=len(segments),
            retrieved=len(results),
            answer_length=len(answer.answer),
        )

        return PipelineResult(
            state=PipelineState.DONE,
            answer=answer,
            transitions=list(self.transitions),
        )
