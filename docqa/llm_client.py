"""Embedding and chat clients for hosted LLM providers.

The pipeline only depends on the two narrow protocols defined here,
``Embedder`` and ``GenerationClient``. ``OpenAIClient`` talks to the OpenAI
REST API (or any compatible server), ``OllamaClient`` to a local Ollama.
"""
import os
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Protocol, Sequence
import httpx
import structlog

from docqa import config
from docqa.errors import ConfigurationError, FatalError, TransientError

logger = structlog.get_logger()


@dataclass(frozen=True)
class GenerationParams:
    """Model selection and sampling parameters for a generation request.

    A model of None selects the client's default chat model.
    """

    model: Optional[str] = None
    temperature: float = config.TEMPERATURE


@dataclass(frozen=True)
class GenerationResult:
    """Generated text plus whatever metadata the provider returned."""

    text: str
    model: str
    usage: Dict[str, int] = field(default_factory=dict)


class Embedder(Protocol):
    async def embed(self, texts: Sequence[str]) -> List[List[float]]:
        """Return one vector per input text, in the same order."""
        ...


class GenerationClient(Protocol):
    async def generate(
        self, prompt: str, params: GenerationParams
    ) -> GenerationResult:
        """Send a single prompt and return the generated answer."""
        ...


def get_api_key() -> Optional[str]:
    """Read the provider API key from the environment."""
    return os.getenv(config.OPENAI_API_KEY_ENV) or None


def _raise_provider_error(error: httpx.HTTPError, provider: str, operation: str):
    """Translate an httpx error into TransientError or FatalError.

    Connection problems, timeouts, rate limits and 5xx responses are
    transient; everything else (bad key, bad request) is fatal.
    """
    if isinstance(error, httpx.HTTPStatusError):
        status_code = error.response.status_code
        logger.error(
            "provider_http_error",
            provider=provider,
            operation=operation,
            status_code=status_code,
            error=str(error),
        )
        message = f"{provider} {operation} failed with HTTP {status_code}"
        if status_code == 429 or status_code >= 500:
            raise TransientError(message, status_code=status_code) from error
        raise FatalError(message, status_code=status_code) from error

    logger.error(
        "provider_connection_error",
        provider=provider,
        operation=operation,
        error=str(error),
        error_type=type(error).__name__,
    )
    raise TransientError(
        f"{provider} {operation} failed: {type(error).__name__}: {error}"
    ) from error


class OpenAIClient:
    """Async client for the OpenAI embeddings and chat completions API."""

    provider = "openai"

    def __init__(
        self,
        base_url: str = None,
        api_key: str = None,
        embedding_model: str = None,
        chat_model: str = None,
        timeout: float = None,
        batch_size: int = None,
        transport: httpx.AsyncBaseTransport = None,
    ):
        """Initialize OpenAI client.

        Args:
            base_url: API base URL (defaults to config.OPENAI_BASE_URL)
            api_key: API key (read from the environment at request time if omitted)
            embedding_model: Embedding model (defaults to config.OPENAI_EMBEDDING_MODEL)
            chat_model: Chat model used when params don't name one
            timeout: Request timeout in seconds
            batch_size: Maximum number of texts per embeddings request
            transport: Optional httpx transport (used by tests)
        """
        self.base_url = (base_url or config.OPENAI_BASE_URL).rstrip("/")
        self.api_key = api_key
        self.embedding_model = (
            embedding_model or config.EMBEDDING_MODEL or config.OPENAI_EMBEDDING_MODEL
        )
        self.chat_model = chat_model or config.CHAT_MODEL or config.OPENAI_CHAT_MODEL
        self.timeout = timeout or config.REQUEST_TIMEOUT
        self.batch_size = batch_size or config.EMBEDDING_BATCH_SIZE
        self.transport = transport

    def _headers(self) -> Dict[str, str]:
        api_key = self.api_key or get_api_key()
        if not api_key:
            logger.error("provider_missing_api_key", provider=self.provider)
            raise FatalError(
                f"Missing API key: set the {config.OPENAI_API_KEY_ENV} "
                "environment variable"
            )
        return {"Authorization": f"Bearer {api_key}"}

    async def _post(self, path: str, payload: Dict[str, Any], operation: str) -> Dict:
        headers = self._headers()

        try:
            async with httpx.AsyncClient(
                timeout=self.timeout, transport=self.transport
            ) as client:
                response = await client.post(
                    f"{self.base_url}{path}", json=payload, headers=headers
                )
                response.raise_for_status()
                data = response.json()
        except httpx.HTTPError as e:
            _raise_provider_error(e, self.provider, operation)
        except ValueError as e:
            logger.error("provider_invalid_json", provider=self.provider, error=str(e))
            raise FatalError(f"{self.provider} returned invalid JSON: {e}") from e

        return data

    async def embed(self, texts: Sequence[str]) -> List[List[float]]:
        """Generate embeddings for a list of texts.

        Args:
            texts: Texts to embed

        Returns:
            One embedding per text, in input order

        Raises:
            TransientError: On network errors, rate limits and 5xx responses
            FatalError: On missing credentials or rejected requests
        """
        texts = list(texts)
        if not texts:
            return []

        embeddings: List[List[float]] = []

        for i in range(0, len(texts), self.batch_size):
            batch = texts[i : i + self.batch_size]

            logger.debug(
                "openai_embedding_request",
                model=self.embedding_model,
                batch_size=len(batch),
            )

            data = await self._post(
                "/embeddings",
                {"model": self.embedding_model, "input": batch},
                operation="embeddings",
            )

            items = sorted(data.get("data", []), key=lambda item: item.get("index", 0))
            if len(items) != len(batch) or not all(item.get("embedding") for item in items):
                raise FatalError(
                    f"Expected {len(batch)} embeddings, got {len(items)}"
                )

            embeddings.extend(item["embedding"] for item in items)

        logger.debug(
            "openai_embedding_response",
            model=self.embedding_model,
            count=len(embeddings),
            dimension=len(embeddings[0]),
        )

        return embeddings

    async def generate(
        self, prompt: str, params: GenerationParams
    ) -> GenerationResult:
        """Send a chat completion request with a single user message.

        Args:
            prompt: Fully composed prompt
            params: Model and temperature

        Returns:
            GenerationResult with the answer text and token usage

        Raises:
            TransientError: On network errors, rate limits and 5xx responses
            FatalError: On missing credentials or rejected requests
        """
        model = params.model or self.chat_model
        payload = {
            "model": model,
            "temperature": params.temperature,
            "messages": [{"role": "user", "content": prompt}],
        }

        logger.info(
            "openai_chat_request",
            model=model,
            prompt_length=len(prompt),
            temperature=params.temperature,
        )

        data = await self._post("/chat/completions", payload, operation="chat")

        try:
            text = data["choices"][0]["message"]["content"] or ""
        except (KeyError, IndexError, TypeError) as e:
            raise FatalError(f"Malformed chat completion response: {e}") from e

        usage = {
            key: value
            for key, value in (data.get("usage") or {}).items()
            if key in ("prompt_tokens", "completion_tokens", "total_tokens")
        }

        logger.info(
            "openai_chat_response",
            model=data.get("model", model),
            response_length=len(text),
            **usage,
        )

        return GenerationResult(
            text=text, model=data.get("model", model), usage=usage
        )


class OllamaClient:
    """Async client for interacting with Ollama API."""

    provider = "ollama"

    def __init__(
        self,
        base_url: str = None,
        embedding_model: str = None,
        chat_model: str = None,
        timeout: float = None,
        transport: httpx.AsyncBaseTransport = None,
    ):
        """Initialize Ollama client.

        Args:
            base_url: Ollama API base URL (defaults to config.OLLAMA_BASE_URL)
            embedding_model: Embedding model (defaults to config.OLLAMA_EMBEDDING_MODEL)
            chat_model: Chat model used when params don't name one
            timeout: Request timeout in seconds
            transport: Optional httpx transport (used by tests)
        """
        self.base_url = (base_url or config.OLLAMA_BASE_URL).rstrip("/")
        self.embedding_model = (
            embedding_model or config.EMBEDDING_MODEL or config.OLLAMA_EMBEDDING_MODEL
        )
        self.chat_model = chat_model or config.CHAT_MODEL or config.OLLAMA_CHAT_MODEL
        self.timeout = timeout or config.REQUEST_TIMEOUT
        self.transport = transport

    async def _post(self, path: str, payload: Dict[str, Any], operation: str) -> Dict:
        try:
            async with httpx.AsyncClient(
                timeout=self.timeout, transport=self.transport
            ) as client:
                response = await client.post(f"{self.base_url}{path}", json=payload)
                response.raise_for_status()
                return response.json()
        except httpx.HTTPError as e:
            _raise_provider_error(e, self.provider, operation)
        except ValueError as e:
            logger.error("provider_invalid_json", provider=self.provider, error=str(e))
            raise FatalError(f"{self.provider} returned invalid JSON: {e}") from e

    async def embed(self, texts: Sequence[str]) -> List[List[float]]:
        """Generate embeddings one text at a time, preserving order."""
        embeddings: List[List[float]] = []

        for text in texts:
            logger.debug(
                "ollama_embedding_request",
                model=self.embedding_model,
                prompt_length=len(text),
            )
            data = await self._post(
                "/api/embeddings",
                {"model": self.embedding_model, "prompt": text},
                operation="embeddings",
            )
            embedding = data.get("embedding", [])

            if not embedding:
                raise FatalError("Empty embedding returned from Ollama")

            embeddings.append(embedding)

        return embeddings

    async def generate(
        self, prompt: str, params: GenerationParams
    ) -> GenerationResult:
        """Send a non-streaming chat request to Ollama."""
        model = params.model or self.chat_model
        payload = {
            "model": model,
            "messages": [{"role": "user", "content": prompt}],
            "stream": False,
            "options": {"temperature": params.temperature},
        }

        logger.info(
            "ollama_chat_request",
            model=model,
            prompt_length=len(prompt),
        )

        data = await self._post("/api/chat", payload, operation="chat")
        try:
            text = data["message"]["content"] or ""
        except (KeyError, TypeError) as e:
            raise FatalError(f"Malformed Ollama chat response: {e}") from e

        usage = {}
        if "prompt_eval_count" in data:
            usage["prompt_tokens"] = data["prompt_eval_count"]
        if "eval_count" in data:
            usage["completion_tokens"] = data["eval_count"]
        if usage:
            usage["total_tokens"] = sum(usage.values())

        logger.info(
            "ollama_chat_response",
            model=model,
            response_length=len(text),
        )

        return GenerationResult(
            text=text, model=data.get("model", model), usage=usage
        )


def get_client(provider: str = None):
    """Build the client for the configured provider.

    Args:
        provider: "openai" or "ollama" (default from config)

    Returns:
        A client implementing both Embedder and GenerationClient

    Raises:
        ConfigurationError: If the provider is unknown
    """
    provider = (provider or config.LLM_PROVIDER).lower()

    if provider == "openai":
        return OpenAIClient()
    if provider == "ollama":
        return OllamaClient()

    raise ConfigurationError(
        f"Unknown LLM provider '{provider}' (expected 'openai' or 'ollama')"
    )
