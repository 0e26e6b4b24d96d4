"""Application configuration with sensible defaults."""
import os
from pathlib import Path

# Paths
DATA_FILE = Path(os.getenv("DATA_FILE", "data.txt"))

# Provider configuration ("openai" or "ollama")
LLM_PROVIDER = os.getenv("LLM_PROVIDER", "openai")
OPENAI_BASE_URL = os.getenv("OPENAI_BASE_URL", "https://api.openai.com/v1")
OLLAMA_BASE_URL = os.getenv("OLLAMA_BASE_URL", "http://localhost:11434")
# Per-provider model defaults; CHAT_MODEL / EMBEDDING_MODEL override them
OPENAI_CHAT_MODEL = "gpt-4o-mini"
OPENAI_EMBEDDING_MODEL = "text-embedding-ada-002"
OLLAMA_CHAT_MODEL = "gemma3:12b"
OLLAMA_EMBEDDING_MODEL = "mxbai-embed-large:latest"
CHAT_MODEL = os.getenv("CHAT_MODEL") or None
EMBEDDING_MODEL = os.getenv("EMBEDDING_MODEL") or None
TEMPERATURE = float(os.getenv("TEMPERATURE", "0.5"))
REQUEST_TIMEOUT = float(os.getenv("REQUEST_TIMEOUT", "60.0"))
EMBEDDING_BATCH_SIZE = int(os.getenv("EMBEDDING_BATCH_SIZE", "512"))

# The API key is read at request time, see llm_client.get_api_key()
OPENAI_API_KEY_ENV = "OPENAI_API_KEY"

# RAG parameters (character-based to avoid tokenizer inconsistencies)
CHUNK_SIZE = int(os.getenv("CHUNK_SIZE", "200"))
CHUNK_OVERLAP = int(os.getenv("CHUNK_OVERLAP", "20"))
RETRIEVAL_TOP_K = int(os.getenv("RETRIEVAL_TOP_K", "8"))

# Question asked when none is given on the command line
QUESTION = os.getenv("QUESTION", "สรุปเนื้อหาทั้งหมด และ ข้อคิด")

# Logging
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
