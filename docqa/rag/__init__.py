"""RAG (Retrieval-Augmented Generation) pipeline components.

This package contains modules for:
- Plain text document loading
- Document chunking with overlap
- In-memory FAISS vector index
- Semantic retrieval
- Prompt composition
"""
