"""docqa: answer a question about a text file with retrieval-augmented generation."""

__version__ = "0.1.0"
