"""Shared fixtures for the docqa test suite."""
import pytest

from tests.fakes import OneHotEmbedder, RecordingGenerator


@pytest.fixture
def embedder() -> OneHotEmbedder:
    return OneHotEmbedder()


@pytest.fixture
def generator() -> RecordingGenerator:
    return RecordingGenerator()


@pytest.fixture
def three_sentences() -> str:
    return "Cats purr softly. Dogs bark loudly. Birds sing early."


@pytest.fixture
def data_file(tmp_path, three_sentences):
    path = tmp_path / "data.txt"
    path.write_text(three_sentences, encoding="utf-8")
    return path
