"""Tests for the plain text document loader."""
import pytest

from docqa.errors import DocumentNotFoundError, ReadError
from docqa.rag.loader import TextLoader


def test_load_reads_whole_file(data_file, three_sentences):
    documents = TextLoader().load(data_file)

    assert len(documents) == 1
    assert documents[0].content == three_sentences
    assert documents[0].metadata["source"] == str(data_file)
    assert documents[0].metadata["char_count"] == len(three_sentences)


def test_load_keeps_non_ascii_text(tmp_path):
    path = tmp_path / "thai.txt"
    path.write_text("สรุปเนื้อหาทั้งหมด", encoding="utf-8")

    [document] = TextLoader().load(path)

    assert document.content == "สรุปเนื้อหาทั้งหมด"


def test_load_all_returns_one_document_per_file(tmp_path):
    first = tmp_path / "one.txt"
    second = tmp_path / "two.txt"
    first.write_text("one", encoding="utf-8")
    second.write_text("two", encoding="utf-8")

    documents = TextLoader().load_all([first, second])

    assert [d.content for d in documents] == ["one", "two"]
    assert [d.source for d in documents] == [str(first), str(second)]


def test_missing_file_raises_not_found(tmp_path):
    with pytest.raises(DocumentNotFoundError) as exc_info:
        TextLoader().load(tmp_path / "missing.txt")

    assert isinstance(exc_info.value, FileNotFoundError)
    assert "missing.txt" in str(exc_info.value)


def test_undecodable_file_raises_read_error(tmp_path):
    path = tmp_path / "latin1.txt"
    path.write_bytes(b"caf\xe9 \xff\xfe")

    with pytest.raises(ReadError):
        TextLoader().load(path)


def test_directory_raises_read_error(tmp_path):
    with pytest.raises(ReadError):
        TextLoader().load(tmp_path)


def test_custom_encoding(tmp_path):
    path = tmp_path / "latin1.txt"
    path.write_bytes("café".encode("latin-1"))

    [document] = TextLoader(encoding="latin-1").load(path)

    assert document.content == "café"
