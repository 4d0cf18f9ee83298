import json
from pathlib import Path

import pytest

from crptapi.domain.errors import EncodingError
from crptapi.infrastructure.filesystem.local_fs import LocalFileSystem


@pytest.fixture
def fs():
    return LocalFileSystem()


def test_read_json_document(fs, tmp_path: Path, document_dict):
    path = tmp_path / "doc.json"
    path.write_text(json.dumps(document_dict), encoding="utf-8")

    document = fs.read_document(path)

    assert document.document_id == "doc-001"
    assert document.description.participant_inn == "7700000000"
    assert document.products[0].tnved_code == "6401100000"


def test_read_yaml_document(fs, tmp_path: Path):
    path = tmp_path / "doc.yml"
    path.write_text(
        "document_id: doc-002\n"
        "document_type: LP_INTRODUCE_GOODS\n"
        "participant_inn: '7700000000'\n"
        "description:\n"
        "  participant_inn: '7700000000'\n",
        encoding="utf-8",
    )

    document = fs.read_document(path)

    assert document.document_id == "doc-002"
    assert document.products == ()


def test_invalid_json_raises_encoding_error(fs, tmp_path: Path):
    path = tmp_path / "doc.json"
    path.write_text("{not json", encoding="utf-8")
    with pytest.raises(EncodingError):
        fs.read_document(path)


def test_missing_file(fs, tmp_path: Path):
    with pytest.raises(FileNotFoundError):
        fs.read_document(tmp_path / "nope.json")


def test_read_signature_strips_whitespace(fs, tmp_path: Path):
    path = tmp_path / "doc.sig"
    path.write_text("  c2lnbmF0dXJl\n", encoding="utf-8")
    assert fs.read_signature(path) == "c2lnbmF0dXJl"


def test_non_utf8_document_raises_encoding_error(fs, tmp_path: Path):
    path = tmp_path / "doc.json"
    path.write_bytes(b"\xff\xfe")
    with pytest.raises(EncodingError, match="not valid UTF-8"):
        fs.read_document(path)


def test_non_utf8_signature_raises_encoding_error(fs, tmp_path: Path):
    path = tmp_path / "doc.sig"
    path.write_bytes(b"\xff\xfe")
    with pytest.raises(EncodingError):
        fs.read_signature(path)


def test_yaml_document_with_non_string_keys(fs, tmp_path: Path):
    path = tmp_path / "doc.yaml"
    path.write_text("1: a\nfoo: b\n", encoding="utf-8")
    with pytest.raises(EncodingError, match="Unknown document fields: 1, foo"):
        fs.read_document(path)
