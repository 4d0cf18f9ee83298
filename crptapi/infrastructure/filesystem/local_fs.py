"""Reads document and signature files from the local file system.

Documents may be stored as JSON (``.json``) or YAML (``.yaml``/``.yml``).
"""

import json
import logging
from pathlib import Path
from typing import Any, Union

import yaml

from crptapi.domain.errors import EncodingError
from crptapi.domain.models.document import Document

logger = logging.getLogger(__name__)

YAML_SUFFIXES = {".yaml", ".yml"}


class LocalFileSystem:
    """Loads documents and signatures from local files."""

    def read_text(self, file_path: Union[str, Path]) -> str:
        path = Path(file_path)
        logger.debug(f"Attempting to read file: {path}")
        if not path.is_file():
            raise FileNotFoundError(f"File not found: {file_path}")
        try:
            content = path.read_text(encoding="utf-8")
        except UnicodeDecodeError as e:
            raise EncodingError(f"File {path.name} is not valid UTF-8: {e}") from e
        logger.debug(f"Successfully read {len(content)} characters from {path}")
        return content

    def read_document(self, file_path: Union[str, Path]) -> Document:
        """Parses a document file.

        Raises:
            FileNotFoundError: If the file does not exist.
            EncodingError: If the file is not valid UTF-8 JSON/YAML or not a document.
        """
        path = Path(file_path)
        content = self.read_text(path)
        data: Any
        try:
            if path.suffix.lower() in YAML_SUFFIXES:
                data = yaml.safe_load(content)
            else:
                data = json.loads(content)
        except (ValueError, yaml.YAMLError) as e:
            raise EncodingError(f"Cannot parse document file {path.name}: {e}") from e
        return Document.from_dict(data)

    def read_signature(self, file_path: Union[str, Path]) -> str:
        """Reads a detached signature, stripping surrounding whitespace."""
        return self.read_text(file_path).strip()
