"""Document import/export as JSON.

Import accepts JSON (and, for hand-written files, YAML). Only files that
look like a document, i.e. carry a resource name and a method list, are
accepted.
"""

import json
import logging
from pathlib import Path

import yaml
from pydantic import ValidationError

from api_doc_builder.document.base import Document

logger = logging.getLogger(__name__)

REQUIRED_KEYS = (("nomeRecurso", "resource_name"), ("metodos", "methods"))


class DocumentImportError(ValueError):
    """Raised when imported content is not a usable document."""


def _load_data(text: str):
    try:
        return json.loads(text)
    except json.JSONDecodeError:
        pass

    try:
        return yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise DocumentImportError(f"Not valid JSON or YAML: {e}") from e


def parse_document(text: str) -> Document:
    """Parse and validate a document from JSON/YAML text."""
    data = _load_data(text)
    if not isinstance(data, dict):
        raise DocumentImportError("Document must be a JSON object")

    for names in REQUIRED_KEYS:
        if not any(name in data for name in names):
            raise DocumentImportError(f"Document is missing the {names[0]!r} field")

    try:
        return Document.model_validate(data)
    except ValidationError as e:
        raise DocumentImportError(f"Document has an invalid shape ({e.error_count()} errors)") from e


def load_document(file_path: Path) -> Document:
    document = parse_document(file_path.read_text(encoding="utf-8"))
    logger.info(f"Loaded document {document.id} with {len(document.methods)} methods from {file_path}")
    return document


def dump_document(document: Document) -> str:
    """Serialize a document losslessly (all fields, lists in order)."""
    return document.model_dump_json(by_alias=True, indent=2)


def default_json_filename(document: Document) -> str:
    return f"{document.resource_name or 'document'}_backup.json"
