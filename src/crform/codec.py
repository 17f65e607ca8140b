"""Transport encoding of form documents (``config_changes_payload``)."""

import json
import logging
from typing import Any

logger = logging.getLogger(__name__)


def encode_document(document: dict) -> str:
    return json.dumps(document, ensure_ascii=False)


def decode_document(payload: str | bytes | None) -> dict:
    """Decode a stored payload into a document.

    A missing payload decodes to an empty document. So does a payload that is
    not valid JSON or not a JSON object: the error is logged and the user can
    re-enter the data.
    """
    if payload is None or payload == "" or payload == b"":
        return {}

    try:
        document: Any = json.loads(payload)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        logger.error(f"Error parsing config payload: {e}")
        return {}

    if not isinstance(document, dict):
        logger.error(f"Config payload is a JSON {type(document).__name__}, expected an object")
        return {}

    return document
