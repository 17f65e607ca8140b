"""Validate a document against a form schema.

The traversal mirrors :class:`crform.renderer.Renderer`: the same ``showIf``
resolution, the same field paths and the same implicit first instance for a
repeatable section without a list, so every error lands on a rendered field.
"""

import logging

from .consts import MSG_REQUIRED
from .paths import field_path, get_path, join_path
from .schema import (
    BaseNode,
    CheckboxNode,
    FormSchema,
    InputNode,
    LeafNode,
    SectionNode,
    SelectNode,
    is_empty,
)

logger = logging.getLogger(__name__)


class Validator:
    def __init__(self, document: dict):
        self.document = document
        self.errors: dict[str, str] = {}

    def validate(self, node: BaseNode, path: str = "") -> None:
        if not node.is_visible(self.document, path):
            return

        match node:
            case SectionNode():
                self._validate_section(node, path)
            case InputNode() | SelectNode() | CheckboxNode():
                self._validate_field(node, path)
            case _:
                logger.debug(f"Skipping unknown form element type: {node.type}")

    def validate_all(self, nodes: list[BaseNode], path: str = "") -> None:
        for node in nodes:
            self.validate(node, path)

    def _require(self, node: BaseNode, path: str, value) -> bool:
        if node.required and is_empty(value):
            self.errors[path] = MSG_REQUIRED.format(label=node.display_name(path))
            return False
        return True

    def _validate_section(self, node: SectionNode, path: str) -> None:
        section_path = field_path(path, node.name)
        if node.name:
            self._require(node, section_path, get_path(self.document, section_path))

        if not node.is_repeatable:
            self.validate_all(node.children, section_path)
            return

        slot = get_path(self.document, section_path)
        count = len(slot) if isinstance(slot, list) and slot else 1
        for index in range(count):
            self.validate_all(node.children, join_path(section_path, index))

    def _validate_field(self, node: LeafNode, path: str) -> None:
        path = field_path(path, node.name)
        value = get_path(self.document, path)
        if not self._require(node, path, value):
            return

        message = node.check(value, path)
        if message:
            self.errors[path] = message


def validate_document(schema: FormSchema, document: dict) -> dict[str, str]:
    """Validate ``document`` and return every error keyed by field path.

    Examples:
        With ``service.name`` required, ``{"service": {}}`` yields
        ``{"service.name": "Name is required"}``.
    """
    validator = Validator(document)
    validator.validate_all(schema.elements)
    if validator.errors:
        logger.debug(f"Validation found {len(validator.errors)} error(s)")
    return validator.errors


def is_valid(errors: dict[str, str]) -> bool:
    return not errors
