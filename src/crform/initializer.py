"""Build and normalize documents so they match the shape of a form schema."""

import copy
import logging
from typing import Any, Iterable

from .paths import MISSING
from .schema import BaseNode, FormSchema, LeafNode, SectionNode, SelectNode, is_empty

logger = logging.getLogger(__name__)


def build_document(schema: FormSchema) -> dict:
    """Create the default document for a brand-new form.

    Non-repeatable sections become mappings, repeatable sections a list with
    one instance, and every field holds its initial value.

    Examples:
        A schema with ``service{name}`` and repeatable ``routes{path}`` gives
        ``{"service": {"name": ""}, "routes": [{"path": ""}]}``.
    """
    document: dict = {}
    _seed(schema.elements, document)
    return document


def _seed(nodes: Iterable[BaseNode], container: dict) -> None:
    for node in nodes:
        if isinstance(node, SectionNode):
            if not node.name:
                _seed(node.children, container)
                continue
            instance: dict = {}
            _seed(node.children, instance)
            container[node.name] = [instance] if node.is_repeatable else instance
        elif isinstance(node, LeafNode):
            container[node.name] = copy.deepcopy(node.initial_value())


def normalize_document(schema: FormSchema, document: Any) -> dict:
    """Return a copy of a loaded document coerced into the schema's shape.

    - a repeatable section holding a mapping is wrapped into a one-item list
    - an absent or empty repeatable section becomes ``[{}]``
    - non-repeatable sections are kept when they are mappings
    - Select defaults are filled into empty selects
    """
    if not isinstance(document, dict):
        logger.warning(f"Expected a mapping document, got {type(document).__name__}; starting empty")
        document = {}

    result = copy.deepcopy(document)
    _normalize(schema.elements, result)
    _apply_defaults(schema.elements, result)
    return result


def _normalize(nodes: Iterable[BaseNode], container: dict) -> None:
    for node in nodes:
        if not isinstance(node, SectionNode):
            continue
        if not node.name:
            _normalize(node.children, container)
            continue

        slot = container.get(node.name, MISSING)
        if node.is_repeatable:
            container[node.name] = instances = _as_instances(node, slot)
            for instance in instances:
                _normalize(node.children, instance)
        elif slot is not MISSING:
            if not isinstance(slot, dict):
                logger.warning(f"Section '{node.name}' is not a mapping; resetting it")
                slot = container[node.name] = {}
            _normalize(node.children, slot)


def _as_instances(node: SectionNode, slot: Any) -> list[dict]:
    if isinstance(slot, list):
        return [item if isinstance(item, dict) else {} for item in slot] or [{}]
    if isinstance(slot, dict):
        return [slot]
    if not is_empty(slot) and slot is not False:
        logger.warning(f"Repeatable section '{node.name}' holds a scalar; replacing it")
    return [{}]


def apply_select_defaults(schema: FormSchema, document: dict) -> dict:
    """Return a copy of ``document`` with Select defaults written into empty selects."""
    result = copy.deepcopy(document)
    _apply_defaults(schema.elements, result)
    return result


def new_instance(section: SectionNode) -> dict:
    """Create an instance for a repeatable section: empty apart from Select defaults."""
    instance: dict = {}
    _apply_defaults(section.children, instance)
    return instance


def _apply_defaults(nodes: Iterable[BaseNode], container: dict) -> None:
    for node in nodes:
        if isinstance(node, SectionNode):
            if not node.name:
                _apply_defaults(node.children, container)
                continue
            slot = container.get(node.name)
            if isinstance(slot, dict):
                _apply_defaults(node.children, slot)
            elif isinstance(slot, list):
                for instance in slot:
                    if isinstance(instance, dict):
                        _apply_defaults(node.children, instance)
        elif isinstance(node, SelectNode) and node.default_value is not None:
            if is_empty(container.get(node.name, MISSING)):
                container[node.name] = copy.deepcopy(node.default_value)
