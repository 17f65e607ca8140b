"""Project a form schema and a document into a tree of bound views.

Rendering is pure: it reads the document and the error map and never writes
to either. Edits travel back as ``(path, value)`` pairs handled by
:class:`crform.session.FormSession`, or by the instance helpers at the bottom
of this module.
"""

import logging
from typing import Any

from .paths import delete_index, field_path, get_path, join_path, set_path
from .schema import (
    BaseNode,
    CheckboxNode,
    FormSchema,
    InputNode,
    LeafNode,
    SectionNode,
    SelectNode,
)
from .views import FieldView, FormView, InstanceView, SectionView

logger = logging.getLogger(__name__)


class Renderer:
    def __init__(self, document: dict, errors: dict[str, str] | None = None, editable: bool = True):
        self.document = document
        self.errors = errors or {}
        self.editable = editable

    def render(self, node: BaseNode, path: str = "") -> SectionView | FieldView | None:
        """Render ``node`` living in the container at ``path``.

        Returns:
            The node's view, or None when the node is hidden by its
            ``showIf`` dependency or has an unknown type
        """
        if not node.is_visible(self.document, path):
            return None

        match node:
            case SectionNode():
                return self._render_section(node, path)
            case InputNode():
                return self._render_input(node, path)
            case SelectNode():
                return self._render_select(node, path)
            case CheckboxNode():
                return self._render_checkbox(node, path)
            case _:
                logger.warning(f"Unknown form element type: {node.type} (id={node.id!r})")
                return None

    def render_all(self, nodes: list[BaseNode], path: str = "") -> list[SectionView | FieldView]:
        views = []
        for node in nodes:
            view = self.render(node, path)
            if view is not None:
                views.append(view)
        return views

    def _render_section(self, node: SectionNode, path: str) -> SectionView:
        section_path = field_path(path, node.name)

        if node.is_repeatable:
            slot = get_path(self.document, section_path)
            count = len(slot) if isinstance(slot, list) and slot else 1
            can_remove = self.editable and isinstance(slot, list) and len(slot) > 1
            instances = []
            for index in range(count):
                instance_path = join_path(section_path, index)
                instances.append(
                    InstanceView(
                        index=index,
                        path=instance_path,
                        can_remove=can_remove,
                        children=self.render_all(node.children, instance_path),
                    )
                )
        else:
            instances = [
                InstanceView(path=section_path, children=self.render_all(node.children, section_path))
            ]

        return SectionView(
            id=node.id,
            name=node.name,
            path=section_path,
            title=node.title,
            label=node.label,
            help_text=node.help_text,
            repeatable=node.is_repeatable,
            can_add=self.editable and node.is_repeatable,
            error=self.errors.get(section_path),
            instances=instances,
        )

    def _field_view(self, node: LeafNode, path: str, **extra: Any) -> FieldView:
        path = field_path(path, node.name)
        return FieldView(
            kind=node.type,
            id=node.id,
            name=node.name,
            path=path,
            label=node.label,
            help_text=node.help_text,
            placeholder=node.placeholder,
            required=node.required,
            editable=self.editable,
            value=node.bound_value(get_path(self.document, path)),
            error=self.errors.get(path),
            **extra,
        )

    def _render_input(self, node: InputNode, path: str) -> FieldView:
        return self._field_view(node, path, data_type=node.data_type)

    def _render_select(self, node: SelectNode, path: str) -> FieldView:
        return self._field_view(node, path, options=list(node.options), is_multi=node.is_multi)

    def _render_checkbox(self, node: CheckboxNode, path: str) -> FieldView:
        return self._field_view(node, path)


def render_form(
    schema: FormSchema,
    document: dict,
    errors: dict[str, str] | None = None,
    editable: bool = True,
) -> FormView:
    """Render every top-level element of ``schema`` against ``document``."""
    renderer = Renderer(document, errors, editable)
    return FormView(
        page_title=schema.page_title,
        editable=editable,
        elements=renderer.render_all(schema.elements),
        errors=dict(errors or {}),
    )


def add_instance(document: dict, section_path: str, instance: dict | None = None) -> dict:
    """Return a new document with one more instance in the repeatable section at ``section_path``.

    A slot that is not a list (or an empty list) is rendered as one implicit
    instance, so it becomes two instances: the implicit one and the new one.
    """
    slot = get_path(document, section_path)
    new_item = dict(instance or {})
    if isinstance(slot, list) and slot:
        instances = [*slot, new_item]
    else:
        instances = [{}, new_item]
    return set_path(document, section_path, instances)


def remove_instance(document: dict, section_path: str, index: int) -> dict:
    """Return a new document without instance ``index``.

    The document is returned unchanged when removal would leave the section
    without instances or the index does not exist.
    """
    slot = get_path(document, section_path, default=None)
    if not isinstance(slot, list) or len(slot) <= 1:
        logger.debug(f"Refusing to remove the last instance of '{section_path}'")
        return document
    if not 0 <= index < len(slot):
        logger.debug(f"No instance {index} in '{section_path}'")
        return document
    return delete_index(document, section_path, index)
