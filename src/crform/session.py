"""Form session: the one owner of a document and its error map."""

import logging
from typing import Any, Optional

from .codec import decode_document, encode_document
from .errors import FormValidationError, PathError, ReadOnlyFormError
from .initializer import build_document, new_instance, normalize_document
from .models import ChangeRequest
from .paths import MISSING, get_path, set_path
from .renderer import add_instance, remove_instance, render_form
from .schema import FormSchema, LeafNode, SectionNode
from .validator import validate_document
from .views import FormView

logger = logging.getLogger(__name__)


class FormSession:
    """Editing state for one form.

    The session holds the current document snapshot and error map. Every
    edit builds a complete new snapshot before replacing the current one, so
    a failed edit leaves the session as it was.

    Example:
        >>> session = FormSession.new(schema)  # doctest: +SKIP
        >>> session.change("service.name", "orders")  # doctest: +SKIP
        >>> session.validate()  # doctest: +SKIP
        {}
    """

    def __init__(self, schema: FormSchema, document: Optional[dict] = None, editable: bool = True):
        self.schema = schema
        self.document: dict = document if document is not None else build_document(schema)
        self.errors: dict[str, str] = {}
        self.editable = editable

    @classmethod
    def new(cls, schema: FormSchema) -> "FormSession":
        return cls(schema, build_document(schema))

    @classmethod
    def from_payload(
        cls,
        schema: FormSchema,
        payload: str | None,
        editable: bool = True,
    ) -> "FormSession":
        """Open a session over a stored ``config_changes_payload``.

        An empty payload starts from the schema defaults; an unreadable one
        degrades to an empty document which is then normalized.
        """
        if not payload:
            return cls(schema, build_document(schema), editable=editable)
        document = normalize_document(schema, decode_document(payload))
        return cls(schema, document, editable=editable)

    @classmethod
    def from_change_request(
        cls,
        schema: FormSchema,
        change_request: ChangeRequest,
        editable: bool = True,
    ) -> "FormSession":
        return cls.from_payload(schema, change_request.config_changes_payload, editable=editable)

    @property
    def is_valid(self) -> bool:
        return not self.errors

    def render(self) -> FormView:
        return render_form(self.schema, self.document, self.errors, editable=self.editable)

    def validate(self) -> dict[str, str]:
        self.errors = validate_document(self.schema, self.document)
        return self.errors

    def _ensure_editable(self) -> None:
        if not self.editable:
            raise ReadOnlyFormError("This form is read-only")

    def change(self, path: str, raw: Any) -> Any:
        """Apply a user edit reported by a field.

        The raw value is coerced by the field bound to ``path`` (a number
        input keeps its previous value on non-numeric text), committed into
        a new document snapshot, and the field's error is cleared.

        Returns:
            The value actually stored

        Raises:
            ReadOnlyFormError: If the session is not editable
            PathError: If the path cannot be written
        """
        self._ensure_editable()

        node = self.schema.find_node(path)
        value = raw
        if isinstance(node, LeafNode):
            value = node.coerce(raw, get_path(self.document, path))
        elif node is None:
            logger.debug(f"No schema field bound to '{path}', storing raw value")

        self.document = set_path(self.document, path, value)
        if path in self.errors:
            self.errors = {k: v for k, v in self.errors.items() if k != path}
        return value

    def add_instance(self, section_path: str) -> int:
        """Append an instance to the repeatable section at ``section_path``.

        Returns:
            Number of instances after the addition
        """
        self._ensure_editable()

        node = self.schema.find_node(section_path)
        if not isinstance(node, SectionNode) or not node.is_repeatable:
            raise PathError(f"'{section_path}' is not a repeatable section")

        self.document = add_instance(self.document, section_path, new_instance(node))
        return len(get_path(self.document, section_path))

    def remove_instance(self, section_path: str, index: int) -> bool:
        """Remove instance ``index``; the last remaining instance is kept.

        Returns:
            True when an instance was removed
        """
        self._ensure_editable()

        document = remove_instance(self.document, section_path, index)
        if document is self.document:
            return False

        self.document = document
        prefix = f"{section_path}."
        self.errors = {k: v for k, v in self.errors.items() if not k.startswith(prefix)}
        return True

    def value(self, path: str, default: Any = None) -> Any:
        value = get_path(self.document, path)
        return default if value is MISSING else value

    def payload(self) -> str:
        return encode_document(self.document)

    def _check_before_send(self) -> str:
        errors = self.validate()
        if errors:
            logger.info(f"Submission blocked by {len(errors)} invalid field(s)")
            raise FormValidationError(errors)
        return self.payload()

    def submit(self, client, title: str, team_id: int) -> ChangeRequest:
        """Validate and create a change request from the document.

        Raises:
            FormValidationError: If any field is invalid; nothing is sent
        """
        self._ensure_editable()
        payload = self._check_before_send()
        return client.create_change_request(title, payload, team_id)

    def save(self, client, cr_id: int, title: str) -> ChangeRequest:
        """Validate and update an existing change request with the document."""
        self._ensure_editable()
        payload = self._check_before_send()
        return client.update_change_request(cr_id, title, payload)
