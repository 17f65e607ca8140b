"""Declarative form schema: a tree of Section, Input, Select and Checkbox nodes."""

from __future__ import annotations

import json
import logging
import math
import re
from importlib import resources
from pathlib import Path
from typing import Annotated, Any, Iterable, Literal, Optional, Union

from pydantic import (
    BaseModel,
    ConfigDict,
    Discriminator,
    Field,
    Tag,
    ValidationError,
    field_validator,
    model_validator,
)
from pydantic.alias_generators import to_camel

from .consts import (
    BUNDLED_SCHEMA,
    MSG_INVALID_URL,
    URL_PATTERN,
)
from .enums import DataType, NodeType
from .errors import SchemaException
from .paths import MISSING, field_path, get_path, is_index, split_path
from .utils import parse_number

logger = logging.getLogger(__name__)

_URL_RE = re.compile(URL_PATTERN)


def is_empty(value: Any) -> bool:
    """Return True for values a required field must not hold.

    Examples:
        >>> [is_empty(v) for v in (MISSING, None, "", [], 0, False)]
        [True, True, True, True, False, False]
    """
    if value is MISSING or value is None:
        return True
    if isinstance(value, str):
        return value == ""
    if isinstance(value, (list, tuple)):
        return len(value) == 0
    if isinstance(value, float):
        return math.isnan(value)
    return False


def _strictly_equal(left: Any, right: Any) -> bool:
    if isinstance(left, bool) or isinstance(right, bool):
        return isinstance(left, bool) and isinstance(right, bool) and left == right
    if isinstance(left, (int, float)) and isinstance(right, (int, float)):
        return left == right
    return type(left) is type(right) and left == right


class _SchemaModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
    )


class ShowIf(_SchemaModel):
    field: str
    value: Any = None

    def is_satisfied(self, document: dict, path: str) -> bool:
        """Check the predicate for a node living in the container at ``path``.

        The field is looked up next to the node first, then from the
        document root.
        """
        actual = get_path(document, field_path(path, self.field))
        if actual is MISSING:
            actual = get_path(document, self.field)
        return _strictly_equal(actual, self.value)


class Dependencies(_SchemaModel):
    show_if: Optional[ShowIf] = None


class Option(_SchemaModel):
    value: str
    label: str = ""

    @model_validator(mode="before")
    @classmethod
    def from_plain_value(cls, data: Any) -> Any:
        # Select values are stored as strings, so option values are too.
        if isinstance(data, (str, int, float)):
            return {"value": str(data), "label": str(data)}
        if isinstance(data, dict) and "value" in data:
            value = "" if data["value"] is None else str(data["value"])
            return {**data, "value": value, "label": str(data.get("label") or value)}
        return data


class BaseNode(_SchemaModel):
    id: str = ""
    name: Optional[str] = None
    label: str = ""
    help_text: Optional[str] = None
    placeholder: Optional[str] = None
    required: bool = False
    is_repeatable: bool = False
    dependencies: Optional[Dependencies] = None

    @model_validator(mode="before")
    @classmethod
    def flatten_props(cls, data: Any) -> Any:
        if isinstance(data, dict) and isinstance(data.get("props"), dict):
            flat = {k: v for k, v in data.items() if k != "props"}
            for key, value in data["props"].items():
                flat.setdefault(key, value)
            return flat
        return data

    @property
    def show_if(self) -> ShowIf | None:
        return self.dependencies.show_if if self.dependencies else None

    def is_visible(self, document: dict, path: str) -> bool:
        show_if = self.show_if
        return show_if is None or show_if.is_satisfied(document, path)

    def display_name(self, path: str) -> str:
        return self.label or path


class LeafNode(BaseNode):
    """Base for nodes bound to a single value in the document."""

    @model_validator(mode="after")
    def check_leaf(self) -> "LeafNode":
        if not self.name:
            raise ValueError(f"{self.type} node '{self.id}' must have a name")
        if self.is_repeatable:
            raise ValueError(f"Only sections can be repeatable, got {self.type} node '{self.id}'")
        return self

    def empty_value(self) -> Any:
        return ""

    def initial_value(self) -> Any:
        return self.empty_value()

    def bound_value(self, value: Any) -> Any:
        """Value shown to the user for a stored ``value``."""
        if value is MISSING or value is None:
            return self.empty_value()
        return value

    def coerce(self, raw: Any, previous: Any = MISSING) -> Any:
        return "" if raw is None else raw

    def check(self, value: Any, path: str) -> str | None:
        """Return a format error for a non-empty value, or None."""
        return None


class InputNode(LeafNode):
    type: Literal["Input"] = "Input"
    data_type: DataType = DataType.TEXT

    def coerce(self, raw: Any, previous: Any = MISSING) -> Any:
        if self.data_type != DataType.NUMBER:
            return "" if raw is None else str(raw)

        fallback = "" if previous is MISSING else previous
        if raw is None or raw == "":
            return ""
        if isinstance(raw, bool):
            return fallback
        if isinstance(raw, (int, float)):
            return raw if math.isfinite(raw) else fallback
        number = parse_number(str(raw))
        return fallback if number is None else number

    def check(self, value: Any, path: str) -> str | None:
        if self.data_type != DataType.URL or is_empty(value):
            return None
        if not isinstance(value, str) or not _URL_RE.match(value):
            return MSG_INVALID_URL
        return None


class SelectNode(LeafNode):
    type: Literal["Select"] = "Select"
    options: list[Option] = Field(default_factory=list)
    is_multi: bool = False
    default_value: Any = None

    def empty_value(self) -> Any:
        return [] if self.is_multi else ""

    def initial_value(self) -> Any:
        if self.default_value is not None:
            return self.default_value
        return self.empty_value()

    def bound_value(self, value: Any) -> Any:
        if self.is_multi:
            return value if isinstance(value, list) else []
        return super().bound_value(value)

    def coerce(self, raw: Any, previous: Any = MISSING) -> Any:
        if not self.is_multi:
            return "" if raw is None else str(raw)
        if raw is None or raw == "":
            return []
        if isinstance(raw, (list, tuple)):
            return [str(item) for item in raw]
        return [str(raw)]


class CheckboxNode(LeafNode):
    type: Literal["Checkbox"] = "Checkbox"

    def empty_value(self) -> Any:
        return False

    def coerce(self, raw: Any, previous: Any = MISSING) -> Any:
        if isinstance(raw, str):
            return raw.strip().lower() in ("true", "1", "on", "yes")
        return bool(raw)


class UnknownNode(BaseNode):
    """Node with an unrecognised type. It renders and validates as nothing."""

    type: str


class SectionNode(BaseNode):
    type: Literal["Section"] = "Section"
    title: str = ""
    children: list[SchemaNode] = Field(default_factory=list)

    @field_validator("children")
    @classmethod
    def unique_child_names(cls, children: list[BaseNode]) -> list[BaseNode]:
        _check_unique_names(children)
        return children

    @model_validator(mode="after")
    def check_repeatable_name(self) -> "SectionNode":
        if self.is_repeatable and not self.name:
            raise ValueError(f"Repeatable section '{self.id}' must have a name")
        return self

    def display_name(self, path: str) -> str:
        return self.label or self.title or path


_NODE_TYPES = {t.value for t in NodeType}


def _node_kind(value: Any) -> str:
    kind = value.get("type") if isinstance(value, dict) else getattr(value, "type", None)
    return kind if kind in _NODE_TYPES else "Unknown"


SchemaNode = Annotated[
    Union[
        Annotated[SectionNode, Tag("Section")],
        Annotated[InputNode, Tag("Input")],
        Annotated[SelectNode, Tag("Select")],
        Annotated[CheckboxNode, Tag("Checkbox")],
        Annotated[UnknownNode, Tag("Unknown")],
    ],
    Discriminator(_node_kind),
]

SectionNode.model_rebuild()


def _check_unique_names(nodes: Iterable[BaseNode]) -> None:
    seen: set[str] = set()
    for node in _named_nodes(nodes):
        if node.name in seen:
            raise ValueError(f"Duplicate field name '{node.name}' among sibling nodes")
        seen.add(node.name)


def _named_nodes(nodes: Iterable[BaseNode]) -> Iterable[BaseNode]:
    # Children of an anonymous section share their parent's namespace.
    for node in nodes:
        if node.name:
            yield node
        elif isinstance(node, SectionNode):
            yield from _named_nodes(node.children)


class FormSchema(_SchemaModel):
    page_title: str = ""
    elements: list[SchemaNode] = Field(default_factory=list)

    @field_validator("elements")
    @classmethod
    def unique_element_names(cls, elements: list[BaseNode]) -> list[BaseNode]:
        _check_unique_names(elements)
        return elements

    @classmethod
    def from_dict(cls, data: Any) -> "FormSchema":
        """Build a schema from parsed JSON.

        Raises:
            SchemaException: If the data does not describe a valid form
        """
        if not isinstance(data, dict):
            raise SchemaException("Form schema must be a JSON object")

        try:
            return cls.model_validate(data)
        except ValidationError as e:
            error_lines = ["Form schema validation failed:"]
            for error in e.errors():
                loc = " -> ".join(str(item) for item in error["loc"])
                error_lines.append(f"  - {loc}: {error['msg']}" if loc else f"  - {error['msg']}")
            raise SchemaException("\n".join(error_lines)) from e

    def find_node(self, path: str) -> BaseNode | None:
        """Return the node bound to ``path``, skipping repeatable instance indexes.

        Examples:
            >>> schema.find_node("routes.0.path").name  # doctest: +SKIP
            'path'
        """
        segments = split_path(path)
        nodes: list[BaseNode] = list(self.elements)
        node: BaseNode | None = None
        i = 0
        while i < len(segments):
            node = _find_child(nodes, segments[i])
            if node is None:
                return None
            i += 1
            if isinstance(node, SectionNode):
                if node.is_repeatable and i < len(segments) and is_index(segments[i]):
                    i += 1
                nodes = list(node.children)
            elif i < len(segments):
                return None
        return node


def _find_child(nodes: Iterable[BaseNode], name: str) -> BaseNode | None:
    for node in nodes:
        if node.name == name:
            return node
        if not node.name and isinstance(node, SectionNode):
            found = _find_child(node.children, name)
            if found is not None:
                return found
    return None


def load_schema(path: str | Path) -> FormSchema:
    """Load a form schema from a JSON file.

    Args:
        path: JSON file with shape ``{"pageTitle": ..., "elements": [...]}``

    Returns:
        Parsed FormSchema

    Raises:
        SchemaException: If the file is missing, unreadable or malformed
    """
    schema_path = Path(path)
    if not schema_path.is_file():
        raise SchemaException(f"Form schema not found: {schema_path}")

    try:
        data = json.loads(schema_path.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError) as e:
        raise SchemaException(f"Cannot read form schema {schema_path}: {e}") from e
    except json.JSONDecodeError as e:
        raise SchemaException(f"Invalid JSON in form schema {schema_path}: {e}") from e

    schema = FormSchema.from_dict(data)
    logger.debug(f"Loaded form schema '{schema.page_title}' from {schema_path}")
    return schema


def load_bundled_schema() -> FormSchema:
    """Load the API configuration form shipped with the package."""
    source = resources.files("crform").joinpath("schemas").joinpath(BUNDLED_SCHEMA)
    try:
        data = json.loads(source.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        raise SchemaException(f"Cannot load bundled form schema: {e}") from e
    return FormSchema.from_dict(data)


def resolve_schema(schema_file: str | Path | None = None) -> FormSchema:
    """Load ``schema_file`` when given, otherwise the bundled schema."""
    if schema_file:
        return load_schema(schema_file)
    return load_bundled_schema()
