from __future__ import annotations

from typing import Annotated, Any, Literal, Optional, Union

from pydantic import BaseModel, Field

from .enums import DataType
from .schema import Option


class FieldView(BaseModel):
    """A field bound to its value and error, ready for a frontend to draw."""

    kind: Literal["Input", "Select", "Checkbox"]
    id: str
    name: str
    path: str
    label: str = ""
    help_text: Optional[str] = None
    placeholder: Optional[str] = None
    required: bool = False
    editable: bool = True
    value: Any = None
    error: Optional[str] = None
    data_type: Optional[DataType] = None
    options: list[Option] = []
    is_multi: bool = False


class InstanceView(BaseModel):
    index: Optional[int] = None
    path: str
    can_remove: bool = False
    children: list[NodeView] = []


class SectionView(BaseModel):
    kind: Literal["Section"] = "Section"
    id: str
    name: Optional[str] = None
    path: str
    title: str = ""
    label: str = ""
    help_text: Optional[str] = None
    repeatable: bool = False
    can_add: bool = False
    error: Optional[str] = None
    instances: list[InstanceView] = []


NodeView = Annotated[Union[SectionView, FieldView], Field(discriminator="kind")]

InstanceView.model_rebuild()


class FormView(BaseModel):
    page_title: str = ""
    editable: bool = True
    elements: list[NodeView] = []
    errors: dict[str, str] = {}
