from typing import Any, Optional

from fastapi import APIRouter, Depends, HTTPException, Request
from pydantic import BaseModel

from ...codec import decode_document
from ...errors import PathError
from ...initializer import build_document, normalize_document
from ...renderer import render_form
from ...schema import FormSchema, SectionNode
from ...session import FormSession
from ...validator import validate_document
from ...views import FormView

router = APIRouter(prefix="/form", tags=["form"])


class DocumentResponse(BaseModel):
    document: dict


class NormalizeRequest(BaseModel):
    document: Optional[dict] = None
    payload: Optional[str] = None


class RenderRequest(BaseModel):
    document: dict
    errors: dict[str, str] = {}
    editable: bool = True


class ValidateRequest(BaseModel):
    document: dict


class ValidateResponse(BaseModel):
    valid: bool
    errors: dict[str, str]


class FieldChangeRequest(BaseModel):
    document: dict
    path: str
    value: Any = None
    errors: dict[str, str] = {}


class FieldChangeResponse(BaseModel):
    document: dict
    value: Any = None
    errors: dict[str, str]


class AddInstanceRequest(BaseModel):
    document: dict
    path: str


class RemoveInstanceRequest(BaseModel):
    document: dict
    path: str
    index: int


class RemoveInstanceResponse(BaseModel):
    document: dict
    removed: bool


def get_schema(request: Request) -> FormSchema:
    return request.app.state.schema


@router.get("/schema")
def get_form_schema(schema: FormSchema = Depends(get_schema)):
    return schema.model_dump(by_alias=True, exclude_none=True)


@router.post("/initialize", response_model=DocumentResponse)
def initialize_document(schema: FormSchema = Depends(get_schema)):
    return DocumentResponse(document=build_document(schema))


@router.post("/normalize", response_model=DocumentResponse)
def normalize(request: NormalizeRequest, schema: FormSchema = Depends(get_schema)):
    if request.document is not None:
        document = request.document
    elif request.payload:
        document = decode_document(request.payload)
    else:
        return DocumentResponse(document=build_document(schema))
    return DocumentResponse(document=normalize_document(schema, document))


@router.post("/render", response_model=FormView)
def render(request: RenderRequest, schema: FormSchema = Depends(get_schema)):
    return render_form(schema, request.document, request.errors, editable=request.editable)


@router.post("/validate", response_model=ValidateResponse)
def validate(request: ValidateRequest, schema: FormSchema = Depends(get_schema)):
    errors = validate_document(schema, request.document)
    return ValidateResponse(valid=not errors, errors=errors)


@router.post("/change", response_model=FieldChangeResponse)
def change(request: FieldChangeRequest, schema: FormSchema = Depends(get_schema)):
    session = FormSession(schema, request.document)
    session.errors = dict(request.errors)
    try:
        value = session.change(request.path, request.value)
    except PathError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return FieldChangeResponse(document=session.document, value=value, errors=session.errors)


@router.post("/instances/add", response_model=DocumentResponse)
def add_section_instance(request: AddInstanceRequest, schema: FormSchema = Depends(get_schema)):
    session = FormSession(schema, request.document)
    try:
        session.add_instance(request.path)
    except PathError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return DocumentResponse(document=session.document)


@router.post("/instances/remove", response_model=RemoveInstanceResponse)
def remove_section_instance(
    request: RemoveInstanceRequest, schema: FormSchema = Depends(get_schema)
):
    node = schema.find_node(request.path)
    if not isinstance(node, SectionNode) or not node.is_repeatable:
        raise HTTPException(status_code=400, detail=f"'{request.path}' is not a repeatable section")

    session = FormSession(schema, request.document)
    removed = session.remove_instance(request.path, request.index)
    return RemoveInstanceResponse(document=session.document, removed=removed)
