import pytest

from crform.schema import FormSchema

SCHEMA = {
    "pageTitle": "Gateway",
    "elements": [
        {
            "type": "Section",
            "id": "service",
            "name": "service",
            "title": "Service",
            "children": [
                {"type": "Input", "id": "service-name", "name": "name", "label": "Name", "required": True},
                {"type": "Input", "id": "service-url", "name": "url", "label": "URL", "dataType": "url"},
                {"type": "Input", "id": "service-retries", "name": "retries", "label": "Retries", "dataType": "number"},
                {"type": "Checkbox", "id": "service-enabled", "name": "enabled", "label": "Enabled"},
                {
                    "type": "Input",
                    "id": "service-owner",
                    "name": "owner",
                    "label": "Owner",
                    "required": True,
                    "dependencies": {"showIf": {"field": "enabled", "value": True}},
                },
            ],
        },
        {
            "type": "Section",
            "id": "routes",
            "name": "routes",
            "title": "Route",
            "isRepeatable": True,
            "children": [
                {"type": "Input", "id": "route-path", "name": "path", "label": "Path", "required": True},
                {
                    "type": "Select",
                    "id": "route-methods",
                    "name": "methods",
                    "label": "Methods",
                    "isMulti": True,
                    "defaultValue": ["GET"],
                    "options": ["GET", "POST"],
                },
            ],
        },
        {
            "type": "Select",
            "id": "protocol",
            "name": "protocol",
            "label": "Protocol",
            "defaultValue": "https",
            "options": [{"value": "http", "label": "HTTP"}, {"value": "https", "label": "HTTPS"}],
        },
    ],
}


@pytest.fixture
def schema_data():
    return SCHEMA


@pytest.fixture
def schema():
    return FormSchema.from_dict(SCHEMA)


@pytest.fixture
def minimal_schema():
    """service{name: required} and routes[]{path}."""
    return FormSchema.from_dict(
        {
            "elements": [
                {
                    "type": "Section",
                    "id": "s",
                    "name": "service",
                    "children": [{"type": "Input", "id": "n", "name": "name", "label": "Name", "required": True}],
                },
                {
                    "type": "Section",
                    "id": "r",
                    "name": "routes",
                    "isRepeatable": True,
                    "children": [{"type": "Input", "id": "p", "name": "path", "label": "Path"}],
                },
            ]
        }
    )
