"""Shared fixtures for the DocGen test suite."""

from __future__ import annotations

import copy
import json
from typing import Any

import pytest

SAMPLE_SCHEMA: dict[str, Any] = {
    "version": "1.0",
    "project_name": "Todo App",
    "description": "A todo list with a REST API",
    "global_communication_protocols": {"http": "REST over HTTPS"},
    "directory_structure": {
        "src/": {
            "criticality": 9,
            "description": "Application source",
            "files": {
                "main.py": {
                    "criticality": 10,
                    "type": "entrypoint",
                    "purpose": "Starts the API server",
                    "dependencies": ["routes.py", "fastapi"],
                    "communicates": {"routes.py": "registers routers"},
                },
                "routes.py": {
                    "criticality": 8,
                    "type": "module",
                    "purpose": "HTTP routes",
                    "dependencies": ["models.py"],
                },
                "models.py": {
                    "criticality": 7,
                    "type": "module",
                    "purpose": "Data models",
                    "dependencies": [],
                },
                "utils.py": {
                    "criticality": 3,
                    "type": "module",
                    "purpose": "Helpers",
                    "dependencies": [],
                },
            },
            "receives_from": ["client"],
            "sends_to": ["database"],
            "protocols": ["http"],
        },
        "tests/": {
            "criticality": 5,
            "description": "Test suite",
            "files": {
                "test_api.py": {
                    "criticality": 4,
                    "type": "test",
                    "purpose": "API tests",
                    "dependencies": [],
                },
            },
        },
    },
    "event_flows": {
        "src/": [
            {"name": "create_todo", "description": "POST /todos stores a todo"},
        ],
    },
    "communication_matrix": {"src/": ["database"]},
    "platform_specific": {},
    "error_propagation": "Errors are returned as JSON problem documents",
}


@pytest.fixture
def sample_schema_dict() -> dict[str, Any]:
    """A valid communication schema as plain data (deep copy per test)."""
    return copy.deepcopy(SAMPLE_SCHEMA)


@pytest.fixture
def sample_schema_text(sample_schema_dict: dict[str, Any]) -> str:
    """The sample schema wrapped in prose and a json fence, as an LLM returns it."""
    body = json.dumps(sample_schema_dict, indent=2)
    return f"Here is the communication schema:\n\n```json\n{body}\n```\n\nLet me know if you need changes."
