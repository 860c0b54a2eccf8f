"""Communication schema model and parser.

Public API:
    CommunicationSchema, DirectoryConfig, FileConfig, EventFlow, AgentFile
    parse_and_validate: Text to validated schema
    serialize_schema: Schema to wire JSON
    extract_json: Locate a JSON object inside LLM prose
"""

from docgen.schema.models import (
    AgentFile,
    CommunicationSchema,
    DirectoryConfig,
    EventFlow,
    FileConfig,
)
from docgen.schema.parser import extract_json, parse_and_validate, serialize_schema

__all__ = [
    "AgentFile",
    "CommunicationSchema",
    "DirectoryConfig",
    "EventFlow",
    "FileConfig",
    "extract_json",
    "parse_and_validate",
    "serialize_schema",
]
