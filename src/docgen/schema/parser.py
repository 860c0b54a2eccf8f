"""Parsing and validation of communication schema text.

The schema stage returns free text that should contain one JSON object.
This module extracts that object, validates it against CommunicationSchema,
and sorts failures into two kinds:

- ParseError: no JSON, malformed JSON, missing required fields, wrong types
- SchemaValidationError: structurally complete, but directory_structure is
  empty, a criticality lies outside [0, 10], or a directory key has an
  empty, `.` or `..` segment
"""

from __future__ import annotations

import json
import re

import structlog
from pydantic import ValidationError

from docgen.errors import ParseError, SchemaValidationError
from docgen.schema.models import CommunicationSchema

logger = structlog.get_logger(__name__)

# pydantic error types that mean "present and well-typed, but not allowed"
_SEMANTIC_ERROR_TYPES = frozenset(
    {"greater_than_equal", "less_than_equal", "too_short", "unsafe_path"}
)


def parse_and_validate(text: str) -> CommunicationSchema:
    """Parse schema text into a validated CommunicationSchema.

    Args:
        text: Raw schema stage output, possibly wrapped in prose or fences

    Returns:
        Validated CommunicationSchema instance

    Raises:
        ParseError: If the text does not structurally contain a schema
        SchemaValidationError: If the schema violates range or emptiness rules

    Example:
        >>> schema = parse_and_validate(stage_output)
        >>> sorted(schema.directory_structure)
        ['src/']
    """
    json_str = extract_json(text)
    if json_str is None:
        raise ParseError("No JSON object found in communication schema output")

    try:
        data = json.loads(json_str)
    except json.JSONDecodeError as e:
        raise ParseError(f"Invalid JSON in communication schema: {e}") from e

    if not isinstance(data, dict):
        raise ParseError("Communication schema root must be a JSON object")

    try:
        schema = CommunicationSchema.model_validate(data)
    except ValidationError as e:
        errors = e.errors()
        locations = [_format_location(err["loc"]) for err in errors]
        if all(err["type"] in _SEMANTIC_ERROR_TYPES for err in errors):
            violations = [
                f"{loc}: {err['msg']}" for loc, err in zip(locations, errors)
            ]
            logger.warning("schema_validation_failed", violations=violations)
            raise SchemaValidationError(
                f"Communication schema failed validation: {'; '.join(violations)}",
                violations=violations,
            ) from e
        structural = [
            f"{loc}: {err['msg']}"
            for loc, err in zip(locations, errors)
            if err["type"] not in _SEMANTIC_ERROR_TYPES
        ]
        logger.warning("schema_parse_failed", errors=structural)
        raise ParseError(
            f"Communication schema is missing or has malformed fields: {'; '.join(structural)}",
            locations=locations,
        ) from e

    logger.info(
        "schema_parsed",
        project_name=schema.project_name,
        directory_count=len(schema.directory_structure),
    )
    return schema


def serialize_schema(schema: CommunicationSchema) -> str:
    """Serialize a schema back to its wire JSON form.

    Uses wire field names (``type`` for file types) and omits unset optional
    fields, so that ``parse_and_validate(serialize_schema(s)) == s``.

    Args:
        schema: Schema to serialize

    Returns:
        JSON string
    """
    return schema.model_dump_json(by_alias=True, exclude_none=True, indent=2)


def extract_json(text: str) -> str | None:
    """Extract a JSON object from text that may contain markdown or prose.

    Strategies, in order:
    1. A ```json fenced block
    2. Any fenced block whose body looks like an object
    3. The first balanced ``{...}`` outside of string literals

    Args:
        text: Text that may contain JSON

    Returns:
        Extracted JSON string or None if not found
    """
    markdown_match = re.search(r"```json\s*\n(.*?)\n\s*```", text, re.DOTALL | re.IGNORECASE)
    if markdown_match:
        return markdown_match.group(1).strip()

    code_block_match = re.search(r"```\s*\n(.*?)\n\s*```", text, re.DOTALL)
    if code_block_match:
        potential_json = code_block_match.group(1).strip()
        if potential_json.startswith("{") and potential_json.endswith("}"):
            return potential_json

    first_brace = text.find("{")
    if first_brace == -1:
        return None

    brace_count = 0
    in_string = False
    escape_next = False

    for i in range(first_brace, len(text)):
        char = text[i]

        if escape_next:
            escape_next = False
            continue

        if char == "\\":
            escape_next = True
            continue

        if char == '"':
            in_string = not in_string
            continue

        if not in_string:
            if char == "{":
                brace_count += 1
            elif char == "}":
                brace_count -= 1
                if brace_count == 0:
                    return text[first_brace : i + 1]

    # Unbalanced: hand the remainder to json.loads so the error is reported
    return text[first_brace:]


def _format_location(loc: tuple[int | str, ...]) -> str:
    return ".".join(str(part) for part in loc)
