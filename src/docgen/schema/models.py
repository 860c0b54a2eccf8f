"""Communication schema models for DocGen.

The communication schema is the one artifact that crosses from free LLM
text into typed data. It describes every directory of the planned
repository, the files inside it, how those files talk to each other, and
the event flows that run through each directory.

All models ignore unknown keys: LLM output routinely carries extra
commentary fields that have no bearing on rendering.
"""

from __future__ import annotations

from typing import Any, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic_core import PydanticCustomError

# Sections the pipeline carries through without interpreting
FreeForm = Union[dict[str, Any], list[Any], str]

CRITICALITY_MIN = 0
CRITICALITY_MAX = 10

_UNSAFE_SEGMENTS = frozenset({"", ".", ".."})


def normalize_directory_path(path: str) -> str:
    """Turn a schema directory key into a repository-relative directory.

    ``"./src/"`` and ``"/src"`` both become ``"src"``; the repository root
    (``""``, ``"/"``, ``"."`` or ``"./"``) becomes ``""``.
    """
    normalized = path.strip().strip("/")
    while normalized.startswith("./"):
        normalized = normalized[2:].lstrip("/")
    if normalized == ".":
        return ""
    return normalized


def _check_directory_keys(
    directories: dict[str, Any] | None, allow_root: bool
) -> dict[str, Any] | None:
    """Reject directory keys that would escape or collapse the repository tree.

    After normalisation every segment must be a real name: no ``.``, ``..``
    or empty segment. Only top-level keys may name the repository root.
    """
    if directories is None:
        return directories

    for key in directories:
        normalized = normalize_directory_path(key)
        if not normalized:
            if allow_root:
                continue
            raise PydanticCustomError(
                "unsafe_path",
                "nested directory name {key} is empty",
                {"key": repr(key)},
            )
        if any(segment.strip() in _UNSAFE_SEGMENTS for segment in normalized.split("/")):
            raise PydanticCustomError(
                "unsafe_path",
                "directory key {key} contains an empty, '.' or '..' segment",
                {"key": repr(key)},
            )
    return directories


class FileConfig(BaseModel):
    """A single file inside a directory.

    Attributes:
        criticality: Importance to system stability (0-10)
        file_type: Type tag, serialized as ``type``
        purpose: What the file is for
        dependencies: Names of files or modules this file depends on
        communicates: Optional mapping of target to interaction detail
        triggers: Optional events or actions this file triggers
        modifies: Optional resources this file modifies
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    criticality: int = Field(..., ge=CRITICALITY_MIN, le=CRITICALITY_MAX)
    file_type: str = Field(..., alias="type", description="File type tag")
    purpose: str = Field(..., description="File purpose")
    dependencies: list[str] = Field(..., description="File dependencies")
    communicates: dict[str, str] | None = Field(
        default=None, description="Communication target to detail mapping"
    )
    triggers: list[str] | None = Field(default=None)
    modifies: list[str] | None = Field(default=None)


class DirectoryConfig(BaseModel):
    """A directory of the planned repository.

    Attributes:
        criticality: Importance to system stability (0-10)
        description: What the directory holds
        files: Mapping of file name to file configuration
        directories: Optional nested subdirectories keyed by relative name
        receives_from: Optional upstream directories or services
        sends_to: Optional downstream directories or services
        protocols: Optional protocols spoken by this directory
    """

    model_config = ConfigDict(extra="ignore")

    criticality: int = Field(..., ge=CRITICALITY_MIN, le=CRITICALITY_MAX)
    description: str = Field(..., description="Directory description")
    files: dict[str, FileConfig] = Field(..., description="Files in this directory")
    directories: dict[str, DirectoryConfig] | None = Field(default=None)
    receives_from: list[str] | None = Field(default=None)
    sends_to: list[str] | None = Field(default=None)
    protocols: list[str] | None = Field(default=None)

    @field_validator("directories")
    @classmethod
    def validate_directory_names(
        cls, value: dict[str, DirectoryConfig] | None
    ) -> dict[str, DirectoryConfig] | None:
        return _check_directory_keys(value, allow_root=False)


class EventFlow(BaseModel):
    """A named event flow running through a directory."""

    model_config = ConfigDict(extra="ignore")

    name: str
    description: str


class CommunicationSchema(BaseModel):
    """Structured description of directory/file relationships and event flows.

    Attributes:
        version: Schema version string
        project_name: Project the schema describes
        description: Short project description
        global_communication_protocols: Protocols shared across the system
        directory_structure: Directory path to configuration (non-empty)
        event_flows: Directory path to ordered event flows
        communication_matrix: Who-talks-to-whom overview
        platform_specific: Platform-specific notes
        error_propagation: Error propagation rules
    """

    model_config = ConfigDict(extra="ignore")

    version: str
    project_name: str
    description: str
    global_communication_protocols: FreeForm
    directory_structure: dict[str, DirectoryConfig] = Field(..., min_length=1)
    event_flows: dict[str, list[EventFlow]]
    communication_matrix: FreeForm
    platform_specific: FreeForm
    error_propagation: FreeForm

    @field_validator("directory_structure")
    @classmethod
    def validate_directory_keys(
        cls, value: dict[str, DirectoryConfig]
    ) -> dict[str, DirectoryConfig]:
        return _check_directory_keys(value, allow_root=True)


class AgentFile(BaseModel):
    """A rendered documentation artifact destined for the scaffolded repository."""

    path: str = Field(..., description="Repository-relative target path")
    content: str = Field(..., description="Rendered markdown content")
