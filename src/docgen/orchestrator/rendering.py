"""Agent file rendering for the communication schema.

Pure functions: given a validated CommunicationSchema they produce the
per-directory README.md / AGENT.md documents that the scaffolder commits.
Output is fully determined by the schema; every collection is emitted in a
sorted or declared order so the same schema always yields the same bytes.
"""

from __future__ import annotations

import json
from collections.abc import Iterator

from docgen.schema import AgentFile, CommunicationSchema, DirectoryConfig, FileConfig, parse_and_validate
from docgen.schema.models import normalize_directory_path

CRITICAL_THRESHOLD = 9
IMPORTANT_THRESHOLD = 7

AGENT_FILE_NAMES = ("README.md", "AGENT.md")


def generate_agent_files(schema_text: str) -> list[AgentFile]:
    """Parse schema text and render the agent files for every directory.

    Raises:
        ParseError: If the text does not structurally contain a schema.
        SchemaValidationError: If the schema violates range or emptiness rules.
    """
    schema = parse_and_validate(schema_text)
    return render_agent_files(schema)


def render_agent_files(schema: CommunicationSchema) -> list[AgentFile]:
    """Render README.md and AGENT.md for each directory of the schema.

    Directories are visited in ascending path order, each followed by its
    nested directories. Two schema keys that normalise to the same
    repository path produce files once, from the first key visited.
    """
    files: list[AgentFile] = []
    seen: set[str] = set()

    for path, config in _walk(schema.directory_structure):
        base = normalize_directory_path(path)
        if base in seen:
            continue
        seen.add(base)

        content = generate_directory_docs(path, config, schema)
        for name in AGENT_FILE_NAMES:
            files.append(AgentFile(path=f"{base}/{name}" if base else name, content=content))

    return files


def _walk(directories: dict[str, DirectoryConfig], parent: str | None = None) -> Iterator[tuple[str, DirectoryConfig]]:
    for name in sorted(directories):
        config = directories[name]
        path = name if parent is None else f"{parent.rstrip('/')}/{name.strip('/')}"
        yield path, config
        if config.directories:
            yield from _walk(config.directories, path)


def _sorted_files(files: dict[str, FileConfig]) -> list[tuple[str, FileConfig]]:
    return sorted(files.items(), key=lambda item: (-item[1].criticality, item[0]))


def _summary_line(name: str, file: FileConfig) -> str:
    return f"- **{name}** (Criticality: {file.criticality}/10): {file.purpose}\n"


def generate_directory_docs(path: str, config: DirectoryConfig, schema: CommunicationSchema) -> str:
    """Render the markdown document for one directory.

    Args:
        path: Directory path as it appears in the schema.
        config: The directory's configuration.
        schema: Whole schema, consulted for event flows.

    Returns:
        Markdown text shared by the directory's README.md and AGENT.md.
    """
    files = _sorted_files(config.files)
    critical = [(n, f) for n, f in files if f.criticality >= CRITICAL_THRESHOLD]
    important = [(n, f) for n, f in files if IMPORTANT_THRESHOLD <= f.criticality < CRITICAL_THRESHOLD]
    supporting = [(n, f) for n, f in files if f.criticality < IMPORTANT_THRESHOLD]

    parts: list[str] = [
        f"# {path} - {config.description}\n",
        f"Criticality: {config.criticality}/10\n\n",
        "## Critical Files (Must maintain for system stability)\n",
    ]

    for name, file in critical:
        parts.append(f"### {name}\n")
        parts.append(f"- **Criticality:** {file.criticality}/10\n")
        parts.append(f"- **Type:** {file.file_type}\n")
        parts.append(f"- **Purpose:** {file.purpose}\n")
        parts.append("- **Communicates with:**")
        if file.communicates:
            parts.append("\n")
            for target in sorted(file.communicates):
                parts.append(f"  - {target}: {file.communicates[target]}\n")
        else:
            parts.append(" none\n")
        if file.dependencies:
            parts.append(f"- **Dependencies:** {json.dumps(file.dependencies)}\n")
        parts.append("\n")

    parts.append("\n## Important Files (Breaking these affects functionality)\n")
    parts.extend(_summary_line(name, file) for name, file in important)

    if supporting:
        parts.append("\n## Supporting Files (Can be modified with care)\n")
        parts.extend(_summary_line(name, file) for name, file in supporting)

    parts.append("\n## Communication Patterns\n")
    if config.receives_from:
        parts.append(f"- **Receives from:** {json.dumps(config.receives_from)}\n")
    if config.sends_to:
        parts.append(f"- **Sends to:** {json.dumps(config.sends_to)}\n")
    if config.protocols:
        parts.append(f"- **Protocols:** {json.dumps(config.protocols)}\n")

    parts.append("\n## File Relationships\n```json\n")
    parts.append(json.dumps(build_relationships(config.files), indent=2, sort_keys=True))
    parts.append("\n```\n")

    flows = schema.event_flows.get(path)
    if flows:
        parts.append("\n## Event Flows\n")
        parts.extend(f"- {flow.name}: {flow.description}\n" for flow in flows)

    return "".join(parts)


def build_relationships(files: dict[str, FileConfig]) -> dict[str, dict[str, list[str]]]:
    """Map each file to its sibling relationships within one directory.

    Only names of files in the same directory are kept; external modules
    and files elsewhere in the tree are dropped.
    """
    siblings = set(files)
    relationships: dict[str, dict[str, list[str]]] = {}

    for name, file in files.items():
        depends_on = sorted({dep for dep in file.dependencies if dep in siblings and dep != name})
        communicates_with = sorted(
            target for target in (file.communicates or {}) if target in siblings and target != name
        )
        depended_on_by = sorted(
            other for other, other_file in files.items()
            if other != name and name in other_file.dependencies
        )
        relationships[name] = {
            "communicates_with": communicates_with,
            "depended_on_by": depended_on_by,
            "depends_on": depends_on,
        }

    return relationships
