"""Persona document parsing (markdown with optional YAML front matter)."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import yaml

from .errors import ScaffoldError

CORE_PERSONAS = (
    "agent-developer.md",
    "agent-code-reviewer.md",
    "agent-rebaser.md",
    "agent-merger.md",
    "agent-multiplan-manager.md",
)
INTEGRATION_TESTER = "agent-integration-tester.md"


@dataclass(frozen=True)
class Persona:
    name: str
    title: str
    description: str | None
    body: str
    path: Path


def load_personas(directory: Path, names: tuple[str, ...] = CORE_PERSONAS) -> list[Persona]:
    personas: list[Persona] = []
    for filename in names:
        path = directory / filename
        if path.is_file():
            personas.append(parse_persona(path))
    return personas


def parse_persona(path: Path) -> Persona:
    try:
        meta, body = _split_front_matter(path.read_text(encoding="utf-8"))
    except (yaml.YAMLError, UnicodeDecodeError) as exc:
        raise ScaffoldError(f"Could not parse persona {path}: {exc}") from exc
    name = str(meta.get("name") or path.stem)
    title = str(meta.get("title") or name)
    description = meta.get("description")
    return Persona(
        name=name,
        title=title,
        description=str(description) if description else None,
        body=body.strip(),
        path=path,
    )


def _split_front_matter(text: str) -> tuple[dict[str, object], str]:
    lines = text.splitlines()
    if not lines or lines[0].strip() != "---":
        return {}, text
    end_index: Optional[int] = None
    for idx, line in enumerate(lines[1:], start=1):
        if line.strip() == "---":
            end_index = idx
            break
    if end_index is None:
        return {}, text
    front = "\n".join(lines[1:end_index])
    body = "\n".join(lines[end_index + 1 :])
    meta = yaml.safe_load(front) or {}
    if not isinstance(meta, dict):
        meta = {}
    return meta, body


__all__ = ["Persona", "CORE_PERSONAS", "INTEGRATION_TESTER", "load_personas", "parse_persona"]
