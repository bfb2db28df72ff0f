"""Architectural decision harvesting from docs and the project manifest."""

import asyncio
import json
import logging
import re
import tomllib
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path

from models import ArchitecturalDecision

logger = logging.getLogger(__name__)

DECISION_BODY_LIMIT = 200

_REQUIREMENT_NAME = re.compile(r"^\s*([A-Za-z0-9][A-Za-z0-9._-]*)")


@dataclass
class Manifest:
    """Dependency names declared by the project, normalised to lower-case."""

    dependencies: set[str] = field(default_factory=set)
    dev_dependencies: set[str] = field(default_factory=set)
    files: list[str] = field(default_factory=list)


# Two high-signal dependencies produce a fixed decision record each
IMPLICIT_DECISIONS = [
    {
        "runtime": {"react"},
        "dev": set(),
        "record": {
            "id": "tech-stack-react",
            "title": "Use React for UI",
            "decision": "Chosen React as the UI framework",
            "rationale": "React provides component-based architecture and strong ecosystem",
            "consequences": ["Need to manage component lifecycle", "JSX syntax required"],
        },
    },
    {
        "runtime": set(),
        "dev": {"typescript", "mypy"},
        "record": {
            "id": "tech-stack-typing",
            "title": "Use static type checking",
            "decision": "Chosen a static type checker for type safety",
            "rationale": "Static type checking catches interface mistakes early and improves IDE support",
            "consequences": ["Type checking step required", "Annotations must be kept current"],
        },
    },
]


# --------------- Manifest ---------------

def _requirement_name(spec: str) -> str | None:
    match = _REQUIREMENT_NAME.match(spec)
    if not match:
        return None
    return match.group(1).lower().replace("_", "-")


def _names(specs: list) -> set[str]:
    names = set()
    for spec in specs:
        if isinstance(spec, str):
            name = _requirement_name(spec)
            if name:
                names.add(name)
    return names


def _read_pyproject(path: Path, manifest: Manifest) -> None:
    data = tomllib.loads(path.read_text(encoding="utf-8"))
    project = data.get("project", {})
    manifest.dependencies |= _names(project.get("dependencies", []))
    for group in project.get("optional-dependencies", {}).values():
        manifest.dev_dependencies |= _names(group)
    for group in data.get("dependency-groups", {}).values():
        manifest.dev_dependencies |= _names(group)
    manifest.files.append(path.name)


def _read_package_json(path: Path, manifest: Manifest) -> None:
    data = json.loads(path.read_text(encoding="utf-8"))
    manifest.dependencies |= {k.lower() for k in (data.get("dependencies") or {})}
    manifest.dev_dependencies |= {k.lower() for k in (data.get("devDependencies") or {})}
    manifest.files.append(path.name)


def _load_manifest(root: Path) -> Manifest | None:
    manifest = Manifest()
    readers = [("pyproject.toml", _read_pyproject), ("package.json", _read_package_json)]
    for filename, reader in readers:
        path = root / filename
        if not path.is_file():
            continue
        try:
            reader(path, manifest)
        except (OSError, ValueError, AttributeError) as e:
            logger.warning(f"Ignoring unreadable manifest {path}: {e}")
    return manifest if manifest.files else None


async def read_manifest(root: str | Path) -> Manifest | None:
    """Read ``pyproject.toml`` and/or ``package.json`` at the project root."""
    return await asyncio.to_thread(_load_manifest, Path(root))


def implicit_decisions(manifest: Manifest | None) -> list[ArchitecturalDecision]:
    """Fixed decision records for the high-signal dependencies present."""
    if manifest is None:
        return []
    now = datetime.now(timezone.utc)
    decisions = []
    for entry in IMPLICIT_DECISIONS:
        if entry["runtime"] & manifest.dependencies or entry["dev"] & manifest.dev_dependencies:
            decisions.append(ArchitecturalDecision(
                **entry["record"], date=now, files=list(manifest.files), origin="manifest",
            ))
    return decisions


# --------------- Decision Docs ---------------

def parse_decision_doc(content: str, filename: str, modified: datetime | None = None) -> ArchitecturalDecision:
    """Approximate a decision record from a markdown document.

    Title is the first ``# `` heading (falling back to the filename); the
    decision text is a bounded prefix of the document.
    """
    title = next((line[2:].strip() for line in content.splitlines() if line.startswith("# ")), filename)
    return ArchitecturalDecision(
        id=Path(filename).stem,
        title=title,
        decision=content[:DECISION_BODY_LIMIT] + "...",
        rationale="Extracted from documentation",
        consequences=[],
        date=modified or datetime.now(timezone.utc),
        files=[filename],
        origin="docs",
    )


def decision_dirs(root: Path, state_decisions_dir: Path | None = None) -> list[Path]:
    dirs = [root / "docs" / "adr", root / "docs" / "decisions"]
    adr_dir = root / ".adr-dir"
    if adr_dir.is_file():
        # adr-tools stores the ADR directory path in this file
        try:
            configured = adr_dir.read_text(encoding="utf-8").strip()
        except (OSError, UnicodeDecodeError) as e:
            logger.warning(f"Ignoring unreadable {adr_dir}: {e}")
            configured = ""
        if configured:
            dirs.append(root / configured)
    else:
        dirs.append(adr_dir)
    if state_decisions_dir is not None:
        dirs.append(state_decisions_dir)
    return dirs


def _read_docs(dirs: list[Path]) -> list[ArchitecturalDecision]:
    decisions = []
    for directory in dirs:
        if not directory.is_dir():
            continue
        for path in sorted(directory.glob("*.md")):
            try:
                content = path.read_text(encoding="utf-8")
                modified = datetime.fromtimestamp(path.stat().st_mtime, tz=timezone.utc)
            except (OSError, UnicodeDecodeError) as e:
                logger.warning(f"Skipping decision doc {path}: {e}")
                continue
            decisions.append(parse_decision_doc(content, path.name, modified))
    return decisions


async def extract_decisions(
    root: str | Path,
    manifest: Manifest | None,
    state_decisions_dir: Path | None = None,
) -> list[ArchitecturalDecision]:
    """Documented decisions followed by manifest-inferred ones.

    Duplicate titles from different doc directories are all kept.
    """
    dirs = await asyncio.to_thread(decision_dirs, Path(root), state_decisions_dir)
    decisions = await asyncio.to_thread(_read_docs, dirs)
    decisions.extend(implicit_decisions(manifest))
    logger.info(f"Extracted {len(decisions)} architectural decisions")
    return decisions
