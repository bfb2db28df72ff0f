"""Structural pattern extraction from Python source using AST parsing.

Every function, class and import statement is reduced to a coarse shape
(parameter count, method count, import kind). Shapes are folded into a
frequency-keyed registry so the most common ways the codebase is written can
be summarised for prompts.
"""

import ast
import asyncio
import hashlib
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path

from models import CodePattern
from walker import collect_source_files

logger = logging.getLogger(__name__)


class ShapeKind(str, Enum):
    """Kinds of declaration folded into patterns."""

    FUNCTION = "function"
    CLASS = "class"
    IMPORT = "import"


@dataclass(frozen=True)
class FunctionShape:
    param_count: int
    is_async: bool

    kind = ShapeKind.FUNCTION

    @property
    def key(self) -> str:
        return f"function-{self.param_count}-params-{'async' if self.is_async else 'sync'}"

    @property
    def name(self) -> str:
        return f"{'Async' if self.is_async else 'Sync'} function with {self.param_count} parameters"

    def _fields(self) -> tuple:
        return (self.param_count, self.is_async)


@dataclass(frozen=True)
class ClassShape:
    method_count: int

    kind = ShapeKind.CLASS

    @property
    def key(self) -> str:
        return f"class-{self.method_count}-methods"

    @property
    def name(self) -> str:
        return f"Class with {self.method_count} methods"

    def _fields(self) -> tuple:
        return (self.method_count,)


@dataclass(frozen=True)
class ImportShape:
    is_relative: bool
    specifier_count: int

    kind = ShapeKind.IMPORT

    @property
    def key(self) -> str:
        return f"import-{'relative' if self.is_relative else 'package'}-{self.specifier_count}"

    @property
    def name(self) -> str:
        origin = "Relative" if self.is_relative else "Package"
        return f"{origin} import with {self.specifier_count} specifiers"

    def _fields(self) -> tuple:
        return (self.is_relative, self.specifier_count)


Shape = FunctionShape | ClassShape | ImportShape


def shape_digest(shape: Shape) -> str:
    """Stable digest of a shape's kind and discriminating fields."""
    payload = "\0".join([shape.kind.value, *(repr(f) for f in shape._fields())])
    return hashlib.sha256(payload.encode()).hexdigest()[:16]


@dataclass
class Occurrence:
    """One declaration found in a file."""

    shape: Shape
    example: str
    description: str


@dataclass
class ParseOutcome:
    """Result of parsing one file. A failed parse contributes nothing."""

    ok: bool
    occurrences: list[Occurrence] = field(default_factory=list)
    error: str | None = None


@dataclass
class PatternScan:
    """Patterns from one build plus the per-file parse outcomes."""

    patterns: list[CodePattern]
    outcomes: list[tuple[str, ParseOutcome]]

    @property
    def failures(self) -> list[tuple[str, ParseOutcome]]:
        return [(path, o) for path, o in self.outcomes if not o.ok]


# --------------- Parsing ---------------

def _param_names(args: ast.arguments) -> list[str]:
    names = [a.arg for a in args.posonlyargs + args.args]
    if args.vararg:
        names.append(f"*{args.vararg.arg}")
    elif args.kwonlyargs:
        names.append("*")
    names.extend(a.arg for a in args.kwonlyargs)
    if args.kwarg:
        names.append(f"**{args.kwarg.arg}")
    return names


def _param_count(args: ast.arguments) -> int:
    count = len(args.posonlyargs) + len(args.args) + len(args.kwonlyargs)
    if args.vararg:
        count += 1
    if args.kwarg:
        count += 1
    return count


def _has_annotations(args: ast.arguments) -> bool:
    all_args = args.posonlyargs + args.args + args.kwonlyargs
    if args.vararg:
        all_args.append(args.vararg)
    if args.kwarg:
        all_args.append(args.kwarg)
    return any(a.annotation is not None for a in all_args)


def _function_occurrence(node: ast.FunctionDef | ast.AsyncFunctionDef) -> Occurrence:
    is_async = isinstance(node, ast.AsyncFunctionDef)
    count = _param_count(node.args)
    prefix = "async def" if is_async else "def"
    annotated = "with" if _has_annotations(node.args) else "without"
    return Occurrence(
        shape=FunctionShape(param_count=count, is_async=is_async),
        example=f"{prefix} {node.name}({', '.join(_param_names(node.args))}): ...",
        description=f"Functions with {count} parameters, {annotated} type annotations",
    )


def _class_occurrence(node: ast.ClassDef) -> Occurrence:
    methods = [
        n for n in node.body
        if isinstance(n, (ast.FunctionDef, ast.AsyncFunctionDef))
    ]
    has_constructor = any(m.name == "__init__" for m in methods)
    count = sum(1 for m in methods if m.name != "__init__")
    return Occurrence(
        shape=ClassShape(method_count=count),
        example=f"class {node.name}: ...",
        description=f"Classes with {count} methods, {'with' if has_constructor else 'without'} constructor",
    )


def _import_occurrence(node: ast.Import | ast.ImportFrom) -> Occurrence:
    count = len(node.names)
    aliased = "with" if any(a.asname for a in node.names) else "without"
    if isinstance(node, ast.ImportFrom):
        relative = node.level > 0
        source = "." * node.level + (node.module or "")
        example = f"from {source} import ..."
    else:
        relative = False
        example = f"import {', '.join(a.name for a in node.names)}"
    origin = "relative path" if relative else "package"
    return Occurrence(
        shape=ImportShape(is_relative=relative, specifier_count=count),
        example=example,
        description=f"Import from {origin} with {count} specifiers, {aliased} aliases",
    )


def _collect(tree: ast.Module) -> list[Occurrence]:
    # Methods are folded into their class's shape, not counted as functions
    methods = {
        id(child)
        for node in ast.walk(tree) if isinstance(node, ast.ClassDef)
        for child in node.body
        if isinstance(child, (ast.FunctionDef, ast.AsyncFunctionDef))
    }
    occurrences: list[Occurrence] = []
    for node in ast.walk(tree):
        if isinstance(node, (ast.FunctionDef, ast.AsyncFunctionDef)):
            if id(node) not in methods:
                occurrences.append(_function_occurrence(node))
        elif isinstance(node, ast.ClassDef):
            occurrences.append(_class_occurrence(node))
        elif isinstance(node, (ast.Import, ast.ImportFrom)):
            occurrences.append(_import_occurrence(node))
    return occurrences


def parse_source(source: str, filename: str = "<unknown>") -> ParseOutcome:
    """Parse module source and collect its declaration shapes.

    Never raises for bad input: a file that does not parse yields a failed
    outcome carrying the error message.
    """
    try:
        tree = ast.parse(source, filename=filename)
    except (SyntaxError, ValueError, RecursionError) as e:
        return ParseOutcome(ok=False, error=f"{type(e).__name__}: {e}")
    return ParseOutcome(ok=True, occurrences=_collect(tree))


# --------------- Registry ---------------

class PatternRegistry:
    """Frequency-keyed fold of shapes into CodePattern entries."""

    def __init__(self) -> None:
        self._entries: dict[Shape, CodePattern] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def add(self, occurrence: Occurrence, file: str, seen_at: datetime | None = None) -> CodePattern:
        seen_at = seen_at or datetime.now(timezone.utc)
        existing = self._entries.get(occurrence.shape)
        if existing:
            existing.frequency += 1
            existing.files.append(file)
            existing.last_seen = seen_at
            return existing

        pattern = CodePattern(
            id=occurrence.shape.key,
            name=occurrence.shape.name,
            description=occurrence.description,
            example=occurrence.example,
            frequency=1,
            files=[file],
            last_seen=seen_at,
        )
        self._entries[occurrence.shape] = pattern
        return pattern

    def patterns(self) -> list[CodePattern]:
        """Entries ordered by frequency descending, then id."""
        return sorted(self._entries.values(), key=lambda p: (-p.frequency, p.id))


# --------------- Tree Scan ---------------

def _relative(path: Path, root: Path) -> str:
    try:
        return path.relative_to(root).as_posix()
    except ValueError:
        return path.as_posix()


async def extract_patterns(root: str | Path) -> PatternScan:
    """Parse every source file under ``root`` and fold the shapes found."""
    root = Path(root)
    files = await collect_source_files(root)
    registry = PatternRegistry()
    outcomes: list[tuple[str, ParseOutcome]] = []

    for path in files:
        rel = _relative(path, root)
        try:
            source = await asyncio.to_thread(path.read_text, encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            outcome = ParseOutcome(ok=False, error=f"{type(e).__name__}: {e}")
        else:
            outcome = parse_source(source, rel)

        if outcome.ok:
            for occurrence in outcome.occurrences:
                registry.add(occurrence, rel)
        else:
            logger.warning(f"Could not parse {rel}: {outcome.error}")
        outcomes.append((rel, outcome))

    logger.info(f"Scanned {len(files)} files into {len(registry)} patterns")
    return PatternScan(patterns=registry.patterns(), outcomes=outcomes)
