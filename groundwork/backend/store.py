"""On-disk state directory: layout plus awaited JSON/markdown reads and writes.

Every record is a human-diffable file under one state directory (``.groundwork``
by default). Components receive a ``Store`` handle instead of resolving paths
themselves, so tests and multiple projects can point at different roots.
"""

import asyncio
import json
from pathlib import Path
from typing import TypeVar

from pydantic import BaseModel, ValidationError

from errors import CorruptRecordError

ModelT = TypeVar("ModelT", bound=BaseModel)


class Store:
    """Handle on one project's state directory."""

    def __init__(self, root: str | Path):
        self.root = Path(root)

    def __repr__(self) -> str:
        return f"Store({str(self.root)!r})"

    # --------------- Layout ---------------

    @property
    def context_dir(self) -> Path:
        return self.root / "context"

    @property
    def compressed_path(self) -> Path:
        return self.context_dir / "compressed.json"

    @property
    def patterns_doc_path(self) -> Path:
        return self.context_dir / "patterns.md"

    @property
    def decisions_doc_path(self) -> Path:
        return self.context_dir / "decisions.md"

    @property
    def prompts_dir(self) -> Path:
        return self.root / "prompts"

    @property
    def templates_dir(self) -> Path:
        return self.prompts_dir / "templates"

    @property
    def versions_dir(self) -> Path:
        return self.prompts_dir / "versions"

    @property
    def performance_path(self) -> Path:
        return self.prompts_dir / "performance.json"

    @property
    def standards_dir(self) -> Path:
        return self.root / "standards"

    @property
    def decisions_dir(self) -> Path:
        return self.root / "decisions"

    def template_path(self, template_id: str) -> Path:
        return self.templates_dir / f"{template_id}.json"

    def version_path(self, version_id: str) -> Path:
        return self.versions_dir / f"{version_id}.json"

    # --------------- Raw I/O ---------------

    async def ensure_dir(self, path: Path) -> None:
        await asyncio.to_thread(path.mkdir, parents=True, exist_ok=True)

    async def exists(self, path: Path) -> bool:
        return await asyncio.to_thread(path.exists)

    async def read_text(self, path: Path) -> str:
        return await asyncio.to_thread(path.read_text, encoding="utf-8")

    async def write_text(self, path: Path, content: str) -> None:
        await self.ensure_dir(path.parent)
        await asyncio.to_thread(path.write_text, content, encoding="utf-8")

    async def list_files(self, directory: Path, suffix: str) -> list[Path]:
        """Sorted files in ``directory`` ending in ``suffix``; empty if the directory is missing."""

        def _scan() -> list[Path]:
            if not directory.is_dir():
                return []
            return sorted(p for p in directory.iterdir() if p.is_file() and p.name.endswith(suffix))

        return await asyncio.to_thread(_scan)

    # --------------- JSON Records ---------------

    async def read_json(self, path: Path) -> object:
        text = await self.read_text(path)
        try:
            return json.loads(text)
        except json.JSONDecodeError as e:
            raise CorruptRecordError(str(path), str(e)) from e

    async def write_json(self, path: Path, data: object) -> None:
        await self.write_text(path, json.dumps(data, indent=2, ensure_ascii=False) + "\n")

    async def read_model(self, path: Path, model: type[ModelT]) -> ModelT:
        data = await self.read_json(path)
        try:
            return model.model_validate(data)
        except ValidationError as e:
            raise CorruptRecordError(str(path), str(e)) from e

    async def write_model(self, path: Path, record: BaseModel) -> None:
        await self.write_json(path, record.model_dump(mode="json"))
