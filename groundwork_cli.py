"""Entry point for `groundwork` CLI command when installed via pip/uvx.

Bootstraps sys.path and delegates to the backend __main__ module.

Usage:
    groundwork build                       # Scan the current project
    groundwork prompt ticket.yaml          # Compile a prompt for a ticket
    groundwork outcome VERSION_ID success  # Record the result
"""

import importlib.util
import sys
from pathlib import Path


def main() -> None:
    # Add backend directory to path so its local imports work.
    # The working directory is left alone: the state dir is project-relative.
    backend_dir = Path(__file__).parent / "groundwork" / "backend"
    sys.path.insert(0, str(backend_dir))

    # Load the backend __main__ module via importlib (avoids package import issues)
    spec = importlib.util.spec_from_file_location(
        "groundwork_backend_main", str(backend_dir / "__main__.py")
    )
    assert spec and spec.loader
    mod = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(mod)

    import asyncio
    sys.exit(asyncio.run(mod.main()))


if __name__ == "__main__":
    main()
