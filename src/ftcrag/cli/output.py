"""--output handling: path confinement + overwrite guard.

Writes go through ``ftcrag.store.snapshot.atomic_write`` (temp file → rename).
"""

from __future__ import annotations

from pathlib import Path

import typer


def validate_output_path(output: str, allowed_base: Path | None = None) -> Path:
    """Normalize *output* and confine it to *allowed_base* (default: CWD).

    Absolute paths are accepted only when they fall inside the base.

    Raises:
        ValueError: If the path escapes the allowed base directory.
    """
    base = (allowed_base or Path.cwd()).resolve()
    path = Path(output)
    resolved = path.resolve() if path.is_absolute() else (base / path).resolve()

    try:
        resolved.relative_to(base)
    except ValueError:
        raise ValueError(
            f"Output path '{output}' resolves outside the allowed directory "
            f"('{base}'). Path traversal is not permitted."
        )

    return resolved


def check_overwrite(path: Path, yes: bool) -> bool:
    """Return True if we should proceed with writing, False if user declines."""
    if yes or not path.exists():
        return True

    return typer.confirm(f"  File exists: {path.name}\n  Overwrite?", default=False)
