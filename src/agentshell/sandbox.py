"""Working-directory guard: keeps commands inside the project root."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from pathlib import Path

logger = logging.getLogger(__name__)


class SandboxViolation(Exception):
    """Requested working directory lies outside every allowed root."""

    def __init__(self, path: Path, root: Path) -> None:
        self.path = path
        self.root = root
        super().__init__(
            f'cwd "{path}" is outside the project root "{root}". '
            "Add it to allowed_paths to run commands there."
        )


def _resolve(path: str | Path, base: Path) -> Path:
    candidate = Path(path).expanduser()
    if not candidate.is_absolute():
        candidate = base / candidate
    return candidate.resolve()


def _is_within(path: Path, root: Path) -> bool:
    # Component-wise, so /root-evil is not inside /root.
    return path == root or path.is_relative_to(root)


def resolve_working_directory(
    requested: str | Path | None,
    default_root: str | Path,
    allowed_paths: Iterable[str | Path] = (),
) -> Path:
    """Resolve and validate the directory a command will run in.

    Args:
        requested: Directory asked for by the caller, or None for the root.
            Relative paths are taken relative to *default_root*.
        default_root: The project root.
        allowed_paths: Additional directories commands may run in.

    Returns:
        The absolute, symlink-resolved working directory.

    Raises:
        SandboxViolation: If the directory is outside the root and every
            allowed path.
    """
    root = Path(default_root).expanduser().resolve()
    if requested is None or str(requested) == "":
        return root

    resolved = _resolve(requested, root)
    if _is_within(resolved, root):
        return resolved

    for allowed in allowed_paths:
        if _is_within(resolved, _resolve(allowed, root)):
            return resolved

    logger.debug("Rejected cwd %s (root %s)", resolved, root)
    raise SandboxViolation(resolved, root)
