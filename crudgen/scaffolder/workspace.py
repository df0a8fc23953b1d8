"""Per-job workspace management.

Each generation job gets its own directory whose name embeds the job id,
so concurrent jobs never share files.  ``Workspace`` is a context manager:
the directory is removed on exit whether the job succeeded or not.
"""

from __future__ import annotations

import tempfile
from pathlib import Path

from ..errors import FilesystemError
from ..models import FileLayout, SectionSet
from ..utils import print_warning


class Workspace:
    """An exclusively owned working directory for one generation job."""

    def __init__(self, job_id: str, root: str | Path | None = None) -> None:
        self.job_id = job_id
        self.root = Path(root) if root is not None else None
        self.path: Path | None = None

    def allocate(self) -> Path:
        """Create the directory.

        Raises:
            FilesystemError: If the directory cannot be created.
        """
        try:
            if self.root is not None:
                self.root.mkdir(parents=True, exist_ok=True)
            self.path = Path(
                tempfile.mkdtemp(
                    prefix=f"crudgen-{self.job_id}-",
                    dir=str(self.root) if self.root is not None else None,
                )
            )
        except OSError as exc:
            raise FilesystemError(
                f"Cannot create workspace for job {self.job_id}: {exc}", self.root
            ) from exc
        return self.path

    def release(self) -> None:
        """Remove the directory, if it was allocated."""
        if self.path is not None:
            cleanup(self.path)
            self.path = None

    def __enter__(self) -> "Workspace":
        self.allocate()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.release()


class WorkspaceBuilder:
    """Writes a ``SectionSet`` into a workspace following a ``FileLayout``."""

    def __init__(self, layout: FileLayout) -> None:
        self.layout = layout

    def materialize(self, sections: SectionSet, root: str | Path) -> list[Path]:
        """Write every populated section under *root*.

        Sections missing from *sections* are skipped; no placeholder files
        are created.

        Returns:
            The written file paths, in section order.

        Raises:
            FilesystemError: On any directory or file write failure.
        """
        base = Path(root)
        written: list[Path] = []
        for section, content in sections.items():
            target = base / self.layout.path_for(section)
            try:
                target.parent.mkdir(parents=True, exist_ok=True)
                target.write_text(content, encoding="utf-8")
            except OSError as exc:
                raise FilesystemError(f"Cannot write {target}: {exc}", target) from exc
            written.append(target)
        return written


def cleanup(path: str | Path) -> None:
    """Delete *path* and everything below it, deepest entries first.

    Failures are reported as warnings and never raised.
    """
    root = Path(path)
    if not root.exists():
        return

    entries = sorted(root.rglob("*"), key=lambda p: len(p.parts), reverse=True)
    for entry in [*entries, root]:
        try:
            if entry.is_dir() and not entry.is_symlink():
                entry.rmdir()
            else:
                entry.unlink()
        except OSError as exc:
            print_warning(f"Could not remove {entry}: {exc}")
