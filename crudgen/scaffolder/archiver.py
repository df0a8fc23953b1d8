"""Zip packaging of a finished workspace."""

from __future__ import annotations

import os
import zipfile
from pathlib import Path

from ..errors import FilesystemError


class Archiver:
    """Packs every regular file under a directory into one ZIP archive.

    Entry names are paths relative to the directory, POSIX-separated, in
    sorted order.  The archive is written to a temporary sibling first and
    renamed into place, so a failure never leaves a partial archive behind.
    """

    def __init__(self, compression: int = zipfile.ZIP_DEFLATED) -> None:
        self.compression = compression

    @staticmethod
    def collect(source_dir: str | Path) -> list[Path]:
        """Return every regular file under *source_dir*, sorted by relative path."""
        base = Path(source_dir)
        return sorted(
            (p for p in base.rglob("*") if p.is_file()),
            key=lambda p: p.relative_to(base).as_posix(),
        )

    def archive(self, source_dir: str | Path, output_path: str | Path) -> list[str]:
        """Write the archive and return its entry names.

        Raises:
            FilesystemError: If any file cannot be read or the archive cannot
                be written.
        """
        base = Path(source_dir)
        target = Path(output_path)
        partial = target.with_name(target.name + ".part")
        entries: list[str] = []

        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            with zipfile.ZipFile(partial, "w", compression=self.compression) as zf:
                for file_path in self.collect(base):
                    arcname = file_path.relative_to(base).as_posix()
                    zf.writestr(arcname, file_path.read_bytes())
                    entries.append(arcname)
            os.replace(partial, target)
        except OSError as exc:
            partial.unlink(missing_ok=True)
            raise FilesystemError(f"Cannot write archive {target}: {exc}", target) from exc

        return entries
