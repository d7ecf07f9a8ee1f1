"""Compile a folder into an executable and wrap it into a deployment package.

The compiler is a black box: ``go build`` is run inside the folder under a
caller-supplied environment (cross-compiling for the function runtime), and
its stdout/stderr are passed straight through to the operator. The
executable only exists on disk for the duration of the ``build`` context.
"""

from __future__ import annotations

import io
import logging
import shutil
import subprocess
import tempfile
import zipfile
from collections.abc import Iterator
from contextlib import AbstractContextManager, contextmanager
from pathlib import Path
from typing import Protocol, runtime_checkable

from signforge.core.errors import BuildError, PackageError

logger = logging.getLogger(__name__)

# Fixed timestamp: the same executable always zips to the same bytes.
_ZIP_EPOCH = (1980, 1, 1, 0, 0, 0)
_EXECUTABLE_MODE = 0o755


@runtime_checkable
class PackageBuilder(Protocol):
    """Protocol for builders: a scoped executable plus a packaging step."""

    def build(self, folder: Path) -> AbstractContextManager[Path]:
        """Context manager yielding the built executable; removes it on exit."""
        ...

    def package(self, executable: Path) -> bytes:
        """Return an in-memory single-entry archive wrapping *executable*."""
        ...


class GoBuilder:
    """Builds Go function folders with ``go build``.

    Parameters
    ----------
    env:
        Full environment for the compiler process.
    go_binary:
        Compiler executable name or path.
    entry_name:
        Name of the single entry inside the archive.
    """

    def __init__(
        self,
        env: dict[str, str] | None = None,
        *,
        go_binary: str = "go",
        entry_name: str = "main",
    ) -> None:
        self.env = env
        self.go_binary = go_binary
        self.entry_name = entry_name

    def command(self, output: Path) -> list[str]:
        """The compiler invocation producing *output*."""
        return [self.go_binary, "build", "-ldflags=-s -w", "-o", str(output)]

    @contextmanager
    def build(self, folder: Path) -> Iterator[Path]:
        """Compile *folder* and yield the executable path.

        The executable is written to a private temporary directory named
        after the folder, so concurrent builds never collide. The directory
        is removed when the context exits; a failure to remove it is logged
        and never raised.
        """
        folder = Path(folder)
        workdir = Path(tempfile.mkdtemp(prefix=f"signforge-{folder.name}-"))
        executable = workdir / folder.name
        try:
            try:
                completed = subprocess.run(
                    self.command(executable),
                    cwd=folder,
                    env=self.env,
                    check=False,
                )
            except OSError as exc:
                raise BuildError(f"Failed to start compiler: {exc}") from exc
            if completed.returncode != 0:
                raise BuildError(
                    f"Compiler exited with status {completed.returncode} for {folder.name}"
                )
            if not executable.is_file():
                raise BuildError(f"Compiler produced no executable at {executable}")
            yield executable
        finally:
            _remove_tree(folder.name, workdir)

    def package(self, executable: Path) -> bytes:
        """Zip *executable* as the sole entry of an in-memory archive."""
        info = zipfile.ZipInfo(self.entry_name, date_time=_ZIP_EPOCH)
        info.compress_type = zipfile.ZIP_DEFLATED
        info.external_attr = (_EXECUTABLE_MODE | 0o100000) << 16
        buffer = io.BytesIO()
        try:
            with zipfile.ZipFile(buffer, "w") as archive, \
                    Path(executable).open("rb") as source, \
                    archive.open(info, "w") as entry:
                shutil.copyfileobj(source, entry)
        except (OSError, zipfile.BadZipFile) as exc:
            raise PackageError(f"Failed to zip executable {executable}: {exc}") from exc
        return buffer.getvalue()


def _remove_tree(folder: str, path: Path) -> None:
    logger.debug("%s | Deleting %s.", folder, path)
    try:
        shutil.rmtree(path)
    except OSError as exc:
        logger.warning("%s | Failed to delete %s: %s", folder, path, exc)
