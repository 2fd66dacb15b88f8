"""Local filesystem storage implementation."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import IO

from werkzeug.utils import secure_filename

from .abstract_storage import AbstractStorage

logger = logging.getLogger(__name__)


class LocalStorage(AbstractStorage):
    """Persist files to the local filesystem under a base directory."""

    def __init__(self, base_directory: str | os.PathLike):
        self.base_directory = Path(base_directory)
        os.makedirs(self.base_directory, exist_ok=True)

    def _destination(self, filename: str) -> Path:
        safe_name = secure_filename(filename)
        if not safe_name:
            raise ValueError("Filename must contain at least one valid character.")
        return self.base_directory / safe_name

    def path_for(self, path: str) -> Path:
        """Return the absolute filesystem path of a stored file."""

        return self.base_directory / path

    def save(self, file_obj: IO[bytes], filename: str) -> str:
        """Save a file and return the relative path within the base directory."""

        destination = self._destination(filename)
        if hasattr(file_obj, "save"):
            file_obj.save(destination)  # type: ignore[arg-type]
        else:
            with open(destination, "wb") as output:
                output.write(file_obj.read())

        return str(destination.relative_to(self.base_directory))

    def place(self, source: Path, filename: str) -> str:
        """Relocate ``source`` into storage with a single rename.

        The source must live on the same filesystem as the base directory;
        the file is never copied.
        """

        destination = self._destination(filename)
        os.replace(source, destination)
        logger.debug("Placed %s at %s", source, destination)
        return str(destination.relative_to(self.base_directory))

    def delete(self, path: str) -> bool:
        try:
            (self.base_directory / path).unlink()
        except FileNotFoundError:
            return False
        return True

    def list_stem(self, stem: str) -> list[str]:
        return sorted(
            entry.name
            for entry in self.base_directory.glob(f"{stem}.*")
            if entry.is_file()
        )
