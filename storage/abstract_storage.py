"""Storage abstraction layer."""

from __future__ import annotations

from abc import ABC, abstractmethod
from pathlib import Path
from typing import IO


class AbstractStorage(ABC):
    """Interface for storage backends."""

    @abstractmethod
    def save(self, file_obj: IO[bytes], filename: str) -> str:
        """Persist a file and return the stored (relative) path."""

    @abstractmethod
    def place(self, source: Path, filename: str) -> str:
        """Move an existing local file into storage and return its relative path."""

    @abstractmethod
    def delete(self, path: str) -> bool:
        """Remove a stored file, returning False when it was already gone."""

    @abstractmethod
    def list_stem(self, stem: str) -> list[str]:
        """Return the relative paths of stored files named ``<stem>.<anything>``."""
