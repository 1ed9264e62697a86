"""
Artifact store interface.

Artifacts survive the run's working directory: archived tarballs, published
test reports and run records all land in a store keyed by run.
"""

from __future__ import annotations

import hashlib
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, TypeVar

from pydantic import BaseModel

T = TypeVar("T", bound=BaseModel)


def run_key(run_id: str, *parts: str) -> str:
    """Build a store key under a run's prefix."""
    return "/".join(["runs", run_id, *parts])


class StorageBackend(ABC):
    """Abstract artifact store."""

    @abstractmethod
    async def store_bytes(self, key: str, data: bytes, metadata: dict[str, Any] | None = None) -> str:
        """Store raw bytes and return the storage key.

        Args:
            key: Storage key/path
            data: Raw bytes to store
            metadata: Optional metadata to associate

        Returns:
            The final storage key
        """
        ...

    @abstractmethod
    async def store_text(self, key: str, content: str, metadata: dict[str, Any] | None = None) -> str:
        """Store text content and return the storage key."""
        ...

    @abstractmethod
    async def store_model(self, key: str, model: BaseModel, metadata: dict[str, Any] | None = None) -> str:
        """Store a Pydantic model as JSON."""
        ...

    @abstractmethod
    async def load_bytes(self, key: str) -> bytes:
        ...

    @abstractmethod
    async def load_text(self, key: str) -> str:
        ...

    @abstractmethod
    async def load_model(self, key: str, model_type: type[T]) -> T:
        """Load a Pydantic model from storage."""
        ...

    @abstractmethod
    async def exists(self, key: str) -> bool:
        ...

    @abstractmethod
    async def list_keys(self, prefix: str = "") -> list[str]:
        """List all keys with the given prefix."""
        ...

    @abstractmethod
    async def get_metadata(self, key: str) -> dict[str, Any]:
        ...

    @staticmethod
    def compute_hash(data: bytes) -> str:
        """Compute SHA-256 hash of data."""
        return hashlib.sha256(data).hexdigest()

    @abstractmethod
    def get_local_path(self, key: str) -> Path | None:
        """Get local filesystem path if available."""
        ...
