"""Artifact store for stageflow."""

from .interface import StorageBackend, run_key
from .local import LocalStorageBackend

__all__ = ["StorageBackend", "LocalStorageBackend", "run_key"]
