"""Artifact archiving."""

from .service import ArchivedArtifact, ArchiveOutput, ArtifactArchiver

__all__ = ["ArchivedArtifact", "ArchiveOutput", "ArtifactArchiver"]
