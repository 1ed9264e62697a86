"""
Artifact archiving.

Copies files matching the archive patterns from the workspace into the
artifact store, fingerprinting each one, so they outlive the workspace.
"""

from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel, Field

from ...core.logging import get_logger
from ...core.types import ServiceResult
from ...storage import LocalStorageBackend, run_key

logger = get_logger(__name__)


class ArchivedArtifact(BaseModel):
    """One archived file."""

    path: str = Field(description="Workspace-relative path")
    key: str = Field(description="Artifact store key")
    fingerprint: str = Field(description="SHA-256 of the content")
    size_bytes: int = 0


class ArchiveOutput(BaseModel):
    artifacts: list[ArchivedArtifact] = Field(default_factory=list)

    @property
    def keys(self) -> list[str]:
        return [a.key for a in self.artifacts]


class ArtifactArchiver:
    """Archives workspace files into the store under runs/<run_id>/artifacts/."""

    def __init__(self, workspace: Path, storage: LocalStorageBackend) -> None:
        self.workspace = workspace
        self.storage = storage

    def match(self, patterns: list[str]) -> list[Path]:
        """Resolve glob patterns to files, de-duplicated and sorted."""
        found: set[Path] = set()
        for pattern in patterns:
            for part in pattern.split(","):
                part = part.strip()
                if part:
                    found.update(p for p in self.workspace.glob(part) if p.is_file())
        return sorted(found)

    async def archive(
        self,
        run_id: str,
        patterns: list[str],
        allow_empty: bool = True,
    ) -> ServiceResult[ArchiveOutput]:
        """Archive matching files.

        Args:
            run_id: Run identifier
            patterns: Workspace-relative globs; comma-separated lists are accepted
            allow_empty: Whether matching nothing is acceptable

        Returns:
            ServiceResult containing ArchiveOutput or error
        """
        files = self.match(patterns)
        if not files and not allow_empty:
            return ServiceResult.fail(f"No artifacts found that match {', '.join(patterns)}")

        output = ArchiveOutput()
        try:
            for path in files:
                relative = path.relative_to(self.workspace).as_posix()
                key = run_key(run_id, "artifacts", relative)
                await self.storage.store_file(key, path, {"source": relative, "run_id": run_id})
                meta = await self.storage.get_metadata(key)
                output.artifacts.append(
                    ArchivedArtifact(
                        path=relative,
                        key=key,
                        fingerprint=meta["hash"],
                        size_bytes=meta["size_bytes"],
                    )
                )
        except OSError as e:
            logger.error("Archiving artifacts failed", error=str(e))
            return ServiceResult.fail(str(e))

        if not files:
            logger.warning("No artifacts matched", patterns=patterns)
            return ServiceResult.with_warnings(output, [f"No artifacts found that match {', '.join(patterns)}"])

        logger.info("Artifacts archived", count=len(output.artifacts), run_id=run_id)
        return ServiceResult.ok(output)
