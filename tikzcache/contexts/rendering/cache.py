"""
Artifact Cache

An artifact is fresh when its modification time is exactly equal to that of
the source it was generated from. After every successful generation the
source's mtime is copied onto the artifact, so the next run only has to
compare two numbers. There is no index file: the mtime pair on disk is the
whole cache state.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, List, Optional

from tikzcache.contexts.rendering.logger import _log_debug
from tikzcache.contexts.tooling.platform_ops import PlatformOps
from tikzcache.utils.timestamp import format_mtime_ns


@dataclass(frozen=True)
class CacheEntry:
    """
    Modification times of a source and an artifact derived from it.

    Times are in nanoseconds; None means the time could not be read.
    """

    source_path: Path
    artifact_path: Path
    source_mtime: Optional[int]
    artifact_mtime: Optional[int]

    @property
    def is_fresh(self) -> bool:
        return (
            self.source_mtime is not None
            and self.artifact_mtime is not None
            and self.source_mtime == self.artifact_mtime
        )


class CacheManager:
    """Staleness checks and mtime stamping for generated artifacts."""

    def __init__(self, ops: PlatformOps):
        self.ops = ops

    def entry(self, artifact_path: Path, source_path: Path) -> CacheEntry:
        return CacheEntry(
            source_path=Path(source_path),
            artifact_path=Path(artifact_path),
            source_mtime=self.ops.get_mtime(source_path),
            artifact_mtime=self.ops.get_mtime(artifact_path),
        )

    def is_stale(self, artifact_path: Path, source_path: Path) -> bool:
        """
        Check whether an artifact must be regenerated.

        Stale when the artifact is missing, when either mtime is unreadable, or
        when the mtimes differ by any amount (older or newer).
        """
        artifact_path = Path(artifact_path)
        if not artifact_path.exists():
            _log_debug(f"  -> {artifact_path.name} does not exist, regenerating")
            return True

        entry = self.entry(artifact_path, source_path)
        if entry.artifact_mtime is None or entry.source_mtime is None:
            _log_debug(f"  -> Could not get mtime of {artifact_path.name}, regenerating")
            return True

        if entry.artifact_mtime != entry.source_mtime:
            _log_debug(
                f"  -> mtime mismatch for {artifact_path.name} "
                f"(img={format_mtime_ns(entry.artifact_mtime)}, "
                f"src={format_mtime_ns(entry.source_mtime)}), regenerating"
            )
            return True

        return False

    def stale_artifacts(self, artifact_paths: Iterable[Path], source_path: Path) -> List[Path]:
        """The subset of artifact_paths that is stale, in input order."""
        return [path for path in artifact_paths if self.is_stale(path, source_path)]

    def stamp(self, artifact_paths: Iterable[Path], source_path: Path) -> List[Path]:
        """
        Copy the source's modification time onto every artifact.

        Args:
            artifact_paths: Freshly generated artifacts
            source_path: File the artifacts were generated from

        Returns:
            The stamped paths

        Raises:
            OSError: If the source or an artifact cannot be stat'ed or touched
        """
        stamped = []
        for artifact_path in artifact_paths:
            mtime = self.ops.set_mtime(artifact_path, source_path)
            _log_debug(f"Stamped {Path(artifact_path).name} with {format_mtime_ns(mtime)}")
            stamped.append(Path(artifact_path))
        return stamped
