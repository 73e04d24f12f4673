"""
Source-to-target path mapping for replay.

By default every captured unit and object is placed directly under the
target root (the hierarchy is flattened to one level). With
preserve_hierarchy the original nesting below the capture root is rebuilt
from each path's parent suffix.
"""

from typing import Iterable, Optional

from directory.dn import is_within, join_path, leaf_rdn, normalize_path, parent_path

from ..models.snapshot import Snapshot


class PathMapper:
    """Translates captured source paths into destination paths."""

    def __init__(
        self,
        target_path: str,
        source_root: Optional[str] = None,
        unit_paths: Iterable[str] = (),
        known_paths: Iterable[str] = (),
        preserve_hierarchy: bool = False,
    ):
        """
        Args:
            target_path: Destination root
            source_root: Capture root; paths below it are rebased
            unit_paths: Captured unit paths, used to rebuild nesting
            known_paths: Further captured paths that are always rebased
            preserve_hierarchy: Rebuild nesting instead of flattening
        """
        self.target_path = target_path
        self.source_root = source_root
        self.preserve_hierarchy = preserve_hierarchy
        self._unit_paths = {normalize_path(path) for path in unit_paths}
        self._known_paths = self._unit_paths | {normalize_path(path) for path in known_paths}

    @classmethod
    def for_snapshot(
        cls, snapshot: Snapshot, target_path: str, preserve_hierarchy: bool = False
    ) -> "PathMapper":
        return cls(
            target_path,
            source_root=snapshot.root_path,
            unit_paths=[unit.path for unit in snapshot.units],
            known_paths=[obj.path for obj in snapshot.objects],
            preserve_hierarchy=preserve_hierarchy,
        )

    def in_scope(self, path: str) -> bool:
        """True for paths that were part of the captured subtree."""
        if normalize_path(path) in self._known_paths:
            return True
        return self.source_root is not None and is_within(path, self.source_root)

    def container_for(self, path: str) -> str:
        """Destination container for the captured entry at path."""
        if not self.preserve_hierarchy:
            return self.target_path

        parent = parent_path(path)
        if parent is None or normalize_path(parent) not in self._unit_paths:
            return self.target_path
        return self.map_path(parent)

    def map_path(self, path: str) -> str:
        """
        Destination path of a captured entry.

        Paths outside the captured subtree (e.g. members living elsewhere in
        the directory) are returned unchanged.
        """
        if not self.in_scope(path):
            return path
        return join_path(leaf_rdn(path), self.container_for(path))
