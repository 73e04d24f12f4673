"""
Migration Facade

This facade binds a source and/or target LDAP connection to the capture and
replay services, following the adapter-facade-service layering: adapters
talk to the directory, services implement the migration, the facade wires
them together for scripts.
"""

import logging
from typing import Any, Dict, Optional

from migration.models.interchange import load_snapshot, save_snapshot
from migration.models.outcome import ReplayReport
from migration.models.snapshot import Snapshot
from migration.services.replay_engine import ReplayEngine
from migration.services.tree_capture import TreeCaptureService

from ..adapters.ldap_adapter import LDAPAdapter

logger = logging.getLogger(__name__)


class MigrationFacade:
    """
    Migration facade providing export from a source directory and import into
    a target directory.

    Either side may be omitted: an export only needs the source connection
    and an import only needs the target connection. Every configured
    connection is tested on construction and the facade fails if one cannot
    be established.
    """

    def __init__(
        self,
        source_config: Optional[Dict[str, Any]] = None,
        target_config: Optional[Dict[str, Any]] = None,
    ) -> None:
        """
        Args:
            source_config: LDAPAdapter configuration for the source directory
            target_config: LDAPAdapter configuration for the target directory

        Raises:
            ValueError: If neither configuration is given
            ConnectionError: If a configured connection cannot be established
        """
        if source_config is None and target_config is None:
            raise ValueError("At least one of source_config or target_config is required")

        logger.info("Initializing Migration Facade")

        self.source = LDAPAdapter(source_config) if source_config else None
        self.target = LDAPAdapter(target_config) if target_config else None

        try:
            self._activate_connections()
        except Exception:
            self.close()
            raise

        logger.info("Migration Facade initialized")

    def _activate_connections(self) -> None:
        for role, adapter in (("source", self.source), ("target", self.target)):
            if adapter is None:
                continue
            logger.debug(f"Testing {role} connection to {adapter.server_hostname}...")
            if not adapter.test_connection():
                raise ConnectionError(f"Failed to establish {role} directory connection")
            logger.debug(f"{role.capitalize()} connection successful")

    def capture(self, ou_path: str) -> Snapshot:
        """Capture the subtree at ou_path from the source directory."""
        if self.source is None:
            raise ValueError("No source directory configured")
        service = TreeCaptureService(self.source, source_server=self.source.server_hostname)
        return service.capture(ou_path)

    def export_ou(self, ou_path: str, out_file: str) -> Snapshot:
        """
        Capture ou_path and write the interchange document to out_file.

        Nothing is written if the capture fails.
        """
        snapshot = self.capture(ou_path)
        save_snapshot(snapshot, out_file)
        return snapshot

    def replay(
        self,
        snapshot: Snapshot,
        target_ou: str,
        dry_run: bool = False,
        preserve_hierarchy: bool = False,
    ) -> ReplayReport:
        """Replay a snapshot below target_ou in the target directory."""
        if self.target is None:
            raise ValueError("No target directory configured")
        engine = ReplayEngine(
            self.target, simulate=dry_run, preserve_hierarchy=preserve_hierarchy
        )
        return engine.replay(snapshot, target_ou)

    def import_ou(
        self,
        in_file: str,
        target_ou: str,
        dry_run: bool = False,
        preserve_hierarchy: bool = False,
    ) -> ReplayReport:
        """Load the interchange document in_file and replay it below target_ou."""
        snapshot = load_snapshot(in_file)
        return self.replay(
            snapshot, target_ou, dry_run=dry_run, preserve_hierarchy=preserve_hierarchy
        )

    def close(self) -> None:
        """Close every open directory connection."""
        for adapter in (self.source, self.target):
            if adapter is not None:
                adapter.close()
