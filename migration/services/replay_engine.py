"""
Replay Engine

Recreates a captured Snapshot inside a target directory:

1. Ensures the target root exists, creating missing OU segments
2. Pass 1 creates the captured units
3. Pass 2 creates users, groups and computers
4. Pass 3 adds group members, one member at a time

The passes are best-effort: a failure on one item is logged, recorded as a
failed outcome and the pass moves on. Pass 3 only starts once pass 2 has
recorded an outcome for every object. In simulate mode no mutating call
reaches the directory client; intended actions are logged instead.
"""

import logging
from typing import List

from directory.adapters.base_directory_adapter import BaseDirectoryAdapter
from directory.dn import ancestor_segments, leaf_rdn, leaf_value, parent_path, rdn_type

from ..exceptions import NotFoundError, UnsupportedClassError
from ..models.outcome import (
    CREATED,
    EXISTING,
    FAILED,
    PHASE_MEMBERSHIPS,
    PHASE_OBJECTS,
    PHASE_ROOT,
    PHASE_UNITS,
    SIMULATED,
    SKIPPED,
    ItemOutcome,
    ReplayReport,
)
from ..models.snapshot import (
    DirectoryObject,
    GroupMembership,
    ObjectClass,
    OrganizationalUnit,
    Snapshot,
)
from .path_mapper import PathMapper

logger = logging.getLogger(__name__)


class ReplayEngine:
    """
    Replays snapshots into a target directory.

    The engine holds only its directory client and mode flags; the snapshot
    and target path are passed to every call.
    """

    def __init__(
        self,
        client: BaseDirectoryAdapter,
        simulate: bool = False,
        preserve_hierarchy: bool = False,
    ):
        """
        Args:
            client: Directory client for the target directory
            simulate: Log intended changes without calling mutating operations
            preserve_hierarchy: Rebuild the captured nesting below the target
                root instead of placing everything directly under it
        """
        self.client = client
        self.simulate = simulate
        self.preserve_hierarchy = preserve_hierarchy

    def replay(self, snapshot: Snapshot, target_path: str) -> ReplayReport:
        """
        Run root assurance and all three passes.

        Returns:
            ReplayReport: Every recorded outcome, in execution order

        Raises:
            NotFoundError: If the target root could not be established
        """
        mode = "SIMULATION" if self.simulate else "LIVE"
        logger.info(
            f"Starting {mode} replay into {target_path}: {len(snapshot.units)} units, "
            f"{len(snapshot.objects)} objects, {len(snapshot.memberships)} memberships"
        )

        report = ReplayReport(target_path=target_path, simulate=self.simulate)

        root_outcomes = self.ensure_root(target_path)
        report.extend(root_outcomes)
        if any(outcome.failed for outcome in root_outcomes):
            raise NotFoundError(f"Target root could not be established: {target_path}")

        mapper = PathMapper.for_snapshot(
            snapshot, target_path, preserve_hierarchy=self.preserve_hierarchy
        )

        report.extend(self.create_units(snapshot.units, mapper))
        report.extend(self.create_objects(snapshot.objects, mapper))
        report.extend(self.apply_memberships(snapshot.memberships, mapper))

        logger.info(f"Replay into {target_path} finished: {report.counts()}")
        return report

    def ensure_root(self, target_path: str) -> List[ItemOutcome]:
        """
        Make sure target_path exists, creating missing OU segments outermost first.

        Only OU segments are created; the non-OU suffix (domain components,
        containers) must already exist. After a failed segment the remaining
        inner segments are reported as skipped, since they cannot be created
        without their parent.
        """
        if self.client.get_unit(target_path) is not None:
            logger.info(f"Target root already exists: {target_path}")
            return [ItemOutcome(PHASE_ROOT, target_path, EXISTING)]

        outcomes: List[ItemOutcome] = []
        failed_segment = None

        for segment in ancestor_segments(target_path):
            if rdn_type(leaf_rdn(segment)).upper() != "OU":
                continue

            if failed_segment is not None:
                outcomes.append(
                    ItemOutcome(
                        PHASE_ROOT, segment, SKIPPED,
                        reason=f"parent segment {failed_segment} was not created",
                    )
                )
                continue

            if self.client.get_unit(segment) is not None:
                logger.debug(f"Target segment exists: {segment}")
                outcomes.append(ItemOutcome(PHASE_ROOT, segment, EXISTING))
                continue

            if self.simulate:
                logger.info(f"[DRY RUN] Would create target segment {segment}")
                outcomes.append(ItemOutcome(PHASE_ROOT, segment, SIMULATED))
                continue

            try:
                self.client.create_unit(leaf_value(segment), parent_path(segment))
                logger.info(f"Created target segment {segment}")
                outcomes.append(ItemOutcome(PHASE_ROOT, segment, CREATED))
            except Exception as e:
                logger.error(f"Failed to create target segment {segment}: {e}")
                outcomes.append(ItemOutcome(PHASE_ROOT, segment, FAILED, reason=str(e)))
                failed_segment = segment

        return outcomes

    def create_units(
        self, units: List[OrganizationalUnit], mapper: PathMapper
    ) -> List[ItemOutcome]:
        """Pass 1: recreate units in captured (pre-order) order."""
        outcomes: List[ItemOutcome] = []

        for unit in units:
            try:
                container = mapper.container_for(unit.path)
                if self.simulate:
                    logger.info(f"[DRY RUN] Would create unit {unit.name} under {container}")
                    outcomes.append(ItemOutcome(PHASE_UNITS, unit.path, SIMULATED))
                    continue

                self.client.create_unit(unit.name, container)
                logger.info(f"Created unit {unit.name} under {container}")
                outcomes.append(ItemOutcome(PHASE_UNITS, unit.path, CREATED))
            except Exception as e:
                logger.warning(f"Failed to create unit {unit.path}: {e}")
                outcomes.append(ItemOutcome(PHASE_UNITS, unit.path, FAILED, reason=str(e)))

        return outcomes

    def create_objects(
        self, objects: List[DirectoryObject], mapper: PathMapper
    ) -> List[ItemOutcome]:
        """Pass 2: recreate users, groups and computers."""
        outcomes: List[ItemOutcome] = []

        for obj in objects:
            label = "object"
            try:
                kind = obj.kind
                if kind is None:
                    raise UnsupportedClassError(f"unsupported object class {obj.object_class!r}")
                label = kind.value

                container = mapper.container_for(obj.path)
                if self.simulate:
                    logger.info(f"[DRY RUN] Would create {label} {obj.name} under {container}")
                    outcomes.append(ItemOutcome(PHASE_OBJECTS, obj.path, SIMULATED))
                    continue

                self._create_object(kind, obj, container)
                logger.info(f"Created {label} {obj.name} under {container}")
                outcomes.append(ItemOutcome(PHASE_OBJECTS, obj.path, CREATED))
            except UnsupportedClassError as e:
                logger.info(f"Skipping {obj.path}: {e}")
                outcomes.append(ItemOutcome(PHASE_OBJECTS, obj.path, SKIPPED, reason=str(e)))
            except Exception as e:
                logger.warning(f"Failed to create {label} {obj.path}: {e}")
                outcomes.append(ItemOutcome(PHASE_OBJECTS, obj.path, FAILED, reason=str(e)))

        return outcomes

    def _create_object(self, kind: ObjectClass, obj: DirectoryObject, container: str) -> None:
        if kind is ObjectClass.USER:
            self.client.create_user(obj.name, container, dict(obj.attributes))
        elif kind is ObjectClass.GROUP:
            # group scope and type are fixed, not copied from the source
            self.client.create_group(obj.name, container)
        elif kind is ObjectClass.COMPUTER:
            self.client.create_computer(obj.name, container)

    def apply_memberships(
        self, memberships: List[GroupMembership], mapper: PathMapper
    ) -> List[ItemOutcome]:
        """Pass 3: add members one by one so a bad member never blocks the rest."""
        outcomes: List[ItemOutcome] = []

        for membership in memberships:
            try:
                group_path = mapper.map_path(membership.group_path)
            except Exception as e:
                logger.warning(f"Cannot resolve group {membership.group_path}: {e}")
                outcomes.extend(
                    ItemOutcome(
                        PHASE_MEMBERSHIPS,
                        f"{membership.group_path} <- {member}",
                        FAILED,
                        reason=str(e),
                    )
                    for member in membership.members
                )
                continue

            if self.simulate:
                logger.info(
                    f"[DRY RUN] Would add {len(membership.members)} members to {group_path}"
                )
                outcomes.extend(
                    ItemOutcome(PHASE_MEMBERSHIPS, f"{group_path} <- {member}", SIMULATED)
                    for member in membership.members
                )
                continue

            for member in membership.members:
                item = f"{group_path} <- {member}"
                try:
                    member_path = mapper.map_path(member)
                    item = f"{group_path} <- {member_path}"
                    self.client.add_group_member(group_path, member_path)
                    logger.info(f"Added {member_path} to {group_path}")
                    outcomes.append(ItemOutcome(PHASE_MEMBERSHIPS, item, CREATED))
                except Exception as e:
                    logger.warning(f"Failed to add member {member} to {group_path}: {e}")
                    outcomes.append(
                        ItemOutcome(PHASE_MEMBERSHIPS, item, FAILED, reason=str(e))
                    )

        return outcomes
