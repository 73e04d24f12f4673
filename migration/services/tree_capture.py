"""
Tree Capture Service

Exports an organizational unit subtree into a Snapshot:

1. Walks the unit hierarchy depth-first from the root, emitting one
   descriptor per unit in pre-order (parent before its children)
2. Collects every user, group and computer below the root with one flat
   subtree query
3. Reads the direct members of every captured group

Capture is fail-fast: any directory error aborts the export and propagates
to the caller, so a partial snapshot is never produced.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List

from directory.adapters.base_directory_adapter import BaseDirectoryAdapter
from directory.dn import leaf_value

from ..exceptions import NotFoundError
from ..models.snapshot import (
    DirectoryObject,
    GroupMembership,
    ObjectClass,
    OrganizationalUnit,
    Snapshot,
)

logger = logging.getLogger(__name__)

CAPTURED_CLASSES = [object_class.value for object_class in ObjectClass]

# Attributes owned by the directory itself; a target directory either
# generates them or refuses writes to them.
SYSTEM_ATTRIBUTES = {
    "dn",
    "distinguishedname",
    "objectclass",
    "objectcategory",
    "objectguid",
    "objectsid",
    "sidhistory",
    "instancetype",
    "whencreated",
    "whenchanged",
    "usncreated",
    "usnchanged",
    "dscorepropagationdata",
    "member",
    "memberof",
    "primarygroupid",
    "samaccounttype",
    "useraccountcontrol",
    "pwdlastset",
    "badpwdcount",
    "badpasswordtime",
    "lastlogon",
    "lastlogoff",
    "lastlogontimestamp",
    "logoncount",
    "accountexpires",
    "codepage",
    "countrycode",
    "iscriticalsystemobject",
    "ntsecuritydescriptor",
    "grouptype",
    "lockouttime",
    "logonhours",
    "admincount",
    "lastknownparent",
    "replpropertymetadata",
}

# Constructed and system-maintained attributes share this prefix
SYSTEM_ATTRIBUTE_PREFIXES = ("msds-",)


def filter_attributes(descriptor: Dict[str, Any]) -> Dict[str, Any]:
    """Copy a descriptor's attributes without the directory-owned ones."""
    return {
        key: value
        for key, value in descriptor.items()
        if key.lower() not in SYSTEM_ATTRIBUTES
        and not key.lower().startswith(SYSTEM_ATTRIBUTE_PREFIXES)
    }


def _descriptor_name(descriptor: Dict[str, Any], *naming_attributes: str) -> str:
    for attribute in naming_attributes:
        value = descriptor.get(attribute)
        if isinstance(value, list):
            value = value[0] if value else None
        if value:
            return value
    return leaf_value(descriptor["dn"])


class TreeCaptureService:
    """
    Captures an organizational unit subtree from a source directory.

    The service only holds the directory client it reads from; every call to
    capture() builds and returns a fresh Snapshot.
    """

    def __init__(self, client: BaseDirectoryAdapter, source_server: str = ""):
        """
        Args:
            client: Directory client for the source directory
            source_server: Server name recorded in the snapshot metadata
        """
        self.client = client
        self.source_server = source_server

    def capture(self, root_path: str) -> Snapshot:
        """
        Capture the subtree rooted at root_path.

        Raises:
            NotFoundError: If root_path is not an existing organizational unit
        """
        logger.info(f"Starting capture of {root_path}")

        root = self.client.get_unit(root_path)
        if root is None:
            raise NotFoundError(f"Organizational unit not found: {root_path}")

        units = self.capture_units(root_path, root)
        objects = self.capture_objects(root_path)
        memberships = self.capture_memberships(objects)

        snapshot = Snapshot(
            units=units,
            objects=objects,
            memberships=memberships,
            metadata={
                "source_root": root_path,
                "source_server": self.source_server,
                "exported_at": datetime.now(timezone.utc).isoformat(),
            },
        )

        logger.info(
            f"Capture of {root_path} completed: {len(units)} units, "
            f"{len(objects)} objects, {len(memberships)} memberships"
        )
        return snapshot

    def capture_units(
        self, root_path: str, root: Dict[str, Any]
    ) -> List[OrganizationalUnit]:
        """Walk the unit tree depth-first and return the units in pre-order."""
        units: List[OrganizationalUnit] = []

        def visit(descriptor: Dict[str, Any], depth: int) -> None:
            unit = OrganizationalUnit(
                name=_descriptor_name(descriptor, "ou", "name"),
                path=descriptor["dn"],
                attributes=filter_attributes(descriptor),
            )
            units.append(unit)

            children = self.client.get_child_units(unit.path)
            logger.debug(
                f"Captured unit at depth {depth}: {unit.path} ({len(children)} children)"
            )
            for child in children:
                visit(child, depth + 1)

        visit(root, 0)
        return units

    def capture_objects(self, root_path: str) -> List[DirectoryObject]:
        """
        Return every supported object below root_path.

        Entries whose objectClass values map to no supported class are logged
        and left out.
        """
        objects: List[DirectoryObject] = []

        for descriptor in self.client.get_objects(root_path, CAPTURED_CLASSES):
            object_class = ObjectClass.from_ldap(descriptor.get("objectClass") or [])
            if object_class is None:
                logger.debug(f"Skipping entry with unsupported class: {descriptor['dn']}")
                continue

            objects.append(
                DirectoryObject(
                    name=_descriptor_name(descriptor, "cn", "name"),
                    path=descriptor["dn"],
                    object_class=object_class.value,
                    attributes=filter_attributes(descriptor),
                )
            )

        logger.info(f"Captured {len(objects)} objects below {root_path}")
        return objects

    def capture_memberships(
        self, objects: List[DirectoryObject]
    ) -> List[GroupMembership]:
        """Read direct members of every captured group; empty groups get no record."""
        memberships: List[GroupMembership] = []

        for obj in objects:
            if obj.kind is not ObjectClass.GROUP:
                continue

            members = self.client.get_group_members(obj.path)
            if members:
                memberships.append(GroupMembership(group_path=obj.path, members=members))

        logger.info(f"Captured memberships for {len(memberships)} groups")
        return memberships
