from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Union

from ..exceptions import SnapshotFormatError

AttributeValue = Union[str, List[str]]


def _require_text(data: Dict[str, Any], key: str) -> str:
    value = data[key]
    if not isinstance(value, str):
        raise SnapshotFormatError(f"'{key}' must be a string, got {type(value).__name__}")
    return value


def _require_attributes(data: Dict[str, Any]) -> Dict[str, Any]:
    attributes = data.get("attributes") or {}
    if not isinstance(attributes, dict):
        raise SnapshotFormatError(
            f"'attributes' of {data.get('path')} must be an object"
        )
    return dict(attributes)


class ObjectClass(Enum):
    """Directory object classes the replay engine knows how to recreate."""
    USER = "user"
    GROUP = "group"
    COMPUTER = "computer"

    @classmethod
    def parse(cls, value: Optional[str]) -> Optional["ObjectClass"]:
        """Return the matching class, or None for anything unsupported."""
        if not isinstance(value, str) or not value:
            return None
        try:
            return cls(value.lower())
        except ValueError:
            return None

    @classmethod
    def from_ldap(cls, object_classes: Union[str, List[str]]) -> Optional["ObjectClass"]:
        """
        Classify an LDAP objectClass value list.

        Active Directory computer entries also carry the 'user' class, so the
        most specific class wins: computer, then group, then user.
        """
        if isinstance(object_classes, str):
            object_classes = [object_classes]
        lowered = {value.lower() for value in object_classes}

        for candidate in (cls.COMPUTER, cls.GROUP, cls.USER):
            if candidate.value in lowered:
                return candidate
        return None


@dataclass
class OrganizationalUnit:
    """A captured organizational unit."""
    name: str
    path: str
    attributes: Dict[str, AttributeValue] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "path": self.path,
            "attributes": self.attributes,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "OrganizationalUnit":
        return cls(
            name=_require_text(data, "name"),
            path=_require_text(data, "path"),
            attributes=_require_attributes(data),
        )


@dataclass
class DirectoryObject:
    """
    A captured user, group or computer.

    object_class is kept as the raw string so that hand-edited snapshots with
    unknown classes still load; the replay engine skips those entries.
    """
    name: str
    path: str
    object_class: str
    attributes: Dict[str, AttributeValue] = field(default_factory=dict)

    @property
    def kind(self) -> Optional[ObjectClass]:
        return ObjectClass.parse(self.object_class)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "path": self.path,
            "objectClass": self.object_class,
            "attributes": self.attributes,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DirectoryObject":
        return cls(
            name=_require_text(data, "name"),
            path=_require_text(data, "path"),
            object_class=_require_text(data, "objectClass"),
            attributes=_require_attributes(data),
        )


@dataclass
class GroupMembership:
    """Direct members of one captured group."""
    group_path: str
    members: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {"groupPath": self.group_path, "members": list(self.members)}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "GroupMembership":
        members = data.get("members") or []
        if not isinstance(members, list) or not all(isinstance(m, str) for m in members):
            raise SnapshotFormatError(
                f"'members' of {data.get('groupPath')} must be a list of paths"
            )
        return cls(group_path=_require_text(data, "groupPath"), members=list(members))


@dataclass
class Snapshot:
    """
    Everything captured from a source subtree.

    units are in pre-order with the capture root first. The snapshot is plain
    data: the services that produce and consume it hold no state of their own.
    """
    units: List[OrganizationalUnit] = field(default_factory=list)
    objects: List[DirectoryObject] = field(default_factory=list)
    memberships: List[GroupMembership] = field(default_factory=list)
    metadata: Dict[str, Any] = field(default_factory=dict)

    @property
    def root_path(self) -> Optional[str]:
        """Path of the capture root, if the snapshot has any units."""
        return self.units[0].path if self.units else None

    def group_paths(self) -> List[str]:
        return [obj.path for obj in self.objects if obj.kind is ObjectClass.GROUP]

    def to_dict(self) -> Dict[str, Any]:
        document = {
            "units": [unit.to_dict() for unit in self.units],
            "objects": [obj.to_dict() for obj in self.objects],
            "memberships": [membership.to_dict() for membership in self.memberships],
        }
        if self.metadata:
            document["metadata"] = self.metadata
        return document

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Snapshot":
        return cls(
            units=[OrganizationalUnit.from_dict(item) for item in data.get("units", [])],
            objects=[DirectoryObject.from_dict(item) for item in data.get("objects", [])],
            memberships=[
                GroupMembership.from_dict(item) for item in data.get("memberships", [])
            ],
            metadata=dict(data.get("metadata") or {}),
        )
