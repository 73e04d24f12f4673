from .snapshot import (
    DirectoryObject,
    GroupMembership,
    ObjectClass,
    OrganizationalUnit,
    Snapshot,
)
from .outcome import ItemOutcome, ReplayReport
from .interchange import load_snapshot, save_snapshot

__all__ = [
    'DirectoryObject', 'GroupMembership', 'ObjectClass', 'OrganizationalUnit',
    'Snapshot', 'ItemOutcome', 'ReplayReport', 'load_snapshot', 'save_snapshot',
]
