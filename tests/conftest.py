# tests/conftest.py
"""Shared fixtures: an in-memory directory client standing in for LDAP."""

from typing import Any, Dict, List, Optional

import pytest

from directory.adapters.base_directory_adapter import BaseDirectoryAdapter
from directory.dn import is_within, normalize_path, parent_path
from migration.exceptions import DependencyMissingError

MUTATING_METHODS = {
    "create_unit",
    "create_user",
    "create_group",
    "create_computer",
    "add_group_member",
}


class InMemoryDirectory(BaseDirectoryAdapter):
    """
    Directory client backed by dictionaries.

    Every call is recorded in `calls` as (method, args...). Calls listed in
    `failures` raise the mapped exception instead of running; failures are
    keyed on the call without its attribute dictionary, e.g.
    ("create_user", name, parent_path).
    """

    def __init__(self):
        self.units: Dict[str, Dict[str, Any]] = {}
        self.objects: Dict[str, Dict[str, Any]] = {}
        self.members: Dict[str, List[str]] = {}
        self.calls: List[tuple] = []
        self.failures: Dict[tuple, Exception] = {}
        self.query_error: Optional[Exception] = None

    # helpers for building fixtures

    def add_unit(self, dn: str, **attributes) -> None:
        self.units[normalize_path(dn)] = {"dn": dn, "objectClass": ["top", "organizationalUnit"], **attributes}

    def add_object(self, dn: str, object_classes: List[str], **attributes) -> None:
        self.objects[normalize_path(dn)] = {"dn": dn, "objectClass": object_classes, **attributes}

    def set_members(self, group_dn: str, members: List[str]) -> None:
        self.members[normalize_path(group_dn)] = list(members)

    def mutating_calls(self) -> List[tuple]:
        return [call for call in self.calls if call[0] in MUTATING_METHODS]

    def _record(self, *call) -> None:
        self.calls.append(call)
        key = tuple(arg for arg in call if not isinstance(arg, dict))
        if key in self.failures:
            raise self.failures[key]

    # BaseDirectoryAdapter

    def get_unit(self, path):
        self._record("get_unit", path)
        if self.query_error:
            raise self.query_error
        return self.units.get(normalize_path(path))

    def get_child_units(self, path):
        self._record("get_child_units", path)
        if self.query_error:
            raise self.query_error
        return [
            unit for unit in self.units.values()
            if parent_path(unit["dn"]) and normalize_path(parent_path(unit["dn"])) == normalize_path(path)
        ]

    def get_objects(self, subtree_root, classes):
        self._record("get_objects", subtree_root, tuple(classes))
        return [obj for obj in self.objects.values() if is_within(obj["dn"], subtree_root)]

    def get_group_members(self, group_path):
        self._record("get_group_members", group_path)
        return list(self.members.get(normalize_path(group_path), []))

    def create_unit(self, name, parent_path):
        self._record("create_unit", name, parent_path)
        if normalize_path(parent_path) not in self.units:
            raise DependencyMissingError(f"Parent container missing: {parent_path}")
        self.add_unit(f"OU={name},{parent_path}", ou=name)

    def create_user(self, name, parent_path, attributes):
        self._record("create_user", name, parent_path, attributes)
        self.add_object(f"CN={name},{parent_path}", ["top", "user"], **attributes)

    def create_group(self, name, parent_path):
        self._record("create_group", name, parent_path)
        self.add_object(f"CN={name},{parent_path}", ["top", "group"])

    def create_computer(self, name, parent_path):
        self._record("create_computer", name, parent_path)
        self.add_object(f"CN={name},{parent_path}", ["top", "user", "computer"])

    def add_group_member(self, group_path, member_path):
        self._record("add_group_member", group_path, member_path)
        if normalize_path(group_path) not in self.objects:
            raise DependencyMissingError(f"Group missing: {group_path}")
        if normalize_path(member_path) not in self.objects:
            raise DependencyMissingError(f"Member missing: {member_path}")
        self.members.setdefault(normalize_path(group_path), []).append(member_path)


@pytest.fixture
def directory():
    """Empty in-memory directory."""
    return InMemoryDirectory()


@pytest.fixture
def source_directory():
    """
    Source directory holding:

    OU=Root,DC=corp,DC=local
    ├─ OU=Sales      (alice, bob, G1 = {alice, G2}, WS01)
    │  └─ OU=EMEA    (G2 = {bob})
    └─ OU=Empty      (G3, no members)
    """
    source = InMemoryDirectory()
    source.add_unit("OU=Root,DC=corp,DC=local", ou="Root", description="Root unit")
    source.add_unit("OU=Sales,OU=Root,DC=corp,DC=local", ou="Sales")
    source.add_unit("OU=EMEA,OU=Sales,OU=Root,DC=corp,DC=local", ou="EMEA")
    source.add_unit("OU=Empty,OU=Root,DC=corp,DC=local", ou="Empty")

    source.add_object(
        "CN=alice,OU=Sales,OU=Root,DC=corp,DC=local",
        ["top", "person", "organizationalPerson", "user"],
        cn="alice",
        mail="alice@corp.local",
        objectGUID="AAECAw==",
        proxyAddresses=["SMTP:alice@corp.local", "smtp:a@corp.local"],
    )
    source.add_object(
        "CN=bob,OU=Sales,OU=Root,DC=corp,DC=local",
        ["top", "person", "organizationalPerson", "user"],
        cn="bob",
    )
    source.add_object(
        "CN=G1,OU=Sales,OU=Root,DC=corp,DC=local", ["top", "group"], cn="G1", groupType="-2147483646"
    )
    source.add_object(
        "CN=WS01,OU=Sales,OU=Root,DC=corp,DC=local",
        ["top", "person", "organizationalPerson", "user", "computer"],
        cn="WS01",
    )
    source.add_object("CN=G2,OU=EMEA,OU=Sales,OU=Root,DC=corp,DC=local", ["top", "group"], cn="G2")
    source.add_object("CN=G3,OU=Empty,OU=Root,DC=corp,DC=local", ["top", "group"], cn="G3")
    source.add_object("CN=outsider,OU=Other,DC=corp,DC=local", ["top", "user"], cn="outsider")

    source.set_members(
        "CN=G1,OU=Sales,OU=Root,DC=corp,DC=local",
        [
            "CN=alice,OU=Sales,OU=Root,DC=corp,DC=local",
            "CN=G2,OU=EMEA,OU=Sales,OU=Root,DC=corp,DC=local",
        ],
    )
    source.set_members(
        "CN=G2,OU=EMEA,OU=Sales,OU=Root,DC=corp,DC=local",
        ["CN=bob,OU=Sales,OU=Root,DC=corp,DC=local"],
    )
    return source


@pytest.fixture
def target_directory():
    """Target directory where only OU=Root,DC=new,DC=local exists."""
    target = InMemoryDirectory()
    target.add_unit("OU=Root,DC=new,DC=local", ou="Root")
    return target
