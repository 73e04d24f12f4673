from abc import ABC, abstractmethod
from typing import Any, Dict, Iterable, List, Optional


class BaseDirectoryAdapter(ABC):
    """
    Abstract base class for directory client adapters.

    Tree capture and replay only talk to a directory through this interface.
    Descriptors are plain dictionaries holding a 'dn' key plus attributes.
    Mutating methods raise MutationError or DependencyMissingError on failure.
    """

    @abstractmethod
    def get_unit(self, path: str) -> Optional[Dict[str, Any]]:
        """Return the organizational unit at path with all attributes, or None."""
        pass

    @abstractmethod
    def get_child_units(self, path: str) -> List[Dict[str, Any]]:
        """Return the organizational units directly below path."""
        pass

    @abstractmethod
    def get_objects(self, subtree_root: str, classes: Iterable[str]) -> List[Dict[str, Any]]:
        """Return every object of the given classes anywhere below subtree_root."""
        pass

    @abstractmethod
    def get_group_members(self, group_path: str) -> List[str]:
        """Return the DNs of the direct members of a group."""
        pass

    @abstractmethod
    def create_unit(self, name: str, parent_path: str) -> None:
        pass

    @abstractmethod
    def create_user(self, name: str, parent_path: str, attributes: Dict[str, Any]) -> None:
        pass

    @abstractmethod
    def create_group(self, name: str, parent_path: str) -> None:
        """Create a global-scope security group."""
        pass

    @abstractmethod
    def create_computer(self, name: str, parent_path: str) -> None:
        pass

    @abstractmethod
    def add_group_member(self, group_path: str, member_path: str) -> None:
        pass
