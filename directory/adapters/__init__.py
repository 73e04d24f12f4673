from .base_directory_adapter import BaseDirectoryAdapter
from .ldap_adapter import LDAPAdapter

__all__ = ['BaseDirectoryAdapter', 'LDAPAdapter']
