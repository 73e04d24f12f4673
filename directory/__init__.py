"""
Directory access layer: the abstract client interface, the ldap3-backed
adapter and distinguished name helpers. The migration facade lives in
directory.facade.
"""

from .adapters.ldap_adapter import LDAPAdapter

__all__ = ['LDAPAdapter']
