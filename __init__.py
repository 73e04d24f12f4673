"""
OU Migration Toolkit
====================

Python modules for moving an organizational unit subtree between LDAP
directories.

This package provides adapters, facades, and services for:
- Capturing an OU subtree (units, users, groups, computers, memberships)
- Writing and reading the JSON interchange document
- Replaying a capture into a target directory, with a dry-run mode

For more information, see the README.md file.
"""

__version__ = "0.1.0"
