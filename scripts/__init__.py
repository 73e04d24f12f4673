"""
Scripts package for the OU migration toolkit.

This package contains command-line scripts organized by functionality.

Subpackages:
- migration: Export and import of organizational unit subtrees
"""

__version__ = "0.1.0"
