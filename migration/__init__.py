"""
Directory subtree migration: capture an organizational unit subtree into a
snapshot and replay it into another directory instance.
"""

__version__ = "0.1.0"
