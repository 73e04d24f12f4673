class MigrationError(Exception):
    """Base exception for directory migration errors."""
    pass

class NotFoundError(MigrationError):
    """Raised when a root unit, target container or snapshot file is absent."""
    pass

class DependencyMissingError(MigrationError):
    """Raised when a referenced parent, group or member is absent at replay time."""
    pass

class MutationError(MigrationError):
    """Raised when the directory rejects a create or add operation."""
    pass

class UnsupportedClassError(MigrationError):
    """Raised for object classes outside user, group and computer."""
    pass

class SnapshotFormatError(MigrationError):
    """Raised when an interchange document cannot be parsed into a snapshot."""
    pass

class ConfigurationError(MigrationError):
    """Raised when required connection settings are missing."""
    pass
