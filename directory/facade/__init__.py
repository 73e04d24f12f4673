from .migration_facade import MigrationFacade

__all__ = ['MigrationFacade']
