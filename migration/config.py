import os
from typing import Any, Dict, Optional

from dotenv import load_dotenv

from .exceptions import ConfigurationError

DEFAULT_KEYRING_SERVICE = "ou_migration"
DEFAULT_LOG_DIR = "logs"


class MigrationConfig:
    """Centralized connection and logging configuration, read from the environment."""

    @staticmethod
    def load(env_file: Optional[str] = None) -> None:
        """Load a .env file into the environment without overriding set variables."""
        if env_file:
            load_dotenv(env_file)
        else:
            load_dotenv()

    @staticmethod
    def get_ldap_config(prefix: str) -> Dict[str, Any]:
        """
        Build an LDAPAdapter configuration from <prefix>_LDAP_* variables.

        Args:
            prefix: 'SOURCE' or 'TARGET'

        Raises:
            ConfigurationError: If the server, search base or user is missing
        """
        def env(name: str, default: Optional[str] = None) -> Optional[str]:
            return os.getenv(f"{prefix}_LDAP_{name}", default)

        use_ssl = env("USE_SSL", "true").lower() in ("1", "true", "yes")

        config = {
            'server': env("SERVER"),
            'search_base': env("SEARCH_BASE"),
            'user': env("USER"),
            'password': env("PASSWORD"),
            'keyring_service': env("KEYRING_SERVICE", DEFAULT_KEYRING_SERVICE),
            'use_ssl': use_ssl,
            'port': int(env("PORT", "636" if use_ssl else "389")),
            'timeout': int(env("TIMEOUT", "30")),
        }

        missing = [
            f"{prefix}_LDAP_{key.upper()}"
            for key in ('server', 'search_base', 'user')
            if not config[key]
        ]
        if missing:
            raise ConfigurationError(f"Missing required environment variables: {missing}")

        return config

    @staticmethod
    def get_source_config() -> Dict[str, Any]:
        return MigrationConfig.get_ldap_config("SOURCE")

    @staticmethod
    def get_target_config() -> Dict[str, Any]:
        return MigrationConfig.get_ldap_config("TARGET")

    @staticmethod
    def get_log_dir() -> str:
        return os.getenv('MIGRATION_LOG_DIR', DEFAULT_LOG_DIR)

    @staticmethod
    def get_log_level() -> str:
        return os.getenv('MIGRATION_LOG_LEVEL', 'INFO').upper()
