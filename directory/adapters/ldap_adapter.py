import base64
import binascii
import getpass
import logging
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional

import keyring
from ldap3 import ALL, BASE, LEVEL, MODIFY_ADD, SUBTREE, Connection, Server
from ldap3.core.exceptions import LDAPException
from ldap3.utils.dn import escape_rdn

from migration.exceptions import DependencyMissingError, MutationError, NotFoundError

from .base_directory_adapter import BaseDirectoryAdapter

logger = logging.getLogger(__name__)

# LDAP result codes
RESULT_SUCCESS = 0
RESULT_NO_SUCH_OBJECT = 32
RESULT_ENTRY_ALREADY_EXISTS = 68

# Active Directory account flags
GLOBAL_SECURITY_GROUP = -2147483646
NORMAL_ACCOUNT_DISABLED = 514
WORKSTATION_TRUST_ACCOUNT = 4096

UNIT_OBJECT_CLASSES = ["top", "organizationalUnit"]
USER_OBJECT_CLASSES = ["top", "person", "organizationalPerson", "user"]
GROUP_OBJECT_CLASSES = ["top", "group"]
COMPUTER_OBJECT_CLASSES = ["top", "person", "organizationalPerson", "user", "computer"]

# Naming attributes are derived from the new DN and cannot be written directly
RDN_ATTRIBUTES = {"cn", "name", "distinguishedname"}

# Octet-string attributes: always captured as base64 and decoded again on write
BINARY_ATTRIBUTES = {
    "thumbnailphoto",
    "jpegphoto",
    "photo",
    "usercertificate",
    "usersmimecertificate",
}


class LDAPAdapter(BaseDirectoryAdapter):
    """
    LDAP connection adapter providing the directory operations used for migration.

    This class handles LDAP server connections, authentication, the read
    queries used to capture a subtree and the write operations used to
    replay it. A single connection is bound lazily and reused until close()
    is called.
    """

    def __init__(self, config: Dict[str, Any]):
        """
        Args:
            config: Connection settings, as built by MigrationConfig.
                   Required: 'server', 'search_base' (probed by
                   test_connection), 'user' (bind DN or DOMAIN\\name) and
                   'keyring_service'.
                   Optional: 'password' (bypasses keyring and prompt),
                   'use_ssl' (True), 'port' (636 with SSL, else 389),
                   'timeout' in seconds (30), 'auto_bind' (True),
                   'get_info' (ALL), 'default_page_size' (1000).

        Raises:
            ValueError: If a required setting is missing or empty
            TypeError: If config is not a dict
        """
        if not isinstance(config, dict):
            raise TypeError("Configuration must be a dictionary")

        required_keys = ["server", "search_base", "user", "keyring_service"]
        missing_keys = [key for key in required_keys if not config.get(key)]
        if missing_keys:
            raise ValueError(f"Missing required configuration keys: {missing_keys}")

        self.server_hostname = config["server"]
        self.search_base = config["search_base"]
        self.user = config["user"]
        self.keyring_service = config["keyring_service"]

        self.use_ssl = config.get("use_ssl", True)
        self.port = config.get("port", 636 if self.use_ssl else 389)
        self.timeout = config.get("timeout", 30)
        self.auto_bind = config.get("auto_bind", True)
        self.get_info = config.get("get_info", ALL)
        self.default_page_size = config.get("default_page_size", 1000)

        self._server = None
        self._connection = None
        self._password = config.get("password")

        logger.debug(f"LDAP adapter initialized for server: {self.server_hostname}")

    def _get_password(self) -> str:
        """
        Password lookup order: configuration, keyring, interactive prompt.

        A prompted password may be stored in the keyring for the next run.
        """
        if self._password:
            return self._password

        try:
            stored = keyring.get_password(self.keyring_service, self.user)
        except Exception as e:
            logger.warning(f"Keyring lookup for {self.user} failed: {e}")
            stored = None
        if stored:
            logger.debug(f"Using keyring password for {self.user}")
            self._password = stored
            return stored

        try:
            password = getpass.getpass(f"LDAP password for {self.user} on {self.server_hostname}: ")
        except KeyboardInterrupt:
            logger.info("Password prompt cancelled")
            raise
        self._password = password

        try:
            if input("Store password in keyring? (y/n): ").lower().strip() == "y":
                keyring.set_password(self.keyring_service, self.user, password)
                logger.info(f"Stored password for {self.user} in keyring '{self.keyring_service}'")
        except Exception as e:
            logger.warning(f"Could not store password in keyring: {e}")

        return password

    def _create_connection(self) -> Connection:
        """
        Bind a new connection to the configured server.

        The connection follows ranged attribute retrieval (auto_range) so
        large 'member' values arrive complete.

        Raises:
            LDAPException: If the server cannot be reached or the bind fails
        """
        if self._server is None:
            self._server = Server(
                self.server_hostname,
                use_ssl=self.use_ssl,
                port=self.port,
                get_info=self.get_info,
                connect_timeout=self.timeout,
            )

        try:
            connection = Connection(
                self._server,
                user=self.user,
                password=self._get_password(),
                auto_bind=self.auto_bind,
                auto_range=True,
                receive_timeout=self.timeout,
            )
        except LDAPException as e:
            logger.error(f"Bind to {self.server_hostname}:{self.port} failed: {e}")
            raise

        if not connection.bound:
            raise LDAPException(f"Bind to {self.server_hostname} was not accepted")

        logger.info(f"Bound to {self.server_hostname}:{self.port} as {self.user}")
        return connection

    def _get_connection(self) -> Connection:
        """Return the shared connection, binding a new one if needed."""
        if self._connection is None or not self._connection.bound:
            self._connection = self._create_connection()
        return self._connection

    def close(self) -> None:
        """Unbind the shared connection if one is open."""
        if self._connection is not None:
            try:
                self._connection.unbind()
                logger.debug("LDAP connection closed")
            except LDAPException as e:
                logger.warning(f"Error while closing LDAP connection: {e}")
            finally:
                self._connection = None

    def test_connection(self) -> bool:
        """
        Bind and probe the search base with a small one-level OU search.

        Returns False instead of raising so callers can report which side of
        a migration is unreachable.
        """
        try:
            conn = self._get_connection()
            success = conn.search(
                search_base=self.search_base,
                search_filter="(objectClass=organizationalUnit)",
                search_scope=LEVEL,
                attributes=["ou"],
                size_limit=10,
            )
        except LDAPException as e:
            logger.error(f"Connection test against {self.server_hostname} failed: {e}")
            return False

        if not success:
            logger.warning(f"Probe search at {self.search_base} failed: {conn.result}")
            return False

        logger.info(f"Connection to {self.server_hostname} verified at {self.search_base}")
        return True

    # Core Search Infrastructure

    def search(
        self,
        search_filter: str,
        search_base: str,
        scope: str = "subtree",
        attributes: Optional[List[str]] = None,
        use_pagination: bool = False,
    ) -> List[Dict[str, Any]]:
        """
        Run a search and return the entries as descriptor dictionaries.

        Args:
            search_filter: LDAP filter string (e.g., '(objectClass=group)')
            search_base: Base DN for search
            scope: Search scope - 'base', 'level', or 'subtree' (default: 'subtree')
            attributes: List of attributes to retrieve (None for all user attributes)
            use_pagination: Use the simple paged results control

        Returns:
            List[Dict[str, Any]]: Dictionaries with 'dn' plus normalized attributes.
            A search base that does not exist yields an empty list.

        Raises:
            LDAPException: If the search fails for any other reason
            ValueError: If parameters are invalid
        """
        if not search_filter or not isinstance(search_filter, str):
            raise ValueError("search_filter must be a non-empty string")

        scope_mapping = {"base": BASE, "level": LEVEL, "subtree": SUBTREE}
        if scope.lower() not in scope_mapping:
            raise ValueError(f"scope must be one of: {list(scope_mapping.keys())}")

        search_kwargs = {
            "search_base": search_base,
            "search_filter": search_filter,
            "search_scope": scope_mapping[scope.lower()],
            "attributes": attributes if attributes else ["*"],
        }

        logger.debug(
            f"Executing search: filter='{search_filter}', base='{search_base}', "
            f"scope='{scope}', pagination={use_pagination}"
        )

        conn = self._get_connection()
        if use_pagination:
            responses = self._execute_paged_search(conn, **search_kwargs)
        else:
            responses = self._execute_simple_search(conn, **search_kwargs)

        results = [
            self._response_to_descriptor(response)
            for response in responses
            if isinstance(response, dict) and response.get("type") == "searchResEntry"
        ]
        logger.debug(f"Search completed: {len(results)} results returned")
        return results

    def _execute_simple_search(self, conn: Connection, **search_kwargs) -> List:
        success = conn.search(**search_kwargs)
        if not success:
            result_code = conn.result.get("result", RESULT_SUCCESS)
            if result_code == RESULT_NO_SUCH_OBJECT:
                logger.debug(f"Search base does not exist: {search_kwargs['search_base']}")
                return []
            if result_code != RESULT_SUCCESS:
                raise LDAPException(
                    f"Search failed: {conn.result.get('description', 'Unknown error')}"
                )
            return []
        return list(conn.response or [])

    def _execute_paged_search(self, conn: Connection, **search_kwargs) -> List:
        """
        Execute a paged search to handle large result sets.

        Uses ldap3's paged_search with generator=False so every page has been
        read before results are returned.
        """
        logger.debug(f"Starting paged search with page size: {self.default_page_size}")
        return list(
            conn.extend.standard.paged_search(
                paged_size=self.default_page_size, generator=False, **search_kwargs
            )
        )

    def _response_to_descriptor(self, response: Dict[str, Any]) -> Dict[str, Any]:
        descriptor = {"dn": response["dn"]}
        for attr_name, attr_value in (response.get("attributes") or {}).items():
            if attr_name.lower() in BINARY_ATTRIBUTES:
                normalize = self._encode_binary
            else:
                normalize = self._normalize_ldap_value
            if isinstance(attr_value, (list, tuple)):
                descriptor[attr_name] = [normalize(value) for value in attr_value]
            else:
                descriptor[attr_name] = normalize(attr_value)
        return descriptor

    @staticmethod
    def _encode_binary(value: Any) -> str:
        if isinstance(value, str):
            value = value.encode("utf-8")
        return base64.b64encode(value).decode("ascii")

    @staticmethod
    def _decode_binary(attr_name: str, value: Any) -> Any:
        if isinstance(value, list):
            return [LDAPAdapter._decode_binary(attr_name, item) for item in value]
        if isinstance(value, bytes):
            return value
        try:
            return base64.b64decode(value, validate=True)
        except (binascii.Error, TypeError) as e:
            raise MutationError(f"Attribute {attr_name} is not valid base64: {e}")

    @staticmethod
    def _normalize_ldap_value(value: Any) -> str:
        """
        Normalize one LDAP attribute value to a JSON-safe string.

        Binary values are base64 encoded unless they decode to clean UTF-8 text.
        """
        if isinstance(value, bytes):
            try:
                decoded = value.decode("utf-8")
            except UnicodeDecodeError:
                return base64.b64encode(value).decode("ascii")
            if "\x00" in decoded or any(
                ord(c) < 32 and c not in "\t\n\r" for c in decoded
            ):
                return base64.b64encode(value).decode("ascii")
            return decoded
        if isinstance(value, datetime):
            return value.isoformat()
        return str(value)

    # Directory Client Operations: reads

    def get_unit(self, path: str) -> Optional[Dict[str, Any]]:
        entries = self.search(
            search_filter="(objectClass=organizationalUnit)",
            search_base=path,
            scope="base",
        )
        return entries[0] if entries else None

    def get_child_units(self, path: str) -> List[Dict[str, Any]]:
        return self.search(
            search_filter="(objectClass=organizationalUnit)",
            search_base=path,
            scope="level",
            use_pagination=True,
        )

    def get_objects(self, subtree_root: str, classes: Iterable[str]) -> List[Dict[str, Any]]:
        class_filters = "".join(f"(objectClass={object_class})" for object_class in classes)
        return self.search(
            search_filter=f"(|{class_filters})",
            search_base=subtree_root,
            scope="subtree",
            use_pagination=True,
        )

    def get_group_members(self, group_path: str) -> List[str]:
        """
        Return the direct member DNs of a group.

        Large Active Directory groups hand out 'member' in ranges of 1500
        values; the connection is bound with auto_range so ldap3 follows the
        ranges and returns the complete list under 'member'.

        Raises:
            NotFoundError: If the group does not exist
        """
        entries = self.search(
            search_filter="(objectClass=*)",
            search_base=group_path,
            scope="base",
            attributes=["member"],
        )
        if not entries:
            raise NotFoundError(f"Group not found: {group_path}")

        members = entries[0].get("member") or []
        if not isinstance(members, list):
            members = [members]

        logger.debug(f"Group {group_path} has {len(members)} direct members")
        return members

    # Directory Client Operations: writes

    def create_unit(self, name: str, parent_path: str) -> None:
        dn = f"OU={escape_rdn(name)},{parent_path}"
        self._add(dn, UNIT_OBJECT_CLASSES, {"ou": name})

    def create_user(self, name: str, parent_path: str, attributes: Dict[str, Any]) -> None:
        dn = f"CN={escape_rdn(name)},{parent_path}"
        user_attributes = {
            key: self._decode_binary(key, value) if key.lower() in BINARY_ATTRIBUTES else value
            for key, value in attributes.items()
            if key.lower() not in RDN_ATTRIBUTES
        }
        user_attributes.setdefault("sAMAccountName", name)
        # No password is migrated, so accounts are created disabled
        user_attributes.setdefault("userAccountControl", NORMAL_ACCOUNT_DISABLED)
        self._add(dn, USER_OBJECT_CLASSES, user_attributes)

    def create_group(self, name: str, parent_path: str) -> None:
        dn = f"CN={escape_rdn(name)},{parent_path}"
        self._add(
            dn,
            GROUP_OBJECT_CLASSES,
            {"sAMAccountName": name, "groupType": GLOBAL_SECURITY_GROUP},
        )

    def create_computer(self, name: str, parent_path: str) -> None:
        dn = f"CN={escape_rdn(name)},{parent_path}"
        self._add(
            dn,
            COMPUTER_OBJECT_CLASSES,
            {
                "sAMAccountName": f"{name}$",
                "userAccountControl": WORKSTATION_TRUST_ACCOUNT,
            },
        )

    def add_group_member(self, group_path: str, member_path: str) -> None:
        """
        Add one member to a group.

        A member that is already present counts as success.

        Raises:
            DependencyMissingError: If the group or member does not exist
            MutationError: If the directory rejects the change
        """
        try:
            conn = self._get_connection()
            success = conn.modify(group_path, {"member": [(MODIFY_ADD, [member_path])]})
        except LDAPException as e:
            raise MutationError(f"Adding {member_path} to {group_path} failed: {e}")

        if success:
            logger.debug(f"Added {member_path} to {group_path}")
            return

        result_code = conn.result.get("result")
        description = conn.result.get("description", "Unknown error")
        if result_code == RESULT_ENTRY_ALREADY_EXISTS:
            logger.debug(f"{member_path} is already a member of {group_path}")
            return
        if result_code == RESULT_NO_SUCH_OBJECT:
            raise DependencyMissingError(
                f"Group or member missing: {group_path} <- {member_path} ({description})"
            )
        raise MutationError(
            f"Adding {member_path} to {group_path} failed: {description}"
        )

    def _add(self, dn: str, object_classes: List[str], attributes: Dict[str, Any]) -> None:
        try:
            conn = self._get_connection()
            success = conn.add(dn, object_classes, attributes)
        except LDAPException as e:
            raise MutationError(f"Creating {dn} failed: {e}")

        if success:
            logger.debug(f"Created {dn}")
            return

        result_code = conn.result.get("result")
        description = conn.result.get("description", "Unknown error")
        if result_code == RESULT_NO_SUCH_OBJECT:
            raise DependencyMissingError(f"Parent container missing for {dn} ({description})")
        raise MutationError(f"Creating {dn} failed: {description}")
