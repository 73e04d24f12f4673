import unittest
from unittest.mock import MagicMock, patch

from directory.facade.migration_facade import MigrationFacade
from migration.exceptions import NotFoundError
from migration.models.snapshot import DirectoryObject, OrganizationalUnit, Snapshot

SOURCE_CONFIG = {"server": "old-dc", "search_base": "DC=old", "user": "u", "keyring_service": "k"}
TARGET_CONFIG = {"server": "new-dc", "search_base": "DC=new", "user": "u", "keyring_service": "k"}


class TestMigrationFacade(unittest.TestCase):
    """Unit tests for MigrationFacade with the LDAP adapter patched out."""

    def setUp(self):
        self.adapter_patch = patch('directory.facade.migration_facade.LDAPAdapter')
        self.mock_adapter_class = self.adapter_patch.start()
        self.adapters = []

        def make_adapter(config):
            adapter = MagicMock()
            adapter.server_hostname = config["server"]
            adapter.test_connection.return_value = True
            self.adapters.append(adapter)
            return adapter

        self.mock_adapter_class.side_effect = make_adapter

    def tearDown(self):
        patch.stopall()

    def test_requires_a_configuration(self):
        with self.assertRaises(ValueError):
            MigrationFacade()

    def test_only_configured_sides_are_connected(self):
        facade = MigrationFacade(source_config=SOURCE_CONFIG)

        self.assertIsNotNone(facade.source)
        self.assertIsNone(facade.target)
        self.mock_adapter_class.assert_called_once_with(SOURCE_CONFIG)
        facade.source.test_connection.assert_called_once()

    def test_failed_connection_closes_and_raises(self):
        def failing_target(config):
            adapter = MagicMock()
            adapter.server_hostname = config["server"]
            adapter.test_connection.return_value = config is SOURCE_CONFIG
            self.adapters.append(adapter)
            return adapter

        self.mock_adapter_class.side_effect = failing_target

        with self.assertRaises(ConnectionError):
            MigrationFacade(source_config=SOURCE_CONFIG, target_config=TARGET_CONFIG)

        for adapter in self.adapters:
            adapter.close.assert_called_once()

    def test_export_writes_capture(self):
        facade = MigrationFacade(source_config=SOURCE_CONFIG)
        source = facade.source
        source.get_unit.return_value = {"dn": "OU=Sales,DC=old", "ou": ["Sales"]}
        source.get_child_units.return_value = []
        source.get_objects.return_value = [
            {"dn": "CN=alice,OU=Sales,DC=old", "objectClass": ["top", "user"], "mail": "a@old"},
        ]

        with patch('directory.facade.migration_facade.save_snapshot') as mock_save:
            snapshot = facade.export_ou("OU=Sales,DC=old", "sales.json")

        mock_save.assert_called_once_with(snapshot, "sales.json")
        self.assertEqual([unit.path for unit in snapshot.units], ["OU=Sales,DC=old"])
        self.assertEqual(snapshot.metadata["source_server"], "old-dc")

    def test_failed_capture_writes_nothing(self):
        facade = MigrationFacade(source_config=SOURCE_CONFIG)
        facade.source.get_unit.return_value = None

        with patch('directory.facade.migration_facade.save_snapshot') as mock_save:
            with self.assertRaises(NotFoundError):
                facade.export_ou("OU=Missing,DC=old", "out.json")

        mock_save.assert_not_called()

    def test_import_dry_run_does_not_mutate(self):
        facade = MigrationFacade(target_config=TARGET_CONFIG)
        target = facade.target
        target.get_unit.return_value = {"dn": "OU=Target,DC=new"}
        snapshot = Snapshot(
            units=[OrganizationalUnit("Sales", "OU=Sales,DC=old")],
            objects=[DirectoryObject("alice", "CN=alice,OU=Sales,DC=old", "user")],
        )

        with patch('directory.facade.migration_facade.load_snapshot', return_value=snapshot):
            report = facade.import_ou("sales.json", "OU=Target,DC=new", dry_run=True)

        self.assertTrue(report.simulate)
        target.create_unit.assert_not_called()
        target.create_user.assert_not_called()

    def test_import_reads_document(self):
        facade = MigrationFacade(target_config=TARGET_CONFIG)
        facade.target.get_unit.return_value = {"dn": "OU=Target,DC=new"}

        with patch('directory.facade.migration_facade.load_snapshot', return_value=Snapshot()) as mock_load:
            report = facade.import_ou("in.json", "OU=Target,DC=new")

        mock_load.assert_called_once_with("in.json")
        self.assertEqual(report.target_path, "OU=Target,DC=new")

    def test_export_without_source_is_rejected(self):
        facade = MigrationFacade(target_config=TARGET_CONFIG)

        with self.assertRaises(ValueError):
            facade.capture("OU=Sales,DC=old")

    def test_close_closes_every_adapter(self):
        facade = MigrationFacade(source_config=SOURCE_CONFIG, target_config=TARGET_CONFIG)

        facade.close()

        facade.source.close.assert_called_once()
        facade.target.close.assert_called_once()


if __name__ == '__main__':
    unittest.main()
