"""
Tests for the ou-migrate command line entry point.

The facade and configuration are patched, so these only check argument
handling, exit codes and the printed summary.
"""

from unittest.mock import patch

import pytest

from migration.exceptions import NotFoundError
from migration.models.outcome import (
    CREATED,
    FAILED,
    PHASE_OBJECTS,
    PHASE_UNITS,
    ItemOutcome,
    ReplayReport,
)
from migration.models.snapshot import OrganizationalUnit, Snapshot
from scripts.migration import ou_migrator


@pytest.fixture
def facade_class():
    with patch.object(ou_migrator, "MigrationFacade") as mock_class, \
            patch.object(ou_migrator, "MigrationConfig") as mock_config, \
            patch.object(ou_migrator, "setup_logging"):
        mock_config.get_log_dir.return_value = "logs"
        mock_config.get_log_level.return_value = "INFO"
        yield mock_class


def test_export_command(facade_class, capsys):
    facade = facade_class.return_value
    facade.export_ou.return_value = Snapshot(units=[OrganizationalUnit("Sales", "OU=Sales,DC=old")])

    exit_code = ou_migrator.main(["export", "--ou", "OU=Sales,DC=old", "--out", "sales.json"])

    assert exit_code == 0
    facade.export_ou.assert_called_once_with("OU=Sales,DC=old", "sales.json")
    facade.close.assert_called_once()
    assert "Units: 1" in capsys.readouterr().out


def test_import_command_passes_flags(facade_class):
    facade = facade_class.return_value
    facade.import_ou.return_value = ReplayReport("OU=Target,DC=new", simulate=True)

    exit_code = ou_migrator.main([
        "import", "--in", "sales.json", "--target-ou", "OU=Target,DC=new",
        "--dry-run", "--preserve-hierarchy",
    ])

    assert exit_code == 0
    facade.import_ou.assert_called_once_with(
        "sales.json", "OU=Target,DC=new", dry_run=True, preserve_hierarchy=True
    )


def test_item_failures_still_exit_zero(facade_class, capsys):
    report = ReplayReport("OU=Target,DC=new")
    report.extend([
        ItemOutcome(PHASE_UNITS, "OU=Sales,DC=old", CREATED),
        ItemOutcome(PHASE_OBJECTS, "CN=alice,OU=Sales,DC=old", FAILED, "constraint violation"),
    ])
    facade_class.return_value.import_ou.return_value = report

    exit_code = ou_migrator.main(["import", "--in", "x.json", "--target-ou", "OU=Target,DC=new"])

    out = capsys.readouterr().out
    assert exit_code == 0
    assert "Failed items: 1" in out
    assert "constraint violation" in out


def test_migration_error_exits_non_zero(facade_class):
    facade_class.return_value.export_ou.side_effect = NotFoundError("Organizational unit not found")

    exit_code = ou_migrator.main(["export", "--ou", "OU=Missing,DC=old", "--out", "x.json"])

    assert exit_code == 1
    facade_class.return_value.close.assert_called_once()


def test_connection_error_exits_non_zero(facade_class):
    facade_class.side_effect = ConnectionError("Failed to establish target directory connection")

    exit_code = ou_migrator.main(["import", "--in", "x.json", "--target-ou", "OU=Target,DC=new"])

    assert exit_code == 1


def test_keyboard_interrupt_exits_130(facade_class):
    facade_class.return_value.export_ou.side_effect = KeyboardInterrupt

    exit_code = ou_migrator.main(["export", "--ou", "OU=Sales,DC=old", "--out", "x.json"])

    assert exit_code == 130


def test_missing_subcommand_is_a_usage_error():
    with pytest.raises(SystemExit) as excinfo:
        ou_migrator.main([])

    assert excinfo.value.code == 2


def test_setup_logging_creates_log_file(tmp_path):
    log_dir = tmp_path / "logs"

    with patch("logging.basicConfig") as mock_basic_config:
        ou_migrator.setup_logging(str(log_dir), "DEBUG")

    assert log_dir.is_dir()
    kwargs = mock_basic_config.call_args.kwargs
    assert kwargs["level"] == 10
    assert len(kwargs["handlers"]) == 2
    for handler in kwargs["handlers"]:
        handler.close()
