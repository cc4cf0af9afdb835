"""Unit tests for the migration script."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from scripts import migrate


@pytest.fixture
def command(monkeypatch):
    command = MagicMock()
    monkeypatch.setattr(migrate, "command", command)
    return command


@pytest.fixture
def seed(monkeypatch):
    seed = AsyncMock()
    monkeypatch.setattr(migrate, "seed", seed)
    return seed


def test_upgrade_without_seed(command, seed):
    migrate.main([])

    assert command.upgrade.call_args.args[1] == "head"
    seed.assert_not_awaited()


def test_upgrade_then_seed(command, seed):
    migrate.main(["--seed"])

    command.upgrade.assert_called_once()
    seed.assert_awaited_once()


def test_downgrade_skips_upgrade_and_seed(command, seed):
    migrate.main(["--downgrade", "-1", "--seed"])

    command.downgrade.assert_called_once()
    assert command.downgrade.call_args.args[1] == "-1"
    command.upgrade.assert_not_called()
    seed.assert_not_awaited()
