"""Unit tests configuration file."""

import os

import pytest

from zkproto.schema import SchemaLoader

PROTOS_DIR = os.path.join(os.path.dirname(os.path.realpath(__file__)), "protos")
IMPORT_PREFIX = "myproj/"


def pytest_configure(config):
    """Disable verbose output when running tests."""
    terminal = config.pluginmanager.getplugin("terminal")
    if terminal:
        terminal.TerminalReporter.showfspath = False


@pytest.fixture(scope="session")
def registry():
    """Registry compiled from the fixture schema directory."""
    return SchemaLoader(PROTOS_DIR, import_prefix=IMPORT_PREFIX).load()


@pytest.fixture
def backend_class(registry):
    return registry.message_class("pkg.Backend")


@pytest.fixture
def protos_dir():
    return PROTOS_DIR
