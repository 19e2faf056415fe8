"""Unit tests configuration file."""

import os

import pytest

from wirepack.generator import compile_schema, parse

TESTS_DIR = os.path.dirname(os.path.realpath(__file__))
PACKETS_SCHEMA = os.path.join(TESTS_DIR, "proto", "packets.wire")


def pytest_configure(config):
    """Disable verbose output when running tests."""
    terminal = config.pluginmanager.getplugin("terminal")
    if terminal:
        terminal.TerminalReporter.showfspath = False


@pytest.fixture(scope="session")
def packets_text():
    with open(PACKETS_SCHEMA, encoding="utf-8") as f:
        return f.read()


@pytest.fixture(scope="session")
def compiled(packets_text):
    """The test schema compiled with generated classes."""
    return compile_schema(parse(packets_text))
