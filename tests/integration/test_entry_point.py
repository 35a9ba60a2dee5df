"""Integration tests for the console entry point."""

from contextlib import suppress
import sys
from unittest.mock import patch

import pytest

import conductor


def test_main_prints_version(capsys: pytest.CaptureFixture[str]) -> None:
    """The installed `conductor` script resolves to conductor.main."""
    with patch.object(sys, "argv", ["conductor", "--version"]), suppress(SystemExit):
        conductor.main()

    assert conductor.__version__ in capsys.readouterr().out


def test_main_without_arguments_shows_help(capsys: pytest.CaptureFixture[str]) -> None:
    with patch.object(sys, "argv", ["conductor"]), suppress(SystemExit):
        conductor.main()

    captured = capsys.readouterr()
    assert "Usage" in captured.out + captured.err
