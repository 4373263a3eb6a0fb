"""Tests for desktop appearance appliers."""

import subprocess
from unittest.mock import MagicMock, patch

import pytest

from shadeshift.theme_applier import (
    ApplyError,
    GnomeThemeApplier,
    MacThemeApplier,
    create_applier,
)


def completed(stdout=""):
    return MagicMock(stdout=stdout, returncode=0)


class TestGnomeThemeApplier:
    @patch('shadeshift.theme_applier.subprocess.run')
    def test_apply_dark(self, mock_run):
        mock_run.return_value = completed()

        GnomeThemeApplier().apply(True)

        cmd = mock_run.call_args[0][0]
        assert cmd == ['gsettings', 'set', 'org.gnome.desktop.interface', 'color-scheme', 'prefer-dark']

    @patch('shadeshift.theme_applier.subprocess.run')
    def test_apply_light(self, mock_run):
        mock_run.return_value = completed()

        GnomeThemeApplier().apply(False)

        assert mock_run.call_args[0][0][-1] == 'default'

    @pytest.mark.parametrize("stdout,expected", [
        ("'prefer-dark'\n", True),
        ("'default'\n", False),
        ("'prefer-light'\n", False),
    ])
    @patch('shadeshift.theme_applier.subprocess.run')
    def test_is_dark(self, mock_run, stdout, expected):
        mock_run.return_value = completed(stdout)

        assert GnomeThemeApplier().is_dark() is expected

    @patch('shadeshift.theme_applier.subprocess.run')
    def test_is_dark_unknown_when_gsettings_missing(self, mock_run):
        mock_run.side_effect = FileNotFoundError()

        assert GnomeThemeApplier().is_dark() is None

    @patch('shadeshift.theme_applier.subprocess.run')
    def test_command_failure_raises_apply_error(self, mock_run):
        mock_run.side_effect = subprocess.CalledProcessError(
            1, ['gsettings'], stderr="No such schema"
        )

        with pytest.raises(ApplyError, match="No such schema"):
            GnomeThemeApplier().apply(True)

    @patch('shadeshift.theme_applier.subprocess.run')
    def test_timeout_raises_apply_error(self, mock_run):
        mock_run.side_effect = subprocess.TimeoutExpired(['gsettings'], 5)

        with pytest.raises(ApplyError, match="timed out"):
            GnomeThemeApplier().apply(False)


class TestMacThemeApplier:
    @patch('shadeshift.theme_applier.subprocess.run')
    def test_apply_runs_system_events_script(self, mock_run):
        mock_run.return_value = completed()

        MacThemeApplier().apply(True)

        cmd = mock_run.call_args[0][0]
        assert cmd[:2] == ['osascript', '-e']
        assert 'System Events' in cmd[2]
        assert 'set dark mode to true' in cmd[2]

    @patch('shadeshift.theme_applier.subprocess.run')
    def test_is_dark(self, mock_run):
        mock_run.return_value = completed("false\n")

        assert MacThemeApplier().is_dark() is False

    @patch('shadeshift.theme_applier.subprocess.run')
    def test_permission_failure_mentions_automation(self, mock_run):
        mock_run.side_effect = subprocess.CalledProcessError(
            1, ['osascript'], stderr="Not authorized to send Apple events to System Events."
        )

        with pytest.raises(ApplyError, match="Automation permission"):
            MacThemeApplier().apply(False)


class TestCreateApplier:
    def test_known_names(self):
        assert isinstance(create_applier('gnome'), GnomeThemeApplier)
        assert isinstance(create_applier('macos'), MacThemeApplier)

    def test_unknown_name(self):
        with pytest.raises(ValueError, match="Unknown theme applier"):
            create_applier('kde')
