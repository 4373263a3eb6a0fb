"""Desktop appearance switching through the platform's command-line tools."""

import logging
import subprocess
from abc import ABC, abstractmethod
from typing import Optional


logger = logging.getLogger(__name__)


class ApplyError(Exception):
    """The desktop refused or failed to change appearance."""


class ThemeApplier(ABC):
    """Abstract base class for flipping the OS light/dark appearance."""

    @abstractmethod
    def apply(self, is_dark: bool) -> None:
        """
        Switch the desktop to dark (True) or light (False).

        Raises:
            ApplyError: If the appearance could not be changed
        """
        pass

    @abstractmethod
    def is_dark(self) -> Optional[bool]:
        """Current desktop appearance, or None if it cannot be read."""
        pass


def _run_command(cmd: list[str], timeout: int = 5) -> str:
    """
    Execute a command and return its stdout.

    Raises:
        ApplyError: If the command is missing, fails or times out
    """
    try:
        result = subprocess.run(
            cmd,
            capture_output=True,
            text=True,
            check=True,
            timeout=timeout
        )
        return result.stdout
    except subprocess.CalledProcessError as e:
        message = (e.stderr or e.stdout or "").strip()
        raise ApplyError(f"Command failed: {' '.join(cmd)}: {message}") from e
    except subprocess.TimeoutExpired as e:
        raise ApplyError(f"Command timed out: {' '.join(cmd)}") from e
    except FileNotFoundError as e:
        raise ApplyError(f"Command not found: {cmd[0]}") from e


class GnomeThemeApplier(ThemeApplier):
    """Sets org.gnome.desktop.interface color-scheme via gsettings."""

    SCHEMA = 'org.gnome.desktop.interface'
    KEY = 'color-scheme'

    def apply(self, is_dark: bool) -> None:
        scheme = 'prefer-dark' if is_dark else 'default'
        logger.info(f"Setting color scheme: {scheme}")
        _run_command(['gsettings', 'set', self.SCHEMA, self.KEY, scheme])

    def is_dark(self) -> Optional[bool]:
        try:
            output = _run_command(['gsettings', 'get', self.SCHEMA, self.KEY])
        except ApplyError as e:
            logger.debug(f"Could not read color scheme: {e}")
            return None
        return output.strip().strip("'") == 'prefer-dark'


class MacThemeApplier(ThemeApplier):
    """Toggles dark mode through System Events with osascript."""

    def _appearance_script(self, body: str) -> list[str]:
        script = (
            'tell application "System Events"\n'
            '    tell appearance preferences\n'
            f'        {body}\n'
            '    end tell\n'
            'end tell'
        )
        return ['osascript', '-e', script]

    def apply(self, is_dark: bool) -> None:
        logger.info(f"Setting dark mode: {is_dark}")
        try:
            _run_command(self._appearance_script(f"set dark mode to {'true' if is_dark else 'false'}"))
        except ApplyError as e:
            raise ApplyError(f"{e}. Grant Automation permission for System Events.") from e

    def is_dark(self) -> Optional[bool]:
        try:
            output = _run_command(self._appearance_script('return dark mode'))
        except ApplyError as e:
            logger.debug(f"Could not read dark mode: {e}")
            return None
        return output.strip() == 'true'


APPLIERS = {
    'gnome': GnomeThemeApplier,
    'macos': MacThemeApplier,
}


def create_applier(name: str) -> ThemeApplier:
    """Instantiate a theme applier by config name."""
    if name not in APPLIERS:
        raise ValueError(f"Unknown theme applier: {name}. Must be one of {tuple(APPLIERS)}")
    return APPLIERS[name]()
