# src/dommirror/utils/path_utils.py
import logging
from pathlib import Path

logger = logging.getLogger(__name__)


class PathUtils:
    """
    A central utility for reliably retrieving package and user paths.
    """

    # --- Package specific paths

    @staticmethod
    def get_package_root() -> Path:
        """Returns the absolute path of the installed 'dommirror' package."""
        return Path(__file__).resolve().parent.parent

    @staticmethod
    def get_default_settings_file() -> Path:
        return PathUtils.get_package_root() / "settings.json"

    # --- User specific paths ---

    @staticmethod
    def get_user_config_dir() -> Path:
        """
        Returns the path to the user's .dommirror config directory.
        (e.g., ~/.dommirror/)
        """
        return Path.home() / ".dommirror"

    @staticmethod
    def get_user_settings_file() -> Path:
        """Optional per-user overrides, merged on top of the packaged defaults."""
        return PathUtils.get_user_config_dir() / "settings.json"
