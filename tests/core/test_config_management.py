# tests/core/test_config_management.py
import json
import logging

import pytest

from dommirror.managers.config_manager import ConfigManager
from dommirror.model import ReplaySettings
from dommirror.utils.configure_logging import LogWithTqdm, configure_logger, configure_logger_from_config
from dommirror.utils.path_utils import PathUtils

# Een standaard, voorspelbare configuratie voor onze tests
MOCK_SETTINGS_CONTENT = {
    "logging": {
        "level": "WARNING",
        "module_levels": {},
        "silenced": {}
    },
    "tree": {
        "parser": "html.parser"
    },
    "replay": {
        "svg_tags": ["svg", "path"],
        "auto_created_tags": ["body"],
        "show_progress": False,
        "batch_limit": 10
    }
}


@pytest.fixture
def config_env(tmp_path, monkeypatch):
    """
    Een fixture die een geïsoleerde testomgeving opzet voor de ConfigManager:
    - Plaatst een nep 'settings.json' in een tijdelijke map.
    - Laat het gebruikersbestand naar een (nog) niet bestaand pad wijzen.
    - Monkeypatched PathUtils om naar deze tijdelijke locaties te wijzen.
    """
    settings_file = tmp_path / "settings.json"
    settings_file.write_text(json.dumps(MOCK_SETTINGS_CONTENT))
    user_file = tmp_path / "user" / "settings.json"

    monkeypatch.setattr(PathUtils, "get_default_settings_file", lambda: settings_file)
    monkeypatch.setattr(PathUtils, "get_user_settings_file", lambda: user_file)

    # De singleton is al geladen; forceer herladen vanuit ons nep-bestand.
    manager = ConfigManager()
    manager.reset()

    yield manager, user_file

    # Zet de echte configuratie terug voor de volgende tests.
    monkeypatch.undo()
    manager.reset()


def test_config_manager_is_singleton(config_env):
    manager, _ = config_env
    assert ConfigManager() is manager


def test_config_manager_load(config_env):
    """Test of de manager de configuratie correct laadt."""
    manager, _ = config_env
    config = manager.get_all()
    assert config["logging"]["level"] == "WARNING"
    assert config["replay"]["svg_tags"] == ["svg", "path"]


def test_config_manager_get_nested(config_env):
    """Test het ophalen van geneste waarden."""
    manager, _ = config_env
    assert manager.get_nested("replay.batch_limit") == 10
    assert manager.get_nested("non.existent.key", "default") == "default"
    assert manager.get_nested("tree.parser.deeper", "x") == "x"


def test_config_manager_set_nested(config_env):
    """Test het aanpassen van waarden in het geheugen."""
    manager, _ = config_env

    # Test het aanpassen van een bestaande waarde
    manager.set_nested("logging.level", "INFO")
    assert manager.get_nested("logging.level") == "INFO"

    # Test het toevoegen van een nieuwe sleutel
    manager.set_nested("new_feature.enabled", "True")
    assert manager.get_nested("new_feature.enabled") == "True"

    # De originele waarde is een bool, dus 'yes' wordt True
    manager.set_nested("replay.show_progress", "yes")
    assert manager.get_nested("replay.show_progress") is True

    # De originele waarde is een int, dus de string '20' wordt een int
    manager.set_nested("replay.batch_limit", "20")
    assert manager.get_nested("replay.batch_limit") == 20

    # Niet te casten: de waarde wordt ongewijzigd opgeslagen
    manager.set_nested("replay.batch_limit", "many")
    assert manager.get_nested("replay.batch_limit") == "many"


def test_config_manager_set_nested_through_non_dict(config_env):
    """Een pad door een niet-dict waarde wordt geweigerd."""
    manager, _ = config_env
    assert manager.set_nested("tree.parser.name", "lxml") is False
    assert manager.get_nested("tree.parser") == "html.parser"


def test_config_manager_reset(config_env):
    """Test of de reset-functie de configuratie herlaadt vanaf schijf."""
    manager, _ = config_env

    manager.set_nested("logging.level", "DEBUG")
    assert manager.get_nested("logging.level") == "DEBUG"

    manager.reset()
    assert manager.get_nested("logging.level") == "WARNING"


def test_config_manager_merges_user_settings(config_env):
    """Het gebruikersbestand overschrijft alleen de sleutels die het noemt."""
    manager, user_file = config_env
    user_file.parent.mkdir()
    user_file.write_text(json.dumps({"replay": {"show_progress": True}}))

    manager.reset()
    assert manager.get_nested("replay.show_progress") is True
    assert manager.get_nested("replay.batch_limit") == 10


def test_config_manager_survives_broken_user_settings(config_env):
    """Een kapot gebruikersbestand wordt gelogd en genegeerd."""
    manager, user_file = config_env
    user_file.parent.mkdir()
    user_file.write_text("{ not json")

    manager.reset()
    assert manager.get_nested("logging.level") == "WARNING"


def test_replay_settings_from_config(config_env):
    """ReplaySettings leest de 'tree' en 'replay' secties."""
    manager, _ = config_env
    manager.set_nested("replay.auto_created_tags", ["body", "html"])

    settings = ReplaySettings.from_config()
    assert settings.parser == "html.parser"
    assert settings.svg_tags == ["svg", "path"]
    assert settings.auto_created_tags == ["body", "html"]
    assert settings.show_progress is False


@pytest.fixture
def restore_logging():
    root_logger = logging.getLogger()
    handlers, level = list(root_logger.handlers), root_logger.level
    yield
    root_logger.handlers[:] = handlers
    root_logger.setLevel(level)
    logging.getLogger("dommirror.controllers").setLevel(logging.NOTSET)
    logging.getLogger("bs4").setLevel(logging.NOTSET)


def test_configure_logger_installs_tqdm_handler(restore_logging):
    handler = configure_logger(
        general_level="DEBUG",
        module_specific_levels={"dommirror.controllers": "INFO"},
        silenced_loggers={"bs4": "ERROR"},
    )
    root_logger = logging.getLogger()
    assert isinstance(handler, LogWithTqdm)
    assert root_logger.handlers == [handler]
    assert root_logger.level == logging.DEBUG
    assert logging.getLogger("dommirror.controllers").level == logging.INFO
    assert logging.getLogger("bs4").level == logging.ERROR


def test_configure_logger_from_config(config_env, restore_logging):
    configure_logger_from_config()
    assert logging.getLogger().level == logging.WARNING
