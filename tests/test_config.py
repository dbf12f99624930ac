"""Tests for configuration and logging helpers."""

import logging

import pytest

from relcourse.utils.config import Config, get_config, load_config, set_config
from relcourse.utils.logging import get_logger, setup_logging


def test_defaults():
    config = Config()

    assert config.get("lint.sql.dialect") == "postgres"
    assert config.get("lint.foreign_keys.scope") == "snippet"
    assert config.get("schema.integrity.min_coverage") == 1.0
    assert config.get("lint.missing.key", "fallback") == "fallback"


def test_set_creates_nested_keys():
    config = Config()

    config.set("lint.sql.dialect", "mysql")
    config.set("custom.deeply.nested", 3)

    assert config.get("lint.sql.dialect") == "mysql"
    assert config.get("custom.deeply.nested") == 3
    # to_dict returns a copy
    config.to_dict()["lint"]["sql"]["dialect"] = "sqlite"
    assert config.get("lint.sql.dialect") == "mysql"


def test_from_yaml_merges_defaults(tmp_path):
    path = tmp_path / "relcourse.yml"
    path.write_text("lint:\n  sql:\n    dialect: sqlite\n  checks: [links]\n")

    config = Config.from_yaml(path)

    assert config.get("lint.sql.dialect") == "sqlite"
    assert config.get("lint.sql.skip_elided") is True
    assert config.get("lint.checks") == ["links"]
    assert config.get("docs.include") == ["**/*.md"]


def test_from_yaml_errors(tmp_path):
    with pytest.raises(FileNotFoundError):
        Config.from_yaml(tmp_path / "missing.yml")

    bad = tmp_path / "bad.yml"
    bad.write_text("- not\n- a mapping\n")
    with pytest.raises(ValueError, match="mapping"):
        Config.from_yaml(bad)


def test_save_and_reload(tmp_path):
    config = Config()
    config.set("lint.foreign_keys.scope", "document")
    path = tmp_path / "out" / "relcourse.yml"

    config.save(path)

    assert Config.from_yaml(path).get("lint.foreign_keys.scope") == "document"


def test_global_config_from_env(tmp_path, monkeypatch):
    path = tmp_path / "custom.yml"
    path.write_text("lint:\n  directive_prefix: course\n")
    monkeypatch.setenv("RELCOURSE_CONFIG", str(path))

    assert get_config().get("lint.directive_prefix") == "course"
    assert get_config() is get_config()


def test_global_config_fallbacks(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("RELCOURSE_CONFIG", str(tmp_path / "missing.yml"))

    assert get_config().get("lint.directive_prefix") == "relcourse"

    set_config(None)
    (tmp_path / "relcourse.yml").write_text("lint:\n  fail_on: warning\n")
    assert get_config().get("lint.fail_on") == "warning"


def test_load_config_sets_global(tmp_path):
    path = tmp_path / "relcourse.yml"
    path.write_text("docs:\n  exclude: []\n")

    config = load_config(path)

    assert get_config() is config
    assert config.get("docs.exclude") == []


def test_logging_namespace():
    assert get_logger("relcourse.core").name == "relcourse.core"
    assert get_logger("tests").name == "relcourse.tests"

    setup_logging("DEBUG")
    root = logging.getLogger("relcourse")
    assert root.level == logging.DEBUG
    assert len(root.handlers) == 1
    setup_logging("WARNING")
    assert root.level == logging.WARNING


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
