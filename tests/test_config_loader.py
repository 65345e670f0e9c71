"""Tests for configuration loading, file types and setting precedence."""

from __future__ import annotations

import textwrap
from pathlib import Path

import pytest

from csvdiff import cli
from csvdiff.config import ConfigError, find_config, load_config
from csvdiff.engine import DiffOptions
from csvdiff.entrypoints import build_source_options, layer_settings
from csvdiff.fields import ByIndex, ByName
from csvdiff.file_types import file_type_for, load_file_types, select_file_types


def test_load_config_precedence(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)

    (tmp_path / ".csvdiff.json").write_text('{"defaults": {"delimiter": "JSON"}}', encoding="utf-8")
    (tmp_path / ".csvdiff.yaml").write_text("defaults:\n  delimiter: YAML", encoding="utf-8")
    (tmp_path / ".csvdiff.toml").write_text("[defaults]\ndelimiter = 'TOML'\n", encoding="utf-8")

    loaded = load_config(Path.cwd())

    assert loaded.path == tmp_path / ".csvdiff.toml"
    assert loaded.defaults["delimiter"] == "TOML"


def test_yaml_config_is_used_without_toml(tmp_path):
    (tmp_path / ".csvdiff.yml").write_text(
        "defaults:\n  key_fields: [id]\n  ignore_case: true\n", encoding="utf-8"
    )

    loaded = load_config(tmp_path)

    assert loaded.defaults == {"key_fields": ["id"], "ignore_case": True}


def test_missing_config_is_empty(tmp_path):
    loaded = load_config(tmp_path)

    assert not loaded.exists
    assert loaded.defaults == {}
    assert load_file_types(loaded) == {}


def test_invalid_config_raises_config_error(tmp_path):
    (tmp_path / ".csvdiff.toml").write_text("[defaults\nkey = 1\n", encoding="utf-8")

    with pytest.raises(ConfigError, match="Unable to parse"):
        load_config(tmp_path)


def test_find_config_prefers_first_directory(tmp_path):
    data_dir = tmp_path / "data"
    data_dir.mkdir()
    (data_dir / ".csvdiff.json").write_text('{"defaults": {"format": "csv"}}', encoding="utf-8")
    (tmp_path / ".csvdiff.toml").write_text("[defaults]\nformat = 'txt'\n", encoding="utf-8")

    assert find_config([data_dir, tmp_path]).defaults["format"] == "csv"
    assert find_config([tmp_path / "elsewhere", tmp_path]).defaults["format"] == "txt"


def test_settings_layering_and_option_mapping():
    defaults = {"key_fields": ["id"], "ignore_case": "yes", "delimiter": "TAB", "format": "txt"}
    file_type = {"key-fields": "order,line", "trim_whitespace": True}
    overrides = {"ignore_case": False, "delimiter": None}

    settings = layer_settings(defaults, file_type, overrides)
    options = DiffOptions.from_mapping(settings)

    assert options.key_fields == (ByName("order"), ByName("line"))
    assert options.ignore_case is False
    assert options.trim_whitespace is True
    assert build_source_options(settings).delimiter == "\t"


def test_option_lists_accept_indexes_from_config():
    options = DiffOptions.from_mapping({"key_fields": [0, "name"], "unknown": 1})

    assert options.key_fields == (ByIndex(0), ByName("name"))


def test_file_types_from_config(tmp_path):
    config_content = textwrap.dedent(
        """
        [file_types.orders]
        pattern = "orders_*.csv"
        exclude_pattern = "*_draft.csv"
        description = "Order extracts"
        parent_fields = ["customer"]
        child_fields = ["order"]

        [file_types.customers]
        pattern = "customers*.csv"
        key_fields = ["id"]
        """
    ).strip()
    (tmp_path / ".csvdiff.toml").write_text(config_content + "\n", encoding="utf-8")

    available = load_file_types(load_config(tmp_path))

    orders = available["orders"]
    assert orders.description == "Order extracts"
    assert orders.settings == {"parent_fields": ["customer"], "child_fields": ["order"]}
    assert orders.matches("orders_2024.csv")
    assert not orders.matches("orders_2024_draft.csv")
    assert file_type_for("customers.csv", available.values()) is available["customers"]
    assert file_type_for("misc.csv", available.values()) is None

    assert select_file_types(available, ["ord*"]) == [orders]
    assert len(select_file_types(available, None)) == 2
    with pytest.raises(ConfigError, match="Unknown file type"):
        select_file_types(available, ["invoices"])


def test_file_type_without_pattern_is_rejected(tmp_path):
    (tmp_path / ".csvdiff.toml").write_text(
        "[file_types.broken]\nkey_fields = ['id']\n", encoding="utf-8"
    )

    with pytest.raises(ConfigError, match="must define a pattern"):
        load_file_types(load_config(tmp_path))


def test_cli_overrides_collect_only_given_flags():
    args = cli._parse_args(
        ["old.csv", "new.csv", "-k", "id", "--no-ignore-case", "--no-header", "-d", "TAB"]
    )

    overrides = cli._collect_overrides(args)

    assert overrides == {
        "key_fields": "id",
        "delimiter": "TAB",
        "has_header": False,
        "ignore_case": False,
    }


def test_init_creates_template_and_is_idempotent(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)

    first_exit = cli.main(["init"])
    config_path = tmp_path / ".csvdiff.toml"
    assert first_exit == cli.EXIT_SUCCESS
    assert config_path.exists()

    content_first = config_path.read_text(encoding="utf-8")
    assert "# csv-diff configuration template" in content_first
    assert "[defaults]" in content_first
    assert load_config(tmp_path).defaults == {}

    second_exit = cli.main(["init"])
    content_second = config_path.read_text(encoding="utf-8")

    assert second_exit == cli.EXIT_SUCCESS
    assert content_first == content_second
