# tests/dataloader/test_config_loader.py

import json
from pathlib import Path

import pytest
import yaml

from cleansheet.dataloader.config_loader import ConfigLoader, RulesLoader
from cleansheet.errors import ConfigError
from cleansheet.schemas.models import Config
from cleansheet.schemas.rules import CoRunRule, RulesConfig


@pytest.fixture()
def tmp_yaml(tmp_path: Path) -> Path:
    """Writes a temporary YAML with valid Config fields."""
    path = tmp_path / "config.yaml"
    cfg = {
        "output_dir": "out",
        "export": {"format": "xlsx", "write_plot": False},
        "advisory": {"enabled": True, "timeout_seconds": 5},
    }
    with path.open("w", encoding="utf-8") as f:
        yaml.safe_dump(cfg, f)
    return path


def test_load_valid_yaml_returns_config(tmp_yaml: Path):
    """
    @brief
    Verify that valid YAML is correctly parsed and validated.

    @details
    Explicit values override defaults; untouched sections keep theirs.
    """
    # --- Arrange ---
    loader = ConfigLoader(environ={})

    # --- Act ---
    cfg = loader.load(tmp_yaml)

    # --- Assert ---
    assert isinstance(cfg, Config)
    assert cfg.output_dir == "out"
    assert cfg.export.format == "xlsx"
    assert cfg.export.write_plot is False
    assert cfg.export.write_report is True
    assert cfg.advisory.timeout_seconds == 5
    assert cfg.advisory.model == "gemini-2.0-flash"
    assert cfg.advisory.api_key is None
    assert cfg.visual.dpi == 120


def test_api_key_resolved_from_environment_once(tmp_yaml: Path):
    """
    @brief
    The key is read from the env var named by advisory.api_key_env at load time.
    """
    cfg = ConfigLoader(environ={"GEMINI_API_KEY": "secret"}).load(tmp_yaml)
    assert cfg.advisory.api_key == "secret"


def test_inline_api_key_wins_over_environment(tmp_path: Path):
    path = tmp_path / "config.yml"
    path.write_text(
        yaml.safe_dump({"advisory": {"api_key": "inline", "api_key_env": "MY_KEY"}}),
        encoding="utf-8",
    )
    cfg = ConfigLoader(environ={"MY_KEY": "env"}).load(path)
    assert cfg.advisory.api_key == "inline"


def test_missing_file_raises_configerror(tmp_path: Path):
    # --- Arrange ---
    loader = ConfigLoader()
    path = tmp_path / "no_such.yaml"

    # --- Act / Assert ---
    with pytest.raises(ConfigError) as e:
        loader.load(path)

    # --- Assert ---
    assert "not found" in str(e.value)


def test_wrong_path_type_raises_configerror(tmp_yaml: Path):
    with pytest.raises(ConfigError):
        ConfigLoader().load(str(tmp_yaml))


def test_wrong_extension_raises_configerror(tmp_path: Path):
    """
    @brief
    Only `.yaml` or `.yml` files are accepted.
    """
    path = tmp_path / "config.txt"
    path.write_text("output_dir: x", encoding="utf-8")

    with pytest.raises(ConfigError):
        ConfigLoader().load(path)


def test_empty_yaml_raises_configerror(tmp_path: Path):
    path = tmp_path / "config.yaml"
    path.write_text("", encoding="utf-8")

    with pytest.raises(ConfigError) as e:
        ConfigLoader().load(path)

    assert "empty" in str(e.value).lower()


def test_non_mapping_root_raises_configerror(tmp_path: Path):
    path = tmp_path / "config.yaml"
    path.write_text("- a\n- b\n", encoding="utf-8")

    with pytest.raises(ConfigError) as e:
        ConfigLoader().load(path)

    assert "mapping" in str(e.value)


def test_yaml_syntax_error_raises_configerror(tmp_path: Path):
    path = tmp_path / "config.yaml"
    path.write_text("export: [unclosed\n", encoding="utf-8")

    with pytest.raises(ConfigError) as e:
        ConfigLoader().load(path)

    assert "YAML parsing failed" in str(e.value)


def test_yaml_with_extra_field_raises_configerror(tmp_yaml: Path):
    """
    @brief
    Unknown top-level keys are rejected by the schema.
    """
    data = yaml.safe_load(tmp_yaml.read_text())
    data["extra_field"] = 42
    tmp_yaml.write_text(yaml.safe_dump(data), encoding="utf-8")

    with pytest.raises(ConfigError) as e:
        ConfigLoader().load(tmp_yaml)

    assert "extra" in str(e.value).lower()


def test_invalid_export_format_raises_configerror(tmp_yaml: Path):
    data = yaml.safe_load(tmp_yaml.read_text())
    data["export"]["format"] = "pdf"
    tmp_yaml.write_text(yaml.safe_dump(data), encoding="utf-8")

    with pytest.raises(ConfigError):
        ConfigLoader().load(tmp_yaml)


def test_repository_config_is_valid():
    """The shipped config/config.yaml loads with the current schema."""
    path = Path(__file__).resolve().parents[2] / "config" / "config.yaml"
    cfg = ConfigLoader(environ={}).load(path)
    assert cfg.advisory.enabled is False


# -----------------------------
# RulesLoader
# -----------------------------
def test_rules_loader_reads_exported_document(tmp_path: Path):
    # --- Arrange ---
    rules = RulesConfig(business_rules=[CoRunRule(id="r1", task_ids=["T1", "T2"])])
    rules.validation_rules.set_flag("clients", "validateEmail", True)
    path = tmp_path / "rules.json"
    path.write_text(json.dumps(rules.to_document()), encoding="utf-8")

    # --- Act ---
    loaded = RulesLoader().load(path)

    # --- Assert ---
    assert loaded.to_document() == rules.to_document()
    assert loaded.business_rules[0].task_ids == ["T1", "T2"]


@pytest.mark.parametrize(
    "content",
    [
        "{not json",
        "[]",
        '{"businessRules": [{"id": "x", "type": "teleport"}]}',
        '{"prioritization": {"fairness": 101}}',
    ],
)
def test_rules_loader_rejects_bad_documents(tmp_path: Path, content: str):
    path = tmp_path / "rules.json"
    path.write_text(content, encoding="utf-8")

    with pytest.raises(ConfigError):
        RulesLoader().load(path)


def test_rules_loader_missing_file(tmp_path: Path):
    with pytest.raises(ConfigError):
        RulesLoader().load(tmp_path / "nope.json")
