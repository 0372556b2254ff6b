# tests/core/test_config.py
"""Tests for configuration schema and loading."""

from pathlib import Path

import pytest
from pydantic import ValidationError


class TestPersistenceSettings:
    """Persistence configuration validation."""

    def test_defaults(self) -> None:
        from chkjam.core.checkpoint import CURRENT_VERSION, DEFAULT_EXTENSION
        from chkjam.core.config import PersistenceSettings

        settings = PersistenceSettings()
        assert settings.data_dir == Path(".chkjam")
        assert settings.extension == DEFAULT_EXTENSION
        assert settings.format_version == CURRENT_VERSION
        assert settings.enforce_version is False
        assert settings.fsync is True

    def test_expected_version_only_when_enforced(self) -> None:
        from chkjam.core.config import PersistenceSettings

        assert PersistenceSettings(format_version=3).expected_version is None
        assert PersistenceSettings(format_version=3, enforce_version=True).expected_version == 3

    def test_jam_paths(self, tmp_path: Path) -> None:
        from chkjam.core.config import PersistenceSettings

        paths = PersistenceSettings(data_dir=tmp_path, extension="ckpt").jam_paths()
        assert paths.slot(0) == tmp_path / "0.ckpt"
        assert paths.slot(1) == tmp_path / "1.ckpt"

    @pytest.mark.parametrize("extension", ["", "a.b", "../x", "dir/ext", "has space"])
    def test_extension_must_be_bare_name(self, extension: str) -> None:
        from chkjam.core.config import PersistenceSettings

        with pytest.raises(ValidationError):
            PersistenceSettings(extension=extension)

    @pytest.mark.parametrize("version", [-1, 2**32])
    def test_format_version_must_fit_u32(self, version: int) -> None:
        from chkjam.core.config import PersistenceSettings

        with pytest.raises(ValidationError):
            PersistenceSettings(format_version=version)

    def test_settings_are_frozen(self) -> None:
        from chkjam.core.config import PersistenceSettings

        settings = PersistenceSettings()
        with pytest.raises(ValidationError):
            settings.fsync = False  # type: ignore[misc]


class TestLoggingSettings:
    def test_level_is_case_insensitive(self) -> None:
        from chkjam.core.config import LoggingSettings

        assert LoggingSettings(level="debug").level == "DEBUG"  # type: ignore[arg-type]

    def test_unknown_level_rejected(self) -> None:
        from chkjam.core.config import LoggingSettings

        with pytest.raises(ValidationError):
            LoggingSettings(level="chatty")  # type: ignore[arg-type]


class TestLoadSettings:
    """Test Dynaconf-based settings loading."""

    def test_load_from_yaml_file(self, tmp_path: Path) -> None:
        from chkjam.core.config import load_settings

        config_file = tmp_path / "settings.yaml"
        config_file.write_text("""
persistence:
  data_dir: "/var/lib/jam"
  extension: "ckpt"
  enforce_version: true
logging:
  level: "warning"
  json_output: true
""")
        settings = load_settings(config_file)
        assert settings.persistence.data_dir == Path("/var/lib/jam")
        assert settings.persistence.extension == "ckpt"
        assert settings.persistence.expected_version == 1
        assert settings.logging.level == "WARNING"
        assert settings.logging.json_output is True

    def test_unset_sections_use_defaults(self, tmp_path: Path) -> None:
        from chkjam.core.config import load_settings

        config_file = tmp_path / "settings.yaml"
        config_file.write_text("""
logging:
  level: "DEBUG"
""")
        settings = load_settings(config_file)
        assert settings.persistence.fsync is True
        assert settings.persistence.data_dir == Path(".chkjam")

    def test_load_with_env_override(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        from chkjam.core.config import load_settings

        config_file = tmp_path / "settings.yaml"
        config_file.write_text("""
persistence:
  data_dir: "from-yaml"
""")
        # Environment variable should override YAML
        monkeypatch.setenv("CHKJAM_PERSISTENCE__DATA_DIR", "from-env")

        settings = load_settings(config_file)
        assert settings.persistence.data_dir == Path("from-env")

    def test_env_var_expansion(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        from chkjam.core.config import load_settings

        config_file = tmp_path / "settings.yaml"
        config_file.write_text("""
persistence:
  data_dir: "${JAM_HOME}/slots"
  extension: "${JAM_EXT:-jam}"
""")
        monkeypatch.setenv("JAM_HOME", "/srv/pier")
        monkeypatch.delenv("JAM_EXT", raising=False)

        settings = load_settings(config_file)
        assert settings.persistence.data_dir == Path("/srv/pier/slots")
        assert settings.persistence.extension == "jam"

    def test_load_validates_schema(self, tmp_path: Path) -> None:
        from chkjam.core.config import load_settings

        config_file = tmp_path / "settings.yaml"
        config_file.write_text("""
persistence:
  extension: "not.valid"
""")
        with pytest.raises(ValidationError):
            load_settings(config_file)

    def test_load_missing_file_raises_file_not_found(self, tmp_path: Path) -> None:
        from chkjam.core.config import load_settings

        missing_file = tmp_path / "nonexistent.yaml"
        with pytest.raises(FileNotFoundError, match="Config file not found"):
            load_settings(missing_file)
