from pathlib import Path

import pytest

from nanogit.config import Config, safe_load_config


class TestSafeLoadConfig:
    def test_loads_repository_config(self, tmp_path: Path) -> None:
        _ = (tmp_path / ".nanogit.toml").write_text("[cache]\nmax_entries = 7\n")

        config, error = safe_load_config(repo_root=tmp_path)

        assert error is None
        assert config.cache.max_entries == 7

    def test_explicit_config_path(self, tmp_path: Path) -> None:
        path = tmp_path / "custom.toml"
        _ = path.write_text("[cache]\ndiff_context = 9\n")

        config, error = safe_load_config(config_path=path)

        assert error is None
        assert config.cache.diff_context == 9

    def test_missing_explicit_path_exits(
        self, tmp_path: Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        with pytest.raises(SystemExit) as exc_info:
            _ = safe_load_config(config_path=tmp_path / "absent.toml")

        assert exc_info.value.code == 1
        assert "Config file not found" in capsys.readouterr().err

    def test_invalid_config_warns_and_falls_back(
        self, tmp_path: Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        _ = (tmp_path / ".nanogit.toml").write_text("[cache\n")

        config, error = safe_load_config(repo_root=tmp_path)

        assert error is not None
        assert config.cache == Config.from_dict({}).cache
        assert "Warning: Failed to load config" in capsys.readouterr().err

    def test_strict_mode_exits(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("NANOGIT_STRICT_CONFIG", "1")
        _ = (tmp_path / ".nanogit.toml").write_text('[logging]\nlevel = "loud"\n')

        with pytest.raises(SystemExit) as exc_info:
            _ = safe_load_config(repo_root=tmp_path)

        assert exc_info.value.code == 1

    def test_cli_overrides_apply(self) -> None:
        config, _ = safe_load_config(cli_overrides={"logging": {"level": "debug"}})

        assert config.logging.level == "debug"
