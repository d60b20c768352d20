"""Tests for ApexSettings: unified settings with TOML source."""

from pathlib import Path

import click
import pytest

from apexctl.config.settings import ApexSettings


class TestApexSettingsDefaults:
    def test_all_defaults(self, tmp_path: Path) -> None:
        """With no TOML and no env vars, all fields use code defaults."""
        settings = ApexSettings.from_cli(project_root=tmp_path)
        assert settings.project_root == tmp_path
        assert settings.config_path is None
        assert settings.config_source == "none"
        assert settings.json_output is False
        assert settings.recipes == {}
        assert settings.commands == {}
        assert settings.router.max_recipe_depth == 8
        assert settings.plugins.enabled is True

    def test_frozen(self, tmp_path: Path) -> None:
        settings = ApexSettings.from_cli(project_root=tmp_path)
        with pytest.raises(Exception):
            settings.quiet = True  # type: ignore[misc]

    def test_project_root_from_config_location(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        (tmp_path / "apex.toml").write_text("")
        child = tmp_path / "pkg"
        child.mkdir()
        monkeypatch.chdir(child)
        settings = ApexSettings.from_cli()
        assert settings.config_path == tmp_path / "apex.toml"
        assert settings.project_root == tmp_path
        assert settings.config_source == "walk-up"
        assert settings.location.describe() == f"{tmp_path} (apex.toml via walk-up)"


class TestTomlSource:
    def test_sections(self, tmp_path: Path) -> None:
        (tmp_path / "apex.toml").write_text(
            "[router]\nmax_recipe_depth = 3\n\n"
            '[testing]\ncommand = ["make", "test"]\n\n'
            '[ci]\nbranch = "main"\n'
        )
        settings = ApexSettings.from_cli(project_root=tmp_path)
        assert settings.router.max_recipe_depth == 3
        assert settings.testing.command == ["make", "test"]
        assert settings.ci.branch == "main"
        assert settings.ci.timeout == 900.0  # default preserved

    def test_catalog_additions(self, tmp_path: Path) -> None:
        (tmp_path / "apex.toml").write_text(
            '[recipes]\nship = ["test", "build"]\n\n'
            '[commands]\n"deploy" = "mytools.deploy:Deploy"\n'
        )
        settings = ApexSettings.from_cli(project_root=tmp_path)
        assert settings.recipes == {"ship": ["test", "build"]}
        assert settings.commands == {"deploy": "mytools.deploy:Deploy"}

    def test_explicit_config_path(self, tmp_path: Path) -> None:
        custom = tmp_path / "custom" / "apex-ci.toml"
        custom.parent.mkdir(parents=True)
        custom.write_text("[search]\nlimit = 5\n")
        settings = ApexSettings.from_cli(config_path=str(custom), project_root=tmp_path)
        assert settings.search.limit == 5
        assert settings.config_path == custom
        assert settings.config_source == "flag"
        assert settings.project_root == tmp_path

    def test_invalid_toml(self, tmp_path: Path) -> None:
        (tmp_path / "apex.toml").write_text("[router\n")
        with pytest.raises(click.ClickException, match="Invalid TOML"):
            ApexSettings.from_cli(project_root=tmp_path)


class TestPriority:
    def test_cli_flags_override_toml(self, tmp_path: Path) -> None:
        (tmp_path / "apex.toml").write_text("verbose = true\n")
        settings = ApexSettings.from_cli(project_root=tmp_path, verbose=False)
        assert settings.verbose is False

    def test_env_overrides_toml(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        (tmp_path / "apex.toml").write_text("[search]\nlimit = 5\n")
        monkeypatch.setenv("APEX_SEARCH__LIMIT", "7")
        settings = ApexSettings.from_cli(project_root=tmp_path)
        assert settings.search.limit == 7


class TestResolvePath:
    def test_relative(self, tmp_path: Path) -> None:
        settings = ApexSettings.from_cli(project_root=tmp_path)
        assert settings.resolve_path(".apex/plugins") == (tmp_path / ".apex/plugins").resolve()

    def test_absolute_passes_through(self, tmp_path: Path) -> None:
        settings = ApexSettings.from_cli(project_root=tmp_path)
        assert settings.resolve_path("/opt/x") == Path("/opt/x")
