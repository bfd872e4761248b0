"""Tests for configuration loading."""

import os
from pathlib import Path

import pytest
from mediafill.config import CONFIG_FILENAME, Config, DirectoryConfig
from mediafill.core.filler import Filler
from mediafill.mapping.registry import DEFAULT_MAX_DEPTH

from tests.fakes import RecordingResolver, ok


class TestConfigLoad:
    """Tests for Config.load()."""

    def test__full_file__parses_all_sections(self, tmp_path: Path) -> None:
        """Parse every section of a complete file."""
        config_file = tmp_path / CONFIG_FILENAME
        config_file.write_text(
            """
[directory]
base_url = "http://resource-server:8000"
timeout = 5
include_variants = false
expires_in = 600
token = "abc"

[richtext]
id_attr = "data-file"
url_attr = "href"
variant = "thumbnail"

[mapping]
strict = true
max_depth = 8
"""
        )

        config = Config.load(config_file)

        assert config.directory == DirectoryConfig(
            base_url="http://resource-server:8000",
            timeout=5.0,
            include_variants=False,
            expires_in=600,
            token="abc",
        )
        assert config.richtext.id_attr == "data-file"
        assert config.richtext.url_attr == "href"
        assert config.richtext.variant == "thumbnail"
        assert config.mapping.strict is True
        assert config.mapping.max_depth == 8
        assert config.config_path == config_file

    def test__empty_file__uses_defaults(self, tmp_path: Path) -> None:
        """Fall back to defaults for missing sections."""
        config_file = tmp_path / CONFIG_FILENAME
        config_file.write_text("")

        config = Config.load(config_file)

        assert config.directory is None
        assert config.richtext.id_attr == "data-href"
        assert config.richtext.url_attr == "src"
        assert config.mapping.strict is False
        assert config.mapping.max_depth == DEFAULT_MAX_DEPTH

    def test__directory_without_base_url__is_none(self, tmp_path: Path) -> None:
        """Treat a directory section without base_url as absent."""
        config_file = tmp_path / CONFIG_FILENAME
        config_file.write_text("[directory]\ntimeout = 3\n")

        assert Config.load(config_file).directory is None

    def test__missing_explicit_file__raises(self, tmp_path: Path) -> None:
        """Raise FileNotFoundError for an explicit path that doesn't exist."""
        with pytest.raises(FileNotFoundError):
            Config.load(tmp_path / "nonexistent.toml")

    def test__discovers_file_in_parent(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        """Find mediafill.toml in a parent directory."""
        (tmp_path / CONFIG_FILENAME).write_text('[directory]\nbase_url = "http://found"\n')
        nested = tmp_path / "a" / "b"
        nested.mkdir(parents=True)
        monkeypatch.chdir(nested)

        config = Config.load()

        assert config.directory is not None
        assert config.directory.base_url == "http://found"

    def test__no_file__returns_defaults(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        """Return defaults when nothing is discovered."""
        monkeypatch.chdir(tmp_path)
        if any((parent / CONFIG_FILENAME).exists() for parent in [tmp_path, *tmp_path.parents]):
            pytest.skip(f"{CONFIG_FILENAME} present above {os.fspath(tmp_path)}")

        config = Config.load()

        assert config.directory is None
        assert config.config_path is None

    @pytest.mark.parametrize(
        ("content", "message"),
        [
            ('directory = "x"', "directory section must be a dictionary"),
            ("[directory]\nbase_url = 1", "directory.base_url must be a string"),
            ('[directory]\nbase_url = "u"\ntimeout = "slow"', "directory.timeout must be a number"),
            ('[directory]\nbase_url = "u"\ntimeout = 0', "directory.timeout must be positive"),
            ('[directory]\nbase_url = "u"\ninclude_variants = 1', "directory.include_variants must be a boolean"),
            ('[directory]\nbase_url = "u"\nexpires_in = 1.5', "directory.expires_in must be an integer"),
            ('[directory]\nbase_url = "u"\ntoken = 1', "directory.token must be a string"),
            ('[richtext]\nid_attr = ""', "richtext.id_attr must be a non-empty string"),
            ("[richtext]\npattern = 1", "richtext.pattern must be a string"),
            ("[richtext]\nvariant = true", "richtext.variant must be a string"),
            ('[mapping]\nstrict = "yes"', "mapping.strict must be a boolean"),
            ("[mapping]\nmax_depth = 0", "mapping.max_depth must be at least 1"),
        ],
    )
    def test__invalid_values__raise(self, tmp_path: Path, content: str, message: str) -> None:
        """Reject invalid values with a section.key message."""
        config_file = tmp_path / CONFIG_FILENAME
        config_file.write_text(content)

        with pytest.raises(ValueError, match=message):
            Config.load(config_file)


class TestWithOverrides:
    """Tests for Config.with_overrides()."""

    def test__base_url__creates_directory_section(self) -> None:
        """Create a directory section from a base_url override."""
        config = Config._default()

        updated = config.with_overrides(base_url="http://override")

        assert updated.directory == DirectoryConfig(base_url="http://override")
        assert config.directory is None

    def test__base_url__keeps_other_directory_settings(self) -> None:
        """Replace only base_url in an existing directory section."""
        config = Config._default().with_overrides(base_url="http://a")
        config.directory.token = "t"  # type: ignore[union-attr]

        updated = config.with_overrides(base_url="http://b")

        assert updated.directory is not None
        assert updated.directory.base_url == "http://b"
        assert updated.directory.token == "t"

    def test__none_values__change_nothing(self) -> None:
        """Leave the config unchanged without overrides."""
        config = Config._default()

        assert config.with_overrides() == config

    def test__variant_and_strict__are_applied(self) -> None:
        """Override richtext.variant and mapping.strict."""
        updated = Config._default().with_overrides(variant="thumbnail", strict=True)

        assert updated.richtext.variant == "thumbnail"
        assert updated.mapping.strict is True


class TestFillerFromConfig:
    """Tests for Filler.from_config()."""

    @pytest.mark.asyncio
    async def test__config__drives_rewriter_and_registry(self, tmp_path: Path) -> None:
        """Build the filler's rewriter, variant, registry and timeout from config."""
        config_file = tmp_path / CONFIG_FILENAME
        config_file.write_text(
            """
[directory]
base_url = "http://d"
timeout = 2.5

[richtext]
id_attr = "data-file"
url_attr = "href"
variant = "thumbnail"

[mapping]
strict = true
max_depth = 4
"""
        )
        config = Config.load(config_file)

        filler = Filler.from_config(config, RecordingResolver({"f": ok("https://cdn/f")}))

        assert filler.timeout == 2.5
        assert filler.variant == "thumbnail"
        assert filler.registry.strict is True
        assert filler.registry.max_depth == 4
        assert filler.rewriter is not None
        assert filler.rewriter.collect_ids('<a data-file="f" href="">') == ["f"]

    def test__invalid_pattern__raises(self) -> None:
        """Reject a custom pattern without an ID group."""
        config = Config._default()
        config.richtext.pattern = r"data-href=\"\w+\""

        with pytest.raises(ValueError):
            Filler.from_config(config, RecordingResolver())
