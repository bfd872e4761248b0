"""Configuration management for mediafill.

Supports TOML configuration format with auto-discovery.
"""

import tomllib
from dataclasses import dataclass, replace
from pathlib import Path

from mediafill.core.richtext import DEFAULT_ID_ATTR, DEFAULT_URL_ATTR, RichTextRewriter
from mediafill.mapping.registry import DEFAULT_MAX_DEPTH

CONFIG_FILENAME = "mediafill.toml"


@dataclass
class DirectoryConfig:
    """Resource directory configuration."""

    base_url: str
    timeout: float = 10.0
    include_variants: bool = True
    expires_in: int = 3600
    token: str | None = None


@dataclass
class RichTextConfig:
    """Rich text marker configuration."""

    id_attr: str = DEFAULT_ID_ATTR
    url_attr: str = DEFAULT_URL_ATTR
    pattern: str | None = None
    variant: str | None = None

    def create_rewriter(self) -> RichTextRewriter:
        """Build the rewriter described by this section.

        Raises:
            ValueError: If the custom pattern is not usable
        """
        return RichTextRewriter(
            self.pattern,
            id_attr=self.id_attr,
            url_attr=self.url_attr,
        )


@dataclass
class MappingConfig:
    """Structural mapping configuration."""

    strict: bool = False
    max_depth: int = DEFAULT_MAX_DEPTH


@dataclass
class Config:
    """Application configuration."""

    directory: DirectoryConfig | None
    richtext: RichTextConfig
    mapping: MappingConfig
    config_path: Path | None = None

    @classmethod
    def load(cls, config_path: Path | None = None) -> "Config":
        """Load configuration from file.

        If config_path is provided, loads from that file.
        Otherwise, searches for mediafill.toml in current directory and parents.

        Args:
            config_path: Optional explicit path to config file

        Returns:
            Config instance with defaults for missing sections

        Raises:
            FileNotFoundError: If explicit config_path doesn't exist
            ValueError: If configuration is invalid
        """
        if config_path is not None:
            if not config_path.exists():
                raise FileNotFoundError(f"Configuration file not found: {config_path}")
            return cls._load_from_file(config_path)

        discovered_path = cls._discover_config()
        if discovered_path is None:
            return cls._default()

        return cls._load_from_file(discovered_path)

    @classmethod
    def _discover_config(cls) -> Path | None:
        """Search for config file in current directory and parents."""
        current = Path.cwd()
        while True:
            candidate = current / CONFIG_FILENAME
            if candidate.exists():
                return candidate
            parent = current.parent
            if parent == current:
                return None
            current = parent

    @classmethod
    def _default(cls) -> "Config":
        return cls(
            directory=None,
            richtext=RichTextConfig(),
            mapping=MappingConfig(),
        )

    @classmethod
    def _load_from_file(cls, path: Path) -> "Config":
        """Load configuration from a specific file.

        Args:
            path: Path to TOML configuration file

        Returns:
            Config instance

        Raises:
            ValueError: If configuration is invalid
        """
        with path.open("rb") as f:
            data = tomllib.load(f)

        if not isinstance(data, dict):
            raise ValueError("Configuration must be a dictionary")

        return cls(
            directory=cls._parse_directory(data.get("directory")),
            richtext=cls._parse_richtext(data.get("richtext")),
            mapping=cls._parse_mapping(data.get("mapping")),
            config_path=path,
        )

    @classmethod
    def _parse_directory(cls, data: object) -> DirectoryConfig | None:
        """Parse directory configuration section.

        Args:
            data: Raw directory section data

        Returns:
            DirectoryConfig instance or None if no base_url is configured
        """
        if data is None:
            return None

        if not isinstance(data, dict):
            raise ValueError("directory section must be a dictionary")

        base_url = data.get("base_url")
        if base_url is None:
            return None
        if not isinstance(base_url, str):
            raise ValueError("directory.base_url must be a string")

        timeout = data.get("timeout", 10.0)
        if isinstance(timeout, bool) or not isinstance(timeout, (int, float)):
            raise ValueError("directory.timeout must be a number")
        if timeout <= 0:
            raise ValueError("directory.timeout must be positive")

        include_variants = data.get("include_variants", True)
        if not isinstance(include_variants, bool):
            raise ValueError("directory.include_variants must be a boolean")

        expires_in = data.get("expires_in", 3600)
        if isinstance(expires_in, bool) or not isinstance(expires_in, int):
            raise ValueError("directory.expires_in must be an integer")

        token = data.get("token")
        if token is not None and not isinstance(token, str):
            raise ValueError("directory.token must be a string")

        return DirectoryConfig(
            base_url=base_url,
            timeout=float(timeout),
            include_variants=include_variants,
            expires_in=expires_in,
            token=token,
        )

    @classmethod
    def _parse_richtext(cls, data: object) -> RichTextConfig:
        """Parse richtext configuration section.

        Args:
            data: Raw richtext section data

        Returns:
            RichTextConfig instance
        """
        if data is None:
            return RichTextConfig()

        if not isinstance(data, dict):
            raise ValueError("richtext section must be a dictionary")

        id_attr = data.get("id_attr", DEFAULT_ID_ATTR)
        if not isinstance(id_attr, str) or not id_attr:
            raise ValueError("richtext.id_attr must be a non-empty string")

        url_attr = data.get("url_attr", DEFAULT_URL_ATTR)
        if not isinstance(url_attr, str) or not url_attr:
            raise ValueError("richtext.url_attr must be a non-empty string")

        pattern = data.get("pattern")
        if pattern is not None and not isinstance(pattern, str):
            raise ValueError("richtext.pattern must be a string")

        variant = data.get("variant")
        if variant is not None and not isinstance(variant, str):
            raise ValueError("richtext.variant must be a string")

        return RichTextConfig(
            id_attr=id_attr,
            url_attr=url_attr,
            pattern=pattern,
            variant=variant,
        )

    @classmethod
    def _parse_mapping(cls, data: object) -> MappingConfig:
        """Parse mapping configuration section.

        Args:
            data: Raw mapping section data

        Returns:
            MappingConfig instance
        """
        if data is None:
            return MappingConfig()

        if not isinstance(data, dict):
            raise ValueError("mapping section must be a dictionary")

        strict = data.get("strict", False)
        if not isinstance(strict, bool):
            raise ValueError("mapping.strict must be a boolean")

        max_depth = data.get("max_depth", DEFAULT_MAX_DEPTH)
        if isinstance(max_depth, bool) or not isinstance(max_depth, int):
            raise ValueError("mapping.max_depth must be an integer")
        if max_depth < 1:
            raise ValueError("mapping.max_depth must be at least 1")

        return MappingConfig(strict=strict, max_depth=max_depth)

    def with_overrides(
        self,
        *,
        base_url: str | None = None,
        variant: str | None = None,
        strict: bool | None = None,
    ) -> "Config":
        """Create a new Config with CLI overrides applied.

        Only non-None values override the existing config. The original
        Config is not modified.

        Args:
            base_url: Override directory.base_url
            variant: Override richtext.variant
            strict: Override mapping.strict

        Returns:
            New Config instance with overrides applied
        """
        directory = self.directory
        if base_url is not None:
            if directory is None:
                directory = DirectoryConfig(base_url=base_url)
            else:
                directory = replace(directory, base_url=base_url)

        richtext = self.richtext
        if variant is not None:
            richtext = replace(self.richtext, variant=variant)

        mapping = self.mapping
        if strict is not None:
            mapping = replace(self.mapping, strict=strict)

        return replace(
            self,
            directory=directory,
            richtext=richtext,
            mapping=mapping,
        )
