"""YAML configuration layer with conf.d overrides.

Each settings domain reads, in order, ``conf/<domain>.yaml`` and then every
``conf/<domain>.d/*.yaml`` (alphabetically; later files win). The base
directory can be moved per domain with ``<DOMAIN>_CONFIG_DIR``, e.g.
``CONSUMER_CONFIG_DIR=/etc/auction-worker``.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, ClassVar

from pydantic_settings import BaseSettings
from pydantic_settings.sources.providers.yaml import YamlConfigSettingsSource

DEFAULT_CONFIG_DIR = "conf"


def domain_yaml_files(domain: str, config_dir: str | Path | None = None) -> list[Path]:
    """YAML files for ``domain`` in merge order; missing files are skipped."""
    base = Path(config_dir or os.getenv(f"{domain.upper()}_CONFIG_DIR", DEFAULT_CONFIG_DIR))

    files = [base / f"{domain}.yaml"]
    confd = base / f"{domain}.d"
    if confd.is_dir():
        files.extend(sorted([*confd.glob("*.yaml"), *confd.glob("*.yml")], key=lambda p: p.name))
    return [path for path in files if path.is_file()]


class ConfDYamlConfigSettingsSource(YamlConfigSettingsSource):
    """YAML settings source merging a domain's main file and its conf.d directory."""

    def __init__(
        self,
        settings_cls: type[BaseSettings],
        domain: str,
        config_dir: str | Path | None = None,
        yaml_file_encoding: str | None = "utf-8",
    ) -> None:
        self.domain = domain
        self.yaml_files = domain_yaml_files(domain, config_dir)
        super().__init__(
            settings_cls=settings_cls,
            yaml_file=self.yaml_files or None,
            yaml_file_encoding=yaml_file_encoding,
        )

    def __repr__(self) -> str:
        files = ", ".join(str(path) for path in self.yaml_files)
        return f"{self.__class__.__name__}(domain={self.domain!r}, yaml_files=[{files}])"


class LayeredSettings(BaseSettings):
    """Base for every settings model.

    Source precedence: init kwargs > YAML (conf.d) > env > .env > secrets.
    Subclasses name their YAML domain with ``config_domain``.
    """

    config_domain: ClassVar[str] = "app"

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: Any,
        env_settings: Any,
        dotenv_settings: Any,
        file_secret_settings: Any,
    ) -> tuple[Any, ...]:
        return (
            init_settings,
            ConfDYamlConfigSettingsSource(settings_cls, cls.config_domain),
            env_settings,
            dotenv_settings,
            file_secret_settings,
        )


__all__ = [
    "DEFAULT_CONFIG_DIR",
    "ConfDYamlConfigSettingsSource",
    "LayeredSettings",
    "domain_yaml_files",
]
