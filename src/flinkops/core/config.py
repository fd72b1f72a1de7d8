"""Assembly of effective Flink configurations.

Configurations are immutable mappings of string keys to string values. Every
operation assembles its own configuration from the installation defaults and
the caller's properties; nothing is shared or mutated between calls.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Callable, Iterator, Mapping

import yaml

CONF_FILE_NAMES = ("flink-conf.yaml", "config.yaml")
SESSION_TARGET = "yarn-session"

TARGET = "execution.target"
SHIP_FILES = "yarn.ship-files"
FLINK_DIST_JAR = "yarn.flink-dist-jar"
CONF_DIR = "$internal.deployment.config-dir"
APPLICATION_ID = "yarn.application.id"
SAVEPOINT_DIR = "state.savepoints.dir"
DEFAULT_PARALLELISM = "parallelism.default"
KERBEROS_KEYTAB = "security.kerberos.login.keytab"
KERBEROS_USE_TICKET_CACHE = "security.kerberos.login.use-ticket-cache"


class ConfigurationError(ValueError):
    """Raised when a configuration cannot be loaded or does not address a cluster."""


def _format_value(value: Any) -> str:
    """Render a value the way Flink stores it in flat configuration."""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (list, tuple)):
        return ";".join(_format_value(v) for v in value)
    return str(value)


class EffectiveConfiguration(Mapping[str, str]):
    """Immutable string-to-string configuration mapping."""

    __slots__ = ("_values",)

    def __init__(self, values: Mapping[str, Any] | None = None):
        self._values: dict[str, str] = {
            str(k): _format_value(v) for k, v in (values or {}).items()
        }

    def __getitem__(self, key: str) -> str:
        return self._values[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def __repr__(self) -> str:
        return f"EffectiveConfiguration({self._values!r})"

    def with_overrides(self, overrides: Mapping[str, Any]) -> "EffectiveConfiguration":
        """Return a copy with `overrides` layered on top; None values are skipped."""
        merged: dict[str, Any] = dict(self._values)
        for key, value in overrides.items():
            if value is None:
                continue
            merged[key] = value
        return EffectiveConfiguration(merged)

    def get_bool(self, key: str, default: bool = False) -> bool:
        raw = self._values.get(key)
        if raw is None:
            return default
        return raw.strip().lower() in {"1", "true", "yes"}

    def to_dict(self) -> dict[str, str]:
        return dict(self._values)


ConfigLoader = Callable[[str], EffectiveConfiguration]


def _flatten(doc: Mapping[str, Any], prefix: str = "") -> Iterator[tuple[str, Any]]:
    for key, value in doc.items():
        full_key = f"{prefix}{key}"
        if isinstance(value, Mapping):
            yield from _flatten(value, prefix=f"{full_key}.")
        else:
            yield full_key, value


def load_default_configuration(flink_home: str) -> EffectiveConfiguration:
    """
    Load the default configuration of a Flink installation.

    Reads `<flink_home>/conf/flink-conf.yaml` (or the newer `config.yaml`).
    Nested mappings are flattened into dotted keys, so both the legacy flat
    layout and the standard YAML layout produce the same result.

    Raises:
        ConfigurationError: If no configuration file exists or it is not a
            YAML mapping.
    """
    conf_dir = Path(flink_home) / "conf"
    for name in CONF_FILE_NAMES:
        path = conf_dir / name
        if path.is_file():
            break
    else:
        raise ConfigurationError(f"No Flink configuration found in {conf_dir}")

    try:
        doc = yaml.safe_load(path.read_text()) or {}
    except yaml.YAMLError as exc:
        raise ConfigurationError(f"Invalid Flink configuration {path}: {exc}") from exc
    if not isinstance(doc, Mapping):
        raise ConfigurationError(f"Flink configuration {path} is not a mapping")

    return EffectiveConfiguration(
        {k: v for k, v in _flatten(doc) if v is not None}
    )


def merge_properties(
    base: EffectiveConfiguration, properties: Mapping[str, Any] | None
) -> EffectiveConfiguration:
    """Layer caller properties on top of `base`, skipping None values."""
    return base.with_overrides(properties or {})


def session_deploy_configuration(
    flink_home: str,
    dist_jar: str,
    properties: Mapping[str, Any] | None = None,
    loader: ConfigLoader = load_default_configuration,
) -> EffectiveConfiguration:
    """
    Build the configuration used to deploy a YARN session cluster.

    Installation defaults come first, then the caller's properties, then the
    deployment settings (dist jar, ship files, target and conf dir), which
    always win.
    """
    home = flink_home.rstrip("/")
    config = merge_properties(loader(flink_home), properties)
    return config.with_overrides(
        {
            FLINK_DIST_JAR: dist_jar,
            SHIP_FILES: [f"{home}/lib", f"{home}/plugins"],
            TARGET: SESSION_TARGET,
            CONF_DIR: f"{home}/conf",
        }
    )


def session_target_configuration(
    base: EffectiveConfiguration, cluster_id: str
) -> EffectiveConfiguration:
    """Address an existing session cluster by its application id."""
    return base.with_overrides({APPLICATION_ID: cluster_id, TARGET: SESSION_TARGET})
