"""Kerberos security precondition for deploying to a secured YARN cluster.

When Hadoop security is set to Kerberos, a session cluster can only be
started by a principal that holds a keytab or a valid ticket. The check is
performed up front so a deploy fails fast instead of half-way through the
YARN submission.
"""

import getpass
import logging
import os
import subprocess
import xml.etree.ElementTree as ET
from pathlib import Path
from typing import Mapping, Protocol

from flinkops.core.config import KERBEROS_KEYTAB, KERBEROS_USE_TICKET_CACHE

logger = logging.getLogger(__name__)

HADOOP_AUTH_KEY = "hadoop.security.authentication"
FLINK_HADOOP_PREFIX = "flink.hadoop."


class SecurityPreconditionError(RuntimeError):
    """Raised when Kerberos is enabled but no credentials are available."""


class SecurityContext(Protocol):
    """Interface for the security checks used before a deploy."""

    def principal(self, config: Mapping[str, str]) -> str:
        ...

    def kerberos_enabled(self, config: Mapping[str, str]) -> bool:
        ...

    def has_credentials(
        self, config: Mapping[str, str], use_ticket_cache: bool
    ) -> bool:
        ...


def _read_core_site(conf_dir: str | None) -> dict[str, str]:
    """Return the properties of `<conf_dir>/core-site.xml` (empty if absent)."""
    if not conf_dir:
        return {}
    path = Path(conf_dir) / "core-site.xml"
    if not path.is_file():
        return {}
    try:
        root = ET.parse(path).getroot()
    except ET.ParseError as exc:
        logger.warning("Ignoring unreadable %s: %s", path, exc)
        return {}
    props: dict[str, str] = {}
    for prop in root.iter("property"):
        name = prop.findtext("name")
        value = prop.findtext("value")
        if name and value is not None:
            props[name.strip()] = value.strip()
    return props


class HadoopSecurity:
    """Security context derived from Hadoop and Flink configuration."""

    def __init__(self, hadoop_conf_dir: str | None = None):
        self.hadoop_conf_dir = hadoop_conf_dir or os.getenv("HADOOP_CONF_DIR")

    def principal(self, config: Mapping[str, str]) -> str:
        return config.get("security.kerberos.login.principal") or getpass.getuser()

    def kerberos_enabled(self, config: Mapping[str, str]) -> bool:
        value = config.get(FLINK_HADOOP_PREFIX + HADOOP_AUTH_KEY)
        if value is None:
            value = _read_core_site(self.hadoop_conf_dir).get(HADOOP_AUTH_KEY)
        return (value or "simple").strip().lower() == "kerberos"

    def has_credentials(
        self, config: Mapping[str, str], use_ticket_cache: bool
    ) -> bool:
        keytab = config.get(KERBEROS_KEYTAB)
        if keytab and Path(keytab).is_file():
            return True
        if not use_ticket_cache:
            return False
        try:
            result = subprocess.run(["klist", "-s"], check=False)
        except FileNotFoundError:
            logger.debug("klist not found; assuming no ticket cache")
            return False
        return result.returncode == 0


def ensure_kerberos_credentials(
    security: SecurityContext, config: Mapping[str, str]
) -> None:
    """
    Abort when Kerberos is enabled but the login user has no credentials.

    Raises:
        SecurityPreconditionError: If Kerberos is on and neither a keytab nor
            a ticket cache entry is available.
    """
    principal = security.principal(config)
    logger.debug("security principal: %s", principal)
    if not security.kerberos_enabled(config):
        return
    logger.debug("kerberos security is enabled")
    raw = config.get(KERBEROS_USE_TICKET_CACHE, "true")
    use_ticket_cache = str(raw).strip().lower() in {"1", "true", "yes"}
    if not security.has_credentials(config, use_ticket_cache):
        raise SecurityPreconditionError(
            "Hadoop security with Kerberos is enabled but the login user "
            f"{principal} does not have Kerberos credentials or delegation tokens!"
        )
