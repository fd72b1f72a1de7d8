"""Application context management for the CLI."""

from dataclasses import dataclass, field

from flinkops.cli.common.exits import EXIT_USAGE, die
from flinkops.cli.common.properties import parse_properties
from flinkops.core.adapters.yarn import YarnClusterClientFactory
from flinkops.core.auth import HadoopSecurity
from flinkops.core.models import FlinkInstall
from flinkops.core.session import SessionClusterService


@dataclass
class SessionAppContext:
    """Application context holding the Flink install, overrides and session service."""

    flink: FlinkInstall
    service: SessionClusterService
    properties: dict[str, str] = field(default_factory=dict)


def build_session_context(
    flink_home: str | None,
    rm_address: str | None,
    properties: list[str],
) -> SessionAppContext:
    """Build and return the application context for session commands.

    Args:
        flink_home: Flink installation directory (usually from FLINK_HOME).
        rm_address: Optional YARN ResourceManager web address.
        properties: Repeated `key=value` configuration overrides.

    Returns:
        SessionAppContext: Context with a YARN-backed session service.
    """
    if not flink_home:
        die("Flink home is not set. Use --flink-home or FLINK_HOME.", code=EXIT_USAGE)
    try:
        props = parse_properties(properties)
    except ValueError as exc:
        die(str(exc), code=EXIT_USAGE)

    flink = FlinkInstall(home=flink_home)
    factory = YarnClusterClientFactory(rm_address=rm_address, flink_home=flink_home)
    service = SessionClusterService(factory, security=HadoopSecurity())
    return SessionAppContext(flink=flink, service=service, properties=props)
