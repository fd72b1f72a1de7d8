from __future__ import annotations

import logging
import os
import re
import subprocess
import time
from pathlib import Path
from typing import Mapping, Protocol

import requests

from flinkops.core.adapters.flinkrest import FlinkRestClusterClient
from flinkops.core.config import APPLICATION_ID, CONF_DIR, ConfigurationError
from flinkops.core.controlplane import (
    ApplicationNotFoundError,
    ApplicationReport,
    ClusterDeploymentError,
    ClusterRetrieveError,
)
from flinkops.core.models import FinalApplicationStatus

logger = logging.getLogger(__name__)

_APP_ID_RE = re.compile(r"application_\d+_\d+")
RM_ADDRESS_KEY = "yarn.resourcemanager.webapp.address"
RM_ADDRESS_ENV = "FLINKOPS_YARN_RM_ADDRESS"


def _sanitize_address(address: str) -> str:
    """Ensure an http(s) scheme and strip query strings and trailing slashes."""
    address = address.strip().split("?", 1)[0].rstrip("/")
    if not re.match(r"^https?://", address):
        address = f"http://{address}"
    return address


class YarnResourceManager:
    """Thin client for the YARN ResourceManager REST API."""

    def __init__(
        self,
        base_url: str,
        session: requests.Session | None = None,
        timeout: float = 30,
    ):
        self.base_url = _sanitize_address(base_url)
        self.session = session or requests.Session()
        self.timeout = timeout

    def application_report(self, app_id: str) -> ApplicationReport:
        """
        Return the report of `app_id`.

        Raises:
            ApplicationNotFoundError: If the ResourceManager answers 404.
            requests.HTTPError: For any other HTTP failure.
        """
        resp = self.session.get(
            f"{self.base_url}/ws/v1/cluster/apps/{app_id}",
            headers={"Accept": "application/json"},
            timeout=self.timeout,
        )
        if resp.status_code == 404:
            raise ApplicationNotFoundError(f"Application {app_id} not found in YARN")
        resp.raise_for_status()
        app = resp.json().get("app") or {}
        raw_status = str(app.get("finalStatus") or "UNDEFINED").upper()
        try:
            final_status = FinalApplicationStatus(raw_status)
        except ValueError:
            logger.warning("Unknown final status %r for %s", raw_status, app_id)
            final_status = FinalApplicationStatus.ENDED
        return ApplicationReport(
            application_id=str(app.get("id") or app_id),
            state=str(app.get("state") or "UNKNOWN").upper(),
            final_status=final_status,
            rpc_address=app.get("amRPCAddress") or None,
            tracking_url=app.get("trackingUrl") or None,
        )

    def close(self) -> None:
        self.session.close()


class SessionLauncher(Protocol):
    def launch(self, config: Mapping[str, str]) -> str:
        """Start a detached session cluster and return its application id."""
        ...


class YarnSessionLauncher:
    """Starts session clusters through `bin/yarn-session.sh --detached`."""

    def __init__(self, flink_home: str, timeout: float = 300):
        self.flink_home = Path(flink_home)
        self.timeout = timeout

    def command(self, config: Mapping[str, str]) -> list[str]:
        cmd = [str(self.flink_home / "bin" / "yarn-session.sh"), "--detached"]
        for key, value in config.items():
            if key.startswith("$internal."):
                continue
            cmd.extend(["-D", f"{key}={value}"])
        return cmd

    def launch(self, config: Mapping[str, str]) -> str:
        env = dict(os.environ)
        env["FLINK_CONF_DIR"] = config.get(CONF_DIR) or str(self.flink_home / "conf")
        try:
            result = subprocess.run(
                self.command(config),
                capture_output=True,
                text=True,
                env=env,
                timeout=self.timeout,
                check=False,
            )
        except (OSError, subprocess.TimeoutExpired) as exc:
            raise ClusterDeploymentError(f"Failed to run yarn-session.sh: {exc}") from exc

        output = f"{result.stdout}\n{result.stderr}"
        if result.returncode != 0:
            raise ClusterDeploymentError(
                f"yarn-session.sh exited with {result.returncode}: {output.strip()[-2000:]}"
            )
        match = _APP_ID_RE.search(output)
        if not match:
            raise ClusterDeploymentError("yarn-session.sh did not report an application id")
        return match.group(0)


class YarnSessionClusterDescriptor:
    """Creates and retrieves Flink session clusters on YARN."""

    def __init__(
        self,
        resource_manager: YarnResourceManager,
        config: Mapping[str, str],
        *,
        launcher: SessionLauncher | None = None,
        poll_interval: float = 2.0,
        startup_timeout: float = 300,
    ):
        self.resource_manager = resource_manager
        self.config = config
        self.launcher = launcher
        self.poll_interval = poll_interval
        self.startup_timeout = startup_timeout

    def application_report(self, cluster_id: str) -> ApplicationReport:
        return self.resource_manager.application_report(cluster_id)

    def retrieve(self, cluster_id: str) -> FlinkRestClusterClient:
        """
        Bind a REST client to the running session `cluster_id`.

        The Flink application master advertises its REST endpoint as the YARN
        RPC address. A running session that has not published one yet yields
        a client without an endpoint.
        """
        report = self.application_report(cluster_id)
        if report.final_status != FinalApplicationStatus.UNDEFINED:
            raise ClusterRetrieveError(
                f"Session {cluster_id} is not running "
                f"(final status {report.final_status.value})."
            )
        address = None
        if report.rpc_address and ":" in report.rpc_address:
            address = _sanitize_address(report.rpc_address)
        return FlinkRestClusterClient(cluster_id, address)

    def deploy_session_cluster(self) -> FlinkRestClusterClient:
        """
        Launch a new session cluster and wait until YARN reports it RUNNING.

        Raises:
            ClusterDeploymentError: If no launcher is configured, the launch
                fails, the application terminates, or it does not reach
                RUNNING within `startup_timeout` seconds.
        """
        if self.launcher is None:
            raise ClusterDeploymentError("No session launcher configured.")
        app_id = self.launcher.launch(self.config)
        logger.info("submitted yarn session application %s", app_id)

        deadline = time.monotonic() + self.startup_timeout
        while True:
            try:
                report = self.application_report(app_id)
            except ApplicationNotFoundError:
                report = None
            if report is not None:
                if report.final_status != FinalApplicationStatus.UNDEFINED:
                    raise ClusterDeploymentError(
                        f"Session {app_id} terminated during startup "
                        f"(final status {report.final_status.value})."
                    )
                if report.state == "RUNNING":
                    return self.retrieve(app_id)
                logger.debug("session %s is %s", app_id, report.state)
            if time.monotonic() >= deadline:
                raise ClusterDeploymentError(
                    f"Session {app_id} did not reach RUNNING within "
                    f"{self.startup_timeout}s"
                )
            time.sleep(self.poll_interval)

    def close(self) -> None:
        self.resource_manager.close()


class YarnClusterClientFactory:
    """Builds YARN session descriptors from effective configuration."""

    def __init__(self, rm_address: str | None = None, flink_home: str | None = None):
        self.rm_address = rm_address
        self.flink_home = flink_home

    def cluster_id(self, config: Mapping[str, str]) -> str | None:
        return config.get(APPLICATION_ID) or None

    def _resolve_rm_address(self, config: Mapping[str, str]) -> str:
        address = (
            self.rm_address or config.get(RM_ADDRESS_KEY) or os.getenv(RM_ADDRESS_ENV)
        )
        if not address:
            raise ConfigurationError(
                "YARN ResourceManager address is not configured. Set "
                f"{RM_ADDRESS_KEY} or {RM_ADDRESS_ENV}."
            )
        return address

    def create_descriptor(self, config: Mapping[str, str]) -> YarnSessionClusterDescriptor:
        rm = YarnResourceManager(self._resolve_rm_address(config))
        flink_home = self.flink_home
        conf_dir = config.get(CONF_DIR)
        if flink_home is None and conf_dir:
            flink_home = str(Path(conf_dir).parent)
        launcher = YarnSessionLauncher(flink_home) if flink_home else None
        return YarnSessionClusterDescriptor(rm, config, launcher=launcher)
