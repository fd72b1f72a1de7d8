from __future__ import annotations

import sys
from pathlib import Path

import pytest
import requests

# Ensure tests always import the local src tree, not an older installed wheel.
ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
sys.path.insert(0, str(SRC))

from flinkops.core.config import EffectiveConfiguration  # noqa: E402
from flinkops.core.controlplane import (  # noqa: E402
    ApplicationNotFoundError,
    ApplicationReport,
)
from flinkops.core.models import FinalApplicationStatus, FlinkInstall  # noqa: E402

JOB_ID = "abc123"
SAVEPOINT_LOCATION = "hdfs:///savepoints/savepoint-abc123-1"


def make_report(
    app_id: str,
    final: str = "UNDEFINED",
    state: str = "RUNNING",
    rpc_address: str | None = "host:8081",
) -> ApplicationReport:
    return ApplicationReport(
        application_id=app_id,
        state=state,
        final_status=FinalApplicationStatus(final),
        rpc_address=rpc_address,
    )


class StubClient:
    def __init__(
        self,
        cluster_id: str,
        url: str | None = "http://host:8081",
        *,
        error: Exception | None = None,
    ):
        self.cluster_id = cluster_id
        self.url = url
        self.error = error
        self.calls: list[tuple] = []
        self.closed = 0

    def _record(self, *call):
        self.calls.append(call)
        if self.error is not None:
            raise self.error

    def web_interface_url(self) -> str | None:
        return self.url

    def submit_job(self, job_graph) -> str:
        self._record("submit_job", job_graph)
        return "f" * 32

    def cancel(self, job_id: str) -> None:
        self._record("cancel", job_id)

    def cancel_with_savepoint(self, job_id: str, target_dir: str | None) -> str:
        self._record("cancel_with_savepoint", job_id, target_dir)
        return SAVEPOINT_LOCATION

    def stop_with_savepoint(self, job_id: str, target_dir: str | None, drain: bool) -> str:
        self._record("stop_with_savepoint", job_id, target_dir, drain)
        return SAVEPOINT_LOCATION

    def trigger_savepoint(self, job_id: str, target_dir: str | None) -> str:
        self._record("trigger_savepoint", job_id, target_dir)
        return SAVEPOINT_LOCATION

    def shutdown_cluster(self) -> None:
        self._record("shutdown_cluster")

    def close(self) -> None:
        self.closed += 1


class StubDescriptor:
    def __init__(
        self,
        reports: dict | None = None,
        clients: dict[str, StubClient | Exception] | None = None,
        created: StubClient | None = None,
        create_error: Exception | None = None,
    ):
        self.reports = reports or {}
        self.clients = clients or {}
        self.created_client = created or StubClient("application_001")
        self.create_error = create_error
        self.created = 0
        self.retrieved: list[str] = []
        self.report_calls: list[str] = []
        self.closed = 0

    def application_report(self, cluster_id: str) -> ApplicationReport:
        self.report_calls.append(cluster_id)
        report = self.reports.get(cluster_id)
        if report is None:
            raise ApplicationNotFoundError(cluster_id)
        if isinstance(report, Exception):
            raise report
        return report

    def deploy_session_cluster(self) -> StubClient:
        self.created += 1
        if self.create_error is not None:
            raise self.create_error
        return self.created_client

    def retrieve(self, cluster_id: str) -> StubClient:
        self.retrieved.append(cluster_id)
        client = self.clients[cluster_id]
        if isinstance(client, Exception):
            raise client
        return client

    def close(self) -> None:
        self.closed += 1


class StubFactory:
    def __init__(self, descriptor: StubDescriptor):
        self.descriptor = descriptor
        self.configs: list = []

    def cluster_id(self, config) -> str | None:
        return config.get("yarn.application.id")

    def create_descriptor(self, config) -> StubDescriptor:
        self.configs.append(config)
        return self.descriptor


class FakeResponse:
    def __init__(self, status_code: int = 200, payload=None):
        self.status_code = status_code
        self._payload = payload
        self.content = b"" if payload is None else b"{}"

    def json(self):
        return self._payload

    def raise_for_status(self) -> None:
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} error", response=self)


class FakeSession:
    """Records requests and replays queued responses per (method, path-suffix)."""

    def __init__(self, routes: dict[tuple[str, str], list[FakeResponse]] | None = None):
        self.routes = routes or {}
        self.requests: list[tuple[str, str, dict]] = []
        self.closed = False

    def request(self, method: str, url: str, **kwargs) -> FakeResponse:
        self.requests.append((method, url, kwargs))
        for (m, suffix), queue in self.routes.items():
            if m == method and url.endswith(suffix):
                return queue.pop(0) if len(queue) > 1 else queue[0]
        return FakeResponse(404, {"errors": ["not found"]})

    def get(self, url: str, **kwargs) -> FakeResponse:
        return self.request("GET", url, **kwargs)

    def close(self) -> None:
        self.closed = True


@pytest.fixture
def flink() -> FlinkInstall:
    return FlinkInstall(home="/opt/flink", version="1.18.1")


@pytest.fixture
def defaults() -> EffectiveConfiguration:
    return EffectiveConfiguration(
        {
            "jobmanager.memory.process.size": "1600m",
            "parallelism.default": "2",
            "state.savepoints.dir": "hdfs:///savepoints",
        }
    )


@pytest.fixture
def loader(defaults):
    return lambda flink_home: defaults
