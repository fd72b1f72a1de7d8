"""Contracts for the cluster control plane consumed by the core.

The core never talks to YARN or Flink directly. It goes through the
protocols below, which are implemented by the adapters in
`flinkops.core.adapters` and by simple stubs in tests.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Mapping, Protocol

from flinkops.core.models import FinalApplicationStatus

if TYPE_CHECKING:
    from flinkops.core.packaging import JobGraph


class ApplicationNotFoundError(LookupError):
    """Raised when the resource manager does not know an application id."""


class ControlPlaneError(RuntimeError):
    """Raised when the control plane is reachable but an operation fails."""


class ClusterRetrieveError(ControlPlaneError):
    """Raised when a client cannot be bound to an existing cluster."""


class ClusterDeploymentError(ControlPlaneError):
    """Raised when a new session cluster could not be brought up."""


class SavepointError(ControlPlaneError):
    """Raised when a savepoint trigger fails or does not complete in time."""


@dataclass(frozen=True)
class ApplicationReport:
    """
    Status snapshot of a YARN application.

    Attributes:
        application_id: YARN application id.
        state: YARN application state (e.g. ACCEPTED, RUNNING, FINISHED).
        final_status: YARN final status; UNDEFINED while the app is alive.
        rpc_address: `host:port` the application master advertises. For Flink
            this is the JobManager REST endpoint.
        tracking_url: Proxy URL of the application UI.
    """

    application_id: str
    state: str
    final_status: FinalApplicationStatus
    rpc_address: str | None = None
    tracking_url: str | None = None


class ClusterClient(Protocol):
    """Client bound to one session cluster."""

    cluster_id: str

    def web_interface_url(self) -> str | None:
        """Return the cluster's web endpoint, or None if it is not reachable."""
        ...

    def submit_job(self, job_graph: JobGraph) -> str:
        """Submit a job and return its job id."""
        ...

    def cancel(self, job_id: str) -> None:
        """Cancel a job without a savepoint."""
        ...

    def cancel_with_savepoint(self, job_id: str, target_dir: str | None) -> str:
        """Take a savepoint, cancel the job, and return the savepoint location."""
        ...

    def stop_with_savepoint(
        self, job_id: str, target_dir: str | None, drain: bool
    ) -> str:
        """Stop the job with a final savepoint and return its location."""
        ...

    def trigger_savepoint(self, job_id: str, target_dir: str | None) -> str:
        """Trigger a savepoint and return its location."""
        ...

    def shutdown_cluster(self) -> None:
        """Shut down the whole session cluster."""
        ...

    def close(self) -> None:
        ...


class ClusterDescriptor(Protocol):
    """Creates and retrieves session clusters within one resource manager."""

    def application_report(self, cluster_id: str) -> ApplicationReport:
        """Return the report for `cluster_id` or raise ApplicationNotFoundError."""
        ...

    def deploy_session_cluster(self) -> ClusterClient:
        """Start a new session cluster and return a client bound to it."""
        ...

    def retrieve(self, cluster_id: str) -> ClusterClient:
        """Return a client bound to the existing cluster `cluster_id`."""
        ...

    def close(self) -> None:
        ...


class ClusterClientFactory(Protocol):
    """Resolves cluster identities and descriptors from configuration."""

    def cluster_id(self, config: Mapping[str, str]) -> str | None:
        """Return the cluster id addressed by the configuration, if any."""
        ...

    def create_descriptor(self, config: Mapping[str, str]) -> ClusterDescriptor:
        """Create a descriptor for the resource manager named by the configuration."""
        ...
