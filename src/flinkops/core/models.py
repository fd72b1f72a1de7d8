"""Request and response records for session cluster operations.

These records are plain, immutable dataclasses. Requests are validated on
construction so the orchestrator never has to second-guess its inputs;
responses are built fresh for every call and handed over to the caller.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Mapping

_HEX_RE = re.compile(r"^[0-9a-fA-F]+$")


class FinalApplicationStatus(str, Enum):
    """Raw YARN final status of an application."""

    UNDEFINED = "UNDEFINED"
    SUCCEEDED = "SUCCEEDED"
    FAILED = "FAILED"
    KILLED = "KILLED"
    ENDED = "ENDED"


class ApplicationStatus(str, Enum):
    """
    Classification of a session cluster as seen by the resource manager.

    Values:
        RUNNING: The application is live (final status still UNDEFINED).
        TERMINATED: The application finished, failed or was killed.
        NOT_FOUND: The resource manager does not know the application.
    """

    RUNNING = "RUNNING"
    TERMINATED = "TERMINATED"
    NOT_FOUND = "NOT_FOUND"


class DeployState(str, Enum):
    """Outcome of a deploy call."""

    CREATED = "CREATED"
    REATTACHED = "REATTACHED"
    INDETERMINATE = "INDETERMINATE"


def _require(value: str | None, what: str) -> None:
    if value is None or not str(value).strip():
        raise ValueError(f"{what} must not be blank.")


def validate_job_id(job_id: str) -> str:
    """Return the normalized job id or raise ValueError if it is not hexadecimal."""
    _require(job_id, "job_id")
    normalized = job_id.strip().lower()
    if not _HEX_RE.match(normalized):
        raise ValueError(f"Invalid job id '{job_id}': expected a hexadecimal string.")
    return normalized


@dataclass(frozen=True)
class FlinkInstall:
    """
    A Flink installation on the local machine.

    Attributes:
        home: Installation root containing `bin`, `lib`, `plugins` and `conf`.
        version: Optional version label, only used for logging.
    """

    home: str
    version: str | None = None

    def __post_init__(self) -> None:
        _require(self.home, "flink home")


@dataclass(frozen=True)
class DeployRequest:
    """Deploy a session cluster, or reattach to `cluster_id` when it is running."""

    flink: FlinkInstall
    dist_jar: str
    properties: Mapping[str, Any] = field(default_factory=dict)
    cluster_id: str | None = None

    def __post_init__(self) -> None:
        _require(self.dist_jar, "dist_jar")


@dataclass(frozen=True)
class SubmitRequest:
    """Submit a packaged job to a running session cluster."""

    flink: FlinkInstall
    cluster_id: str
    jar_path: str
    entry_class: str | None = None
    program_args: tuple[str, ...] = ()
    parallelism: int | None = None
    savepoint_path: str | None = None
    allow_non_restored_state: bool = False
    properties: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        _require(self.cluster_id, "cluster_id")
        _require(self.jar_path, "jar_path")
        if self.parallelism is not None and self.parallelism < 1:
            raise ValueError("parallelism must be >= 1")


@dataclass(frozen=True)
class ClusterActionRequest:
    """Common shape of requests that act on one job of a running cluster."""

    flink: FlinkInstall
    cluster_id: str
    job_id: str
    properties: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        _require(self.cluster_id, "cluster_id")
        object.__setattr__(self, "job_id", validate_job_id(self.job_id))


@dataclass(frozen=True)
class CancelRequest(ClusterActionRequest):
    """Cancel a job, optionally taking a savepoint first (`drain` implies one)."""

    with_savepoint: bool = False
    drain: bool = False
    savepoint_path: str | None = None


@dataclass(frozen=True)
class TriggerSavepointRequest(ClusterActionRequest):
    """Trigger a savepoint of a running job."""

    savepoint_path: str | None = None


@dataclass(frozen=True)
class ShutDownRequest:
    """Shut down a session cluster if it is still running."""

    flink: FlinkInstall
    cluster_id: str
    properties: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        _require(self.cluster_id, "cluster_id")


@dataclass(frozen=True)
class DeployResponse:
    address: str
    cluster_id: str


@dataclass(frozen=True)
class DeployResult:
    """
    Result of a deploy call.

    `response` is None only when `state` is INDETERMINATE: the cluster was
    requested but never exposed a reachable endpoint. Callers decide whether
    to retry or escalate.
    """

    state: DeployState
    response: DeployResponse | None = None

    @property
    def ok(self) -> bool:
        return self.response is not None


@dataclass(frozen=True)
class SubmitResponse:
    cluster_id: str
    config: Mapping[str, str]
    job_id: str
    web_url: str | None


@dataclass(frozen=True)
class CancelResponse:
    savepoint_dir: str | None = None


@dataclass(frozen=True)
class SavepointResponse:
    savepoint_dir: str


@dataclass(frozen=True)
class ShutDownResponse:
    cluster_id: str
