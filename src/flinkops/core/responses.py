"""Mapping of raw control-plane results onto response records."""

from __future__ import annotations

from typing import Mapping

from flinkops.core.controlplane import ClusterClient
from flinkops.core.models import (
    CancelResponse,
    DeployResponse,
    SavepointResponse,
    ShutDownResponse,
    SubmitResponse,
)


def normalize_address(address: str | None) -> str | None:
    """Strip whitespace and trailing slashes; blank addresses become None."""
    if not address or not address.strip():
        return None
    return address.strip().rstrip("/")


def deploy_response(client: ClusterClient) -> DeployResponse | None:
    """Return a DeployResponse if the client exposes a reachable endpoint."""
    address = normalize_address(client.web_interface_url())
    if address is None:
        return None
    return DeployResponse(address=address, cluster_id=str(client.cluster_id))


def submit_response(
    cluster_id: str,
    config: Mapping[str, str],
    job_id: str,
    web_url: str | None,
) -> SubmitResponse:
    return SubmitResponse(
        cluster_id=cluster_id,
        config=dict(config),
        job_id=job_id,
        web_url=normalize_address(web_url),
    )


def cancel_response(savepoint_dir: str | None) -> CancelResponse:
    return CancelResponse(savepoint_dir=savepoint_dir or None)


def savepoint_response(location: str) -> SavepointResponse:
    return SavepointResponse(savepoint_dir=location)


def shutdown_response(cluster_id: str) -> ShutDownResponse:
    return ShutDownResponse(cluster_id=cluster_id)
