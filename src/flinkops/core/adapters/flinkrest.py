from __future__ import annotations

import logging
import time
from pathlib import Path
from typing import Any

import requests

from flinkops.core.controlplane import ClusterRetrieveError, SavepointError
from flinkops.core.packaging import JobGraph

logger = logging.getLogger(__name__)


def _compact(payload: dict[str, Any]) -> dict[str, Any]:
    """Drop None values so the REST API applies its own defaults."""
    return {k: v for k, v in payload.items() if v is not None}


class FlinkRestClusterClient:
    """Cluster client backed by the Flink JobManager REST API."""

    _DEFAULT_TIMEOUT = 30
    _DEFAULT_SAVEPOINT_TIMEOUT = 600

    def __init__(
        self,
        cluster_id: str,
        address: str | None,
        *,
        session: requests.Session | None = None,
        timeout: float = _DEFAULT_TIMEOUT,
        poll_interval: float = 1.0,
        savepoint_timeout: float = _DEFAULT_SAVEPOINT_TIMEOUT,
    ):
        """Create a client for the session `cluster_id` served at `address`."""
        self.cluster_id = cluster_id
        self.address = address.rstrip("/") if address else None
        self.session = session or requests.Session()
        self.timeout = timeout
        self.poll_interval = poll_interval
        self.savepoint_timeout = savepoint_timeout

    def web_interface_url(self) -> str | None:
        return self.address

    def _url(self, path: str) -> str:
        if not self.address:
            raise ClusterRetrieveError(
                f"Session {self.cluster_id} does not expose a REST endpoint."
            )
        return f"{self.address}/{path.lstrip('/')}"

    def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        resp = self.session.request(
            method, self._url(path), timeout=self.timeout, **kwargs
        )
        resp.raise_for_status()
        if not resp.content:
            return {}
        return resp.json()

    def submit_job(self, job_graph: JobGraph) -> str:
        """Upload the jar, run it, and return the new job id."""
        jar = Path(job_graph.jar_path)
        with jar.open("rb") as fh:
            uploaded = self._request(
                "POST",
                "/jars/upload",
                files={"jarfile": (jar.name, fh, "application/x-java-archive")},
            )
        jar_id = Path(uploaded["filename"]).name
        try:
            result = self._request(
                "POST",
                f"/jars/{jar_id}/run",
                json=_compact(
                    {
                        "entryClass": job_graph.entry_class,
                        "programArgsList": list(job_graph.program_args) or None,
                        "parallelism": job_graph.parallelism,
                        "savepointPath": job_graph.savepoint_path,
                        "allowNonRestoredState": job_graph.allow_non_restored_state,
                    }
                ),
            )
        finally:
            try:
                self._request("DELETE", f"/jars/{jar_id}")
            except requests.RequestException as exc:
                logger.warning("Failed to delete uploaded jar %s: %s", jar_id, exc)
        return str(result["jobid"])

    def cancel(self, job_id: str) -> None:
        self._request("PATCH", f"/jobs/{job_id}", params={"mode": "cancel"})

    def cancel_with_savepoint(self, job_id: str, target_dir: str | None) -> str:
        trigger = self._request(
            "POST",
            f"/jobs/{job_id}/savepoints",
            json=_compact({"target-directory": target_dir, "cancel-job": True}),
        )
        return self._wait_for_savepoint(job_id, trigger["request-id"])

    def stop_with_savepoint(
        self, job_id: str, target_dir: str | None, drain: bool
    ) -> str:
        trigger = self._request(
            "POST",
            f"/jobs/{job_id}/stop",
            json=_compact({"targetDirectory": target_dir, "drain": drain}),
        )
        return self._wait_for_savepoint(job_id, trigger["request-id"])

    def trigger_savepoint(self, job_id: str, target_dir: str | None) -> str:
        trigger = self._request(
            "POST",
            f"/jobs/{job_id}/savepoints",
            json=_compact({"target-directory": target_dir, "cancel-job": False}),
        )
        return self._wait_for_savepoint(job_id, trigger["request-id"])

    def _wait_for_savepoint(self, job_id: str, trigger_id: str) -> str:
        """
        Poll a savepoint trigger until it completes.

        Raises:
            SavepointError: If the savepoint fails or does not complete within
                `savepoint_timeout` seconds.
        """
        deadline = time.monotonic() + self.savepoint_timeout
        while True:
            info = self._request("GET", f"/jobs/{job_id}/savepoints/{trigger_id}")
            if (info.get("status") or {}).get("id") == "COMPLETED":
                operation = info.get("operation") or {}
                cause = operation.get("failure-cause")
                if cause:
                    detail = cause.get("stack-trace") or cause.get("class") or cause
                    raise SavepointError(f"Savepoint for job {job_id} failed: {detail}")
                return str(operation["location"])
            if time.monotonic() >= deadline:
                raise SavepointError(
                    f"Savepoint for job {job_id} did not complete within "
                    f"{self.savepoint_timeout}s"
                )
            time.sleep(self.poll_interval)

    def shutdown_cluster(self) -> None:
        self._request("DELETE", "/cluster")

    def close(self) -> None:
        self.session.close()
