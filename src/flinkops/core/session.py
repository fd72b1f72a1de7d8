"""Lifecycle operations against a Flink session cluster on YARN.

This module is the orchestration layer: it decides whether to reattach to
or create a session cluster, submits jobs, cancels them, triggers savepoints
and shuts clusters down. It holds no state between calls. Every operation
assembles its own configuration, owns its own ClusterHandle, and releases
that handle before returning or re-raising.

It does not retry. Failures are logged with the operation and execution mode
and then propagated; retry policy belongs to the caller.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Mapping, TypeVar

from flinkops.core.auth import SecurityContext, ensure_kerberos_credentials
from flinkops.core.config import (
    SAVEPOINT_DIR,
    SESSION_TARGET,
    ConfigLoader,
    EffectiveConfiguration,
    load_default_configuration,
    merge_properties,
    session_deploy_configuration,
    session_target_configuration,
)
from flinkops.core.controlplane import (
    ApplicationNotFoundError,
    ClusterClient,
    ClusterClientFactory,
    ClusterRetrieveError,
)
from flinkops.core.discovery import classify, discover, find_report
from flinkops.core.guard import cluster_handle
from flinkops.core.models import (
    ApplicationStatus,
    CancelRequest,
    CancelResponse,
    ClusterActionRequest,
    DeployRequest,
    DeployResult,
    DeployState,
    FlinkInstall,
    SavepointResponse,
    ShutDownRequest,
    ShutDownResponse,
    SubmitRequest,
    SubmitResponse,
    TriggerSavepointRequest,
)
from flinkops.core.packaging import Packager, package_program
from flinkops.core.responses import (
    cancel_response,
    deploy_response,
    savepoint_response,
    shutdown_response,
    submit_response,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")
ClientAction = Callable[[str, ClusterClient, EffectiveConfiguration], T]


class SessionClusterService:
    """Deploy, submit to, and tear down YARN session clusters."""

    def __init__(
        self,
        factory: ClusterClientFactory,
        *,
        config_loader: ConfigLoader = load_default_configuration,
        security: SecurityContext | None = None,
        packager: Packager = package_program,
    ):
        self.factory = factory
        self.config_loader = config_loader
        self.security = security
        self.packager = packager

    def _base_configuration(
        self, flink: FlinkInstall, properties: Mapping[str, Any]
    ) -> EffectiveConfiguration:
        return merge_properties(self.config_loader(flink.home), properties)

    def _target_configuration(
        self, flink: FlinkInstall, properties: Mapping[str, Any], cluster_id: str
    ) -> EffectiveConfiguration:
        config = session_target_configuration(
            self._base_configuration(flink, properties), cluster_id
        )
        logger.debug("effective configuration: %s", config.to_dict())
        return config

    def deploy(self, request: DeployRequest) -> DeployResult:
        """
        Deploy a session cluster, reattaching to `request.cluster_id` if possible.

        Reattach only happens when the existing cluster is RUNNING and exposes
        a reachable endpoint; any other existing cluster falls through to a
        fresh deployment.

        Returns:
            A DeployResult. Its state is INDETERMINATE (with no response) when
            the new cluster never exposed an endpoint.
        """
        logger.info(
            "flink yarn session start: home=%s version=%s mode=%s cluster_id=%s",
            request.flink.home,
            request.flink.version,
            SESSION_TARGET,
            request.cluster_id,
        )
        with cluster_handle() as handle:
            try:
                config = session_deploy_configuration(
                    request.flink.home,
                    request.dist_jar,
                    request.properties,
                    loader=self.config_loader,
                )
                if self.security is not None:
                    ensure_kerberos_credentials(self.security, config)
                logger.debug("effective deploy configuration: %s", config.to_dict())

                descriptor = handle.open_descriptor(self.factory, config)

                if request.cluster_id:
                    status = discover(descriptor, request.cluster_id)
                    if status is ApplicationStatus.RUNNING:
                        try:
                            client = handle.bind(
                                descriptor.retrieve(request.cluster_id)
                            )
                        except (ApplicationNotFoundError, ClusterRetrieveError) as exc:
                            logger.info(
                                "session %s could not be retrieved (%s), deploying a new one",
                                request.cluster_id,
                                exc,
                            )
                        else:
                            response = deploy_response(client)
                            if response is not None:
                                logger.info(
                                    "reattached to running session %s at %s",
                                    response.cluster_id,
                                    response.address,
                                )
                                return DeployResult(DeployState.REATTACHED, response)
                            logger.info(
                                "session %s is running but not reachable, deploying a new one",
                                request.cluster_id,
                            )
                    else:
                        logger.info(
                            "application %s is %s in yarn, deploying a new session",
                            request.cluster_id,
                            status.value,
                        )

                client = handle.bind(descriptor.deploy_session_cluster())
                response = deploy_response(client)
                if response is None:
                    logger.warning(
                        "session %s started without a reachable endpoint",
                        client.cluster_id,
                    )
                    return DeployResult(DeployState.INDETERMINATE)
                logger.info(
                    "session %s started at %s", response.cluster_id, response.address
                )
                return DeployResult(DeployState.CREATED, response)
            except Exception:
                logger.exception("start flink session fail in %s mode", SESSION_TARGET)
                raise

    def submit(self, request: SubmitRequest) -> SubmitResponse:
        """Submit a packaged job to the session cluster `request.cluster_id`."""
        with cluster_handle() as handle:
            try:
                config = self._target_configuration(
                    request.flink, request.properties, request.cluster_id
                )
                cluster_id = handle.open(self.factory, config)
                client = handle.bind(handle.descriptor.retrieve(cluster_id))
                with self.packager(request, config) as job_graph:
                    job_id = client.submit_job(job_graph)
                web_url = client.web_interface_url()
            except Exception:
                logger.exception("submit flink job fail in %s mode", SESSION_TARGET)
                raise

        logger.info("flink job started: job_id=%s application_id=%s", job_id, cluster_id)
        return submit_response(cluster_id, config, job_id, web_url)

    def _execute_client_action(
        self, request: ClusterActionRequest, action: ClientAction[T]
    ) -> T:
        """Run `action(job_id, client, config)` against the cluster named by `request`."""
        with cluster_handle() as handle:
            try:
                config = self._target_configuration(
                    request.flink, request.properties, request.cluster_id
                )
                cluster_id = handle.open(self.factory, config)
                client = handle.bind(handle.descriptor.retrieve(cluster_id))
                return action(request.job_id, client, config)
            except Exception:
                logger.exception(
                    "%s for flink yarn session job fail", type(request).__name__
                )
                raise

    @staticmethod
    def _savepoint_dir(
        config: EffectiveConfiguration, explicit: str | None
    ) -> str | None:
        return explicit or config.get(SAVEPOINT_DIR)

    def cancel(self, request: CancelRequest) -> CancelResponse:
        """
        Cancel a job.

        `drain` stops the job with a final savepoint, `with_savepoint` cancels
        it after a savepoint, and neither cancels it outright.
        """

        def _cancel(
            job_id: str, client: ClusterClient, config: EffectiveConfiguration
        ) -> CancelResponse:
            target_dir = self._savepoint_dir(config, request.savepoint_path)
            if request.drain:
                location = client.stop_with_savepoint(job_id, target_dir, drain=True)
            elif request.with_savepoint:
                location = client.cancel_with_savepoint(job_id, target_dir)
            else:
                client.cancel(job_id)
                location = None
            return cancel_response(location)

        return self._execute_client_action(request, _cancel)

    def trigger_savepoint(self, request: TriggerSavepointRequest) -> SavepointResponse:
        """Trigger a savepoint of a running job and return its location."""

        def _trigger(
            job_id: str, client: ClusterClient, config: EffectiveConfiguration
        ) -> SavepointResponse:
            target_dir = self._savepoint_dir(config, request.savepoint_path)
            return savepoint_response(client.trigger_savepoint(job_id, target_dir))

        return self._execute_client_action(request, _trigger)

    def status(
        self,
        flink: FlinkInstall,
        cluster_id: str,
        properties: Mapping[str, Any] | None = None,
    ) -> ApplicationStatus:
        """Classify the session cluster `cluster_id`."""
        with cluster_handle() as handle:
            try:
                config = self._target_configuration(flink, properties or {}, cluster_id)
                cluster_id = handle.open(self.factory, config)
                return discover(handle.descriptor, cluster_id)
            except Exception:
                logger.exception("query flink session fail in %s mode", SESSION_TARGET)
                raise

    def shutdown(self, request: ShutDownRequest) -> ShutDownResponse:
        """
        Shut down a session cluster if it is still running.

        Shutting down a cluster that is already gone is a no-op, not an error.
        """
        with cluster_handle() as handle:
            try:
                config = self._target_configuration(
                    request.flink, request.properties, request.cluster_id
                )
                cluster_id = handle.open(self.factory, config)
                descriptor = handle.descriptor
                if discover(descriptor, cluster_id) is ApplicationStatus.RUNNING:
                    client = handle.bind(descriptor.retrieve(cluster_id))
                    client.shutdown_cluster()

                report = find_report(descriptor, cluster_id)
                final = report.final_status.value if report else classify(None).value
                logger.info("the %s's final status is %s", cluster_id, final)
                return shutdown_response(request.cluster_id)
            except Exception:
                logger.exception("shutdown flink session fail in %s mode", SESSION_TARGET)
                raise
