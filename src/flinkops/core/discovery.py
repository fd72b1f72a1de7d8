"""Discovery of existing session clusters."""

from __future__ import annotations

import logging

from flinkops.core.controlplane import (
    ApplicationNotFoundError,
    ApplicationReport,
    ClusterDescriptor,
)
from flinkops.core.models import ApplicationStatus, FinalApplicationStatus

logger = logging.getLogger(__name__)


def find_report(
    descriptor: ClusterDescriptor, cluster_id: str
) -> ApplicationReport | None:
    """
    Return the application report for `cluster_id`, or None if YARN does not
    know it.

    Only the not-found condition is folded into None; transport and
    authentication failures propagate to the caller.
    """
    try:
        return descriptor.application_report(cluster_id)
    except ApplicationNotFoundError:
        logger.debug("application %s is not known to the resource manager", cluster_id)
        return None


def classify(report: ApplicationReport | None) -> ApplicationStatus:
    """Map an application report onto RUNNING / TERMINATED / NOT_FOUND."""
    if report is None:
        return ApplicationStatus.NOT_FOUND
    if report.final_status == FinalApplicationStatus.UNDEFINED:
        return ApplicationStatus.RUNNING
    return ApplicationStatus.TERMINATED


def discover(descriptor: ClusterDescriptor, cluster_id: str) -> ApplicationStatus:
    """Query the control plane and classify the cluster `cluster_id`."""
    return classify(find_report(descriptor, cluster_id))
