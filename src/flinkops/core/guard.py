"""Scoped ownership of a (descriptor, client) pair.

Every operation that touches a cluster owns exactly one ClusterHandle for
the duration of the call. The handle is released once, on every exit path,
and releasing never raises: close failures are logged so they cannot mask
the error that is already propagating.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Iterator, Mapping

from flinkops.core.config import ConfigurationError
from flinkops.core.controlplane import (
    ClusterClient,
    ClusterClientFactory,
    ClusterDescriptor,
)

logger = logging.getLogger(__name__)


def _close_quietly(resource: object, what: str) -> Exception | None:
    try:
        resource.close()  # type: ignore[attr-defined]
    except Exception as exc:
        logger.warning("Failed to close %s: %s", what, exc)
        return exc
    return None


@dataclass
class ClusterHandle:
    """Optional descriptor plus optional client, released together."""

    descriptor: ClusterDescriptor | None = None
    client: ClusterClient | None = None
    released: bool = field(default=False, init=False)

    def open_descriptor(
        self, factory: ClusterClientFactory, config: Mapping[str, str]
    ) -> ClusterDescriptor:
        """Create the descriptor for the resource manager named by `config`."""
        self.descriptor = factory.create_descriptor(config)
        return self.descriptor

    def open(self, factory: ClusterClientFactory, config: Mapping[str, str]) -> str:
        """
        Create the descriptor and resolve the cluster addressed by `config`.

        Raises:
            ConfigurationError: If the configuration does not name a cluster.
        """
        cluster_id = factory.cluster_id(config)
        if not cluster_id:
            raise ConfigurationError("Configuration does not address a session cluster.")
        self.open_descriptor(factory, config)
        return cluster_id

    def bind(self, client: ClusterClient) -> ClusterClient:
        """Own `client`, closing any client this handle held before."""
        if self.client is not None and self.client is not client:
            _close_quietly(self.client, "cluster client")
        self.client = client
        return client

    def release(self) -> list[Exception]:
        """
        Close the client and then the descriptor.

        Each close is attempted even if the other fails. Returns the close
        failures (already logged). Calling release again is a no-op.
        """
        if self.released:
            return []
        self.released = True
        errors: list[Exception] = []
        if self.client is not None:
            err = _close_quietly(self.client, "cluster client")
            if err is not None:
                errors.append(err)
        if self.descriptor is not None:
            err = _close_quietly(self.descriptor, "cluster descriptor")
            if err is not None:
                errors.append(err)
        self.client = None
        self.descriptor = None
        return errors


@contextmanager
def cluster_handle() -> Iterator[ClusterHandle]:
    """Yield a fresh handle and release it however the block exits."""
    handle = ClusterHandle()
    try:
        yield handle
    finally:
        handle.release()
