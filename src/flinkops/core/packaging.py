"""Packaging of user jars into submittable job graphs."""

from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, ContextManager, Iterator

from flinkops.core.config import DEFAULT_PARALLELISM, EffectiveConfiguration
from flinkops.core.models import SubmitRequest

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class JobGraph:
    """Everything the cluster needs to run a packaged program."""

    jar_path: str
    entry_class: str | None = None
    program_args: tuple[str, ...] = ()
    parallelism: int | None = None
    savepoint_path: str | None = None
    allow_non_restored_state: bool = False


Packager = Callable[[SubmitRequest, EffectiveConfiguration], ContextManager[JobGraph]]


def _parallelism(request: SubmitRequest, config: EffectiveConfiguration) -> int | None:
    if request.parallelism is not None:
        return request.parallelism
    raw = config.get(DEFAULT_PARALLELISM)
    if raw is None:
        return None
    try:
        return int(raw)
    except ValueError:
        logger.warning("Ignoring non-numeric %s=%r", DEFAULT_PARALLELISM, raw)
        return None


@contextmanager
def package_program(
    request: SubmitRequest, config: EffectiveConfiguration
) -> Iterator[JobGraph]:
    """
    Validate the user jar and yield the job graph describing it.

    Raises:
        ValueError: If the jar does not exist or is not a `.jar` file.
    """
    jar = Path(request.jar_path)
    if jar.suffix != ".jar":
        raise ValueError(f"Not a jar file: {jar}")
    if not jar.is_file():
        raise ValueError(f"Jar file does not exist: {jar}")

    graph = JobGraph(
        jar_path=str(jar.resolve()),
        entry_class=request.entry_class,
        program_args=tuple(request.program_args),
        parallelism=_parallelism(request, config),
        savepoint_path=request.savepoint_path,
        allow_non_restored_state=request.allow_non_restored_state,
    )
    logger.debug("packaged program %s", graph)
    yield graph
