"""Commands for managing Flink session clusters on YARN."""

from __future__ import annotations

from pathlib import Path
from typing import Callable, TypeVar

import requests
import typer

from flinkops.cli.common.context import SessionAppContext, build_session_context
from flinkops.cli.common.exits import (
    EXIT_INDETERMINATE,
    EXIT_USAGE,
    die,
    exit_from_exc,
    ok_exit,
    warn_exit,
)
from flinkops.cli.common.logs import setup_logging
from flinkops.cli.common.options import (
    ClusterIdArg,
    ConfirmOpt,
    FlinkHomeOpt,
    JobIdArg,
    PropertyOpt,
    RmAddressOpt,
    SavepointPathOpt,
    VerboseOpt,
)
from flinkops.cli.common.output import out
from flinkops.core.auth import SecurityPreconditionError
from flinkops.core.controlplane import ApplicationNotFoundError, ControlPlaneError
from flinkops.core.models import (
    CancelRequest,
    DeployRequest,
    DeployState,
    ShutDownRequest,
    SubmitRequest,
    TriggerSavepointRequest,
)

T = TypeVar("T")

app = typer.Typer(
    help="Deploy, use and tear down Flink YARN session clusters",
    no_args_is_help=False,
    invoke_without_command=True,
)


@app.callback()
def _init(
    ctx: typer.Context,
    flink_home: str | None = FlinkHomeOpt,
    rm_address: str | None = RmAddressOpt,
    prop: list[str] = PropertyOpt,
    verbose: bool = VerboseOpt,
):
    """Initialize the session context shared by all subcommands."""
    if ctx.invoked_subcommand is None:
        typer.echo(ctx.get_help())
        raise typer.Exit(0)
    setup_logging(verbose)
    ctx.obj = build_session_context(flink_home, rm_address, prop)


def _request(build: Callable[[], T]) -> T:
    """Construct a request, turning validation errors into usage exits."""
    try:
        return build()
    except ValueError as exc:
        die(str(exc), code=EXIT_USAGE)


def _call(message: str, failure: str, fn: Callable[[], T]) -> T:
    """Run a service call under a spinner and map failures onto exit codes."""
    try:
        with out.status(message):
            return fn()
    except ValueError as exc:
        exit_from_exc(exc, message=failure, code=EXIT_USAGE)
    except (
        ApplicationNotFoundError,
        ControlPlaneError,
        SecurityPreconditionError,
        requests.RequestException,
    ) as exc:
        exit_from_exc(exc, message=failure)


def _default_dist_jar(flink_home: str) -> str | None:
    """Return the flink-dist jar shipped in `<flink_home>/lib`, if any."""
    jars = sorted((Path(flink_home) / "lib").glob("flink-dist*.jar"))
    return str(jars[0]) if jars else None


@app.command()
def deploy(
    ctx: typer.Context,
    dist_jar: str | None = typer.Option(
        None, "--dist-jar", help="flink-dist jar (defaults to lib/flink-dist*.jar)"
    ),
    cluster_id: str | None = typer.Option(
        None, "--cluster-id", help="Reattach to this session if it is still running"
    ),
):
    """
    Deploy a session cluster, or reattach to a running one.
    """
    appctx: SessionAppContext = ctx.obj

    dist = dist_jar or _default_dist_jar(appctx.flink.home)
    if not dist:
        die("No flink-dist jar found. Use --dist-jar.", code=EXIT_USAGE)

    request = _request(
        lambda: DeployRequest(
            flink=appctx.flink,
            dist_jar=dist,
            properties=appctx.properties,
            cluster_id=cluster_id,
        )
    )
    result = _call(
        "Deploying session cluster...",
        "Session deploy failed",
        lambda: appctx.service.deploy(request),
    )

    if result.state is DeployState.INDETERMINATE or result.response is None:
        warn_exit(
            "Session was requested but exposed no reachable endpoint; retry later.",
            code=EXIT_INDETERMINATE,
        )

    verb = "Reattached to" if result.state is DeployState.REATTACHED else "Started"
    out.success(f"{verb} session {result.response.cluster_id}")
    out.kv(
        {
            "cluster_id": result.response.cluster_id,
            "address": result.response.address,
            "state": result.state.value,
        }
    )


@app.command()
def status(ctx: typer.Context, cluster_id: str = ClusterIdArg):
    """
    Show whether a session cluster is running.
    """
    appctx: SessionAppContext = ctx.obj

    state = _call(
        "Querying ResourceManager...",
        "Status query failed",
        lambda: appctx.service.status(appctx.flink, cluster_id, appctx.properties),
    )
    out.session_status(cluster_id, state.value)


@app.command()
def submit(
    ctx: typer.Context,
    cluster_id: str = ClusterIdArg,
    jar: str = typer.Argument(..., help="Job jar to submit"),
    entry_class: str | None = typer.Option(None, "--class", "-c", help="Entry class"),
    args: list[str] = typer.Option(
        [], "--arg", help="Program argument. This is reusable.", show_default=False
    ),
    parallelism: int | None = typer.Option(None, "--parallelism", "-p"),
    from_savepoint: str | None = typer.Option(
        None, "--from-savepoint", "-s", help="Restore from this savepoint"
    ),
    allow_non_restored_state: bool = typer.Option(
        False, "--allow-non-restored-state", help="Skip state that cannot be restored"
    ),
    show_config: bool = typer.Option(
        False, "--show-config", help="Print the effective configuration"
    ),
):
    """
    Submit a job jar to a running session cluster.
    """
    appctx: SessionAppContext = ctx.obj

    request = _request(
        lambda: SubmitRequest(
            flink=appctx.flink,
            cluster_id=cluster_id,
            jar_path=jar,
            entry_class=entry_class,
            program_args=tuple(args),
            parallelism=parallelism,
            savepoint_path=from_savepoint,
            allow_non_restored_state=allow_non_restored_state,
            properties=appctx.properties,
        )
    )
    resp = _call(
        "Submitting job...",
        "Job submission failed",
        lambda: appctx.service.submit(request),
    )

    out.success(f"Job {resp.job_id} submitted to {resp.cluster_id}")
    out.kv({"job_id": resp.job_id, "cluster_id": resp.cluster_id, "web_url": resp.web_url})
    if show_config:
        out.config_table(resp.config, title="Effective configuration")


@app.command()
def cancel(
    ctx: typer.Context,
    cluster_id: str = ClusterIdArg,
    job_id: str = JobIdArg,
    with_savepoint: bool = typer.Option(
        False, "--with-savepoint", help="Take a savepoint before cancelling"
    ),
    drain: bool = typer.Option(
        False, "--drain", help="Stop with savepoint and drain the pipeline"
    ),
    savepoint_path: str | None = SavepointPathOpt,
    confirm: bool = ConfirmOpt,
):
    """
    Cancel a job running on a session cluster.
    """
    appctx: SessionAppContext = ctx.obj

    request = _request(
        lambda: CancelRequest(
            flink=appctx.flink,
            cluster_id=cluster_id,
            job_id=job_id,
            properties=appctx.properties,
            with_savepoint=with_savepoint,
            drain=drain,
            savepoint_path=savepoint_path,
        )
    )

    if confirm and not out.confirm(f"Cancel job {request.job_id} on {cluster_id}?"):
        ok_exit("Cancelled")

    resp = _call(
        "Cancelling job...",
        "Job cancel failed",
        lambda: appctx.service.cancel(request),
    )

    out.success(f"Job {request.job_id} cancelled")
    out.kv({"savepoint": resp.savepoint_dir})


@app.command()
def savepoint(
    ctx: typer.Context,
    cluster_id: str = ClusterIdArg,
    job_id: str = JobIdArg,
    savepoint_path: str | None = SavepointPathOpt,
):
    """
    Trigger a savepoint of a running job.
    """
    appctx: SessionAppContext = ctx.obj

    request = _request(
        lambda: TriggerSavepointRequest(
            flink=appctx.flink,
            cluster_id=cluster_id,
            job_id=job_id,
            properties=appctx.properties,
            savepoint_path=savepoint_path,
        )
    )
    resp = _call(
        "Triggering savepoint...",
        "Savepoint failed",
        lambda: appctx.service.trigger_savepoint(request),
    )

    out.success(f"Savepoint completed for job {request.job_id}")
    out.kv({"savepoint": resp.savepoint_dir})


@app.command()
def shutdown(
    ctx: typer.Context,
    cluster_id: str = ClusterIdArg,
    confirm: bool = ConfirmOpt,
):
    """
    Shut down a session cluster (no-op if it is already gone).
    """
    appctx: SessionAppContext = ctx.obj

    request = _request(
        lambda: ShutDownRequest(
            flink=appctx.flink,
            cluster_id=cluster_id,
            properties=appctx.properties,
        )
    )

    if confirm and not out.confirm(f"Shut down session {cluster_id}?"):
        ok_exit("Cancelled")

    resp = _call(
        "Shutting down session...",
        "Session shutdown failed",
        lambda: appctx.service.shutdown(request),
    )

    out.success(f"Session {resp.cluster_id} is shut down")
