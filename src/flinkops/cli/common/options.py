"""Common CLI options for the CLI."""

import typer

FlinkHomeOpt = typer.Option(
    None,
    "--flink-home",
    envvar="FLINK_HOME",
    help="Flink installation directory (contains bin/, lib/, conf/)",
)

RmAddressOpt = typer.Option(
    None,
    "--rm-address",
    envvar="FLINKOPS_YARN_RM_ADDRESS",
    help="YARN ResourceManager web address, e.g. http://rm:8088",
)

PropertyOpt = typer.Option(
    [],
    "--property",
    "-D",
    help="Configuration override (key=value). This is reusable.",
    show_default=False,
)

VerboseOpt = typer.Option(
    False,
    "--verbose",
    "-v",
    help="Enable debug logging",
)

ConfirmOpt = typer.Option(
    True,
    "--confirm/--no-confirm",
    help="Ask for confirmation before acting",
)

SavepointPathOpt = typer.Option(
    None,
    "--savepoint-path",
    help="Target directory for the savepoint (defaults to state.savepoints.dir)",
)

ClusterIdArg = typer.Argument(..., help="YARN application id of the session")

JobIdArg = typer.Argument(..., help="Flink job id (hex)")
