"""
git-splice command line.

Parses the operation flags into an OperationDescriptor, runs SurgeryFacade
and maps SpliceError to severity-tagged log lines and exit codes.
"""

import sys
from pathlib import Path
from typing import List, Optional

import typer

from splice import __version__
from splice.cli.config import CLIConfig
from splice.cli.output import print_summary
from splice.exceptions import InvalidArguments, SpliceError
from splice.git import GitRepository
from splice.logging_config import logger, setup_logging
from splice.schemas import Operation, OperationDescriptor
from splice.surgery import SurgeryFacade
from splice.user_config import UserConfig

# Exit status the argument parser uses for usage errors
PARSER_USAGE_EXIT_CODE = 2

app = typer.Typer(
    add_completion=False,
    context_settings={"help_option_names": ["-h", "--help"]},
)


def _version_callback(value: bool):
    if value:
        typer.echo(f"{CLIConfig.PROG_NAME} {__version__}")
        raise typer.Exit()


def build_descriptor(
    selected: List[Operation],
    commits: List[str],
    force: bool = False,
    message: Optional[str] = None,
) -> OperationDescriptor:
    """
    Validate the command line shape and turn it into an OperationDescriptor.

    Raises:
        InvalidArguments: Not exactly one operation, or the wrong number of commits
    """
    if len(selected) != 1:
        flags = ", ".join(f"--{op.value}" for op in Operation)
        if selected:
            given = ", ".join(f"--{op.value}" for op in selected)
            raise InvalidArguments(f"Only one operation may be given (got {given})")
        raise InvalidArguments(f"One of {flags} is required")

    operation = selected[0]
    if not commits:
        raise InvalidArguments(f"--{operation.value} needs a commit argument")
    if operation == Operation.DROP and len(commits) != 1:
        raise InvalidArguments("--drop takes exactly one commit")
    if len(commits) > 2:
        raise InvalidArguments(f"--{operation.value} takes one or two commits")

    target = commits[1] if len(commits) == 2 else None
    if message is not None and (operation in (Operation.FIXUP, Operation.DROP) or target is not None):
        raise InvalidArguments("--message only applies when --amend, --pick or --swap commit staged changes")

    return OperationDescriptor(
        operation=operation,
        base=commits[0],
        target=target,
        force=force,
        message=message,
    )


@app.command()
def splice(
    ctx: typer.Context,
    commits: Optional[List[str]] = typer.Argument(
        None, metavar="<base-or-target> [<second-commit>]", help="Commit(s) the operation applies to.", show_default=False
    ),
    fixup: bool = typer.Option(False, "--fixup", help="Squash staged changes (or <second-commit>) into <base>."),
    amend: bool = typer.Option(False, "--amend", help="Like --fixup, but also replace <base>'s message."),
    pick: bool = typer.Option(False, "--pick", help="Move staged changes (or <second-commit>) to right after <base>."),
    drop: bool = typer.Option(False, "--drop", help="Remove <commit> from history."),
    swap: bool = typer.Option(False, "--swap", help="Exchange two commits (or <commit> and staged changes)."),
    force: bool = typer.Option(False, "--force", "-f", help="Linearize merge commits in the rewritten range."),
    message: Optional[str] = typer.Option(None, "--message", "-m", help="Message for the commit built from staged changes."),
    dry_run: bool = typer.Option(False, "--dry-run", "-n", help="Print the plan and tracked branches; change nothing."),
    repo_path: Path = typer.Option(Path("."), "--repo", "-C", help="Run as if started in this directory.", file_okay=False),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show debug output."),
    quiet: bool = typer.Option(False, "--quiet", "-q", help="Only show warnings and errors."),
    json_output: bool = typer.Option(False, "--json", help="Print the result as JSON on stdout."),
    version: bool = typer.Option(
        False, "--version", callback=_version_callback, is_eager=True, help="Show the version and exit."
    ),
):
    """
    Edit commit history in place: fixup, amend, pick, drop or swap commits.

    Every local branch pointing into the rewritten range is moved to the
    matching rewritten commit. Nothing is changed unless the rewrite
    completes cleanly and reproduces the original tree.
    """
    CLIConfig.reset()
    CLIConfig.mark_invoked()
    CLIConfig.set_json_output(json_output)
    if quiet:
        CLIConfig.set_quiet(True)
    level = CLIConfig.log_level(verbose)
    setup_logging(level=level, suppress_console=False, force=True)

    flags = {
        Operation.FIXUP: fixup,
        Operation.AMEND: amend,
        Operation.PICK: pick,
        Operation.DROP: drop,
        Operation.SWAP: swap,
    }
    try:
        descriptor = build_descriptor([op for op, on in flags.items() if on], commits or [], force, message)
    except InvalidArguments as e:
        typer.echo(ctx.get_usage(), err=True)
        logger.error(str(e))
        raise typer.Exit(code=1)

    try:
        repo = GitRepository(repo_path)
        root = repo.toplevel()
        setup_logging(level=level, suppress_console=False, log_dir=repo.git_dir / "splice", force=True)

        config = UserConfig(root)
        repo.timeout = config.get_int("git.timeout")
        result = SurgeryFacade(repo, config).run(descriptor, dry_run=dry_run)
    except SpliceError as e:
        logger.log("WARNING" if e.severity == "WARN" else "ERROR", str(e))
        raise typer.Exit(code=e.exit_code)
    except KeyboardInterrupt:
        logger.error("Interrupted")
        raise typer.Exit(code=1)

    print_summary(result)

    if result.lost_branches:
        code = config.get_int("reconcile.lost_branch_exit_code")
        if code:
            raise typer.Exit(code=code)


def run(argv: Optional[List[str]] = None) -> None:
    """
    Console-script entry point.

    Usage errors detected by the argument parser exit 1 (not 2),
    with the usage text on stderr.
    """
    command = typer.main.get_command(app)
    CLIConfig.reset()
    try:
        command.main(args=argv, prog_name=CLIConfig.PROG_NAME, standalone_mode=True)
    except SystemExit as e:
        code = e.code
        # Rejected by the parser before the command body ran
        if code == PARSER_USAGE_EXIT_CODE and not CLIConfig.was_invoked():
            code = 1
        sys.exit(code)
    sys.exit(0)


if __name__ == "__main__":
    run()
