"""Git automation for the git tools.

Commands are passed to ``git`` as argument lists, never through a shell.
Functions raise GitCommandError on failure so both the MCP tools and the
CLI can report them.
"""

from __future__ import annotations

import logging
import shlex
import shutil
import subprocess
from dataclasses import dataclass, field
from pathlib import Path

log = logging.getLogger(__name__)

FEATURE_PREFIX = "feature/"


class GitCommandError(RuntimeError):
    """A git invocation failed or could not be started."""

    def __init__(self, message: str, *, command: list[str] | None = None, stdout: str = "", stderr: str = "") -> None:
        super().__init__(message)
        self.command = command or []
        self.stdout = stdout
        self.stderr = stderr


@dataclass
class GitResult:
    command: list[str]
    stdout: str
    stderr: str

    @property
    def display(self) -> str:
        return shlex.join(self.command)


@dataclass
class GitRunner:
    """Runs git subcommands in a working directory."""

    executable: str = field(default_factory=lambda: shutil.which("git") or "git")

    def run(self, args: list[str], cwd: str | Path) -> GitResult:
        command = [self.executable, *args]
        shown = shlex.join(["git", *args])
        if not Path(cwd).is_dir():
            msg = f"Project path not found: {cwd}"
            raise GitCommandError(msg, command=["git", *args])
        log.info("Running %s in %s", shown, cwd)
        try:
            proc = subprocess.run(
                command,
                cwd=str(cwd),
                capture_output=True,
                encoding="utf-8",
                errors="replace",
                check=False,
            )
        except OSError as exc:
            msg = f"Could not run {shown}: {exc}"
            raise GitCommandError(msg, command=["git", *args]) from exc
        if proc.returncode != 0:
            detail = proc.stderr.strip() or proc.stdout.strip() or f"exit code {proc.returncode}"
            msg = f"{shown} failed: {detail}"
            raise GitCommandError(msg, command=["git", *args], stdout=proc.stdout, stderr=proc.stderr)
        return GitResult(command=["git", *args], stdout=proc.stdout, stderr=proc.stderr)


def feature_branch(branch_name: str) -> str:
    return f"{FEATURE_PREFIX}{branch_name}"


def push_feature_plan(branch_name: str, commit_message: str, *, base_branch: str = "develop") -> list[list[str]]:
    """Return the git argument lists GIT_PUSH_FEATURE runs, in order."""
    branch = feature_branch(branch_name)
    return [
        ["pull", "origin", base_branch],
        ["checkout", "-b", branch],
        ["add", "."],
        ["commit", "-m", commit_message],
        ["push", "--set-upstream", "origin", branch],
    ]


def push_feature(
    runner: GitRunner,
    project_path: str | Path,
    branch_name: str,
    commit_message: str,
    *,
    base_branch: str = "develop",
) -> list[GitResult]:
    """Pull the base branch, branch off, commit everything and push.

    Stops at the first failing step; earlier steps are not rolled back.
    """
    results: list[GitResult] = []
    for args in push_feature_plan(branch_name, commit_message, base_branch=base_branch):
        results.append(runner.run(args, project_path))
    return results


def parse_command_args(command_args: str) -> list[str]:
    """Split a GIT_RUN_COMMAND argument string with shell quoting rules.

    Raises ValueError for empty input, unbalanced quotes, or a leading ``git``.
    """
    try:
        args = shlex.split(command_args)
    except ValueError as exc:
        msg = f"Cannot parse commandArgs: {exc}"
        raise ValueError(msg) from None
    if not args:
        msg = "commandArgs must not be empty"
        raise ValueError(msg)
    if args[0] == "git":
        msg = "commandArgs must not start with 'git'"
        raise ValueError(msg)
    return args
