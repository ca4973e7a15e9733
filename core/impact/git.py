"""
Git subprocess helpers.

Every helper degrades to an empty value when git fails; callers never see
a subprocess error.
"""

import asyncio
import logging
from pathlib import Path
from typing import List, Optional, Sequence, Union

from ..models.impact import ChangedFiles

logger = logging.getLogger(__name__)

DEFAULT_GIT_TIMEOUT = 30.0


class GitCommandError(RuntimeError):
    """git exited non-zero or could not be started"""


async def run_git(
    args: Sequence[str],
    cwd: Union[str, Path],
    timeout: float = DEFAULT_GIT_TIMEOUT
) -> str:
    """
    Run a git command and return its stdout.

    Raises:
        GitCommandError: If git is missing, times out or exits non-zero
    """
    try:
        process = await asyncio.create_subprocess_exec(
            "git", *args,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            cwd=str(cwd),
        )
    except OSError as e:
        raise GitCommandError(f"Cannot run git: {e}") from e

    try:
        stdout, stderr = await asyncio.wait_for(process.communicate(), timeout=timeout)
    except asyncio.TimeoutError as e:
        process.kill()
        await process.wait()
        raise GitCommandError(f"git {' '.join(args)} timed out after {timeout}s") from e

    if process.returncode != 0:
        error_msg = stderr.decode("utf-8", errors="replace").strip()
        raise GitCommandError(f"git {' '.join(args)} failed with code {process.returncode}: {error_msg}")

    return stdout.decode("utf-8", errors="replace")


def parse_name_status(output: str) -> ChangedFiles:
    """
    Parse ``git diff --name-status`` output.

    Renames count as a deletion of the old path plus an addition of the new
    one; copies count as an addition of the new path.
    """
    changed = ChangedFiles()

    for line in output.splitlines():
        if not line.strip():
            continue

        parts = line.split("\t")
        status = parts[0].strip()
        if len(parts) < 2 or not status or not parts[1]:
            continue

        path = parts[1]
        code = status[0]

        if code == "A":
            changed.added.append(path)
        elif code in ("M", "T"):
            changed.modified.append(path)
        elif code == "D":
            changed.deleted.append(path)
        elif code == "R":
            changed.deleted.append(path)
            if len(parts) > 2 and parts[2]:
                changed.added.append(parts[2])
        elif code == "C":
            if len(parts) > 2 and parts[2]:
                changed.added.append(parts[2])

    return changed


def _lines(output: str) -> List[str]:
    return [line.strip() for line in output.splitlines() if line.strip()]


async def get_changed_files(repo_path: Union[str, Path], base: str, target: str) -> ChangedFiles:
    """Files changed on target since it diverged from base"""
    try:
        output = await run_git(["diff", "--name-status", f"{base}...{target}"], repo_path)
    except GitCommandError as e:
        logger.warning(f"Could not diff {base}...{target}: {e}")
        return ChangedFiles()
    return parse_name_status(output)


async def get_changed_files_between(
    repo_path: Union[str, Path],
    from_ref: str,
    to_ref: str
) -> ChangedFiles:
    """Files changed between two commits"""
    try:
        output = await run_git(["diff", "--name-status", from_ref, to_ref], repo_path)
    except GitCommandError as e:
        logger.warning(f"Could not diff {from_ref} {to_ref}: {e}")
        return ChangedFiles()
    return parse_name_status(output)


async def get_staged_files(repo_path: Union[str, Path]) -> List[str]:
    """Paths staged for the next commit"""
    try:
        return _lines(await run_git(["diff", "--cached", "--name-only"], repo_path))
    except GitCommandError as e:
        logger.debug(f"Could not list staged files: {e}")
        return []


async def get_merged_files(repo_path: Union[str, Path]) -> List[str]:
    """Paths changed by the most recent merge"""
    try:
        return _lines(await run_git(["diff", "--name-only", "HEAD@{1}", "HEAD"], repo_path))
    except GitCommandError as e:
        logger.debug(f"Could not list merged files: {e}")
        return []


async def detect_base_branch(repo_path: Union[str, Path]) -> str:
    """main or master depending on which remote branch exists"""
    try:
        branches = await run_git(["branch", "-r"], repo_path)
    except GitCommandError:
        return "main"

    if "origin/main" in branches:
        return "main"
    if "origin/master" in branches:
        return "master"
    return "main"


async def get_current_branch(repo_path: Union[str, Path]) -> str:
    try:
        return (await run_git(["rev-parse", "--abbrev-ref", "HEAD"], repo_path)).strip()
    except GitCommandError:
        return ""


async def get_head_commit(repo_path: Union[str, Path]) -> str:
    return await resolve_ref(repo_path, "HEAD")


async def resolve_ref(repo_path: Union[str, Path], ref: str) -> str:
    """Commit hash for a ref, empty when it does not resolve"""
    try:
        return (await run_git(["rev-parse", "--verify", "--quiet", ref], repo_path)).strip()
    except GitCommandError:
        return ""


def find_git_dir(path: Union[str, Path]) -> Optional[Path]:
    """Nearest .git directory at or above path"""
    current = Path(path).resolve()
    for candidate in (current, *current.parents):
        git_dir = candidate / ".git"
        if git_dir.is_dir():
            return git_dir
    return None
