"""
Installs git hook shims that forward to ``repo-graph hook <type>``.
"""

import logging
import os
import stat
from pathlib import Path
from typing import Optional, Union

from ..impact.git import find_git_dir
from ..models.config import HookConfig
from ..models.hooks import HookType, InstallResult

logger = logging.getLogger(__name__)

SHIM_MARKER = "# managed by repo-graph"

SHIM_TEMPLATE = """#!/bin/sh
{marker}
{command} hook {hook_type} "$@"
"""

BACKGROUND_SHIM_TEMPLATE = """#!/bin/sh
{marker}
{command} hook {hook_type} "$@" >/dev/null 2>&1 &
exit 0
"""

# Hooks whose exit status git ignores; safe to detach in async mode
BACKGROUND_HOOKS = frozenset({HookType.POST_MERGE, HookType.POST_CHECKOUT})


class HookInstallError(RuntimeError):
    """Hooks cannot be installed at the given location"""


class HookInstaller:
    """
    Writes and removes hook shims under ``.git/hooks``.

    Only hooks enabled in the HookConfig are installed. Existing hooks not
    written by repo-graph are left in place unless ``force`` is given.
    """

    def __init__(
        self,
        repo_path: Union[str, Path],
        config: Optional[HookConfig] = None,
        command: str = "repo-graph"
    ):
        self.repo_path = Path(repo_path)
        self.config = config or HookConfig()
        self.command = command

    @property
    def hooks_dir(self) -> Path:
        git_dir = find_git_dir(self.repo_path)
        if git_dir is None:
            raise HookInstallError(f"{self.repo_path} is not inside a git repository")
        return git_dir / "hooks"

    def render_shim(self, hook_type: HookType) -> str:
        template = SHIM_TEMPLATE
        if self.config.async_mode and hook_type in BACKGROUND_HOOKS:
            template = BACKGROUND_SHIM_TEMPLATE
        return template.format(
            marker=SHIM_MARKER, command=self.command, hook_type=hook_type.value
        )

    @staticmethod
    def is_managed(path: Path) -> bool:
        """Whether a hook file was written by repo-graph"""
        try:
            return SHIM_MARKER in path.read_text(encoding="utf-8", errors="replace")
        except OSError:
            return False

    def install(self, force: bool = False) -> InstallResult:
        """
        Install shims for every enabled hook.

        Raises:
            HookInstallError: Outside a git repository or when the hooks
                directory is not writable
        """
        hooks_dir = self.hooks_dir
        result = InstallResult(hooks_dir=str(hooks_dir))

        try:
            hooks_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise HookInstallError(f"Cannot create {hooks_dir}: {e}") from e

        for hook_type in HookType:
            if not self.config.is_enabled(hook_type.value):
                continue

            path = hooks_dir / hook_type.value
            if path.exists() and not self.is_managed(path) and not force:
                result.skipped.append(f"{hook_type.value}: existing hook not managed by repo-graph")
                continue

            try:
                path.write_text(self.render_shim(hook_type), encoding="utf-8")
                mode = path.stat().st_mode
                os.chmod(path, mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
            except OSError as e:
                raise HookInstallError(f"Cannot write {path}: {e}") from e

            logger.info(f"Installed {hook_type.value} hook at {path}")
            result.installed.append(hook_type)

        return result

    def uninstall(self) -> InstallResult:
        """Remove shims written by repo-graph, leaving other hooks alone"""
        hooks_dir = self.hooks_dir
        result = InstallResult(hooks_dir=str(hooks_dir))

        for hook_type in HookType:
            path = hooks_dir / hook_type.value
            if not path.exists():
                continue
            if not self.is_managed(path):
                result.skipped.append(f"{hook_type.value}: not managed by repo-graph")
                continue

            path.unlink()
            logger.info(f"Removed {hook_type.value} hook")
            result.removed.append(hook_type)

        return result
