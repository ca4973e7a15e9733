"""
Git hook integration for repo-graph.
"""

from .handler import HookHandler
from .installer import HookInstaller, HookInstallError

__all__ = ["HookHandler", "HookInstaller", "HookInstallError"]
