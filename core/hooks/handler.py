"""
Git hook event dispatcher.

Each hook type maps to one handler coroutine. ``handle`` wraps the
dispatch: it times the invocation, turns any exception into a failed
result, and writes exactly one audit row whatever happened.
"""

import asyncio
import logging
import time
from pathlib import Path
from typing import Any, Awaitable, Callable, Dict, List, Optional

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from ..impact import git
from ..impact.analyzer import ImpactAnalyzer
from ..impact.tool_client import ToolClientProtocol
from ..models.config import HookConfig, Verbosity
from ..models.hooks import HookEvent, HookExecution, HookResult, HookType
from ..models.impact import ImpactReport, RiskLevel
from ..storage.hook_store import HookStore

logger = logging.getLogger(__name__)

BRANCH_SWITCH_WARNING_THRESHOLD = 10

RISK_STYLES = {
    RiskLevel.LOW: "green",
    RiskLevel.MEDIUM: "yellow",
    RiskLevel.HIGH: "red",
}


class HookHandler:
    """
    Handles git hook events for one project.

    Args:
        hook_store: Audit and report persistence
        config: Hook behavior; defaults to HookConfig()
        client: Tool capability used for indexing and index status
        analyzer: Impact analyzer; built over client when omitted
        console: Rich console for user-facing summaries
    """

    def __init__(
        self,
        hook_store: HookStore,
        config: Optional[HookConfig] = None,
        client: Optional[ToolClientProtocol] = None,
        analyzer: Optional[ImpactAnalyzer] = None,
        console: Optional[Console] = None
    ):
        self.hook_store = hook_store
        self.config = config or HookConfig()
        self.client = client
        self.analyzer = analyzer or ImpactAnalyzer(client)
        self.console = console or Console(stderr=True)

        self._handlers: Dict[HookType, Callable[[HookEvent], Awaitable[HookResult]]] = {
            HookType.PRE_COMMIT: self._handle_pre_commit,
            HookType.POST_MERGE: self._handle_post_merge,
            HookType.PRE_PUSH: self._handle_pre_push,
            HookType.POST_CHECKOUT: self._handle_post_checkout,
        }

    def project_id_for(self, event: HookEvent) -> str:
        """Configured project id, falling back to the repository directory name"""
        return self.config.project_id or Path(event.repository).name

    async def handle(self, event: HookEvent) -> HookResult:
        """
        Run the handler for an event.

        Never raises. The returned result carries the success flag, timing,
        counts and messages; an audit row is written for every call.
        """
        start_time = time.perf_counter()
        logger.debug(f"Handling {event.type.value} hook for {event.repository}")

        try:
            handler = self._handlers[event.type]
            result = await handler(event)
        except Exception as e:
            logger.error(f"{event.type.value} hook failed: {e}")
            result = HookResult.failure(event.type, str(e))

        duration_ms = (time.perf_counter() - start_time) * 1000
        result = result.model_copy(update={"duration_ms": duration_ms})

        await self._audit(event, result)
        return result

    async def _handle_pre_commit(self, event: HookEvent) -> HookResult:
        if not self.config.index_on_commit:
            return self._result(event, message="Indexing on commit disabled")

        staged = event.staged_files
        if staged is None:
            staged = await git.get_staged_files(event.repository)

        if not staged:
            return self._result(event, message="No files to index")

        if len(staged) > self.config.max_files_to_index:
            return self._result(
                event,
                message=f"Too many files ({len(staged)}), skipping auto-index",
                warnings=["Consider running `repo-graph` indexing manually after commit"]
            )

        logger.info(f"Indexing {len(staged)} staged files")

        if self.client is None:
            return self._result(
                event,
                files_indexed=len(staged),
                message=f"Would index {len(staged)} files (client not configured)"
            )

        try:
            indexed = await self._call_tool("index_files", {
                "projectId": self.project_id_for(event),
                "filePaths": staged,
            })
        except Exception as e:
            logger.warning(f"Index request failed: {e}")
            return self._result(event, message="Indexing skipped", warnings=[f"Index failed: {e}"])

        files_indexed = indexed.get("filesIndexed") or len(staged)
        return self._result(
            event,
            files_indexed=files_indexed,
            entities_updated=indexed.get("entitiesExtracted") or 0,
            message=f"Indexed {files_indexed} files"
        )

    async def _handle_post_merge(self, event: HookEvent) -> HookResult:
        project_id = self.project_id_for(event)
        warnings: List[str] = []
        messages: List[str] = []
        files_indexed = 0
        entities_updated = 0

        if self.config.sync_on_merge:
            merged = event.merged_files
            if merged is None:
                merged = await git.get_merged_files(event.repository)

            if len(merged) > self.config.max_files_to_index:
                warnings.append(f"Too many merged files ({len(merged)}), skipping index sync")
            elif merged and self.client is None:
                files_indexed = len(merged)
                messages.append(f"Would index {len(merged)} merged files (client not configured)")
            elif merged:
                logger.info(f"Syncing index for {len(merged)} merged files")
                try:
                    synced = await self._call_tool("index_files", {
                        "projectId": project_id,
                        "filePaths": merged,
                    })
                    files_indexed = synced.get("filesIndexed") or len(merged)
                    entities_updated = synced.get("entitiesExtracted") or 0
                    messages.append(f"Indexed {files_indexed} merged files")

                    if event.current_commit:
                        await self.hook_store.mark_commit_indexed(
                            project_id, event.current_commit, files_indexed
                        )
                except Exception as e:
                    logger.warning(f"Index sync failed: {e}")
                    warnings.append(f"Index sync failed: {e}")

        if self.config.generate_impact_report:
            try:
                report = await self.analyzer.analyze(
                    project_id=project_id,
                    base_branch=await git.detect_base_branch(event.repository),
                    target_branch=event.current_branch or "HEAD",
                    previous_commit=event.previous_commit,
                    current_commit=event.current_commit or None,
                    repo_path=event.repository,
                )
                await self.hook_store.save_impact_report(project_id, report)
                warnings.extend(report.warnings)
                messages.append(f"Impact risk: {report.risk_level.value}")
                self.display_impact_summary(report)
            except Exception as e:
                logger.warning(f"Impact analysis failed: {e}")
                warnings.append(f"Impact analysis failed: {e}")

        return self._result(
            event,
            files_indexed=files_indexed,
            entities_updated=entities_updated,
            message="; ".join(messages) or "Merge processed",
            warnings=warnings
        )

    async def _handle_pre_push(self, event: HookEvent) -> HookResult:
        if not self.config.validate_on_push:
            return self._result(event, message="Push validation disabled")

        if self.client is not None:
            try:
                status = await self._call_tool("index_status", {
                    "projectId": self.project_id_for(event)
                })
            except Exception as e:
                logger.warning(f"Index status check failed: {e}")
                return self._result(
                    event,
                    message="Push allowed without validation",
                    warnings=["Could not validate index status"]
                )

            if not status.get("isUpToDate"):
                return self._result(
                    event,
                    success=False,
                    message="Push blocked: index is out of date",
                    errors=[
                        "Index is out of date. Re-index the project before pushing.",
                        f"Unindexed files: {status.get('unindexedCount') or 'unknown'}",
                    ]
                )

        return self._result(event, message="Index validation passed")

    async def _handle_post_checkout(self, event: HookEvent) -> HookResult:
        if not event.is_branch_switch:
            return self._result(event, message="File checkout, skipping")

        logger.info(f"Switched to {event.current_branch or event.current_commit}")

        changed = await git.get_changed_files_between(
            event.repository, event.previous_commit, event.current_commit
        )
        if changed.total > BRANCH_SWITCH_WARNING_THRESHOLD:
            return self._result(
                event,
                message="Branch switched",
                warnings=[f"Branch has {changed.total} changes, consider re-indexing"]
            )

        return self._result(event, message="Branch switched")

    async def _call_tool(self, name: str, params: Dict[str, Any]) -> Dict[str, Any]:
        return await asyncio.wait_for(
            self.client.call_tool(name, params), timeout=self.config.timeout_seconds
        )

    @staticmethod
    def _result(event: HookEvent, success: bool = True, **fields: Any) -> HookResult:
        return HookResult(success=success, hook_type=event.type, **fields)

    async def _audit(self, event: HookEvent, result: HookResult) -> None:
        """Write the audit row; failures are logged and never raised"""
        try:
            execution = HookExecution.from_result(self.project_id_for(event), event, result)
            await self.hook_store.record_execution(execution)
        except Exception as e:
            logger.debug(f"Failed to record hook execution: {e}")

    def display_impact_summary(self, report: ImpactReport) -> None:
        """Print a short impact summary unless verbosity is silent"""
        if self.config.verbosity == Verbosity.SILENT:
            return

        style = RISK_STYLES.get(report.risk_level, "white")

        table = Table(show_header=False, box=None)
        table.add_column("Field", style="cyan", no_wrap=True)
        table.add_column("Value")
        table.add_row("Risk Level", f"[{style}]{report.risk_level.value.upper()}[/{style}]")
        table.add_row(
            "Files",
            f"+{len(report.files_added)} ~{len(report.files_modified)} -{len(report.files_deleted)}"
        )
        table.add_row(
            "Affected",
            f"{len(report.affected_entities)} entities, {len(report.affected_decisions)} decisions"
        )
        for reason in report.reasons:
            table.add_row("Reason", reason)

        self.console.print(Panel(table, title="Impact Analysis", expand=False))

        if report.suggestions:
            self.console.print("[blue]Recommendations:[/blue]")
            for suggestion in report.suggestions:
                self.console.print(f"  • {suggestion}")

    async def get_recent_executions(
        self,
        project_id: str,
        hook_type: Optional[HookType] = None,
        limit: int = 20
    ) -> List[HookExecution]:
        return await self.hook_store.get_recent_executions(project_id, hook_type=hook_type, limit=limit)

    def get_config(self) -> HookConfig:
        """Copy of the current configuration"""
        return self.config.model_copy(deep=True)

    def update_config(self, **changes: Any) -> HookConfig:
        """Apply validated configuration changes"""
        self.config = HookConfig.model_validate({**self.config.model_dump(), **changes})
        return self.get_config()
