"""
Change impact analysis.

Diffs two refs, asks the tool capability which entities, decisions and
context snippets the changed files touch, and scores the result. The
file diff is always produced; enrichment lookups that fail are reported as
warnings on the report instead of failing it.
"""

import asyncio
import logging
import re
import time
from pathlib import Path, PurePosixPath
from typing import Any, List, Optional, Tuple, Union

from ..models.impact import (
    AffectedDecision,
    AffectedEntity,
    ChangedFiles,
    ChangeType,
    ImpactReport,
    RelatedContext,
    RiskLevel,
)
from ..models.storage import OperationResult
from . import git
from .tool_client import ToolClientProtocol

logger = logging.getLogger(__name__)

MAX_ENTITY_FILES = 20
MAX_DECISION_NAMES = 10
MAX_CONTEXT_NAMES = 5
MAX_CONTEXT_ITEMS = 5
DECISION_SUMMARY_LENGTH = 100

HIGH_USAGE_THRESHOLD = 5
CRITICAL_USAGE_THRESHOLD = 10
LARGE_CHANGE_THRESHOLD = 20

CODE_FILE_PATTERN = re.compile(r"\.(ts|js|tsx|jsx|py|java|go|rs)$")


def _basename(path: str) -> str:
    return PurePosixPath(path).name


def assess_risk(
    changed_files: ChangedFiles,
    affected_entities: List[AffectedEntity],
    affected_decisions: List[AffectedDecision]
) -> Tuple[RiskLevel, List[str], int]:
    """
    Score a change set.

    Returns:
        Risk level, one reason per contributing factor, and the raw score
    """
    reasons: List[str] = []
    score = 0

    deleted = len(changed_files.deleted)
    if deleted > 0:
        score += deleted * 2
        reasons.append(f"{deleted} file(s) deleted")

    modified = len(changed_files.modified)
    if modified > 10:
        score += modified // 5
        reasons.append(f"{modified} files modified")

    high_usage = [e for e in affected_entities if e.usage_count > HIGH_USAGE_THRESHOLD]
    if high_usage:
        score += len(high_usage) * 3
        reasons.append(f"{len(high_usage)} widely-used entities affected")

    invalidated = [d for d in affected_decisions if d.might_be_invalidated]
    if invalidated:
        score += len(invalidated) * 2
        reasons.append(f"{len(invalidated)} decisions may be invalidated")

    if score >= 10:
        level = RiskLevel.HIGH
    elif score >= 5:
        level = RiskLevel.MEDIUM
    else:
        level = RiskLevel.LOW

    return level, reasons, score


def generate_suggestions(
    changed_files: ChangedFiles,
    affected_entities: List[AffectedEntity],
    affected_decisions: List[AffectedDecision]
) -> List[str]:
    """Review suggestions for a change set, each heuristic independent"""
    suggestions: List[str] = []

    critical = [e for e in affected_entities if e.usage_count > CRITICAL_USAGE_THRESHOLD]
    if critical:
        names = ", ".join(e.name for e in critical[:3])
        suggestions.append(f"Review usage of {names} ({len(critical)} widely-used entities)")

    deleted_entities = [e for e in affected_entities if e.change_type == ChangeType.DELETED]
    if deleted_entities:
        suggestions.append(
            f"Verify {len(deleted_entities)} deleted entities are no longer referenced"
        )

    if any(d.might_be_invalidated for d in affected_decisions):
        suggestions.append("Review decisions that may no longer apply")

    if changed_files.total > LARGE_CHANGE_THRESHOLD:
        suggestions.append("Consider splitting this large change into smaller PRs")

    new_code = [
        f for f in changed_files.added
        if CODE_FILE_PATTERN.search(f) and "test" not in f and "spec" not in f
    ]
    if new_code:
        suggestions.append(f"Add tests for {len(new_code)} new code files")

    return suggestions


class ImpactAnalyzer:
    """
    Builds impact reports for branches and commit ranges.

    Args:
        client: Tool capability used for enrichment; without one the report
            only carries the file diff and its risk assessment
    """

    def __init__(self, client: Optional[ToolClientProtocol] = None):
        self.client = client

    async def analyze(
        self,
        project_id: str,
        base_branch: str,
        target_branch: str,
        previous_commit: Optional[str] = None,
        current_commit: Optional[str] = None,
        repo_path: Optional[Union[str, Path]] = None
    ) -> ImpactReport:
        """Produce an impact report; enrichment failures become warnings"""
        start_time = time.perf_counter()
        repo = Path(repo_path) if repo_path else Path.cwd()

        commit_range = None
        if previous_commit and current_commit:
            commit_range = f"{previous_commit}..{current_commit}"
            changed = await git.get_changed_files_between(repo, previous_commit, current_commit)
        else:
            changed = await git.get_changed_files(repo, base_branch, target_branch)

        entities: List[AffectedEntity] = []
        decisions: List[AffectedDecision] = []
        contexts: List[RelatedContext] = []
        warnings: List[str] = []

        if self.client is not None:
            entity_result, decision_result, context_result = await asyncio.gather(
                self.find_affected_entities(project_id, changed),
                self.find_affected_decisions(project_id, changed),
                self.find_related_contexts(project_id, changed),
            )
            entities = entity_result.data or []
            decisions = decision_result.data or []
            contexts = context_result.data or []
            for result in (entity_result, decision_result, context_result):
                warnings.extend(result.messages())

        risk_level, reasons, score = assess_risk(changed, entities, decisions)
        suggestions = generate_suggestions(changed, entities, decisions)

        elapsed_ms = (time.perf_counter() - start_time) * 1000
        logger.info(
            f"Impact {base_branch}..{target_branch}: {changed.total} files, "
            f"risk {risk_level.value} (score {score}) in {elapsed_ms:.1f}ms"
        )

        return ImpactReport(
            base_branch=base_branch,
            target_branch=target_branch,
            commit_range=commit_range,
            files_added=changed.added,
            files_modified=changed.modified,
            files_deleted=changed.deleted,
            affected_entities=entities,
            affected_decisions=decisions,
            related_contexts=contexts,
            risk_level=risk_level,
            reasons=reasons,
            suggestions=suggestions,
            warnings=warnings,
        )

    async def find_affected_entities(
        self,
        project_id: str,
        changed: ChangedFiles
    ) -> OperationResult[List[AffectedEntity]]:
        """Entities defined in modified or deleted files, with usage counts"""
        if self.client is None:
            return OperationResult.success_result([], "affected_entities", items_processed=0)

        affected: List[AffectedEntity] = []
        warnings: List[str] = []
        files = [*changed.modified, *changed.deleted][:MAX_ENTITY_FILES]

        for file_path in files:
            try:
                result = await self.client.call_tool(
                    "entity_search", {"projectId": project_id, "filters": {"filePath": file_path}}
                )
            except Exception as e:
                message = f"Entity lookup failed for {file_path}: {e}"
                logger.debug(message)
                warnings.append(message)
                continue

            change_type = ChangeType.DELETED if file_path in changed.deleted else ChangeType.MODIFIED
            for item in result.get("entities") or []:
                entity_id = item.get("id")
                if not entity_id:
                    continue
                affected.append(AffectedEntity(
                    entity_id=entity_id,
                    name=item.get("name") or entity_id,
                    type=item.get("type") or "unknown",
                    file_path=item.get("filePath") or file_path,
                    change_type=change_type,
                    usage_count=await self._usage_count(project_id, entity_id),
                ))

        return self._lookup_result(affected, "affected_entities", warnings, len(files))

    async def find_affected_decisions(
        self,
        project_id: str,
        changed: ChangedFiles
    ) -> OperationResult[List[AffectedDecision]]:
        """Decisions whose text mentions a changed file name"""
        if self.client is None:
            return OperationResult.success_result([], "affected_decisions", items_processed=0)

        all_files = changed.all_files
        names = [n for n in (_basename(f) for f in all_files) if n][:MAX_DECISION_NAMES]

        affected: List[AffectedDecision] = []
        seen = set()
        warnings: List[str] = []

        for name in names:
            try:
                result = await self.client.call_tool(
                    "decision_search", {"projectId": project_id, "query": name, "limit": 5}
                )
            except Exception as e:
                message = f"Decision search failed for {name}: {e}"
                logger.debug(message)
                warnings.append(message)
                continue

            for decision in result.get("decisions") or []:
                decision_id = decision.get("id")
                text = decision.get("decision") or ""
                if not decision_id or decision_id in seen:
                    continue

                matched = next((f for f in all_files if _basename(f) and _basename(f) in text), None)
                if matched is None:
                    continue

                seen.add(decision_id)
                affected.append(AffectedDecision(
                    decision_id=decision_id,
                    summary=text[:DECISION_SUMMARY_LENGTH],
                    related_files=[matched],
                    might_be_invalidated=matched in changed.deleted,
                ))

        return self._lookup_result(affected, "affected_decisions", warnings, len(names))

    async def find_related_contexts(
        self,
        project_id: str,
        changed: ChangedFiles
    ) -> OperationResult[List[RelatedContext]]:
        """Context snippets for reviewing added and modified files"""
        if self.client is None:
            return OperationResult.success_result([], "related_contexts", items_processed=0)

        names = [
            n for n in (_basename(f) for f in [*changed.added, *changed.modified]) if n
        ][:MAX_CONTEXT_NAMES]
        if not names:
            return OperationResult.success_result([], "related_contexts", items_processed=0)

        try:
            result = await self.client.call_tool("context_query", {
                "projectId": project_id,
                "query": f"code related to {', '.join(names)}",
                "maxTokens": 2000,
            })
        except Exception as e:
            logger.debug(f"Context query failed: {e}")
            return OperationResult.error_result(
                f"Context query failed: {e}", "related_contexts", data=[]
            )

        contexts = [
            RelatedContext(
                title=item.get("name") or "Unknown",
                summary=item.get("summary") or "",
                relevance_score=item.get("relevanceScore") or 0.0,
                file_paths=[item["filePath"]] if item.get("filePath") else [],
            )
            for item in (result.get("items") or [])[:MAX_CONTEXT_ITEMS]
        ]
        return OperationResult.success_result(contexts, "related_contexts", items_processed=len(contexts))

    async def _usage_count(self, project_id: str, entity_id: str) -> int:
        try:
            result = await self.client.call_tool(
                "entity_references", {"projectId": project_id, "entityId": entity_id}
            )
        except Exception as e:
            logger.debug(f"Reference lookup failed for {entity_id}: {e}")
            return 0
        return len(result.get("references") or [])

    @staticmethod
    def _lookup_result(
        data: List[Any],
        operation_type: str,
        warnings: List[str],
        attempted: int
    ) -> OperationResult:
        if warnings:
            return OperationResult.partial_result(
                data, operation_type, warnings,
                items_processed=attempted - len(warnings), items_failed=len(warnings)
            )
        return OperationResult.success_result(data, operation_type, items_processed=attempted)

    def assess_risk(
        self,
        changed_files: ChangedFiles,
        affected_entities: List[AffectedEntity],
        affected_decisions: List[AffectedDecision]
    ) -> Tuple[RiskLevel, List[str], int]:
        return assess_risk(changed_files, affected_entities, affected_decisions)

    def generate_suggestions(
        self,
        changed_files: ChangedFiles,
        affected_entities: List[AffectedEntity],
        affected_decisions: List[AffectedDecision]
    ) -> List[str]:
        return generate_suggestions(changed_files, affected_entities, affected_decisions)
