"""
Unit tests for hook audit persistence.
"""

import pytest
from datetime import datetime, timedelta

from core.models.hooks import HookExecution, HookType
from core.models.impact import AffectedEntity, ChangeType, ImpactReport, RiskLevel
from core.storage.hook_store import HookStore


def make_execution(hook_type: HookType, offset_seconds: int = 0, **kwargs) -> HookExecution:
    return HookExecution(
        project_id=kwargs.pop("project_id", "demo"),
        hook_type=hook_type,
        timestamp=datetime(2026, 1, 1, 12, 0, 0) + timedelta(seconds=offset_seconds),
        repository="/repos/demo",
        success=kwargs.pop("success", True),
        **kwargs
    )


class TestHookExecutions:
    """Test audit row persistence"""

    def setup_method(self):
        self.store = HookStore()

    def teardown_method(self):
        self.store.close()

    @pytest.mark.asyncio
    async def test_round_trip(self):
        execution = make_execution(
            HookType.PRE_PUSH,
            success=False,
            branch="feature",
            commit_hash="abc123",
            message="Push blocked: index is out of date",
            errors=["Index is out of date. Re-index the project before pushing."],
            warnings=["slow"]
        )

        await self.store.record_execution(execution)
        loaded = await self.store.get_recent_executions("demo")

        assert len(loaded) == 1
        assert loaded[0] == execution

    @pytest.mark.asyncio
    async def test_newest_first_with_limit(self):
        for offset in range(5):
            await self.store.record_execution(make_execution(HookType.PRE_COMMIT, offset, message=str(offset)))

        recent = await self.store.get_recent_executions("demo", limit=3)

        assert [e.message for e in recent] == ["4", "3", "2"]

    @pytest.mark.asyncio
    async def test_filter_by_hook_type_and_project(self):
        await self.store.record_execution(make_execution(HookType.PRE_COMMIT, 0))
        await self.store.record_execution(make_execution(HookType.POST_MERGE, 1))
        await self.store.record_execution(make_execution(HookType.POST_MERGE, 2, project_id="other"))

        merges = await self.store.get_recent_executions("demo", hook_type=HookType.POST_MERGE)
        other = await self.store.get_recent_executions("other")

        assert [e.hook_type for e in merges] == [HookType.POST_MERGE]
        assert len(other) == 1


class TestImpactReports:
    """Test impact report persistence"""

    def setup_method(self):
        self.store = HookStore()

    def teardown_method(self):
        self.store.close()

    @pytest.mark.asyncio
    async def test_latest_report(self):
        older = ImpactReport(
            generated_at=datetime(2026, 1, 1),
            base_branch="main",
            target_branch="old"
        )
        newer = ImpactReport(
            generated_at=datetime(2026, 1, 2),
            base_branch="main",
            target_branch="feature",
            commit_range="aaa..bbb",
            files_deleted=["src/a.ts"],
            affected_entities=[AffectedEntity(
                entity_id="e1", name="login", type="function",
                file_path="src/a.ts", change_type=ChangeType.DELETED
            )],
            risk_level=RiskLevel.MEDIUM,
            reasons=["1 file(s) deleted"]
        )

        first_id = await self.store.save_impact_report("demo", older)
        second_id = await self.store.save_impact_report("demo", newer)
        latest = await self.store.get_latest_impact_report("demo")

        assert first_id != second_id
        assert latest == newer
        assert latest.affected_entities[0].change_type == ChangeType.DELETED

    @pytest.mark.asyncio
    async def test_no_report(self):
        assert await self.store.get_latest_impact_report("demo") is None


class TestIndexedCommits:
    """Test indexed commit bookkeeping"""

    def setup_method(self):
        self.store = HookStore()

    def teardown_method(self):
        self.store.close()

    @pytest.mark.asyncio
    async def test_mark_and_check(self):
        assert not await self.store.is_commit_indexed("demo", "abc")

        await self.store.mark_commit_indexed("demo", "abc", 3)
        await self.store.mark_commit_indexed("demo", "abc", 5)

        assert await self.store.is_commit_indexed("demo", "abc")
        assert not await self.store.is_commit_indexed("other", "abc")
