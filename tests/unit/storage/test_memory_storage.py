"""
Unit tests for enrollwatch/storage/memory.py
"""

import asyncio
from datetime import UTC, datetime, timedelta

import pytest

from enrollwatch.core.models import Event
from enrollwatch.rules.models import RuleDefinition, RuleResult
from enrollwatch.storage.memory import (
    InMemoryEventRepository,
    InMemoryRuleLoader,
    InMemoryRuleResultStore,
)

BASE_TIME = datetime(2026, 3, 1, 9, 0, 0, tzinfo=UTC)


def _result(rule_id: str = "R-1", session_id: str = "s1", tenant_id: str = "t1") -> RuleResult:
    return RuleResult(
        tenant_id=tenant_id,
        session_id=session_id,
        rule_id=rule_id,
        rule_title="Rule",
        severity="warning",
        category="apps",
        confidence_score=50,
    )


class TestInMemoryRuleLoader:
    @pytest.mark.asyncio
    async def test_global_then_tenant_rules_and_disabled_filtered(self):
        loader = InMemoryRuleLoader(
            [RuleDefinition(rule_id="G1", title="Global"), RuleDefinition(rule_id="G2", title="Off", enabled=False)]
        )
        loader.add_tenant_rule("t1", RuleDefinition(rule_id="T1", title="Tenant"))

        assert [r.rule_id for r in await loader.get_active_rules("t1")] == ["G1", "T1"]
        assert [r.rule_id for r in await loader.get_active_rules("t2")] == ["G1"]


class TestInMemoryEventRepository:
    @pytest.mark.asyncio
    async def test_returns_session_events_in_canonical_order(self):
        repository = InMemoryEventRepository()
        repository.add_events(
            [
                Event(tenant_id="t1", session_id="s1", event_type="b", timestamp=BASE_TIME + timedelta(seconds=5)),
                Event(tenant_id="t1", session_id="s1", event_type="a", timestamp=BASE_TIME, sequence=2),
                Event(tenant_id="t1", session_id="s1", event_type="first", timestamp=BASE_TIME, sequence=1),
                Event(tenant_id="t2", session_id="s1", event_type="other-tenant", timestamp=BASE_TIME),
            ]
        )

        events = await repository.get_session_events("t1", "s1")

        assert [e.event_type for e in events] == ["first", "a", "b"]
        assert await repository.get_session_events("t1", "unknown") == []


class TestInMemoryRuleResultStore:
    """The store keeps at most one result per (tenant, session, rule_id)."""

    @pytest.mark.asyncio
    async def test_duplicate_key_is_rejected(self):
        store = InMemoryRuleResultStore()

        assert await store.store_result(_result()) is True
        assert await store.store_result(_result()) is False
        assert len(await store.get_results("t1", "s1")) == 1

    @pytest.mark.asyncio
    async def test_results_are_scoped_by_tenant_and_session(self):
        store = InMemoryRuleResultStore()
        await store.store_result(_result(session_id="s1"))
        await store.store_result(_result(session_id="s2"))
        await store.store_result(_result(tenant_id="t2"))

        assert len(await store.get_results("t1", "s1")) == 1
        assert len(await store.get_results("t1", "s2")) == 1
        assert len(await store.get_results("t2", "s1")) == 1
        assert len(store.all_results()) == 3

    @pytest.mark.asyncio
    async def test_concurrent_stores_keep_one_result(self):
        store = InMemoryRuleResultStore()

        outcomes = await asyncio.gather(*(store.store_result(_result()) for _ in range(5)))

        assert outcomes.count(True) == 1
        assert len(store.all_results()) == 1
