"""Tests for roadmap_service."""

import asyncio
import re
from datetime import UTC, datetime, timedelta

import pytest
from sqlalchemy.exc import OperationalError
from sqlalchemy.ext.asyncio import AsyncSession

from roadmap_gateway.core.config import get_settings
from roadmap_gateway.core.database import ping_db
from roadmap_gateway.models import Roadmap
from roadmap_gateway.services import roadmap_service

FALLBACK_ID = re.compile(r"^\d+-[0-9a-z]+$")


class TestComputeProgress:
    """Test the pure progress computation."""

    def test_partial_progress(self, milestone_factory):
        """4 milestones x 3 tasks with 5 done."""
        progress = roadmap_service.compute_progress(milestone_factory(4, 3, completed=5))
        assert progress.total_tasks == 12
        assert progress.completed_tasks == 5
        assert progress.progress_pct == 42
        assert progress.is_completed is False
        assert progress.current_milestone_index == 1

    def test_all_done(self, milestone_factory):
        progress = roadmap_service.compute_progress(milestone_factory(3, 2, completed=6))
        assert progress.progress_pct == 100
        assert progress.is_completed is True
        assert progress.current_milestone_index == 2

    def test_nothing_done(self, milestone_factory):
        progress = roadmap_service.compute_progress(milestone_factory(3, 2))
        assert progress.progress_pct == 0
        assert progress.current_milestone_index == 0

    def test_no_milestones(self):
        progress = roadmap_service.compute_progress([])
        assert progress.total_tasks == 0
        assert progress.progress_pct == 0
        assert progress.current_milestone_index == 0
        assert progress.is_completed is False

    def test_milestone_without_tasks_counts_as_done(self, milestone_factory):
        milestones = milestone_factory(2, 2)
        milestones[0].tasks = []
        assert roadmap_service.compute_progress(milestones).current_milestone_index == 1

    def test_progress_bounds(self, milestone_factory):
        """Percentages stay in [0, 100] and completion matches 100%."""
        for done in range(0, 8):
            progress = roadmap_service.compute_progress(milestone_factory(2, 3, completed=done))
            assert 0 <= progress.progress_pct <= 100
            assert progress.is_completed == (progress.progress_pct == 100)
            assert 0 <= progress.current_milestone_index < 2

    def test_pure(self, milestone_factory):
        """Same input, same output; the input is not modified."""
        milestones = milestone_factory(3, 3, completed=4)
        snapshot = [m.model_dump() for m in milestones]
        first = roadmap_service.compute_progress(milestones)
        second = roadmap_service.compute_progress(milestones)
        assert first == second
        assert [m.model_dump() for m in milestones] == snapshot


def test_fallback_id_format():
    ids = {roadmap_service.fallback_roadmap_id() for _ in range(20)}
    assert len(ids) == 20
    assert all(FALLBACK_ID.match(i) for i in ids)


class TestCreateRoadmap:
    """Test storing roadmaps."""

    @pytest.mark.asyncio
    async def test_create(self, test_session: AsyncSession, milestone_factory) -> None:
        milestones = milestone_factory(4, 3, completed=5)

        roadmap_id = await roadmap_service.create_roadmap(test_session, "user-1", "IT", "Networking", milestones)

        stored = await roadmap_service.get_roadmap(test_session, roadmap_id)
        assert stored is not None
        assert stored.user_id == "user-1"
        assert stored.title == "IT - Networking"
        assert stored.overview == "Overview 1"
        assert stored.milestone_count == 4
        assert stored.progress_pct == 42
        assert stored.is_completed is False
        assert roadmap_service.snapshot_milestones(stored) == milestones

    @pytest.mark.asyncio
    async def test_upsert_same_topic(self, test_session: AsyncSession, milestone_factory) -> None:
        """Regenerating the same topic replaces the stored roadmap."""
        first = await roadmap_service.create_roadmap(
            test_session, "user-1", "IT", "Networking", milestone_factory(2, 2)
        )
        second = await roadmap_service.create_roadmap(
            test_session, "user-1", "IT", "Networking", milestone_factory(3, 2, completed=6)
        )

        assert first == second
        stored = await roadmap_service.get_roadmap(test_session, second)
        assert stored.milestone_count == 3
        assert stored.is_completed is True

    @pytest.mark.asyncio
    async def test_distinct_topics_and_users(self, test_session: AsyncSession, milestone_factory) -> None:
        a = await roadmap_service.create_roadmap(test_session, "user-1", "IT", "Networking", milestone_factory(1, 1))
        b = await roadmap_service.create_roadmap(test_session, "user-1", "IT", "Security", milestone_factory(1, 1))
        c = await roadmap_service.create_roadmap(test_session, "user-2", "IT", "Networking", milestone_factory(1, 1))
        assert len({a, b, c}) == 3

    @pytest.mark.asyncio
    async def test_failure_returns_fallback_id(self, test_session: AsyncSession, milestone_factory, monkeypatch):
        """A store error still yields a usable id."""

        async def broken_execute(*args, **kwargs):
            raise OperationalError("INSERT", {}, Exception("network down"))

        monkeypatch.setattr(test_session, "execute", broken_execute)

        roadmap_id = await roadmap_service.create_roadmap(
            test_session, "user-1", "IT", "Networking", milestone_factory(1, 1)
        )

        assert roadmap_id
        assert FALLBACK_ID.match(roadmap_id)

    @pytest.mark.asyncio
    async def test_timeout_returns_fallback_id(self, test_session: AsyncSession, milestone_factory, monkeypatch):
        async def slow_execute(*args, **kwargs):
            await asyncio.sleep(1)

        monkeypatch.setattr(test_session, "execute", slow_execute)
        monkeypatch.setattr(get_settings(), "PERSISTENCE_TIMEOUT_SECONDS", 0.01)

        roadmap_id = await roadmap_service.create_roadmap(
            test_session, "user-1", "IT", "Networking", milestone_factory(1, 1)
        )

        assert FALLBACK_ID.match(roadmap_id)


class TestUpdateProgress:
    """Test fire-and-forget progress updates."""

    @pytest.mark.asyncio
    async def test_update(self, test_session: AsyncSession, milestone_factory) -> None:
        roadmap_id = await roadmap_service.create_roadmap(
            test_session, "user-1", "IT", "Networking", milestone_factory(2, 2)
        )

        await roadmap_service.update_roadmap_progress(test_session, roadmap_id, milestone_factory(2, 2, completed=3))

        stored = await roadmap_service.get_roadmap(test_session, roadmap_id)
        assert stored.progress_pct == 75
        assert stored.is_completed is False
        assert roadmap_service.snapshot_milestones(stored)[1].tasks[0].completed is True

    @pytest.mark.asyncio
    async def test_other_users_roadmap_ignored(self, test_session: AsyncSession, milestone_factory) -> None:
        """A caller cannot overwrite a roadmap they do not own."""
        roadmap_id = await roadmap_service.create_roadmap(
            test_session, "user-1", "IT", "Networking", milestone_factory(2, 2)
        )

        await roadmap_service.update_roadmap_progress(
            test_session, roadmap_id, milestone_factory(2, 2, completed=4), user_id="user-2"
        )

        stored = await roadmap_service.get_roadmap(test_session, roadmap_id)
        assert stored.progress_pct == 0
        assert stored.is_completed is False

    @pytest.mark.asyncio
    async def test_unknown_roadmap_ignored(self, test_session: AsyncSession, milestone_factory) -> None:
        await roadmap_service.update_roadmap_progress(test_session, "1700000000000-abc", milestone_factory(1, 1))

    @pytest.mark.asyncio
    async def test_failure_swallowed(self, test_session: AsyncSession, milestone_factory, monkeypatch):
        async def broken_get(*args, **kwargs):
            raise OperationalError("SELECT", {}, Exception("network down"))

        monkeypatch.setattr(test_session, "get", broken_get)

        await roadmap_service.update_roadmap_progress(test_session, "some-id", milestone_factory(1, 1))


class TestReads:
    """Test read helpers."""

    @pytest.mark.asyncio
    async def test_latest_by_user(self, test_session: AsyncSession, milestone_factory) -> None:
        now = datetime.now(UTC)
        test_session.add_all(
            [
                Roadmap(
                    user_id="user-1",
                    category="IT",
                    course="Old",
                    title="IT - Old",
                    created_at=now - timedelta(days=2),
                ),
                Roadmap(
                    user_id="user-1",
                    category="IT",
                    course="New",
                    title="IT - New",
                    created_at=now,
                ),
                Roadmap(
                    user_id="user-2",
                    category="IT",
                    course="Newest",
                    title="IT - Newest",
                    created_at=now + timedelta(days=1),
                ),
            ]
        )
        await test_session.commit()

        latest = await roadmap_service.get_latest_roadmap_by_user(test_session, "user-1")
        assert latest is not None
        assert latest.course == "New"

    @pytest.mark.asyncio
    async def test_latest_none(self, test_session: AsyncSession) -> None:
        assert await roadmap_service.get_latest_roadmap_by_user(test_session, "nobody") is None

    @pytest.mark.asyncio
    async def test_latest_read_failure(self, test_session: AsyncSession, monkeypatch) -> None:
        async def broken_execute(*args, **kwargs):
            raise OperationalError("SELECT", {}, Exception("network down"))

        monkeypatch.setattr(test_session, "execute", broken_execute)
        assert await roadmap_service.get_latest_roadmap_by_user(test_session, "user-1") is None

    @pytest.mark.asyncio
    async def test_get_read_failure(self, test_session: AsyncSession, monkeypatch) -> None:
        async def broken_get(*args, **kwargs):
            raise OperationalError("SELECT", {}, Exception("network down"))

        monkeypatch.setattr(test_session, "get", broken_get)
        assert await roadmap_service.get_roadmap(test_session, "1700000000000-abc") is None

    @pytest.mark.asyncio
    async def test_get_missing(self, test_session: AsyncSession) -> None:
        assert await roadmap_service.get_roadmap(test_session, "missing") is None


class TestPingDb:
    """Test the health-check database probe."""

    @pytest.mark.asyncio
    async def test_reachable(self, test_session: AsyncSession):
        assert await ping_db(test_session) is True

    @pytest.mark.asyncio
    async def test_unreachable(self, test_session: AsyncSession, monkeypatch):
        async def broken_execute(*args, **kwargs):
            raise OperationalError("SELECT 1", {}, Exception("network down"))

        monkeypatch.setattr(test_session, "execute", broken_execute)

        assert await ping_db(test_session) is False
