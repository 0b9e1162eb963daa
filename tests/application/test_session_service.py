"""
Test suite for SessionService.

Runs against the in-memory database; concurrency races are reproduced by
patching CRUD lookups to return what a slower request would have seen.

System role: Verification of the session state machine use cases
"""

import itertools
import uuid
from datetime import timedelta
from unittest.mock import AsyncMock

import pytest
from sqlalchemy import func, select, update

from companion_chat.boundary.db.base import utc_now
from companion_chat.boundary.db.CRUD.chat_session_crud import chat_session_crud
from companion_chat.boundary.db.models.chat_message_model import (
    ChatMessageModel,
    MessageRole,
)
from companion_chat.boundary.db.models.chat_session_model import (
    IN_PROGRESS_STATUSES,
    ChatSessionModel,
    SessionStatus,
)
from companion_chat.core.exceptions import (
    InvalidTransitionError,
    SessionNotFoundError,
    VersionConflictError,
)
from companion_chat.core.session_state import can_transition


class TestGetOrCreateActiveSession:
    async def test_creates_then_returns_same_session(self, session_service, user_id) -> None:
        # Act
        first = await session_service.get_or_create_active_session(user_id)
        second = await session_service.get_or_create_active_session(user_id)

        # Assert
        assert first.created is True
        assert second.created is False
        assert second.session.id == first.session.id
        assert first.session.status == SessionStatus.ACTIVE

    @pytest.mark.parametrize(
        "status", [SessionStatus.WAITING_FOR_BOT, SessionStatus.FAILED]
    )
    async def test_returns_existing_in_progress_session(
        self, session_service, seed_session, user_id, status
    ) -> None:
        seeded = await seed_session(user_id, status)

        result = await session_service.get_or_create_active_session(user_id)

        assert result.created is False
        assert result.session.id == seeded.id
        assert result.session.status == status

    async def test_creates_new_session_after_ended(
        self, session_service, seed_session, user_id
    ) -> None:
        ended = await seed_session(user_id, SessionStatus.ENDED)
        ended_id = ended.id

        result = await session_service.get_or_create_active_session(user_id)

        assert result.created is True
        assert result.session.id != ended_id

    async def test_lost_creation_race_returns_winner(
        self, session_service, seed_session, user_id, monkeypatch
    ) -> None:
        # Arrange: the winner committed after this request's lookup found nothing
        winner = await seed_session(user_id)
        winner_id = winner.id
        real_lookup = chat_session_crud.get_in_progress_for_user
        calls = []

        async def racing_lookup(db, uid):
            calls.append(uid)
            if len(calls) == 1:
                return None
            return await real_lookup(db, uid)

        monkeypatch.setattr(chat_session_crud, "get_in_progress_for_user", racing_lookup)

        # Act
        result = await session_service.get_or_create_active_session(user_id)

        # Assert
        assert result.created is False
        assert result.session.id == winner_id
        count = await session_service.db.scalar(
            select(func.count())
            .select_from(ChatSessionModel)
            .where(
                ChatSessionModel.user_id == user_id,
                ChatSessionModel.status.in_(IN_PROGRESS_STATUSES),
            )
        )
        assert count == 1


class TestGetSession:
    async def test_scoped_to_owner(self, session_service, seed_session, user_id) -> None:
        seeded = await seed_session(user_id)

        assert (await session_service.get_session(seeded.id, user_id)).id == seeded.id
        assert await session_service.get_session(seeded.id, "someone-else") is None

    async def test_get_active_session(self, session_service, seed_session, user_id) -> None:
        assert await session_service.get_active_session(user_id) is None
        seeded = await seed_session(user_id)

        assert (await session_service.get_active_session(user_id)).id == seeded.id


class TestTransition:
    @pytest.mark.parametrize(
        "current,target",
        [
            pair
            for pair in itertools.product(SessionStatus, SessionStatus)
            if not can_transition(*pair)
        ],
    )
    async def test_disallowed_edges_raise(
        self, session_service, seed_session, user_id, current, target
    ) -> None:
        seeded = await seed_session(user_id, current)

        with pytest.raises(InvalidTransitionError) as exc_info:
            await session_service.transition(seeded.id, user_id, target)

        assert exc_info.value.current == current.value
        assert exc_info.value.target == target.value
        assert exc_info.value.status_code == 400

    @pytest.mark.parametrize(
        "current,target",
        [
            pair
            for pair in itertools.product(SessionStatus, SessionStatus)
            if can_transition(*pair)
        ],
    )
    async def test_allowed_edges_bump_version(
        self, session_service, seed_session, user_id, current, target
    ) -> None:
        seeded = await seed_session(user_id, current)
        version_before = seeded.version

        updated = await session_service.transition(seeded.id, user_id, target)

        assert updated.status == target
        assert updated.version == version_before + 1

    async def test_missing_session_raises_not_found(self, session_service, user_id) -> None:
        with pytest.raises(SessionNotFoundError):
            await session_service.transition(uuid.uuid4(), user_id, SessionStatus.ENDED)

    async def test_not_owned_session_raises_not_found(
        self, session_service, seed_session, user_id
    ) -> None:
        seeded = await seed_session(user_id)

        with pytest.raises(SessionNotFoundError):
            await session_service.transition(seeded.id, "intruder", SessionStatus.ENDED)

    async def test_allow_noop_returns_unchanged(self, session_service, seed_session, user_id) -> None:
        seeded = await seed_session(user_id)

        result = await session_service.transition(
            seeded.id, user_id, SessionStatus.ACTIVE, allow_noop=True
        )

        assert result.status == SessionStatus.ACTIVE
        assert result.version == 1

    async def test_same_status_without_noop_is_invalid(
        self, session_service, seed_session, user_id
    ) -> None:
        seeded = await seed_session(user_id)

        with pytest.raises(InvalidTransitionError):
            await session_service.transition(seeded.id, user_id, SessionStatus.ACTIVE)

    async def test_version_conflict_is_retried(
        self, session_service, seed_session, user_id, monkeypatch
    ) -> None:
        # Arrange: first write loses the race, second succeeds
        seeded = await seed_session(user_id)
        real_cas = chat_session_crud.compare_and_set_status
        calls = []

        async def flaky_cas(*args, **kwargs):
            calls.append(args)
            if len(calls) == 1:
                return None
            return await real_cas(*args, **kwargs)

        monkeypatch.setattr(chat_session_crud, "compare_and_set_status", flaky_cas)

        # Act
        updated = await session_service.transition(seeded.id, user_id, SessionStatus.ENDED)

        # Assert
        assert len(calls) == 2
        assert updated.status == SessionStatus.ENDED

    async def test_persistent_conflict_raises_after_max_attempts(
        self, session_service, seed_session, user_id, monkeypatch
    ) -> None:
        seeded = await seed_session(user_id)
        cas = AsyncMock(return_value=None)
        monkeypatch.setattr(chat_session_crud, "compare_and_set_status", cas)

        with pytest.raises(VersionConflictError) as exc_info:
            await session_service.transition(seeded.id, user_id, SessionStatus.ENDED)

        assert cas.await_count == 3
        assert exc_info.value.status_code == 409
        assert exc_info.value.details["attempts"] == 3

    async def test_revalidates_after_conflict(
        self, session_service, seed_session, user_id, monkeypatch
    ) -> None:
        # Arrange: a concurrent writer ends the session while this write loses
        seeded = await seed_session(user_id)
        session_id = seeded.id
        real_cas = chat_session_crud.compare_and_set_status
        lost = []

        async def racing_cas(db, sid, uid, version, status):
            if not lost:
                lost.append(True)
                await real_cas(db, sid, uid, version, SessionStatus.ENDED)
                return None
            return await real_cas(db, sid, uid, version, status)

        monkeypatch.setattr(chat_session_crud, "compare_and_set_status", racing_cas)

        # Act / Assert: the retry sees 'ended' and refuses
        with pytest.raises(InvalidTransitionError):
            await session_service.transition(session_id, user_id, SessionStatus.WAITING_FOR_BOT)

    async def test_wrappers(self, session_service, seed_session, user_id) -> None:
        seeded = await seed_session(user_id)
        session_id = seeded.id

        assert (await session_service.mark_waiting_for_bot(session_id, user_id)).status == SessionStatus.WAITING_FOR_BOT
        assert (await session_service.mark_failed(session_id, user_id)).status == SessionStatus.FAILED
        assert (await session_service.mark_active(session_id, user_id)).status == SessionStatus.ACTIVE
        assert (await session_service.mark_escalated(session_id, user_id)).status == SessionStatus.ESCALATED

    async def test_close_session_is_final(self, session_service, seed_session, user_id) -> None:
        seeded = await seed_session(user_id)
        session_id = seeded.id

        closed = await session_service.close_session(session_id, user_id)

        assert closed.status == SessionStatus.ENDED
        with pytest.raises(InvalidTransitionError):
            await session_service.mark_active(session_id, user_id)


class TestHardDeleteSession:
    async def test_deletes_session_and_messages(
        self, session_service, seed_session, user_id
    ) -> None:
        # Arrange
        seeded = await seed_session(user_id)
        session_id = seeded.id
        db = session_service.db
        db.add(
            ChatMessageModel(
                session_id=session_id,
                user_id=user_id,
                role=MessageRole.USER,
                content_encrypted={"iv": "00", "content": "00", "tag": "00"},
                sequence_number=0,
            )
        )
        await db.commit()

        # Act
        deleted = await session_service.hard_delete_session(session_id, user_id)

        # Assert
        assert deleted is True
        remaining = await db.scalar(
            select(func.count()).select_from(ChatMessageModel).where(
                ChatMessageModel.session_id == session_id
            )
        )
        assert remaining == 0

    async def test_unknown_session(self, session_service, user_id) -> None:
        assert await session_service.hard_delete_session(uuid.uuid4(), user_id) is False


class TestFailStaleWaitingSessions:
    async def test_moves_old_waiting_sessions_to_failed(
        self, session_service, seed_session
    ) -> None:
        # Arrange
        stale = await seed_session("stale-user", SessionStatus.WAITING_FOR_BOT)
        fresh = await seed_session("fresh-user", SessionStatus.WAITING_FOR_BOT)
        stale_id, fresh_id = stale.id, fresh.id
        db = session_service.db
        await db.execute(
            update(ChatSessionModel)
            .where(ChatSessionModel.id == stale_id)
            .values(updated_at=utc_now() - timedelta(hours=1))
        )
        await db.commit()

        # Act
        failed = await session_service.fail_stale_waiting_sessions(timedelta(minutes=5))

        # Assert
        assert failed == 1
        assert (await session_service.get_session(stale_id, "stale-user")).status == SessionStatus.FAILED
        assert (await session_service.get_session(fresh_id, "fresh-user")).status == SessionStatus.WAITING_FOR_BOT

    async def test_skips_sessions_that_moved_concurrently(
        self, session_service, seed_session, monkeypatch
    ) -> None:
        stale = await seed_session("stale-user", SessionStatus.WAITING_FOR_BOT)
        stale_id = stale.id
        db = session_service.db
        await db.execute(
            update(ChatSessionModel)
            .where(ChatSessionModel.id == stale_id)
            .values(updated_at=utc_now() - timedelta(hours=1))
        )
        await db.commit()
        monkeypatch.setattr(
            chat_session_crud, "compare_and_set_status", AsyncMock(return_value=None)
        )

        assert await session_service.fail_stale_waiting_sessions(timedelta(minutes=5)) == 0
