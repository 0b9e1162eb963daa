from uuid import uuid4

import pytest

from companion_chat.boundary.db.models.chat_message_model import MessageRole
from companion_chat.boundary.db.models.chat_session_model import SessionStatus
from companion_chat.core.exceptions import (
    SequenceConflictError,
    SessionNotFailedError,
    SessionNotFoundError,
)
from companion_chat.core.session_state import SessionEndedError, SessionWaitingForBotError
from companion_chat.models.message import BotReplyResult, PaginatedSessionMessages


class TestCreateMessage:
    def test_create_message(
        self, client, api_prefix, api_user_id, mock_message_service, make_safe_message
    ):
        session_id = uuid4()
        stored = make_safe_message(session_id=session_id, text="I feel a bit lonely")
        mock_message_service.append_user_message.return_value = stored

        response = client.post(
            f"{api_prefix}/message",
            json={"session_id": str(session_id), "message": "  I feel a bit lonely  "},
        )

        assert response.status_code == 201
        body = response.json()
        assert body["code"] == "CHAT_MESSAGE_CREATED"
        assert body["data"]["id"] == str(stored.id)
        assert body["data"]["message"] == "I feel a bit lonely"
        assert body["data"]["sequence_number"] == 0
        assert body["data"]["role"] == "user"
        mock_message_service.append_user_message.assert_awaited_once_with(
            api_user_id, session_id, "I feel a bit lonely"
        )

    @pytest.mark.parametrize(
        "text",
        ["", "   ", "a", "12345", "bcdfghjklm", "x" * 2001],
    )
    def test_rejected_text(self, client, api_prefix, mock_message_service, text):
        response = client.post(
            f"{api_prefix}/message", json={"session_id": str(uuid4()), "message": text}
        )

        assert response.status_code == 400
        body = response.json()
        assert body["success"] is False
        assert body["code"] == "BAD_REQUEST"
        mock_message_service.append_user_message.assert_not_awaited()

    def test_malformed_session_id(self, client, api_prefix, mock_message_service):
        response = client.post(
            f"{api_prefix}/message", json={"session_id": "nope", "message": "Hello there"}
        )

        assert response.status_code == 400
        body = response.json()
        assert body["code"] == "BAD_REQUEST"
        assert "session_id" in body["message"]

    def test_missing_body_field(self, client, api_prefix):
        response = client.post(f"{api_prefix}/message", json={"message": "Hello there"})

        assert response.status_code == 400
        assert response.json()["code"] == "BAD_REQUEST"

    @pytest.mark.parametrize(
        "error,status_code,code",
        [
            (SessionWaitingForBotError("s"), 409, "SESSION_WAITING_FOR_BOT"),
            (SessionEndedError("s"), 409, "SESSION_ENDED"),
            (SequenceConflictError("s", 3), 409, "MESSAGE_SEQUENCE_CONFLICT"),
            (SessionNotFoundError("s"), 404, "CHAT_SESSION_NOT_FOUND"),
        ],
    )
    def test_service_errors(
        self, client, api_prefix, mock_message_service, error, status_code, code
    ):
        mock_message_service.append_user_message.side_effect = error

        response = client.post(
            f"{api_prefix}/message", json={"session_id": str(uuid4()), "message": "Hello there"}
        )

        assert response.status_code == status_code
        body = response.json()
        assert body["success"] is False
        assert body["code"] == code
        assert body["message"] == error.message


class TestRetry:
    def test_retry(self, client, api_prefix, api_user_id, mock_message_service, make_safe_message):
        session_id = uuid4()
        stored = make_safe_message(session_id=session_id, sequence_number=1)
        mock_message_service.retry_failed_session.return_value = stored

        response = client.post(
            f"{api_prefix}/message/retry",
            json={"session_id": str(session_id), "message": "Hello there"},
        )

        assert response.status_code == 201
        assert response.json()["code"] == "CHAT_SESSION_RETRIED"
        mock_message_service.retry_failed_session.assert_awaited_once_with(
            api_user_id, session_id, "Hello there"
        )

    def test_retry_non_failed(self, client, api_prefix, mock_message_service):
        mock_message_service.retry_failed_session.side_effect = SessionNotFailedError(
            "s", "active"
        )

        response = client.post(
            f"{api_prefix}/message/retry",
            json={"session_id": str(uuid4()), "message": "Hello there"},
        )

        assert response.status_code == 409
        assert response.json()["code"] == "SESSION_NOT_FAILED"

    def test_retry_validates_text(self, client, api_prefix, mock_message_service):
        response = client.post(
            f"{api_prefix}/message/retry",
            json={"session_id": str(uuid4()), "message": "999"},
        )

        assert response.status_code == 400
        mock_message_service.retry_failed_session.assert_not_awaited()


class TestListMessages:
    def test_list_messages(
        self, client, api_prefix, api_user_id, mock_message_service, make_safe_message
    ):
        session_id = uuid4()
        newest = make_safe_message(session_id=session_id, role=MessageRole.BOT, sequence_number=1)
        oldest = make_safe_message(session_id=session_id, sequence_number=0)
        mock_message_service.list_messages.return_value = PaginatedSessionMessages(
            messages=[newest, oldest],
            has_more=True,
            next_cursor=oldest.id,
            session_status=SessionStatus.ACTIVE,
        )

        response = client.get(f"{api_prefix}/message/{session_id}?limit=2")

        assert response.status_code == 200
        body = response.json()
        assert body["code"] == "CHAT_MESSAGES_RETRIEVED"
        assert [m["sequence_number"] for m in body["data"]["messages"]] == [1, 0]
        assert body["data"]["has_more"] is True
        assert body["data"]["next_cursor"] == str(oldest.id)
        assert body["data"]["session_status"] == "active"
        mock_message_service.list_messages.assert_awaited_once_with(
            api_user_id, session_id, limit=2, cursor=None
        )

    @pytest.mark.parametrize(
        "query,expected_limit",
        [("", 10), ("?limit=abc", 10), ("?limit=0", 10), ("?limit=51", 10), ("?limit=50", 50)],
    )
    def test_limit_falls_back_to_default(
        self, client, api_prefix, mock_message_service, query, expected_limit
    ):
        mock_message_service.list_messages.return_value = PaginatedSessionMessages(
            messages=[], session_status=SessionStatus.ACTIVE
        )

        response = client.get(f"{api_prefix}/message/{uuid4()}{query}")

        assert response.status_code == 200
        assert mock_message_service.list_messages.await_args.kwargs["limit"] == expected_limit

    def test_cursor_is_passed_through(self, client, api_prefix, mock_message_service):
        cursor = uuid4()
        mock_message_service.list_messages.return_value = PaginatedSessionMessages(
            messages=[], session_status=SessionStatus.ACTIVE
        )

        client.get(f"{api_prefix}/message/{uuid4()}?last_message_id={cursor}")

        assert mock_message_service.list_messages.await_args.kwargs["cursor"] == cursor

    def test_malformed_cursor_is_ignored(self, client, api_prefix, mock_message_service):
        mock_message_service.list_messages.return_value = PaginatedSessionMessages(
            messages=[], session_status=SessionStatus.ACTIVE
        )

        response = client.get(f"{api_prefix}/message/{uuid4()}?last_message_id=garbage")

        assert response.status_code == 200
        assert mock_message_service.list_messages.await_args.kwargs["cursor"] is None


class TestBotResponse:
    def test_pending(self, client, api_prefix, mock_message_service):
        mock_message_service.get_bot_reply.return_value = BotReplyResult(
            session_status=SessionStatus.WAITING_FOR_BOT
        )

        response = client.get(f"{api_prefix}/message/{uuid4()}/bot-response")

        assert response.status_code == 200
        body = response.json()
        assert body["code"] == "BOT_RESPONSE_PENDING"
        assert body["data"]["message"] is None
        assert body["data"]["session_status"] == "waiting_for_bot"

    def test_reply_ready(
        self, client, api_prefix, api_user_id, mock_message_service, make_safe_message
    ):
        session_id = uuid4()
        reference = uuid4()
        reply = make_safe_message(
            session_id=session_id, role=MessageRole.BOT, sequence_number=1, text="I'm listening"
        )
        mock_message_service.get_bot_reply.return_value = BotReplyResult(
            message=reply, session_status=SessionStatus.ACTIVE
        )

        response = client.get(
            f"{api_prefix}/message/{session_id}/bot-response?latest_user_message_id={reference}"
        )

        assert response.status_code == 200
        body = response.json()
        assert body["code"] == "BOT_RESPONSE_RETRIEVED"
        assert body["data"]["message"]["message"] == "I'm listening"
        assert body["data"]["session_status"] == "active"
        mock_message_service.get_bot_reply.assert_awaited_once_with(
            api_user_id, session_id, latest_user_message_id=reference
        )

    def test_missing_session_reports_no_status(self, client, api_prefix, mock_message_service):
        mock_message_service.get_bot_reply.return_value = BotReplyResult()

        response = client.get(f"{api_prefix}/message/{uuid4()}/bot-response")

        assert response.status_code == 200
        assert response.json()["data"] == {"message": None, "session_status": None}
