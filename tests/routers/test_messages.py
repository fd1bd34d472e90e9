from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from fastapi.testclient import TestClient

from linguachat.dependencies import get_message_pipeline
from linguachat.errors import (
    ConversationSyncError,
    InputValidationError,
    InvalidConversationStateError,
    MessageNotFoundError,
    NotAuthorizedError,
    SendTimeoutError,
)
from linguachat.main import app
from linguachat.models.api.languages import Language
from linguachat.models.api.messages import DisplayContent, MessageResponse
from linguachat.routers.streaming import snapshot_stream, sse_message

HEADERS = {"X-User-Id": "alice"}


class TestMessagesRouter:
    """Unit tests for the messages router endpoints."""

    @pytest.fixture
    def client(self) -> TestClient:
        """Test client for FastAPI app."""
        return TestClient(app)

    @pytest.fixture
    def pipeline(self):
        mock_pipeline = MagicMock()
        mock_pipeline.send = AsyncMock()
        mock_pipeline.edit = AsyncMock()
        mock_pipeline.delete = AsyncMock()
        app.dependency_overrides[get_message_pipeline] = lambda: mock_pipeline
        yield mock_pipeline
        app.dependency_overrides.clear()

    @pytest.fixture
    def sample_message(self) -> MessageResponse:
        return MessageResponse(
            id="m1",
            conversation_id="alice_bob",
            sender_id="alice",
            text="hello",
            sender_language=Language.EN,
            translated_text="hola",
            sent_at=datetime.now(timezone.utc),
        )

    def test_send_message(
        self, client: TestClient, pipeline, sample_message: MessageResponse
    ) -> None:
        pipeline.send.return_value = sample_message

        response = client.post(
            "/api/conversations/alice_bob/messages",
            json={"text": "hello"},
            headers=HEADERS,
        )

        assert response.status_code == 201
        assert response.json()["translated_text"] == "hola"
        pipeline.send.assert_awaited_once_with(
            "alice_bob", "alice", "hello", attachments=None, link_preview=None
        )

    def test_send_requires_user_header(self, client: TestClient, pipeline) -> None:
        response = client.post(
            "/api/conversations/alice_bob/messages", json={"text": "hello"}
        )
        assert response.status_code == 401
        pipeline.send.assert_not_awaited()

    @pytest.mark.parametrize(
        "error, status",
        [
            (InputValidationError("Message must have text, an attachment or a link preview"), 400),
            (NotAuthorizedError("not a participant"), 403),
            (InvalidConversationStateError("no receiver"), 409),
            (ConversationSyncError("alice_bob", "m1"), 503),
            (SendTimeoutError("Sending timed out"), 504),
        ],
    )
    def test_send_error_mapping(
        self, client: TestClient, pipeline, error: Exception, status: int
    ) -> None:
        pipeline.send.side_effect = error

        response = client.post(
            "/api/conversations/alice_bob/messages",
            json={"text": "hello"},
            headers=HEADERS,
        )

        assert response.status_code == status
        assert response.json()["detail"] == error.message

    def test_send_unexpected_error(self, client: TestClient, pipeline) -> None:
        pipeline.send.side_effect = RuntimeError("boom")

        response = client.post(
            "/api/conversations/alice_bob/messages",
            json={"text": "hello"},
            headers=HEADERS,
        )

        assert response.status_code == 500

    def test_send_rejects_oversized_attachment(self, client: TestClient, pipeline) -> None:
        response = client.post(
            "/api/conversations/alice_bob/messages",
            json={
                "attachments": [
                    {"type": "video", "url": "https://cdn/v.mp4", "name": "v.mp4", "size": 11 * 1024 * 1024}
                ]
            },
            headers=HEADERS,
        )
        assert response.status_code == 422

    def test_edit_message(
        self, client: TestClient, pipeline, sample_message: MessageResponse
    ) -> None:
        pipeline.edit.return_value = sample_message.model_copy(
            update={"text": "hello again", "edited": True}
        )

        response = client.patch(
            "/api/conversations/alice_bob/messages/m1",
            json={"text": "hello again"},
            headers=HEADERS,
        )

        assert response.status_code == 200
        assert response.json()["edited"] is True
        pipeline.edit.assert_awaited_once_with("alice_bob", "m1", "alice", "hello again")

    def test_edit_missing_message(self, client: TestClient, pipeline) -> None:
        pipeline.edit.side_effect = MessageNotFoundError("m9")

        response = client.patch(
            "/api/conversations/alice_bob/messages/m9",
            json={"text": "x"},
            headers=HEADERS,
        )

        assert response.status_code == 404

    def test_delete_message(self, client: TestClient, pipeline) -> None:
        response = client.delete(
            "/api/conversations/alice_bob/messages/m1", headers=HEADERS
        )

        assert response.status_code == 204
        pipeline.delete.assert_awaited_once_with("alice_bob", "m1", "alice")

    def test_list_messages(
        self, client: TestClient, sample_message: MessageResponse
    ) -> None:
        with patch(
            "linguachat.services.message_query_service.MessageQueryService.list_messages",
            new_callable=AsyncMock,
            return_value=[sample_message],
        ) as list_messages:
            response = client.get(
                "/api/conversations/alice_bob/messages",
                params={"limit": 20},
                headers=HEADERS,
            )

        assert response.status_code == 200
        assert [m["id"] for m in response.json()] == ["m1"]
        list_messages.assert_awaited_once_with("alice_bob", "alice", limit=20, offset=0)

    def test_list_messages_limit_bounds(self, client: TestClient) -> None:
        response = client.get(
            "/api/conversations/alice_bob/messages",
            params={"limit": 1001},
            headers=HEADERS,
        )
        assert response.status_code == 422

    def test_display_content(self, client: TestClient) -> None:
        with patch(
            "linguachat.services.message_query_service.MessageQueryService.get_display_content",
            new_callable=AsyncMock,
            return_value=DisplayContent(
                primary_text="hola",
                alternate_text="hello",
                alternate_label="Original",
                is_alternate_translation=False,
            ),
        ):
            response = client.get(
                "/api/conversations/alice_bob/messages/m1/display",
                headers={"X-User-Id": "bob"},
            )

        assert response.status_code == 200
        assert response.json()["primary_text"] == "hola"
        assert response.json()["alternate_label"] == "Original"

    def test_stream_rejects_non_participant(self, client: TestClient) -> None:
        with patch(
            "linguachat.services.conversation_registry.ConversationRegistry.get_for_participant",
            new_callable=AsyncMock,
            side_effect=NotAuthorizedError("not a participant"),
        ):
            response = client.get(
                "/api/conversations/bob_carol/messages/stream", headers=HEADERS
            )

        assert response.status_code == 403


class TestSnapshotStream:
    """Tests for the Server-Sent Event helpers."""

    def test_sse_message_format(self) -> None:
        assert sse_message({"a": 1}, event="snapshot") == 'event: snapshot\ndata: {"a": 1}\n\n'
        assert sse_message({"t": "ñ"}) == 'data: {"t": "ñ"}\n\n'

    @pytest.mark.asyncio
    async def test_stream_yields_snapshot_and_unsubscribes(self) -> None:
        message = MessageResponse(
            id="m1",
            conversation_id="alice_bob",
            sender_id="alice",
            text="hello",
            sender_language=Language.EN,
            sent_at=datetime(2026, 1, 1, tzinfo=timezone.utc),
        )
        request = MagicMock()
        request.is_disconnected = AsyncMock(side_effect=[False, True])
        unsubscribe = MagicMock()

        async def subscribe(on_update):
            on_update([message])
            return unsubscribe

        chunks = [
            chunk
            async for chunk in snapshot_stream(request, subscribe, "messages", keepalive=0.05)
        ]

        assert len(chunks) == 1
        assert chunks[0].startswith("event: snapshot\ndata: ")
        assert '"messages": [{"id": "m1"' in chunks[0]
        unsubscribe.assert_called_once()

    @pytest.mark.asyncio
    async def test_stream_sends_keepalive_when_idle(self) -> None:
        request = MagicMock()
        request.is_disconnected = AsyncMock(side_effect=[False, True])
        unsubscribe = MagicMock()

        async def subscribe(on_update):
            return unsubscribe

        chunks = [
            chunk
            async for chunk in snapshot_stream(request, subscribe, "messages", keepalive=0.01)
        ]

        assert chunks == [": keep-alive\n\n"]
        unsubscribe.assert_called_once()

    @pytest.mark.asyncio
    async def test_stalled_client_only_gets_latest_snapshot(self) -> None:
        def message(text: str) -> MessageResponse:
            return MessageResponse(
                id=text,
                conversation_id="alice_bob",
                sender_id="alice",
                text=text,
                sender_language=Language.EN,
                sent_at=datetime(2026, 1, 1, tzinfo=timezone.utc),
            )

        request = MagicMock()
        request.is_disconnected = AsyncMock(side_effect=[False, False, True])
        unsubscribe = MagicMock()

        async def subscribe(on_update):
            for text in ("one", "two", "three"):
                on_update([message(text)])
            return unsubscribe

        chunks = [
            chunk
            async for chunk in snapshot_stream(request, subscribe, "messages", keepalive=0.01)
        ]

        assert len(chunks) == 2
        assert '"id": "three"' in chunks[0]
        assert chunks[1] == ": keep-alive\n\n"
