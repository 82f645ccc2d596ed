"""
Tests for the batch insight processor.

Tests cover:
- Selecting completed conversations without insights
- Batch processing and per-conversation error isolation
- Single conversation processing
"""

from datetime import timedelta
from uuid import uuid4

import pytest

from support_service.domain.enums import ConversationStatus
from support_service.infrastructure.database.base_model import utcnow
from support_service.infrastructure.database.models import ConversationMessage
from support_service.infrastructure.database.repositories import InsightRepository
from support_service.services.insights import FAILED_LABEL, HEURISTIC_MODEL, InsightProcessor, KeywordAnalyzer
from tests.factories import ConversationFactory


class ExplodingAnalyzer(KeywordAnalyzer):
    """Fails for one chosen conversation, analyzes the rest normally."""

    def __init__(self, failing_id):
        self.failing_id = failing_id

    async def analyze(self, conversation, messages):
        if conversation.id == self.failing_id:
            raise RuntimeError("model timed out")
        return await super().analyze(conversation, messages)


async def completed(db_session, minutes_ago: int = 10, **fields):
    return await ConversationFactory.create_async(
        db_session,
        status=ConversationStatus.COMPLETED,
        completed_at=utcnow() - timedelta(minutes=minutes_ago),
        **fields,
    )


async def add_message(db_session, conversation, content: str) -> None:
    db_session.add(
        ConversationMessage(
            conversation_id=conversation.id,
            bot_framework_conversation_id=conversation.reference,
            role="user",
            content=content,
        )
    )
    await db_session.commit()


@pytest.fixture
def processor(db_session, test_settings):
    return InsightProcessor(db_session, settings=test_settings)


class TestUnprocessed:
    async def test_only_completed_without_insight(self, processor, db_session):
        older = await completed(db_session, minutes_ago=30)
        newer = await completed(db_session, minutes_ago=5)
        await ConversationFactory.create_async(db_session)
        analyzed = await completed(db_session)
        await processor.process_single(analyzed.id)

        pending = await processor.unprocessed()

        assert [c.id for c in pending] == [older.id, newer.id]


class TestProcessCompleted:
    async def test_nothing_to_do(self, processor):
        assert await processor.process_completed() == {"found": 0, "processed": 0, "errors": 0}

    async def test_stores_insight_per_conversation(self, processor, db_session):
        first = await completed(db_session)
        second = await completed(db_session)
        await add_message(db_session, first, "Thanks, that was great")

        summary = await processor.process_completed(batch_size=1)

        assert summary == {"found": 2, "processed": 2, "errors": 0}
        insights = InsightRepository(db_session)
        assert await insights.exists_for(first.id)
        assert await insights.exists_for(second.id)
        assert await processor.process_completed() == {"found": 0, "processed": 0, "errors": 0}

    async def test_analysis_failure_is_stored_as_failed_insight(self, db_session, test_settings):
        broken = await completed(db_session)
        healthy = await completed(db_session)
        processor = InsightProcessor(db_session, analyzer=ExplodingAnalyzer(broken.id), settings=test_settings)

        summary = await processor.process_completed()

        assert summary["processed"] == 2
        rows = {row.conversation_id: row for row in await InsightRepository(db_session).get_many()}
        assert rows[broken.id].sentiment_label == FAILED_LABEL
        assert rows[broken.id].warnings == ["Analysis failed: model timed out"]
        assert rows[healthy.id].processing_model == HEURISTIC_MODEL


class TestProcessSingle:
    async def test_processes_once(self, processor, db_session):
        conversation = await completed(db_session)

        assert await processor.process_single(conversation.id) is True
        assert await processor.process_single(conversation.id) is False

    async def test_active_conversation_is_skipped(self, processor, bot_conversation):
        assert await processor.process_single(bot_conversation.id) is False

    async def test_unknown_conversation(self, processor):
        assert await processor.process_single(uuid4()) is False
