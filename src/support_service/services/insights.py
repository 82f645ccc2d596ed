"""
Post-conversation analysis.

``KeywordAnalyzer`` scores a transcript with word lists; ``InsightProcessor``
finds completed conversations without an insight and stores one for each.
Analyzer failures are stored too (label "Analysis Failed", model "error")
so a broken conversation is not retried forever.
"""

import logging
import re
import time
from collections import Counter
from typing import Optional, Protocol, Sequence
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from support_service.api.schemas.conversations import CreateInsightRequest
from support_service.config.settings import Settings, get_settings
from support_service.domain.enums import ConversationStatus
from support_service.infrastructure.database.base_model import utcnow
from support_service.infrastructure.database.models import Conversation, ConversationInsight, ConversationMessage
from support_service.infrastructure.database.repositories import (
    ConversationMessageRepository,
    ConversationRepository,
    InsightRepository,
)

logger = logging.getLogger(__name__)

HEURISTIC_MODEL = "keyword-heuristic"
FAILED_LABEL = "Analysis Failed"
FAILED_MODEL = "error"

POSITIVE_WORDS = frozenset(
    {"thanks", "thank", "great", "perfect", "resolved", "helpful", "excellent", "appreciate", "awesome", "works"}
)
NEGATIVE_WORDS = frozenset(
    {"angry", "terrible", "useless", "worst", "broken", "frustrated", "cancel", "complaint", "unacceptable", "refund"}
)
THEMES = {
    "Billing": {"bill", "billing", "invoice", "charge", "charged", "payment", "refund", "price"},
    "Technical": {"error", "crash", "bug", "broken", "login", "password", "app", "website"},
    "Account": {"account", "profile", "email", "address", "username"},
    "Delivery": {"delivery", "shipping", "order", "package", "tracking"},
    "Claims": {"claim", "claims", "policy", "cover", "coverage"},
}
_WORD = re.compile(r"[a-z']+")


class ConversationAnalyzer(Protocol):
    async def analyze(
        self,
        conversation: Conversation,
        messages: Sequence[ConversationMessage],
    ) -> CreateInsightRequest: ...


def sentiment_label(score: float) -> str:
    if score >= 0.25:
        return "Positive"
    if score <= -0.25:
        return "Negative"
    return "Neutral"


class KeywordAnalyzer:
    """Word-list sentiment and theme detection over customer messages."""

    async def analyze(
        self,
        conversation: Conversation,
        messages: Sequence[ConversationMessage],
    ) -> CreateInsightRequest:
        started = time.monotonic()
        customer_text = " ".join(m.content for m in messages if m.role == "user" and m.content)
        words = Counter(_WORD.findall(customer_text.lower()))

        positive = sum(count for word, count in words.items() if word in POSITIVE_WORDS)
        negative = sum(count for word, count in words.items() if word in NEGATIVE_WORDS)
        score = 0.0 if positive + negative == 0 else (positive - negative) / (positive + negative)

        themes = [name for name, keywords in THEMES.items() if any(word in words for word in keywords)]

        indicators = []
        if positive:
            indicators.append(f"{positive} positive expression(s)")
        if negative:
            indicators.append(f"{negative} negative expression(s)")

        recommendations = []
        if score <= -0.25:
            recommendations.append("Follow up with the customer")
        if conversation.is_escalated:
            recommendations.append("Review why the bot could not resolve this conversation")

        warnings = []
        if not customer_text:
            warnings.append("No customer messages to analyze")

        return CreateInsightRequest(
            sentiment_score=round(score, 3),
            sentiment_label=sentiment_label(score),
            key_themes=themes or ["General"],
            resolution_success=score >= 0 if customer_text else None,
            customer_satisfaction_indicators=indicators,
            recommendations=recommendations,
            processing_model=HEURISTIC_MODEL,
            processed_at=utcnow(),
            processing_duration_seconds=time.monotonic() - started,
            warnings=warnings,
        )


def failed_analysis(error: Exception) -> CreateInsightRequest:
    return CreateInsightRequest(
        sentiment_score=0.0,
        sentiment_label=FAILED_LABEL,
        processing_model=FAILED_MODEL,
        processed_at=utcnow(),
        processing_duration_seconds=0.0,
        warnings=[f"Analysis failed: {error}"[:1000]],
    )


class InsightProcessor:
    def __init__(
        self,
        session: AsyncSession,
        analyzer: Optional[ConversationAnalyzer] = None,
        settings: Optional[Settings] = None,
    ):
        self.session = session
        self.analyzer = analyzer or KeywordAnalyzer()
        self.settings = settings or get_settings()
        self.conversations = ConversationRepository(session)
        self.messages = ConversationMessageRepository(session)
        self.insights = InsightRepository(session)

    async def unprocessed(self, limit: Optional[int] = None) -> Sequence[Conversation]:
        """Completed conversations without an insight, oldest completion first."""
        has_insight = select(ConversationInsight.conversation_id)
        query = (
            select(Conversation)
            .where(
                Conversation.status == ConversationStatus.COMPLETED,
                Conversation.completed_at.is_not(None),
                Conversation.id.not_in(has_insight),
            )
            .order_by(Conversation.completed_at)
            .limit(limit or self.settings.insights_max_conversations)
        )
        return await self.conversations.all(query)

    async def _analyze(self, conversation: Conversation) -> CreateInsightRequest:
        try:
            messages = await self.messages.list_for_conversation(conversation.id)
            return await self.analyzer.analyze(conversation, messages)
        except Exception as e:
            logger.exception("Failed to analyze conversation", extra={"conversation_id": str(conversation.id)})
            return failed_analysis(e)

    async def _store(self, conversation: Conversation, analysis: CreateInsightRequest) -> ConversationInsight:
        return await self.insights.create(
            ConversationInsight(
                conversation_id=conversation.id,
                tenant_id=conversation.tenant_id,
                **analysis.model_dump(),
            )
        )

    async def process_completed(self, batch_size: Optional[int] = None) -> dict[str, int]:
        """
        Analyze every unprocessed conversation, ``batch_size`` at a time.

        Returns ``{"found": n, "processed": n, "errors": n}``.
        """
        batch_size = batch_size or self.settings.insights_batch_size
        pending = list(await self.unprocessed())
        if not pending:
            logger.info("No unprocessed completed conversations found")
            return {"found": 0, "processed": 0, "errors": 0}

        processed = errors = 0
        for start in range(0, len(pending), batch_size):
            batch = pending[start:start + batch_size]
            analyses = [(conversation, await self._analyze(conversation)) for conversation in batch]
            for conversation, analysis in analyses:
                try:
                    async with self.session.begin_nested():
                        await self._store(conversation, analysis)
                    processed += 1
                except Exception:
                    errors += 1
                    logger.exception(
                        "Failed to save conversation insight",
                        extra={"conversation_id": str(conversation.id)},
                    )

        logger.info(
            "Completed conversations processed",
            extra={"found": len(pending), "processed": processed, "errors": errors},
        )
        return {"found": len(pending), "processed": processed, "errors": errors}

    async def process_single(self, conversation_id: UUID) -> bool:
        """Analyze one completed conversation. False when it is missing, not completed or already analyzed."""
        conversation = await self.conversations.get(conversation_id)
        if conversation is None or conversation.status != ConversationStatus.COMPLETED:
            logger.warning("Conversation not found or not completed", extra={"conversation_id": str(conversation_id)})
            return False
        if await self.insights.exists_for(conversation_id):
            logger.info("Conversation already has insights", extra={"conversation_id": str(conversation_id)})
            return False

        messages = await self.messages.list_for_conversation(conversation.id)
        analysis = await self.analyzer.analyze(conversation, messages)
        await self._store(conversation, analysis)
        logger.info("Conversation insight stored", extra={"conversation_id": str(conversation_id)})
        return True
