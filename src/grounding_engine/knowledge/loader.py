"""Built-in grounding knowledge and conversation capture."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from uuid import uuid4

from grounding_engine.config.constants import (
    ASSISTANT_RESPONSES,
    FACTS,
    IMPORTANCE_LEVELS,
    KNOWLEDGE,
    USER_MESSAGES,
)
from grounding_engine.models.domain import Record
from grounding_engine.observability.logger import get_logger
from grounding_engine.vectorstore.memory_store import VectorStore

logger = get_logger("knowledge_loader")


@dataclass(frozen=True)
class KnowledgeEntry:
    id: str
    collection: str
    content: str
    category: str
    importance: str = "medium"
    source: str = "builtin"


BUILTIN_KNOWLEDGE: tuple[KnowledgeEntry, ...] = (
    KnowledgeEntry(
        "guidance-reflect-feelings", KNOWLEDGE,
        "Reflect the feelings the person has actually expressed, in their own words, "
        "rather than attributing emotions they have not described.",
        "therapeutic_guidance", "critical",
    ),
    KnowledgeEntry(
        "guidance-no-false-memory", KNOWLEDGE,
        "Only refer to earlier parts of a conversation that actually happened; never claim "
        "to remember details the person has not shared.",
        "therapeutic_guidance", "critical",
    ),
    KnowledgeEntry(
        "guidance-crisis-focus", KNOWLEDGE,
        "When someone discloses thoughts of suicide or self-harm, keep the response focused "
        "on their safety and offer crisis resources such as the 988 Suicide & Crisis Lifeline.",
        "crisis_protocol", "critical",
    ),
    KnowledgeEntry(
        "guidance-depression-support", KNOWLEDGE,
        "When supporting someone with depression, acknowledge their feelings without "
        "judgment and encourage professional help.",
        "therapeutic_guidance", "high",
    ),
    KnowledgeEntry(
        "guidance-anxiety-support", KNOWLEDGE,
        "Supporting someone with anxiety involves validating their feelings while not "
        "reinforcing avoidance behaviors.",
        "therapeutic_guidance", "high",
    ),
    KnowledgeEntry(
        "guidance-open-questions", KNOWLEDGE,
        "Open-ended questions invite the person to explore their experience at their own pace.",
        "therapeutic_guidance", "medium",
    ),
    KnowledgeEntry(
        "fact-depression-definition", FACTS,
        "Depression is a serious mental health condition characterized by persistent sadness, "
        "loss of interest in activities, and can include feelings of worthlessness and hopelessness.",
        "depression", "high",
    ),
    KnowledgeEntry(
        "fact-depression-prevalence", FACTS,
        "Depression affects approximately 280 million people worldwide and is a leading cause of disability.",
        "depression", "medium",
    ),
    KnowledgeEntry(
        "fact-anxiety-definition", FACTS,
        "Anxiety disorders are characterized by persistent, excessive worry and fear about everyday situations.",
        "anxiety", "high",
    ),
    KnowledgeEntry(
        "fact-anxiety-techniques", FACTS,
        "Techniques like deep breathing, mindfulness, and cognitive behavioral therapy can help manage anxiety.",
        "anxiety", "medium",
    ),
    KnowledgeEntry(
        "fact-stress-definition", FACTS,
        "Stress is the body's response to pressure from difficult or challenging situations.",
        "stress", "medium",
    ),
    KnowledgeEntry(
        "fact-chronic-stress", FACTS,
        "Chronic stress can lead to various physical and mental health problems including anxiety and depression.",
        "stress", "medium",
    ),
    KnowledgeEntry(
        "fact-stress-management", FACTS,
        "Stress management techniques include exercise, mindfulness, social connection, "
        "and setting healthy boundaries.",
        "stress", "low",
    ),
    KnowledgeEntry(
        "fact-988-lifeline", FACTS,
        "The 988 Suicide & Crisis Lifeline is available 24/7 by calling or texting 988 in the United States.",
        "crisis_resources", "critical",
    ),
    KnowledgeEntry(
        "fact-samhsa-helpline", FACTS,
        "The SAMHSA National Helpline at 1-800-662-4357 offers free, confidential treatment "
        "referral for substance use.",
        "crisis_resources", "high",
    ),
    KnowledgeEntry(
        "fact-neda", FACTS,
        "The National Eating Disorders Association (NEDA) provides support and resources for "
        "people affected by eating disorders.",
        "crisis_resources", "high",
    ),
)


class KnowledgeLoader:
    def __init__(self, store: VectorStore, embedder) -> None:
        self._store = store
        self._embedder = embedder

    async def load_builtin(self, entries: tuple[KnowledgeEntry, ...] = BUILTIN_KNOWLEDGE) -> int:
        """Embed and insert entries into every target collection that is still empty."""
        by_collection: dict[str, list[KnowledgeEntry]] = {}
        for entry in entries:
            by_collection.setdefault(entry.collection, []).append(entry)

        loaded = 0
        for name, group in by_collection.items():
            collection = self._store.collection(name)
            if collection.size:
                logger.debug("knowledge_already_loaded", collection=name, size=collection.size)
                continue
            vectors = await self._embedder.embed_texts([e.content for e in group])
            records = [
                Record(
                    id=e.id,
                    text=e.content,
                    vector=v,
                    metadata={
                        "category": e.category,
                        "importance": IMPORTANCE_LEVELS.get(e.importance, IMPORTANCE_LEVELS["medium"]),
                        "source": e.source,
                    },
                )
                for e, v in zip(group, vectors)
            ]
            await collection.insert_many(records)
            loaded += len(records)

        logger.info("knowledge_loaded", records=loaded, collections=len(by_collection))
        return loaded

    async def add_conversation_exchange(self, user_input: str, response: str) -> bool:
        """Store one user message and the reply given to it. Returns False on failure."""
        try:
            timestamp = datetime.now(timezone.utc).isoformat()
            exchange_id = str(uuid4())
            user_vec, response_vec = await self._embedder.embed_texts([user_input, response])
            await self._store.collection(USER_MESSAGES).insert(
                Record(
                    id=f"{exchange_id}-user",
                    text=user_input,
                    vector=user_vec,
                    metadata={"role": "user", "timestamp": timestamp, "exchange_id": exchange_id},
                )
            )
            await self._store.collection(ASSISTANT_RESPONSES).insert(
                Record(
                    id=f"{exchange_id}-assistant",
                    text=response,
                    vector=response_vec,
                    metadata={"role": "assistant", "timestamp": timestamp, "exchange_id": exchange_id},
                )
            )
            logger.debug("conversation_exchange_added", exchange_id=exchange_id)
            return True
        except Exception as e:
            logger.warning("conversation_exchange_failed", error=str(e))
            return False
