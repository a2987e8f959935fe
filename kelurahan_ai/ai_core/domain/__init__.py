from kelurahan_ai.ai_core.domain.cache_entry import CacheEntry
from kelurahan_ai.ai_core.domain.chat_answer import ChatAnswer
from kelurahan_ai.ai_core.domain.chat_turn import ChatTurn
from kelurahan_ai.ai_core.domain.knowledge_entry import KnowledgeEntry
from kelurahan_ai.ai_core.domain.retrieval_item import RetrievalItem

__all__ = [
    "CacheEntry",
    "ChatAnswer",
    "ChatTurn",
    "KnowledgeEntry",
    "RetrievalItem",
]
