from kelurahan_ai.ai_core.repository.knowledge_store import KnowledgeStore, load_knowledge
from kelurahan_ai.ai_core.repository.response_cache import (
    DjangoResponseCache,
    FallbackResponseCache,
    InMemoryResponseCache,
    ResponseCache,
    build_response_cache,
    make_cache_key,
)

__all__ = [
    "DjangoResponseCache",
    "FallbackResponseCache",
    "InMemoryResponseCache",
    "KnowledgeStore",
    "ResponseCache",
    "build_response_cache",
    "load_knowledge",
    "make_cache_key",
]
