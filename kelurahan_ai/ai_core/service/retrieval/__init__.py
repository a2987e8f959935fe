from kelurahan_ai.ai_core.service.retrieval.lexical_retriever import (
    build_grounding,
    find_best_answer,
    find_relevant,
    rank_relevant,
)
from kelurahan_ai.ai_core.service.retrieval.semantic_fallback import SemanticFallback

__all__ = [
    "SemanticFallback",
    "build_grounding",
    "find_best_answer",
    "find_relevant",
    "rank_relevant",
]
