from dataclasses import dataclass

from kelurahan_ai.ai_core.domain.knowledge_entry import KnowledgeEntry


@dataclass(frozen=True)
class RetrievalItem:
    """검색 점수가 붙은 지식 엔트리."""

    entry: KnowledgeEntry
    score: float
    exact: bool = False
