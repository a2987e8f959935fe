from __future__ import annotations

import logging
import threading
from typing import Any, Dict, List, Optional, Sequence

from sklearn.feature_extraction.text import TfidfVectorizer
from sklearn.metrics.pairwise import cosine_similarity

from kelurahan_ai.ai_core.domain.knowledge_entry import KnowledgeEntry
from kelurahan_ai.ai_core.domain.retrieval_item import RetrievalItem
from kelurahan_ai.ai_core.service.retrieval.lexical_retriever import GENERIC_WORDS

logger = logging.getLogger(__name__)

DEFAULT_MIN_SIMILARITY = 0.35


def build_vectorizer() -> TfidfVectorizer:
    """
    일반 질문어/요청 동사를 불용어로 빼고 단어 1~2-gram으로 인덱싱합니다.
    주제어가 하나도 겹치지 않으면 유사도는 0이 됩니다.

    @returns {TfidfVectorizer} 학습 전 벡터라이저.
    """
    return TfidfVectorizer(
        analyzer="word",
        ngram_range=(1, 2),
        lowercase=True,
        stop_words=sorted(GENERIC_WORDS),
    )


class SemanticFallback:
    """원격 생성 실패 시 사용하는 로컬 TF-IDF 유사도 검색기."""

    def __init__(
        self,
        entries: Sequence[KnowledgeEntry],
        min_similarity: float = DEFAULT_MIN_SIMILARITY,
        enabled: bool = True,
    ) -> None:
        """
        코퍼스 질문+태그 텍스트로 주제어 TF-IDF 인덱스를 만듭니다.

        @param {Sequence[KnowledgeEntry]} entries - 인덱싱할 지식 엔트리.
        @param {float} min_similarity - 답변으로 인정할 최소 코사인 유사도.
        @param {bool} enabled - False면 항상 None을 반환합니다.
        @returns {None} 내부 인덱스를 구성합니다.
        """
        self.min_similarity = float(min_similarity)
        self.enabled = enabled
        self._vectorizer = build_vectorizer()
        self._matrix = None
        self._entries: List[KnowledgeEntry] = []
        self._lock = threading.Lock()
        self.rebuild(entries)

    @property
    def is_ready(self) -> bool:
        """
        @returns {bool} 인덱스가 구성되어 검색 가능한지 여부.
        """
        return self.enabled and self._matrix is not None

    def rebuild(self, entries: Sequence[KnowledgeEntry]) -> None:
        """
        코퍼스가 바뀌었을 때 인덱스를 다시 만듭니다.

        @param {Sequence[KnowledgeEntry]} entries - 인덱싱할 지식 엔트리.
        @returns {None} 인덱스를 교체합니다.
        """
        indexed = [entry for entry in entries if entry.has_question and entry.answer.strip()]
        if not self.enabled or not indexed:
            with self._lock:
                self._entries, self._matrix = [], None
            return
        texts = [f"{entry.question} {' '.join(entry.tags)}" for entry in indexed]
        vectorizer = build_vectorizer()
        try:
            matrix = vectorizer.fit_transform(texts)
        except ValueError as exc:
            logger.warning("의미 기반 폴백 인덱스 구성 실패", extra={"error": str(exc)})
            with self._lock:
                self._entries, self._matrix = [], None
            return
        with self._lock:
            self._vectorizer, self._matrix, self._entries = vectorizer, matrix, indexed
        logger.info("의미 기반 폴백 인덱스 구성 완료", extra={"entries": len(indexed)})

    def search(self, query: str) -> Optional[RetrievalItem]:
        """
        가장 유사한 엔트리가 임계값 이상이면 반환합니다.

        @param {str} query - 사용자 질의.
        @returns {Optional[RetrievalItem]} 최고 유사도 엔트리 또는 None.
        """
        if not self.is_ready or not (query or "").strip():
            return None
        with self._lock:
            vectorizer, matrix, entries = self._vectorizer, self._matrix, self._entries
        scores = cosine_similarity(vectorizer.transform([query]), matrix).flatten()
        best_index = int(scores.argmax())
        best_score = float(scores[best_index])
        if best_score <= 0.0 or best_score < self.min_similarity:
            logger.debug("의미 기반 폴백 임계값 미달", extra={"score": round(best_score, 3)})
            return None
        return RetrievalItem(entry=entries[best_index], score=best_score)

    def stats(self) -> Dict[str, Any]:
        """
        @returns {Dict[str, Any]} 상태 점검용 정보.
        """
        return {
            "enabled": self.enabled,
            "ready": self.is_ready,
            "entries": len(self._entries),
            "min_similarity": self.min_similarity,
        }
