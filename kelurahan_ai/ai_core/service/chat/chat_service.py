# =============================================================================
# 챗 응답 오케스트레이터 (Chat Service)
# =============================================================================
# 한 요청을 다음 단계 순서대로 처리하며, 처음 답을 만든 단계에서 끝난다.
#
#   1. cache     : 정규화 질의 키로 캐시 조회 (cached=True)
#   2. remote    : 키워드 검색 결과를 그라운딩으로 넣어 Gemini 생성
#   3. semantic  : 로컬 TF-IDF 유사도 폴백
#   4. lexical   : 엄격한 키워드 점수 폴백
#   5. decline   : 고정 안내 문구
#
# 캐시는 2~4단계 답변에 대해서만, 요청당 최대 한 번 기록한다.
# 원격 계층의 모든 예외는 여기서 잡혀 다음 단계로 넘어간다.
# =============================================================================

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Sequence

from kelurahan_ai.ai_core.common.errors import NoCredentials, RemoteGenerationError
from kelurahan_ai.ai_core.domain.chat_answer import ChatAnswer
from kelurahan_ai.ai_core.domain.chat_turn import ChatTurn
from kelurahan_ai.ai_core.domain.knowledge_entry import KnowledgeEntry
from kelurahan_ai.ai_core.repository.knowledge_store import KnowledgeStore
from kelurahan_ai.ai_core.repository.response_cache import DEFAULT_PREFIX, ResponseCache, make_cache_key
from kelurahan_ai.ai_core.service.chat.prompt_builder import DECLINE_MESSAGE, build_system_instruction
from kelurahan_ai.ai_core.service.generation.remote_generator import RemoteGenerator
from kelurahan_ai.ai_core.service.retrieval.lexical_retriever import build_grounding, find_best_answer, find_relevant
from kelurahan_ai.ai_core.service.retrieval.semantic_fallback import SemanticFallback

logger = logging.getLogger(__name__)

STAGE_CACHE = "cache"
STAGE_REMOTE = "remote"
STAGE_SEMANTIC = "semantic"
STAGE_LEXICAL = "lexical"
STAGE_DECLINE = "decline"

SEMANTIC_MODEL_LABEL = "local-rag-fallback"
LEXICAL_MODEL_LABEL = "keyword-fallback"
DECLINE_MODEL_LABEL = "fallback"


class ChatService:
    """캐시/원격 생성/로컬 폴백을 순서대로 묶는 응답 서비스."""

    def __init__(
        self,
        knowledge: KnowledgeStore,
        cache: ResponseCache,
        generator: Optional[RemoteGenerator] = None,
        semantic: Optional[SemanticFallback] = None,
        top_k: int = 3,
        cache_prefix: str = DEFAULT_PREFIX,
        cache_ttl_seconds: Optional[int] = None,
    ) -> None:
        """
        @param {KnowledgeStore} knowledge - 지식 코퍼스 저장소.
        @param {ResponseCache} cache - 응답 캐시.
        @param {Optional[RemoteGenerator]} generator - 원격 생성기 (없으면 원격 단계 생략).
        @param {Optional[SemanticFallback]} semantic - 의미 기반 폴백 (없으면 단계 생략).
        @param {int} top_k - 그라운딩에 넣을 검색 결과 수.
        @param {str} cache_prefix - 캐시 키 네임스페이스.
        @param {Optional[int]} cache_ttl_seconds - 캐시 TTL (None이면 캐시 기본값).
        @returns {None} 서비스 구성 요소를 보관합니다.
        """
        self.knowledge = knowledge
        self.cache = cache
        self.generator = generator
        self.semantic = semantic
        self.top_k = top_k
        self.cache_prefix = cache_prefix
        self.cache_ttl_seconds = cache_ttl_seconds

    def answer(self, message: str, history: Sequence[ChatTurn] = ()) -> ChatAnswer:
        """
        질문 하나에 대한 최종 답변을 만듭니다. 어떤 경우에도 예외 없이 답변을 반환합니다.

        @param {str} message - 사용자 메시지 (검증 완료).
        @param {Sequence[ChatTurn]} history - 이전 대화 턴.
        @returns {ChatAnswer} 답변과 생성 단계 정보.
        """
        key = make_cache_key(message, prefix=self.cache_prefix)
        if key:
            cached = self.cache.get(key)
            if cached is not None:
                logger.info("캐시 적중", extra={"cache_key": key})
                return ChatAnswer.from_cache(cached)
            logger.debug("캐시 미스", extra={"cache_key": key})

        self._refresh_knowledge()
        corpus = self.knowledge.entries
        relevant = find_relevant(message, corpus, max_results=self.top_k)

        answer = (
            self._remote(message, history, relevant)
            or self._semantic(message)
            or self._lexical(message, corpus)
        )
        if answer is None:
            logger.info("모든 단계 실패, 안내 문구 반환", extra={"stage": STAGE_DECLINE})
            return ChatAnswer.from_text(DECLINE_MESSAGE, model=DECLINE_MODEL_LABEL, stage=STAGE_DECLINE)

        if key:
            self.cache.set(key, answer.cache_value(), self.cache_ttl_seconds)
        logger.info("응답 단계 결정", extra={"stage": answer.stage, "model": answer.model})
        return answer

    def _refresh_knowledge(self) -> None:
        """
        @returns {None} 파일이 바뀌었으면 코퍼스와 의미 인덱스를 갱신합니다.
        """
        if self.knowledge.refresh() and self.semantic is not None:
            self.semantic.rebuild(self.knowledge.entries)

    def _remote(
        self,
        message: str,
        history: Sequence[ChatTurn],
        relevant: List[KnowledgeEntry],
    ) -> Optional[ChatAnswer]:
        """
        @param {str} message - 사용자 메시지.
        @param {Sequence[ChatTurn]} history - 이전 대화 턴.
        @param {List[KnowledgeEntry]} relevant - 그라운딩용 검색 결과.
        @returns {Optional[ChatAnswer]} 원격 생성 답변 또는 실패 시 None.
        """
        if self.generator is None:
            return None
        instruction = build_system_instruction(build_grounding(relevant))
        try:
            result = self.generator.generate(message, history, system_instruction=instruction)
        except NoCredentials as exc:
            logger.info("원격 생성 생략", extra={"reason": str(exc)})
            return None
        except RemoteGenerationError as exc:
            logger.warning(
                "원격 생성 실패, 로컬 폴백으로 전환",
                extra={"error_type": type(exc).__name__, "model": exc.model, "error": str(exc)[:200]},
            )
            return None
        return ChatAnswer(
            model=result.model,
            stage=STAGE_REMOTE,
            output=result.to_output(),
            metadata={"attempts": result.attempts, "grounding": len(relevant)},
        )

    def _semantic(self, message: str) -> Optional[ChatAnswer]:
        """
        @param {str} message - 사용자 메시지.
        @returns {Optional[ChatAnswer]} 유사도 임계값을 넘은 답변 또는 None.
        """
        if self.semantic is None:
            return None
        match = self.semantic.search(message)
        if match is None:
            return None
        return ChatAnswer.from_text(
            match.entry.answer,
            model=SEMANTIC_MODEL_LABEL,
            stage=STAGE_SEMANTIC,
            metadata={"score": round(match.score, 3)},
        )

    def _lexical(self, message: str, corpus: Sequence[KnowledgeEntry]) -> Optional[ChatAnswer]:
        """
        @param {str} message - 사용자 메시지.
        @param {Sequence[KnowledgeEntry]} corpus - 지식 코퍼스.
        @returns {Optional[ChatAnswer]} 엄격 키워드 매칭 답변 또는 None.
        """
        entry = find_best_answer(message, corpus)
        if entry is None:
            return None
        return ChatAnswer.from_text(entry.answer, model=LEXICAL_MODEL_LABEL, stage=STAGE_LEXICAL)

    def status(self) -> Dict[str, Any]:
        """
        @returns {Dict[str, Any]} /status 응답용 구성 요소 상태.
        """
        payload: Dict[str, Any] = {
            "cache": self.cache.stats(),
            "data": self.knowledge.stats(),
            "semantic": self.semantic.stats() if self.semantic else {"enabled": False},
        }
        if self.generator is not None:
            payload["rate_limit"] = self.generator.limiter.snapshot()
            payload["models"] = self.generator.candidates()
            payload["keys"] = self.generator.keys.snapshot()
            payload["remote_enabled"] = self.generator.enabled
        else:
            payload["rate_limit"] = None
            payload["models"] = []
            payload["keys"] = {"total": 0, "current_index": 0, "keys": []}
            payload["remote_enabled"] = False
        return payload
