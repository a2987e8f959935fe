# =============================================================================
# 키워드 기반 검색기 (Lexical Retriever)
# =============================================================================
# 질의 토큰이 질문/태그/답변에 부분 문자열로 포함되는지로 점수를 매긴다.
#
# 두 가지 점수 체계:
#   - find_relevant   : 그라운딩용 상위 K개 (정의 질문 보너스 포함)
#   - find_best_answer: 로컬 폴백용 엄격 점수 (내용어 >> 일반 질문어)
#
# 정렬 규칙:
#   질문이 질의와 정확히 같은 엔트리 -> 점수 내림차순 -> 코퍼스 순서.
# =============================================================================

from __future__ import annotations

import re
from typing import FrozenSet, Iterable, List, Optional, Sequence

from kelurahan_ai.ai_core.common.nlp.text_utils import strip_punctuation, tokenize
from kelurahan_ai.ai_core.domain.knowledge_entry import VOCABULARY_CATEGORY, KnowledgeEntry
from kelurahan_ai.ai_core.domain.retrieval_item import RetrievalItem

MIN_TOKEN_LENGTH = 3

DEFINITION_RE = re.compile(r"^(apa|apakah)\s+(itu|kepanjangan|arti)\s+", re.IGNORECASE)
DEFINITION_TERM_RE = re.compile(r"(?:apa|apakah)\s+(?:itu|kepanjangan|arti)\s+(.+?)(?:\?|$)", re.IGNORECASE)
TERMINOLOGY_CATEGORIES: FrozenSet[str] = frozenset({"istilah", VOCABULARY_CATEGORY})

DEFINITION_BONUS = 15
TERMINOLOGY_BONUS = 20
QUESTION_WEIGHT = 2
TAG_WEIGHT = 3
ANSWER_WEIGHT = 1
PHRASE_BONUS = 10

GENERIC_WORDS: FrozenSet[str] = frozenset(
    {
        "bagaimana", "gimana", "cara", "apa", "apakah", "dimana", "mana", "kapan",
        "berapa", "siapa", "kenapa", "mengapa", "yang", "untuk", "dan", "atau", "di",
        "ke", "dari", "saya", "aku", "mau", "ingin", "bisa", "boleh", "tolong",
        "syarat", "persyaratan", "itu", "ini", "dengan", "adalah", "buat", "mohon",
        # 민원 요청 동사: 주제어 없이 이것만으로는 매칭하지 않는다
        "membuat", "bikin", "mengurus", "urus", "membayar", "bayar", "mengajukan",
        "mendapatkan", "perlu", "harus",
    }
)
STRICT_QUESTION_WEIGHT = 10
STRICT_TAG_WEIGHT = 8
STRICT_ANSWER_WEIGHT = 2
GENERIC_WEIGHT = 1
STRICT_EXACT_BONUS = 100
STRICT_SUBSTRING_BONUS = 30


def extract_definition_term(query: str) -> Optional[str]:
    """
    @param query 사용자 질의.
    @returns "apa itu X" 형태면 소문자 X, 아니면 None.
    """
    text = (query or "").strip()
    if not DEFINITION_RE.match(text):
        return None
    match = DEFINITION_TERM_RE.search(text)
    if not match:
        return None
    term = match.group(1).strip().lower()
    return term or None


def is_terminology(entry: KnowledgeEntry) -> bool:
    """
    @param entry 지식 엔트리.
    @returns 용어 설명 카테고리 여부.
    """
    return (entry.category or "").strip().lower() in TERMINOLOGY_CATEGORIES


def _is_exact(entry: KnowledgeEntry, stripped_query: str) -> bool:
    """
    @param entry 지식 엔트리.
    @param stripped_query 문장부호를 제거한 질의.
    @returns 문장부호/대소문자/공백을 무시했을 때 질문과 질의가 같은지 여부.
    """
    return bool(stripped_query) and strip_punctuation(entry.question) == stripped_query


def score_entry(entry: KnowledgeEntry, query: str, tokens: Sequence[str], term: Optional[str] = None) -> int:
    """
    @param entry 점수를 매길 엔트리.
    @param query 소문자 질의 원문.
    @param tokens 점수 계산 대상 토큰 (길이 3 이상).
    @param term 정의 질문 용어 (없으면 None).
    @returns 그라운딩용 점수.
    """
    question = entry.question.lower()
    answer = entry.answer.lower()
    tags = " ".join(entry.tags).lower()

    score = 0
    if term and term in question:
        score += TERMINOLOGY_BONUS if is_terminology(entry) else DEFINITION_BONUS
    for token in tokens:
        if token in question:
            score += QUESTION_WEIGHT
        if token in tags:
            score += TAG_WEIGHT
        if token in answer:
            score += ANSWER_WEIGHT
    if query and query in question:
        score += PHRASE_BONUS
    return score


def rank_relevant(query: str, corpus: Iterable[KnowledgeEntry], max_results: int = 5) -> List[RetrievalItem]:
    """
    @param query 사용자 질의.
    @param corpus 지식 코퍼스.
    @param max_results 최대 결과 수.
    @returns 점수가 붙은 상위 결과.
    """
    lowered = " ".join((query or "").lower().split())
    if not lowered or max_results <= 0:
        return []
    tokens = tokenize(lowered, min_length=MIN_TOKEN_LENGTH)
    term = extract_definition_term(query)
    stripped_query = strip_punctuation(lowered)

    ranked = []
    for position, entry in enumerate(corpus):
        if not entry.has_question:
            continue
        score = score_entry(entry, lowered, tokens, term)
        exact = _is_exact(entry, stripped_query)
        if score <= 0 and not exact:
            continue
        ranked.append((not exact, -score, position, RetrievalItem(entry=entry, score=score, exact=exact)))
    ranked.sort(key=lambda row: row[:3])
    return [row[3] for row in ranked[:max_results]]


def find_relevant(query: str, corpus: Iterable[KnowledgeEntry], max_results: int = 5) -> List[KnowledgeEntry]:
    """
    @param query 사용자 질의.
    @param corpus 지식 코퍼스.
    @param max_results 최대 결과 수.
    @returns 관련도 순 엔트리 (빈 질의/코퍼스면 빈 리스트).
    """
    return [item.entry for item in rank_relevant(query, corpus, max_results)]


def build_grounding(entries: Sequence[KnowledgeEntry]) -> str:
    """
    @param entries 그라운딩에 사용할 엔트리.
    @returns "DATA REFERENSI:" 블록 (엔트리가 없으면 빈 문자열).
    """
    if not entries:
        return ""
    blocks = [f"Q: {entry.question}\nA: {entry.answer}" for entry in entries]
    return "DATA REFERENSI:\n" + "\n---\n".join(blocks)


def strict_score(entry: KnowledgeEntry, stripped_query: str, tokens: Sequence[str]) -> int:
    """
    내용어가 일치해야만 양수 점수를 준다. 일반 질문어만 겹치는 엔트리는 0점.

    @param entry 점수를 매길 엔트리.
    @param stripped_query 문장부호를 제거한 질의.
    @param tokens 질의 토큰.
    @returns 엄격 점수.
    """
    if not entry.answer.strip():
        return 0
    question = strip_punctuation(entry.question)
    answer = entry.answer.lower()
    tags = " ".join(entry.tags).lower()

    score = 0
    content_hit = False
    for token in tokens:
        if token in GENERIC_WORDS:
            if token in question:
                score += GENERIC_WEIGHT
            continue
        if len(token) < MIN_TOKEN_LENGTH:
            continue
        if token in question:
            score += STRICT_QUESTION_WEIGHT
            content_hit = True
        if token in tags:
            score += STRICT_TAG_WEIGHT
            content_hit = True
        if token in answer:
            score += STRICT_ANSWER_WEIGHT
            content_hit = True

    bonus = 0
    if stripped_query and question:
        if question == stripped_query:
            bonus = STRICT_EXACT_BONUS
        elif stripped_query in question:
            bonus = STRICT_SUBSTRING_BONUS
    if not content_hit and not bonus:
        return 0
    return score + bonus


def find_best_answer(query: str, corpus: Iterable[KnowledgeEntry]) -> Optional[KnowledgeEntry]:
    """
    @param query 사용자 질의.
    @param corpus 지식 코퍼스.
    @returns 엄격 점수가 가장 높은 엔트리 (동점이면 코퍼스 순서), 없으면 None.
    """
    stripped_query = strip_punctuation(query)
    if not stripped_query:
        return None
    tokens = tokenize(stripped_query)
    best: Optional[KnowledgeEntry] = None
    best_score = 0
    for entry in corpus:
        if not entry.has_question:
            continue
        score = strict_score(entry, stripped_query, tokens)
        if score > best_score:
            best = entry
            best_score = score
    return best
