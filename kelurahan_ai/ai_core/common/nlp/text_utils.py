import re
from typing import Iterable, List

_PUNCT_RE = re.compile(r"[^\w\s]", re.UNICODE)
_EDGE_PUNCT_RE = re.compile(r"^[^\w]+|[^\w]+$", re.UNICODE)
_WHITESPACE_RE = re.compile(r"\s+")


def normalize_text(text: str) -> str:
    """
    @param text 정규화할 원문.
    @returns 공백을 정리한 문자열.
    """
    return " ".join(str(text or "").strip().split())


def normalize_query(text: str) -> str:
    """
    캐시 키/정확 일치 비교용 질의 정규화 (소문자 + 공백 축약 + trim).

    @param text 사용자 질의.
    @returns 정규화된 질의.
    """
    return _WHITESPACE_RE.sub(" ", str(text or "").lower()).strip()


def strip_punctuation(text: str) -> str:
    """
    @param text 원문.
    @returns 소문자화 후 문장부호를 제거하고 공백을 축약한 문자열.
    """
    return normalize_query(_PUNCT_RE.sub("", str(text or "").lower()))


def tokenize(text: str, min_length: int = 1) -> List[str]:
    """
    공백 기준으로 나눈 뒤 토큰 양끝의 문장부호를 제거한다.

    @param text 토큰화할 문자열.
    @param min_length 최소 토큰 길이.
    @returns 소문자 토큰 리스트.
    """
    tokens = []
    for raw in str(text or "").lower().split():
        token = _EDGE_PUNCT_RE.sub("", raw)
        if len(token) >= min_length:
            tokens.append(token)
    return tokens


def jaccard_similarity(a: Iterable[str], b: Iterable[str]) -> float:
    """
    @param a 토큰 시퀀스 A.
    @param b 토큰 시퀀스 B.
    @returns Jaccard 유사도(0~1).
    """
    set_a = set(a)
    set_b = set(b)
    if not set_a and not set_b:
        return 0.0
    intersection = len(set_a & set_b)
    union = len(set_a | set_b)
    return intersection / union if union else 0.0
