import hashlib
import json
from typing import Any

DEFAULT_ALGORITHM = "sha256"


def stable_hash_text(text: str, algorithm: str = DEFAULT_ALGORITHM) -> str:
    """
    @param text 해시 대상 문자열 (UTF-8로 인코딩).
    @param algorithm hashlib 알고리즘 이름. 캐시 키와 중복 제거 키는 sha1을 쓴다.
    @returns 16진수 다이제스트.
    """
    return hashlib.new(algorithm, text.encode("utf-8")).hexdigest()


def stable_hash_json(payload: Any, algorithm: str = DEFAULT_ALGORITHM) -> str:
    """
    키 순서와 공백에 영향받지 않도록 직렬화한 뒤 해시한다. 코퍼스 지문 계산에 사용.

    @param payload JSON 직렬화 가능한 값.
    @param algorithm hashlib 알고리즘 이름.
    @returns 16진수 다이제스트.
    """
    canonical = json.dumps(payload, ensure_ascii=False, sort_keys=True, separators=(",", ":"))
    return stable_hash_text(canonical, algorithm=algorithm)
