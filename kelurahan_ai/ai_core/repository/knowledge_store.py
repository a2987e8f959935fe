# =============================================================================
# 지식 베이스 로더 (Knowledge Store)
# =============================================================================
# 정적 JSON 파일(주 데이터셋 + 자바어 어휘 용어집)을 읽어 메모리 코퍼스를 만든다.
#
# 동작 원칙:
#   - 파일이 없거나 JSON 파싱에 실패하면 경고 로그만 남기고 건너뛴다 (프로세스 중단 없음).
#   - 모든 레코드는 KnowledgeEntry.from_raw 어댑터를 거쳐 단일 형태로 변환된다.
#   - 변환에 실패한 레코드는 경고 후 그 레코드만 건너뛴다.
#   - 서빙 경로는 원본 파일을 절대 수정하지 않는다.
#
# 사용 예시:
#   store = KnowledgeStore(["data/train.json", "data/kosakata_jawa.json"])
#   entries = store.entries
# =============================================================================

from __future__ import annotations

import json
import logging
import os
import threading
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple, Union

from kelurahan_ai.ai_core.common.hashing import stable_hash_json, stable_hash_text
from kelurahan_ai.ai_core.common.nlp.text_utils import normalize_query, strip_punctuation
from kelurahan_ai.ai_core.domain.knowledge_entry import KnowledgeEntry

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]

NORMALIZE_WHITESPACE = "whitespace"
NORMALIZE_PUNCTUATION = "punctuation"


def read_json_array(path: PathLike) -> List[Any]:
    """
    @param path JSON 파일 경로.
    @returns 배열 내용. 파일 누락/파싱 실패/배열이 아닌 경우 빈 리스트.
    """
    file_path = Path(path)
    if not file_path.exists():
        logger.warning("지식 파일을 찾을 수 없음", extra={"path": str(file_path)})
        return []
    try:
        with file_path.open("r", encoding="utf-8") as handle:
            data = json.load(handle)
    except (OSError, ValueError) as exc:
        logger.warning("지식 파일 읽기 실패", extra={"path": str(file_path), "error": str(exc)})
        return []
    if not isinstance(data, list):
        logger.warning("지식 파일이 배열이 아니므로 건너뜀", extra={"path": str(file_path)})
        return []
    return data


def dedupe_key(entry: KnowledgeEntry, normalize_mode: str = NORMALIZE_WHITESPACE) -> str:
    """
    @param entry 지식 엔트리.
    @param normalize_mode whitespace 또는 punctuation.
    @returns 질문+답변 정규화 텍스트의 SHA-1 해시.
    """
    combined = f"{entry.question}{entry.answer}"
    if normalize_mode == NORMALIZE_PUNCTUATION:
        normalized = strip_punctuation(combined)
    else:
        normalized = normalize_query(combined)
    return stable_hash_text(normalized, algorithm="sha1")


def load_knowledge(
    paths: Iterable[PathLike],
    dedupe: bool = False,
    normalize_mode: str = NORMALIZE_WHITESPACE,
    min_length: int = 0,
) -> List[KnowledgeEntry]:
    """
    여러 JSON 파일을 읽어 하나의 코퍼스로 합친다.

    @param paths 읽을 파일 경로 목록 (순서대로 병합).
    @param dedupe 질문+답변 해시 기준 중복 제거 여부 (먼저 나온 것을 유지).
    @param normalize_mode 중복 판정 정규화 방식.
    @param min_length 질문+답변 길이가 이보다 짧은 레코드는 제외.
    @returns KnowledgeEntry 리스트.
    """
    entries: List[KnowledgeEntry] = []
    seen = set()
    for path in paths:
        raw_items = read_json_array(path)
        accepted = 0
        for index, raw in enumerate(raw_items):
            try:
                entry = KnowledgeEntry.from_raw(raw, source=str(path), position=len(entries))
            except (TypeError, ValueError, AttributeError) as exc:
                logger.warning(
                    "지식 레코드 변환 실패, 건너뜀",
                    extra={"path": str(path), "index": index, "error": str(exc)},
                )
                continue
            if entry is None:
                continue
            if min_length and len(entry.question) + len(entry.answer) < min_length:
                continue
            if dedupe:
                key = dedupe_key(entry, normalize_mode)
                if key in seen:
                    continue
                seen.add(key)
            entries.append(entry)
            accepted += 1
        if raw_items:
            logger.info(
                "지식 파일 로드 완료",
                extra={"path": str(path), "items": len(raw_items), "accepted": accepted},
            )
    return entries


class KnowledgeStore:
    """프로세스 단위 지식 코퍼스 저장소 (서빙 경로에서는 읽기 전용)."""

    def __init__(
        self,
        paths: Sequence[PathLike],
        dedupe: bool = False,
        normalize_mode: str = NORMALIZE_WHITESPACE,
        auto_reload: bool = False,
    ) -> None:
        """
        @param paths 지식 파일 경로 목록.
        @param dedupe 중복 제거 여부.
        @param normalize_mode 중복 판정 정규화 방식.
        @param auto_reload refresh() 호출 시 파일 변경을 감지해 다시 읽을지 여부.
        @returns None
        """
        self._paths = [Path(path) for path in paths]
        self._dedupe = dedupe
        self._normalize_mode = normalize_mode
        self._auto_reload = auto_reload
        self._lock = threading.Lock()
        self._entries: List[KnowledgeEntry] = []
        self._mtimes: Dict[str, Optional[float]] = {}
        self.load()

    @classmethod
    def from_entries(cls, entries: Sequence[KnowledgeEntry]) -> "KnowledgeStore":
        """
        @param entries 이미 준비된 엔트리 목록 (테스트/스크립트용).
        @returns 파일 없이 구성된 KnowledgeStore.
        """
        store = cls([])
        store._entries = list(entries)
        return store

    @property
    def entries(self) -> List[KnowledgeEntry]:
        """
        @returns 현재 코퍼스 (교체는 원자적으로 이루어진다).
        """
        return self._entries

    @property
    def size(self) -> int:
        """
        @returns 엔트리 개수.
        """
        return len(self._entries)

    @property
    def sources(self) -> List[str]:
        """
        @returns 설정된 파일 경로 목록.
        """
        return [str(path) for path in self._paths]

    def load(self) -> List[KnowledgeEntry]:
        """
        @returns 새로 읽은 코퍼스.
        """
        entries = load_knowledge(self._paths, dedupe=self._dedupe, normalize_mode=self._normalize_mode)
        with self._lock:
            self._entries = entries
            self._mtimes = self._current_mtimes()
        logger.info("지식 코퍼스 준비 완료", extra={"entries": len(entries), "files": len(self._paths)})
        return entries

    def refresh(self) -> bool:
        """
        auto_reload가 켜져 있고 파일 mtime이 바뀌었으면 다시 읽는다.

        @returns 다시 읽었는지 여부.
        """
        if not self._auto_reload:
            return False
        if self._current_mtimes() == self._mtimes:
            return False
        self.load()
        return True

    def fingerprint(self) -> str:
        """
        @returns 코퍼스 내용 기반 버전 해시 (상태 점검용).
        """
        return stable_hash_json([[entry.question, entry.answer] for entry in self._entries])[:12]

    def stats(self) -> Dict[str, Any]:
        """
        @returns 코퍼스 요약 정보.
        """
        categories: Dict[str, int] = {}
        for entry in self._entries:
            key = entry.category or "Umum"
            categories[key] = categories.get(key, 0) + 1
        return {
            "items": self.size,
            "sources": self.sources,
            "categories": categories,
            "fingerprint": self.fingerprint(),
        }

    def _current_mtimes(self) -> Dict[str, Optional[float]]:
        """
        @returns 경로별 수정 시각 (파일이 없으면 None).
        """
        mtimes: Dict[str, Optional[float]] = {}
        for path in self._paths:
            try:
                mtimes[str(path)] = os.path.getmtime(path)
            except OSError:
                mtimes[str(path)] = None
        return mtimes


def split_paths(value: str) -> Tuple[str, ...]:
    """
    @param value 콤마로 구분된 경로 문자열.
    @returns 공백을 제거한 경로 튜플.
    """
    return tuple(part.strip() for part in (value or "").split(",") if part.strip())
