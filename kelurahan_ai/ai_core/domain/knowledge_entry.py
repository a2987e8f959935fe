from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional, Tuple

VOCABULARY_REGISTERS = ("ngoko", "madya", "krama")
VOCABULARY_CATEGORY = "kosakata_jawa"


@dataclass(frozen=True)
class KnowledgeEntry:
    """지식 베이스의 질문/답변 한 건 (로드 이후 불변)."""

    question: str
    answer: str
    tags: Tuple[str, ...] = ()
    category: Optional[str] = None
    entry_id: Optional[str] = None
    source: str = ""
    position: int = 0
    extra: Dict[str, Any] = field(default_factory=dict, compare=False, hash=False)

    @property
    def has_question(self) -> bool:
        """
        @returns 검색 점수 계산 대상인지 여부.
        """
        return bool(self.question.strip())

    @classmethod
    def from_raw(cls, item: Mapping[str, Any], source: str = "", position: int = 0) -> Optional["KnowledgeEntry"]:
        """
        이질적인 JSON 레코드를 단일 형태로 변환한다.

        `text|question`, `answer|response`, `kategori_utama|kategori` 필드를 모두 받는다.
        자바어 어휘 레코드는 질문/답변 형태로 변환한 뒤 받는다.

        @param item JSON 레코드.
        @param source 레코드가 속한 파일 경로.
        @param position 전체 로드 순서.
        @returns KnowledgeEntry 또는 (dict가 아니면) None.
        """
        if not isinstance(item, Mapping):
            return None
        if is_vocabulary_record(item):
            item = transform_vocabulary(item)

        tags = normalize_tags(item.get("tags"))

        category = item.get("kategori_utama") or item.get("kategori")
        entry_id = item.get("id")
        known = {"text", "question", "answer", "response", "tags", "kategori_utama", "kategori", "id"}
        return cls(
            question=str(item.get("text") or item.get("question") or ""),
            answer=str(item.get("answer") or item.get("response") or ""),
            tags=tags,
            category=str(category) if category else None,
            entry_id=str(entry_id) if entry_id is not None else None,
            source=source,
            position=position,
            extra={key: value for key, value in item.items() if key not in known},
        )

    def to_dict(self) -> Dict[str, Any]:
        """
        @returns 원본 JSON 형태에 가까운 딕셔너리.
        """
        payload: Dict[str, Any] = {
            "text": self.question,
            "answer": self.answer,
            "tags": list(self.tags),
        }
        if self.category:
            payload["kategori_utama"] = self.category
        if self.entry_id is not None:
            payload["id"] = self.entry_id
        payload.update(self.extra)
        return payload


def normalize_tags(raw_tags: Any) -> Tuple[str, ...]:
    """
    @param raw_tags 레코드의 tags 값 (문자열 하나 또는 리스트).
    @returns 빈 값을 뺀 태그 튜플. 그 밖의 타입은 빈 튜플.
    """
    if isinstance(raw_tags, str):
        raw_tags = [raw_tags]
    if not isinstance(raw_tags, (list, tuple)):
        return ()
    return tuple(str(tag) for tag in raw_tags if tag is not None and str(tag).strip())


def is_vocabulary_record(item: Mapping[str, Any]) -> bool:
    """
    @param item JSON 레코드.
    @returns 인도네시아어-자바어 어휘 레코드 여부.
    """
    return bool(item.get("indonesia")) and any(item.get(register) for register in VOCABULARY_REGISTERS)


def transform_vocabulary(item: Mapping[str, Any]) -> Dict[str, Any]:
    """
    @param item 어휘 레코드 ({indonesia, ngoko, madya, krama}).
    @returns 질문/답변 형태로 변환된 레코드.
    """
    word = str(item["indonesia"])
    parts = [f"{register.capitalize()}: {item[register]}" for register in VOCABULARY_REGISTERS if item.get(register)]
    transformed = dict(item)
    transformed["text"] = f"Apa bahasa Jawa dari '{word}'?"
    transformed["answer"] = f"Bahasa Jawa dari '{word}':\n- " + "\n- ".join(parts)
    transformed["tags"] = item.get("tags") or ["kosakata", "bahasa jawa", word]
    transformed["kategori_utama"] = item.get("kategori_utama") or VOCABULARY_CATEGORY
    return transformed
