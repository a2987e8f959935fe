"""
지식 데이터셋 오프라인 최적화 스크립트.

주 데이터셋과 어휘 용어집을 합친 뒤 유사 질문을 제거하고, 카테고리 우선순위에 비례해
상위 항목만 골라 별도 파일로 저장한다. 원본은 처음 한 번만 백업하며 서빙 경로에서는 사용하지 않는다.

사용 예시:
    python -m kelurahan_ai.ai_core.scripts.optimize_dataset --max-total 150
"""

from __future__ import annotations

import argparse
import json
import logging
import math
from collections import OrderedDict
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Sequence

from kelurahan_ai.ai_core.common.nlp.text_utils import jaccard_similarity, strip_punctuation
from kelurahan_ai.ai_core.repository.knowledge_store import read_json_array

logger = logging.getLogger(__name__)

CATEGORY_PRIORITY: Dict[str, int] = {
    "Kependudukan": 10,
    "Surat Kelurahan": 9,
    "Perizinan": 8,
    "Administrasi Nikah": 8,
    "Pajak": 7,
    "Kendaraan": 7,
    "Layanan Publik": 6,
    "Pengaduan": 6,
    "Lokasi Instansi": 5,
    "Jam Kerja": 4,
    "Istilah": 3,
    "Umum": 2,
}
DEFAULT_CATEGORY = "Umum"
SIMILARITY_THRESHOLD = 0.85
DEFAULT_MAX_TOTAL = 150


def _question(item: Mapping[str, Any]) -> str:
    return str(item.get("text") or item.get("question") or "")


def _answer(item: Mapping[str, Any]) -> str:
    return str(item.get("answer") or item.get("response") or "")


def _category(item: Mapping[str, Any]) -> str:
    return str(item.get("kategori_utama") or item.get("kategori") or DEFAULT_CATEGORY)


def priority_of(item: Mapping[str, Any]) -> int:
    """
    @param item 원본 레코드.
    @returns 카테고리 우선순위 (미등록 카테고리는 0).
    """
    return CATEGORY_PRIORITY.get(_category(item), 0)


def is_similar(text_a: str, text_b: str, threshold: float = SIMILARITY_THRESHOLD) -> bool:
    """
    @param text_a 질문 A.
    @param text_b 질문 B.
    @param threshold 단어 Jaccard 임계값.
    @returns 문장부호 제거 후 같거나, 3자 이상 단어 겹침이 임계값 이상인지 여부.
    """
    norm_a = strip_punctuation(text_a)
    norm_b = strip_punctuation(text_b)
    if norm_a == norm_b:
        return True
    words_a = [word for word in norm_a.split() if len(word) > 2]
    words_b = [word for word in norm_b.split() if len(word) > 2]
    return jaccard_similarity(words_a, words_b) >= threshold


def _is_better(candidate: Mapping[str, Any], current: Mapping[str, Any]) -> bool:
    """
    @param candidate 새 레코드.
    @param current 이미 선택된 레코드.
    @returns 우선순위가 높거나, 같으면서 답변이 더 긴지 여부.
    """
    candidate_priority, current_priority = priority_of(candidate), priority_of(current)
    if candidate_priority != current_priority:
        return candidate_priority > current_priority
    return len(_answer(candidate)) > len(_answer(current))


def deduplicate(items: Sequence[Mapping[str, Any]], threshold: float = SIMILARITY_THRESHOLD) -> List[Mapping[str, Any]]:
    """
    유사 질문 묶음마다 더 나은 레코드 하나만 남긴다. 묶음의 대표 질문은 처음 본 질문이다.

    @param items 원본 레코드.
    @param threshold 유사도 임계값.
    @returns 중복이 제거된 레코드 (처음 등장 순서 유지).
    """
    representatives: List[str] = []
    kept: List[Mapping[str, Any]] = []
    for item in items:
        text = _question(item)
        for index, seen_text in enumerate(representatives):
            if is_similar(text, seen_text, threshold):
                if _is_better(item, kept[index]):
                    kept[index] = item
                break
        else:
            representatives.append(text)
            kept.append(item)
    return kept


def select_by_priority(items: Sequence[Mapping[str, Any]], max_total: int = DEFAULT_MAX_TOTAL) -> List[Mapping[str, Any]]:
    """
    카테고리별 (우선순위 x 개수) 비율로 할당량을 나누고, 답변이 긴 순서로 고른다.

    @param items 중복 제거된 레코드.
    @param max_total 목표 총 개수.
    @returns 선택된 레코드 (우선순위가 높은 카테고리부터).
    """
    grouped: "OrderedDict[str, List[Mapping[str, Any]]]" = OrderedDict()
    for item in items:
        grouped.setdefault(_category(item), []).append(item)
    ordered = sorted(grouped.items(), key=lambda pair: CATEGORY_PRIORITY.get(pair[0], 0), reverse=True)
    total_weight = sum(CATEGORY_PRIORITY.get(category, 0) * len(group) for category, group in ordered)

    selected: List[Mapping[str, Any]] = []
    for category, group in ordered:
        priority = CATEGORY_PRIORITY.get(category, 0)
        quota = math.ceil(priority * len(group) / total_weight * max_total) if total_weight else 0
        if priority >= 8:
            quota = max(quota, min(15, len(group)))
        elif priority >= 6:
            quota = max(quota, min(10, len(group)))
        elif priority >= 4:
            quota = max(quota, min(5, len(group)))
        quota = min(quota, len(group))
        ranked = sorted(group, key=lambda item: len(_answer(item)), reverse=True)
        selected.extend(ranked[:quota])
        logger.info("카테고리 선택", extra={"category": category, "selected": quota, "available": len(group)})
    return selected


def optimize(
    train_path: Path,
    glossary_path: Optional[Path],
    output_path: Path,
    backup_path: Path,
    max_total: int = DEFAULT_MAX_TOTAL,
) -> Dict[str, int]:
    """
    @param train_path 주 데이터셋 경로.
    @param glossary_path 어휘 용어집 경로 (없으면 None).
    @param output_path 최적화 결과 경로.
    @param backup_path 원본 백업 경로 (이미 있으면 덮어쓰지 않음).
    @param max_total 목표 총 개수.
    @returns 단계별 개수 요약.
    """
    train = read_json_array(train_path)
    glossary = read_json_array(glossary_path) if glossary_path else []
    merged = [item for item in [*train, *glossary] if isinstance(item, Mapping)]
    unique = deduplicate(merged)
    selected = select_by_priority(unique, max_total=max_total)

    if not backup_path.exists():
        backup_path.write_text(json.dumps(train, ensure_ascii=False, indent=2), encoding="utf-8")
        logger.info("원본 백업 생성", extra={"path": str(backup_path)})
    output_path.write_text(json.dumps(selected, ensure_ascii=False, indent=2), encoding="utf-8")

    summary = {"original": len(merged), "deduplicated": len(unique), "selected": len(selected)}
    logger.info("데이터셋 최적화 완료", extra=summary)
    return summary


def main(argv: Optional[Sequence[str]] = None) -> None:
    """
    @param argv 명령행 인자 (None이면 sys.argv).
    @returns {None} 결과 요약을 표준 출력으로 표시합니다.
    """
    parser = argparse.ArgumentParser(description="Optimize the kelurahan knowledge dataset.")
    parser.add_argument("--train", default="data/train.json")
    parser.add_argument("--glossary", default="data/kosakata_jawa.json")
    parser.add_argument("--output", default="data/train_optimized.json")
    parser.add_argument("--backup", default="data/train_backup.json")
    parser.add_argument("--max-total", type=int, default=DEFAULT_MAX_TOTAL)
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.INFO)
    summary = optimize(
        Path(args.train),
        Path(args.glossary) if args.glossary else None,
        Path(args.output),
        Path(args.backup),
        max_total=args.max_total,
    )
    print(f"original={summary['original']} deduplicated={summary['deduplicated']} selected={summary['selected']}")


if __name__ == "__main__":
    main()
