import unittest

from kelurahan_ai.ai_core.domain.knowledge_entry import KnowledgeEntry
from kelurahan_ai.ai_core.service.retrieval.lexical_retriever import (
    build_grounding,
    extract_definition_term,
    find_best_answer,
    find_relevant,
    rank_relevant,
)


def _entry(question, answer, tags=(), category=None, position=0):
    return KnowledgeEntry(question=question, answer=answer, tags=tuple(tags), category=category, position=position)


CORPUS = [
    _entry("Bagaimana cara membuat KTP?", "Datang ke kelurahan dengan KK.", ["ktp"], "Kependudukan"),
    _entry("Apa syarat membuat KK baru?", "Bawa buku nikah dan pengantar RT.", ["kk"], "Kependudukan"),
    _entry("Apakah SKCK bisa online?", "Bisa, daftar SKCK lewat situs Polri.", ["skck"], "Perizinan"),
    _entry("SKCK", "Surat Keterangan Catatan Kepolisian.", ["istilah"], "istilah"),
    _entry("Jam buka kantor kelurahan?", "Senin sampai Jumat, 08.00 sampai 16.00.", ["jam"], "Jam Kerja"),
    _entry("", "Jawaban tanpa pertanyaan tentang KTP.", ["ktp"]),
]


class FindRelevantTests(unittest.TestCase):
    def test_empty_inputs_return_nothing(self) -> None:
        """
        빈 질의나 빈 코퍼스는 빈 결과를 반환해야 합니다.

        @returns {None} 테스트만 수행합니다.
        """
        self.assertEqual(find_relevant("", CORPUS), [])
        self.assertEqual(find_relevant("   ", CORPUS), [])
        self.assertEqual(find_relevant("ktp", []), [])

    def test_exact_question_ranks_first(self) -> None:
        """
        질의와 질문이 정확히 같은 엔트리는 항상 1위여야 합니다.

        @returns {None} 테스트만 수행합니다.
        """
        corpus = [
            _entry("Syarat KTP dan KK", "KTP KTP KTP syarat syarat", ["ktp", "syarat", "ktp syarat"]),
            _entry("Syarat KTP untuk pindahan dan syarat KTP baru", "syarat ktp lengkap", ["syarat ktp"]),
            _entry("syarat ktp", "Cukup KK."),
        ]
        results = find_relevant("Syarat KTP", corpus)
        self.assertEqual(results[0].answer, "Cukup KK.")

    def test_ordering_is_deterministic(self) -> None:
        """
        같은 입력을 두 번 검색하면 순서가 같아야 하며, 동점은 코퍼스 순서를 따릅니다.

        @returns {None} 테스트만 수행합니다.
        """
        corpus = [
            _entry("Layanan A kelurahan", "x", position=0),
            _entry("Layanan B kelurahan", "x", position=1),
            _entry("Layanan C kelurahan", "x", position=2),
        ]
        first = find_relevant("kelurahan", corpus)
        second = find_relevant("kelurahan", corpus)
        self.assertEqual(first, second)
        self.assertEqual([entry.question for entry in first], [entry.question for entry in corpus])

    def test_definition_question_prefers_terminology_entry(self) -> None:
        """
        "apa itu SKCK"는 용어 카테고리의 SKCK 엔트리를 우선해야 합니다.

        @returns {None} 테스트만 수행합니다.
        """
        corpus = [
            _entry("Cara daftar online", "Daftar SKCK lewat situs resmi.", ["online"]),
            _entry("SKCK", "Surat Keterangan Catatan Kepolisian.", [], "istilah"),
        ]
        results = find_relevant("apa itu SKCK", corpus)
        self.assertEqual(results[0].question, "SKCK")
        self.assertEqual(extract_definition_term("Apa kepanjangan SKCK?"), "skck")
        self.assertIsNone(extract_definition_term("bagaimana cara membuat skck"))

    def test_max_results_and_question_less_entries(self) -> None:
        results = find_relevant("ktp kk skck jam", CORPUS, max_results=2)
        self.assertLessEqual(len(results), 2)
        all_results = rank_relevant("ktp", CORPUS, max_results=10)
        self.assertTrue(all(item.entry.question for item in all_results))
        self.assertTrue(all(item.score > 0 or item.exact for item in all_results))

    def test_build_grounding_format(self) -> None:
        grounding = build_grounding(CORPUS[:2])
        self.assertTrue(grounding.startswith("DATA REFERENSI:\nQ: Bagaimana cara membuat KTP?\nA: "))
        self.assertIn("\n---\nQ: Apa syarat membuat KK baru?", grounding)
        self.assertEqual(build_grounding([]), "")


class FindBestAnswerTests(unittest.TestCase):
    def test_lowercase_query_without_punctuation_matches(self) -> None:
        """
        소문자/무문장부호 질의도 정확한 질문 엔트리를 찾아야 합니다.

        @returns {None} 테스트만 수행합니다.
        """
        entry = find_best_answer("bagaimana cara membuat ktp", CORPUS)
        self.assertIsNotNone(entry)
        self.assertEqual(entry.answer, "Datang ke kelurahan dengan KK.")

    def test_generic_words_alone_do_not_match(self) -> None:
        """
        일반 질문어만 겹치는 질의는 답을 찾지 않아야 합니다.

        @returns {None} 테스트만 수행합니다.
        """
        self.assertIsNone(find_best_answer("bagaimana cara apa", CORPUS))
        self.assertIsNone(find_best_answer("", CORPUS))

    def test_request_verbs_alone_do_not_match(self) -> None:
        """
        "membuat" 같은 요청 동사만 겹치고 주제어가 없는 질의는 답을 찾지 않아야 합니다.

        @returns {None} 테스트만 수행합니다.
        """
        self.assertIsNone(find_best_answer("cara membuat akta kelahiran", CORPUS))
        entry = find_best_answer("cara membuat ktp elektronik", CORPUS)
        self.assertEqual(entry.question, "Bagaimana cara membuat KTP?")

    def test_content_words_outweigh_generic_words(self) -> None:
        entry = find_best_answer("bagaimana cara daftar skck online", CORPUS)
        self.assertEqual(entry.question, "Apakah SKCK bisa online?")


if __name__ == "__main__":
    unittest.main()
