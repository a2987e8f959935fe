import json
import os
import tempfile
import unittest
from pathlib import Path
from unittest import mock

from kelurahan_ai.ai_core.domain.knowledge_entry import KnowledgeEntry
from kelurahan_ai.ai_core.repository.knowledge_store import KnowledgeStore, load_knowledge, split_paths


class KnowledgeStoreTests(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.root = Path(self._tmp.name)

    def tearDown(self) -> None:
        self._tmp.cleanup()

    def _write(self, name: str, payload) -> Path:
        path = self.root / name
        path.write_text(payload if isinstance(payload, str) else json.dumps(payload), encoding="utf-8")
        return path

    def test_missing_and_broken_files_are_skipped(self) -> None:
        """
        없는 파일, 깨진 JSON, 배열이 아닌 JSON은 건너뛰어야 합니다.

        @returns {None} 테스트만 수행합니다.
        """
        good = self._write("train.json", [{"text": "Cara membuat KTP?", "answer": "Ke kelurahan."}])
        broken = self._write("broken.json", "{not json")
        not_array = self._write("object.json", {"text": "x"})

        with self.assertLogs("kelurahan_ai.ai_core.repository.knowledge_store", level="WARNING"):
            entries = load_knowledge([self.root / "missing.json", broken, not_array, good])
        self.assertEqual(len(entries), 1)
        self.assertEqual(entries[0].question, "Cara membuat KTP?")

    def test_alternate_field_names_are_normalized(self) -> None:
        """
        question/response/kategori 필드도 같은 형태로 변환되어야 합니다.

        @returns {None} 테스트만 수행합니다.
        """
        path = self._write(
            "alt.json",
            [{"question": "Jam buka?", "response": "08.00", "kategori": "Jam Kerja", "tags": "jam", "id": 7}],
        )
        entry = load_knowledge([path])[0]
        self.assertEqual(entry.question, "Jam buka?")
        self.assertEqual(entry.answer, "08.00")
        self.assertEqual(entry.category, "Jam Kerja")
        self.assertEqual(entry.tags, ("jam",))
        self.assertEqual(entry.entry_id, "7")

    def test_malformed_tags_do_not_drop_the_file(self) -> None:
        """
        tags가 숫자 같은 잘못된 타입이어도 파일의 다른 레코드와 함께 로드되어야 합니다.

        @returns {None} 테스트만 수행합니다.
        """
        path = self._write(
            "tags.json",
            [{"text": "KTP", "answer": "x", "tags": 5}, {"text": "KK", "answer": "y", "tags": ["kk", None, " "]}],
        )
        entries = load_knowledge([path])
        self.assertEqual([entry.question for entry in entries], ["KTP", "KK"])
        self.assertEqual(entries[0].tags, ())
        self.assertEqual(entries[1].tags, ("kk",))

    def test_record_that_fails_to_convert_is_skipped(self) -> None:
        """
        변환 중 예외가 난 레코드만 경고 후 건너뛰고 나머지는 유지해야 합니다.

        @returns {None} 테스트만 수행합니다.
        """
        path = self._write(
            "mixed.json",
            [{"text": "KTP", "answer": "x"}, {"text": "rusak", "answer": "y"}, {"text": "KK", "answer": "z"}],
        )
        original = KnowledgeEntry.from_raw

        def convert(item, source="", position=0):
            if item.get("text") == "rusak":
                raise TypeError("bad record")
            return original(item, source=source, position=position)

        with mock.patch.object(KnowledgeEntry, "from_raw", side_effect=convert):
            with self.assertLogs("kelurahan_ai.ai_core.repository.knowledge_store", level="WARNING"):
                entries = load_knowledge([path])
        self.assertEqual([entry.question for entry in entries], ["KTP", "KK"])
        self.assertEqual([entry.position for entry in entries], [0, 1])

    def test_vocabulary_records_become_questions(self) -> None:
        """
        자바어 어휘 레코드는 질문/답변 형태로 변환되어야 합니다.

        @returns {None} 테스트만 수행합니다.
        """
        path = self._write("kosakata.json", [{"indonesia": "makan", "ngoko": "mangan", "krama": "dhahar"}])
        entry = load_knowledge([path])[0]
        self.assertEqual(entry.question, "Apa bahasa Jawa dari 'makan'?")
        self.assertIn("- Ngoko: mangan", entry.answer)
        self.assertIn("- Krama: dhahar", entry.answer)
        self.assertNotIn("Madya", entry.answer)
        self.assertEqual(entry.category, "kosakata_jawa")
        self.assertEqual(entry.tags, ("kosakata", "bahasa jawa", "makan"))

    def test_dedupe_keeps_first_occurrence(self) -> None:
        """
        정규화 후 같은 질문+답변은 처음 것만 남아야 합니다.

        @returns {None} 테스트만 수행합니다.
        """
        first = self._write("a.json", [{"text": "Cara  buat KTP", "answer": "Ke kelurahan", "tags": ["a"]}])
        second = self._write("b.json", [{"text": "cara buat ktp", "answer": "ke kelurahan", "tags": ["b"]}])

        self.assertEqual(len(load_knowledge([first, second])), 2)
        deduped = load_knowledge([first, second], dedupe=True)
        self.assertEqual(len(deduped), 1)
        self.assertEqual(deduped[0].tags, ("a",))

        punct = self._write("c.json", [{"text": "cara buat ktp?", "answer": "ke kelurahan."}])
        self.assertEqual(len(load_knowledge([first, punct], dedupe=True)), 2)
        self.assertEqual(len(load_knowledge([first, punct], dedupe=True, normalize_mode="punctuation")), 1)

    def test_positions_follow_load_order(self) -> None:
        first = self._write("a.json", [{"text": "satu", "answer": "1"}, {"text": "dua", "answer": "2"}])
        second = self._write("b.json", [{"text": "tiga", "answer": "3"}])
        entries = load_knowledge([first, second])
        self.assertEqual([entry.position for entry in entries], [0, 1, 2])
        self.assertEqual(entries[2].source, str(second))

    def test_refresh_reloads_changed_files(self) -> None:
        """
        자동 갱신이 켜져 있으면 파일 변경 후 refresh()가 다시 읽어야 합니다.

        @returns {None} 테스트만 수행합니다.
        """
        path = self._write("train.json", [{"text": "satu", "answer": "1"}])
        store = KnowledgeStore([path], auto_reload=True)
        self.assertEqual(store.size, 1)
        self.assertFalse(store.refresh())
        fingerprint = store.fingerprint()

        self._write("train.json", [{"text": "satu", "answer": "1"}, {"text": "dua", "answer": "2"}])
        stat = path.stat()
        os.utime(path, (stat.st_atime, stat.st_mtime + 10))
        self.assertTrue(store.refresh())
        self.assertEqual(store.size, 2)
        self.assertNotEqual(store.fingerprint(), fingerprint)

    def test_refresh_disabled_by_default(self) -> None:
        path = self._write("train.json", [{"text": "satu", "answer": "1"}])
        store = KnowledgeStore([path])
        os.utime(path, (0, 0))
        self.assertFalse(store.refresh())

    def test_from_entries_and_stats(self) -> None:
        store = KnowledgeStore.from_entries(
            [KnowledgeEntry(question="KTP?", answer="Ke kelurahan", category="Kependudukan")]
        )
        stats = store.stats()
        self.assertEqual(stats["items"], 1)
        self.assertEqual(stats["categories"], {"Kependudukan": 1})

    def test_split_paths(self) -> None:
        self.assertEqual(split_paths(" data/a.json, ,data/b.json "), ("data/a.json", "data/b.json"))


if __name__ == "__main__":
    unittest.main()
