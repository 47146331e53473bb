from dinsos_bot.services.knowledge_service import (
    FaqEntry,
    KnowledgeBase,
    Program,
    load_knowledge_base,
    parse_faq,
)


class TestLoadKnowledgeBase:
    def test_loads_all_files(self, knowledge_dir):
        knowledge = load_knowledge_base(knowledge_dir, "Dinas Sosial")

        assert [p.name for p in knowledge.programs] == ["PKH", "BPNT"]
        assert knowledge.programs[0].requirements == ("KTP", "Kartu Keluarga")
        assert knowledge.programs[0].how_to_apply == "Datang ke kelurahan"
        assert len(knowledge.faq) == 2
        assert knowledge.knowledge_text == "Anda adalah asisten Dinas Sosial."

    def test_missing_directory_degrades(self, tmp_path):
        knowledge = load_knowledge_base(tmp_path / "nope", "Dinsos Kota")

        assert knowledge.programs == ()
        assert knowledge.faq == ()
        assert "Dinsos Kota" in knowledge.knowledge_text

    def test_invalid_json_degrades(self, tmp_path):
        (tmp_path / "programs.json").write_text("{not json", encoding="utf-8")
        (tmp_path / "faq.json").write_text("[1, 2]", encoding="utf-8")

        knowledge = load_knowledge_base(tmp_path, "Dinas Sosial")

        assert knowledge.programs == ()
        assert knowledge.faq == ()

    def test_program_without_name_skipped(self, tmp_path):
        (tmp_path / "programs.json").write_text('[{"description": "x"}, {"name": "PKH"}]', encoding="utf-8")

        knowledge = load_knowledge_base(tmp_path, "Dinas Sosial")

        assert [p.name for p in knowledge.programs] == ["PKH"]


class TestLookup:
    def test_faq_match_is_case_insensitive_substring(self):
        knowledge = KnowledgeBase(faq=parse_faq({"Syarat, Persyaratan": "KTP dan KK"}))

        assert knowledge.lookup_faq("apa PERSYARATAN nya?") == "KTP dan KK"
        assert knowledge.lookup_faq("halo") is None

    def test_first_entry_wins(self):
        knowledge = KnowledgeBase(
            faq=(
                FaqEntry(keywords=("daftar",), answer="first"),
                FaqEntry(keywords=("daftar pkh",), answer="second"),
            )
        )

        assert knowledge.lookup_faq("cara daftar pkh") == "first"

    def test_faq_title_is_first_keyword(self):
        assert parse_faq({"biaya, gratis": "Gratis"})[0].title == "biaya"

    def test_program_at(self):
        knowledge = KnowledgeBase(programs=(Program(name="PKH"),))

        assert knowledge.program_at(0).name == "PKH"
        assert knowledge.program_at(1) is None
        assert knowledge.program_at(-1) is None
