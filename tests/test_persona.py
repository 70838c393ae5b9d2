import json

import pytest
from pydantic import ValidationError

from anima.persona import Persona, PersonaCatalog


def test_catalog_seeds_default_personas(tmp_path) -> None:
    catalog = PersonaCatalog(tmp_path / "personas")
    assert catalog.load() == 2
    assert sorted(catalog.ids()) == ["aris", "arona"]

    raw = json.loads((tmp_path / "personas" / "arona.json").read_text(encoding="utf-8"))
    assert raw["nameEn"] == "Arona"
    assert "exampleDialogues" in raw
    assert len(catalog.get("arona").example_dialogues) == 4


def test_seeding_keeps_user_edits(tmp_path) -> None:
    directory = tmp_path / "personas"
    directory.mkdir()
    (directory / "arona.json").write_text(
        json.dumps({"id": "arona", "name": "阿罗娜", "systemPrompt": "自定义提示"}, ensure_ascii=False),
        encoding="utf-8",
    )
    catalog = PersonaCatalog(directory)
    catalog.load()
    assert catalog.get("arona").build_system_prompt() == "自定义提示"


def test_custom_persona_file_and_case_insensitive_lookup(tmp_path) -> None:
    directory = tmp_path / "personas"
    directory.mkdir()
    (directory / "Yuuka.json").write_text(
        json.dumps(
            {
                "id": "Yuuka",
                "name": "优香",
                "nameEn": "Yuuka",
                "school": "千年科学学园",
                "modelOverride": "fast-model",
                "temperatureOverride": 0.3,
                "exampleDialogues": [{"user": "预算呢？", "assistant": "老师，又超支了！"}],
            },
            ensure_ascii=False,
        ),
        encoding="utf-8",
    )
    catalog = PersonaCatalog(directory, seed_defaults=False)
    assert catalog.load() == 1
    persona = catalog.get("YUUKA")
    assert persona is catalog.get("yuuka")
    assert persona.model_override == "fast-model"
    assert persona.temperature_override == 0.3
    assert persona.example_dialogues[0].assistant == "老师，又超支了！"
    assert catalog.has("yuuka")
    assert not catalog.has("")


def test_broken_persona_file_is_skipped(tmp_path) -> None:
    directory = tmp_path / "personas"
    directory.mkdir()
    (directory / "broken.json").write_text("{", encoding="utf-8")
    (directory / "noid.json").write_text(json.dumps({"id": "  ", "name": "x"}), encoding="utf-8")
    catalog = PersonaCatalog(directory)
    assert catalog.load() == 2
    assert sorted(catalog.ids()) == ["aris", "arona"]


def test_reload_picks_up_new_files(tmp_path) -> None:
    catalog = PersonaCatalog(tmp_path / "personas")
    catalog.load()
    (tmp_path / "personas" / "hina.json").write_text(
        json.dumps({"id": "hina", "name": "日奈"}, ensure_ascii=False), encoding="utf-8"
    )
    assert catalog.reload() == 3
    assert catalog.get("hina").name == "日奈"


def test_save_writes_camel_case_and_registers(tmp_path) -> None:
    catalog = PersonaCatalog(tmp_path / "personas", seed_defaults=False)
    path = catalog.save(Persona(id="Mika", name="未花", name_en="Mika", club="茶会"))
    assert path.name == "mika.json"
    raw = json.loads(path.read_text(encoding="utf-8"))
    assert raw["nameEn"] == "Mika"
    assert "systemPrompt" not in raw
    assert catalog.get("mika").club == "茶会"


def test_generated_system_prompt() -> None:
    persona = Persona(
        id="ming",
        name="小明",
        name_en="Ming",
        school="S学园",
        personality_traits=["认真", "害羞"],
        speech_patterns=["句尾加「呢」"],
    )
    assert persona.build_system_prompt() == (
        "你是小明（Ming）。你来自S学园。\n\n"
        "【性格特点】\n- 认真\n- 害羞\n\n"
        "【说话风格】\n- 句尾加「呢」"
    )


def test_persona_rejects_blank_id_and_bad_temperature() -> None:
    with pytest.raises(ValidationError):
        Persona(id=" ", name="x")
    with pytest.raises(ValidationError):
        Persona(id="x", name="x", temperature_override=5.0)
    assert Persona(id=" Arona ", name="阿罗娜").key == "arona"
