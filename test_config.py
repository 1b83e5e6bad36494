import pytest

from label_modules.config import FIELD_TYPES, Settings, field_spec, load_settings
from label_modules.config.fields import PACK_SIZE_VALUE_RX
from label_modules.config.prompts import FIELD_DETECTION_PROMPT, render


def test_load_settings_reads_environment(monkeypatch, tmp_path):
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("GCS_INPUT_BUCKET", "in-bucket")
    monkeypatch.setenv("LLM_MIN_INTERVAL_S", "0.5")
    monkeypatch.setenv("INPAINT_SAMPLE_COUNT", "2")
    monkeypatch.setenv("DISTANCE_POLICY", "Geometric")
    settings = load_settings()
    assert settings.input_bucket == "in-bucket"
    assert settings.llm_min_interval_s == 0.5
    assert settings.inpaint_sample_count == 2
    assert settings.distance_policy == "geometric"


def test_bad_numbers_fail_at_startup(monkeypatch, tmp_path):
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("LLM_MAX_RETRIES", "three")
    with pytest.raises(ValueError):
        load_settings()


def test_unknown_distance_policy_rejected():
    with pytest.raises(ValueError):
        Settings(distance_policy="vibes")


def test_field_catalogue():
    assert FIELD_TYPES == (
        "manufacturing_date",
        "expiry_date",
        "batch_number",
        "mrp",
        "pack_size",
        "inclusive_of_taxes",
    )
    assert field_spec("inclusive_of_taxes").is_marker
    assert "बैच नं" in field_spec("batch_number").hindi_variations
    with pytest.raises(KeyError):
        field_spec("colour")


@pytest.mark.parametrize("text", ["per 10 tablets", "10 Tablets", "100 ml", "pack of 4 strips", "x 30 capsules"])
def test_pack_size_pattern_accepts(text):
    assert PACK_SIZE_VALUE_RX.match(text)


@pytest.mark.parametrize("text", ["500 mg", "Batch 10", "03/2024"])
def test_pack_size_pattern_rejects(text):
    assert not PACK_SIZE_VALUE_RX.match(text)


def test_render_fills_placeholders():
    out = render(FIELD_DETECTION_PROMPT, field_catalogue="1. MRP [mrp]")
    assert "{{field_catalogue}}" not in out
    assert "1. MRP [mrp]" in out
