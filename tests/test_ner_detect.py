from types import SimpleNamespace

import pytest

import scanredact.ner_detect as nd
from scanredact.errors import DetectionFailure
from scanredact.models import Label, RedactionPolicy, RiskLevel
from scanredact.ner_detect import (
    GROUP_RULES,
    EntityGroup,
    ModelAdapter,
    RawNERResult,
    SpacyNERBackend,
    TransformersNERBackend,
    build_model_adapter,
    classify,
    resolve_hf_model,
    resolve_spacy_model,
)
from scanredact.pipeline.config import RunConfig

from conftest import FakeBackend, ner


def test_every_group_has_a_rule():
    for group in EntityGroup:
        label, risk, policy = classify(group, "anything")
        assert isinstance(label, Label)
        assert isinstance(risk, RiskLevel)
        assert isinstance(policy, RedactionPolicy)
    assert set(GROUP_RULES) == set(EntityGroup) - {EntityGroup.MISC}


def test_person_mapping_uses_source_slice():
    text = "Signed by John Smith today"
    start = text.index("John")
    raw = RawNERResult("PER", "John S ##mith", 0.93, start, start + len("John Smith"))
    [e] = ModelAdapter(FakeBackend([raw])).detect(text, "en", 0.7)
    assert e.text == "John Smith"
    assert (e.label, e.risk_level, e.redaction_policy) == (
        Label.PERSON,
        RiskLevel.HIGH,
        RedactionPolicy.PARTIAL,
    )
    assert e.source == "MODEL"


def test_groups_are_normalized_and_unknown_skipped():
    text = "Acme Corp in Paris with Bob"
    results = [
        ner("b-org", text, "Acme Corp"),
        ner("I-LOC", text, "Paris"),
        ner("GPE", text, "Paris"),
        ner("WEIRD", text, "Bob"),
    ]
    out = ModelAdapter(FakeBackend(results)).detect(text, "en", 0.5)
    assert [e.label for e in out] == [Label.ORGANIZATION, Label.LOCATION, Label.LOCATION]


def test_threshold_and_bad_offsets_filtered():
    text = "Jane met Bob"
    results = [
        ner("PER", text, "Jane", score=0.5),
        RawNERResult("PER", "Bob", 0.9, 9, 40),
        RawNERResult("PER", "", 0.9, 3, 3),
        ner("PER", text, "Bob", score=0.7),
    ]
    out = ModelAdapter(FakeBackend(results)).detect(text, "en", 0.7)
    assert [e.text for e in out] == ["Bob"]


@pytest.mark.parametrize(
    "word,label",
    [
        ("jane@example.com", Label.EMAIL),
        ("123-45-6789", Label.SSN),
        ("4111 1111 1111 1111", Label.CREDIT_CARD),
        ("021000021", Label.ROUTING_NUMBER),
        ("123456789", Label.ROUTING_NUMBER),
        ("1234567890", Label.BANK_ACCOUNT),
        ("$1,200.00", Label.MONETARY_AMOUNT),
        ("12/05/2023", Label.DATE),
        ("Acme Widgets", Label.ORGANIZATION),
    ],
)
def test_misc_content_sniffing(word, label):
    text = f"value: {word}"
    [e] = ModelAdapter(FakeBackend([ner("MISC", text, word)])).detect(text, "en", 0.5)
    assert e.label is label


def test_fallback_used_when_primary_fails():
    text = "Jane"
    primary = FakeBackend(error=RuntimeError("cuda oom"), name="gpu")
    secondary = FakeBackend([ner("PER", text, "Jane")], name="cpu")
    out = ModelAdapter(primary, secondary).detect(text, "en", 0.5)
    assert [e.text for e in out] == ["Jane"]
    assert primary.calls == 1 and secondary.calls == 1


def test_both_tiers_failing_raises_detection_failure():
    adapter = ModelAdapter(
        FakeBackend(error=RuntimeError("gpu down"), name="gpu"),
        FakeBackend(error=OSError("model missing"), name="cpu"),
    )
    with pytest.raises(DetectionFailure) as exc:
        adapter.detect("Jane", "en", 0.5)
    assert "gpu down" in exc.value.reason and "model missing" in exc.value.reason


def test_no_fallback_configured_raises_detection_failure():
    with pytest.raises(DetectionFailure):
        ModelAdapter(FakeBackend(error=RuntimeError("boom"))).detect("Jane", "en")


def test_blank_text_skips_backend():
    backend = FakeBackend()
    assert ModelAdapter(backend).detect("   ") == []
    assert backend.calls == 0


def test_auto_model_resolution():
    assert resolve_spacy_model("auto", "fr") == "fr_core_news_lg"
    assert resolve_spacy_model("auto", "de-DE") == "de_core_news_lg"
    assert resolve_spacy_model("auto", "ja") == "en_core_web_lg"
    assert resolve_spacy_model("en_core_web_sm", "fr") == "en_core_web_sm"
    assert resolve_hf_model("auto", "en") == "dslim/bert-base-NER"
    assert resolve_hf_model("auto", "fr") == "Davlan/bert-base-multilingual-cased-ner-hrl"


def test_spacy_backend_folds_labels(monkeypatch):
    ents = [
        SimpleNamespace(label_="PERSON", text="Jane Roe", start_char=0, end_char=8),
        SimpleNamespace(label_="FAC", text="Pier 39", start_char=12, end_char=19),
        SimpleNamespace(label_="NORP", text="French", start_char=24, end_char=30),
    ]
    loaded = []

    def fake_load(name):
        loaded.append(name)
        return lambda text: SimpleNamespace(ents=ents)

    monkeypatch.setattr(nd, "load_spacy_pipeline", fake_load)
    backend = SpacyNERBackend("auto", default_score=0.8)
    raw = backend.predict("Jane Roe at Pier 39, a French pier", "en")
    backend.predict("again", "en")
    assert loaded == ["en_core_web_lg"]
    assert [r.entity_group for r in raw] == ["PER", "LOC", "MISC"]
    assert all(r.score == 0.8 for r in raw)


def test_spacy_loader_raises_when_nothing_loads(monkeypatch):
    def boom(name):
        raise OSError(f"[E050] Can't find model '{name}'")

    monkeypatch.setattr(nd.spacy, "load", boom)
    with pytest.raises(OSError):
        nd.load_spacy_pipeline("scanredact_missing_model_pkg")


def test_spacy_loader_requires_ner(monkeypatch):
    monkeypatch.setattr(nd.spacy, "load", lambda name: SimpleNamespace(pipe_names=["tagger"]))
    with pytest.raises(OSError):
        nd.load_spacy_pipeline("tagger_only")


def test_build_model_adapter_tiers():
    spacy_adapter = build_model_adapter(
        RunConfig(ner_model="en_core_web_lg", ner_fallback_model="en_core_web_sm")
    )
    assert spacy_adapter.primary.name == "spacy:en_core_web_lg"
    assert spacy_adapter.fallback.name == "spacy:en_core_web_sm"

    hf = build_model_adapter(RunConfig(ner_backend="transformers", ner_device=0))
    assert isinstance(hf.primary, TransformersNERBackend)
    assert hf.primary.device == 0 and hf.fallback.device == -1

    with pytest.raises(ValueError):
        build_model_adapter(RunConfig(ner_backend="nope"))
