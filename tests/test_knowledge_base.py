"""Tests for the drug knowledge tables."""

import json

import pytest

from carevault.services.knowledge_base import (
    DEFAULT_KNOWLEDGE_BASE,
    DrugKnowledgeBase,
    InteractionRule,
    load_knowledge_base,
)


class TestDefaults:
    def test_default_tables_loaded(self):
        kb = DEFAULT_KNOWLEDGE_BASE
        assert "penicillin" in kb.allergy_classes
        assert "amoxicillin" in kb.allergy_classes["penicillin"]
        assert len(kb.allergy_classes) == 14
        assert len(kb.interactions) == 25
        assert "metformin" in kb.diabetes_drugs

    def test_tables_are_immutable(self):
        with pytest.raises(TypeError):
            DEFAULT_KNOWLEDGE_BASE.allergy_classes["new"] = ("x",)


class TestInteractionRule:
    def test_rejects_unknown_severity(self):
        with pytest.raises(ValueError):
            InteractionRule(drugs=("a", "b"), severity="severe", description="")

    def test_rejects_wrong_arity(self):
        with pytest.raises(ValueError):
            InteractionRule(drugs=("a",), severity="high", description="")


class TestLoading:
    def test_round_trip_through_file(self, tmp_path):
        path = tmp_path / "kb.json"
        path.write_text(json.dumps(DEFAULT_KNOWLEDGE_BASE.to_dict()))
        loaded = load_knowledge_base(path)
        assert loaded.to_dict() == DEFAULT_KNOWLEDGE_BASE.to_dict()

    def test_partial_document(self):
        kb = DrugKnowledgeBase.from_dict({"diabetes_drugs": ["tirzepatide"]})
        assert kb.interactions == ()
        assert dict(kb.allergy_classes) == {}
        assert kb.diabetes_drugs == ("tirzepatide",)
