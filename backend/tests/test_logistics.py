"""
Tests for logistics field extraction and merging.
"""
import asyncio
import json

import pytest

from salesdash.services.gemini_client import GenerationError
from salesdash.services.logistics_service import (
    Extraction,
    merge_extractions,
    organize_logistics,
    parse_logistics_text,
    parse_model_output,
)

from conftest import ScriptedGemini


RECORDS = [
    {"id": "1", "logistica": "Matheus/R$20", "entregador": "", "valor": 0, "cliente": "Ana"},
    {"id": "2", "logistica": "X_Loja", "entregador": "", "valor": 0},
    {"id": "3", "logistica": "entregue pelo João, quinze reais", "entregador": "", "valor": 0},
]


class TestParseLogisticsText:

    @pytest.mark.parametrize("text", ["Loja", "loja", "X_Loja", " x_loja "])
    def test_store_pickup(self, text):
        extraction = parse_logistics_text("1", text)
        assert extraction.is_store_pickup
        assert extraction.fee == 0

    @pytest.mark.parametrize("text, name, fee", [
        ("Matheus/R$20", "Matheus", 20.0),
        ("Ana Paula / 12,50", "Ana Paula", 12.5),
        ("Carlos/R$ 1.000,00", "Carlos", 1000.0),
        ("Carlos/R$ 1.500", "Carlos", 1500.0),
    ])
    def test_name_and_fee(self, text, name, fee):
        extraction = parse_logistics_text("1", text)
        assert extraction.delivery_person == name
        assert extraction.fee == pytest.approx(fee)
        assert not extraction.is_store_pickup

    @pytest.mark.parametrize("text", [None, "", "entrega combinada", "Matheus"])
    def test_ambiguous(self, text):
        assert parse_logistics_text("1", text) is None


class TestMerge:

    def test_ids_preserved_and_unmatched_untouched(self):
        merged = merge_extractions(RECORDS, [
            Extraction(id="1", delivery_person="Matheus", fee=20.0),
            Extraction(id="2", logistics="Loja"),
        ])
        assert [r["id"] for r in merged] == ["1", "2", "3"]
        assert merged[0]["entregador"] == "Matheus"
        assert merged[0]["valor"] == 20.0
        assert merged[0]["logistica"] == "Matheus/R$20"
        assert merged[0]["cliente"] == "Ana"
        assert merged[1]["logistica"] == "Loja"
        assert merged[1]["entregador"] == ""
        assert merged[2] == RECORDS[2]

    def test_unknown_ids_ignored(self):
        merged = merge_extractions(RECORDS, [Extraction(id="999", delivery_person="X", fee=1)])
        assert merged == RECORDS


class TestModelOutput:

    def test_parses_wrapped_json(self):
        text = 'Claro!\n{"results": [{"id": 3, "entregador": "João", "valor": "15", "logistica": "x"}]}'
        [extraction] = parse_model_output(text)
        assert extraction.id == "3"
        assert extraction.fee == 15.0
        assert extraction.logistics is None

    @pytest.mark.parametrize("text", ["sem json", '{"data": []}'])
    def test_unusable(self, text):
        with pytest.raises(ValueError):
            parse_model_output(text)


class TestOrganize:

    def test_deterministic_only_without_key(self):
        result = asyncio.run(organize_logistics(RECORDS))
        assert result.parsed_ids == ["1", "2"]
        assert result.ai_ids == []
        assert result.unresolved_ids == ["3"]
        assert result.records[2] == RECORDS[2]

    def test_model_asked_only_about_ambiguous_records(self):
        reply = json.dumps({"results": [
            {"id": "3", "entregador": "João", "valor": 15, "logistica": ""},
            {"id": "77", "entregador": "Invented", "valor": 1, "logistica": ""},
        ]})
        gemini = ScriptedGemini(reply)
        result = asyncio.run(organize_logistics(RECORDS, gemini, "key"))

        assert len(gemini.calls) == 1
        assert '"3"' in gemini.calls[0]["prompt"]
        assert "Matheus/R$20" not in gemini.calls[0]["prompt"]
        assert gemini.calls[0]["json_output"] is True
        assert result.ai_ids == ["3"]
        assert result.unresolved_ids == []
        assert [r["id"] for r in result.records] == ["1", "2", "3"]
        assert result.records[2]["entregador"] == "João"

    @pytest.mark.parametrize("reply", ["nada útil", GenerationError("API Error: 500")])
    def test_unusable_model_reply_leaves_records(self, reply):
        result = asyncio.run(organize_logistics(RECORDS, ScriptedGemini(reply), "key"))
        assert result.unresolved_ids == ["3"]
        assert result.records[2] == RECORDS[2]
        assert result.records[0]["entregador"] == "Matheus"


def test_model_reply_merged_by_id():
    records = [{"id": "1", "logistica": "Matheus/R$20"}, {"id": "2", "logistica": "Loja"}]
    reply = json.dumps({"results": [
        {"id": "1", "entregador": "Matheus", "valor": 20},
        {"id": "2", "logistica": "Loja"},
    ]})
    merged = merge_extractions(records, parse_model_output(reply))
    assert merged == [
        {"id": "1", "logistica": "Matheus/R$20", "entregador": "Matheus", "valor": 20.0},
        {"id": "2", "logistica": "Loja", "entregador": "", "valor": 0},
    ]
