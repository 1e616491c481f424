"""
API tests for insights, logistics organisation and the chat endpoint.
"""
import json

import pytest

from salesdash.config import settings
from salesdash.services.collection_service import record_cache
from salesdash.services.gemini_client import GenerationError

from conftest import auth, sale


@pytest.fixture
def logistics_token(identity):
    identity.add_token("log-token", "u-log", role="logistica")
    return "log-token"


class TestInsights:

    def test_insights_over_sales(self, client, db, gemini):
        db.add("vendas", "1", sale("1", 2, "Vestido", 250))
        gemini.replies.append("Vestido lidera as vendas.")
        response = client.post("/api/v1/insights", json={"apiKey": "k"}, headers=auth("seller-token"))

        assert response.status_code == 200
        assert response.json() == {"insights": "Vestido lidera as vendas.", "records": 1}
        assert "Vestido" in gemini.calls[0]["prompt"]
        assert gemini.calls[0]["api_key"] == "k"

    def test_date_window(self, client, db, gemini):
        db.add("vendas", "1", sale("1", 2, "Vestido", 250))
        db.add("vendas", "2", sale("2", 20, "Saia", 90))
        gemini.replies.append("Saia em alta.")
        response = client.post(
            "/api/v1/insights",
            json={"apiKey": "k", "dateFrom": "2024-05-10T00:00:00Z", "dateTo": "2024-05-31T23:59:59Z"},
            headers=auth("seller-token"),
        )

        assert response.json()["records"] == 1
        assert "Saia" in gemini.calls[0]["prompt"]
        assert "Vestido" not in gemini.calls[0]["prompt"]

    def test_missing_key(self, client, monkeypatch):
        monkeypatch.setattr(settings, "GEMINI_API_KEY", "")
        response = client.post("/api/v1/insights", json={}, headers=auth("seller-token"))
        assert response.status_code == 400

    def test_generation_failure_is_502(self, client, gemini):
        gemini.replies.append(GenerationError("API Error: 429"))
        response = client.post("/api/v1/insights", json={"apiKey": "k"}, headers=auth("seller-token"))
        assert response.status_code == 502


class TestOrganizeLogistics:

    def test_organizes_given_records(self, client, logistics_token, gemini):
        response = client.post(
            "/api/v1/logistics/organize",
            json={"logisticsData": [
                {"id": "a", "logistica": "Matheus/R$20"},
                {"id": "b", "logistica": "Loja"},
            ]},
            headers=auth(logistics_token),
        )
        body = response.json()
        assert response.status_code == 200
        assert [r["id"] for r in body["organizedData"]] == ["a", "b"]
        assert body["organizedData"][0]["entregador"] == "Matheus"
        assert body["organizedData"][0]["valor"] == 20
        assert body["organizedData"][1]["logistica"] == "Loja"
        assert body["parsedIds"] == ["a", "b"]
        assert gemini.calls == []

    def test_seller_denied(self, client):
        response = client.post("/api/v1/logistics/organize", json={}, headers=auth("seller-token"))
        assert response.status_code == 403

    def test_persists_collection_records(self, client, db, logistics_token, gemini, monkeypatch):
        monkeypatch.setattr(settings, "GEMINI_API_KEY", "")
        db.add("logistica", "a", {"logistica": "Carlos/R$ 15,00", "cliente": "Ana"})
        db.add("logistica", "b", {"logistica": "combinar com cliente"})

        response = client.post("/api/v1/logistics/organize", json={"persist": True}, headers=auth(logistics_token))
        body = response.json()

        assert body["persisted"] == 1
        assert body["unresolvedIds"] == ["b"]
        assert db.data["logistica"]["a"] == {
            "logistica": "Carlos/R$ 15,00",
            "cliente": "Ana",
            "entregador": "Carlos",
            "valor": 15.0,
        }
        assert db.data["logistica"]["b"] == {"logistica": "combinar com cliente"}
        assert db.batches[0].committed
        assert "logistica-all" not in record_cache


class TestChat:

    def test_invalid_body(self, client):
        response = client.post("/api/chat", content=b"{not json", headers={"Content-Type": "application/json"})
        assert response.status_code == 400
        assert response.json()["error"] == "Corpo da requisição inválido"

    def test_missing_question(self, client, gemini):
        response = client.post("/api/chat", json={"apiKey": "k"})
        assert response.status_code == 400
        assert response.json() == {"error": "Pergunta não fornecida"}
        assert gemini.calls == []

    def test_missing_key(self, client):
        response = client.post("/api/chat", json={"question": "Quanto vendemos?"})
        assert response.status_code == 400

    def test_greeting_skips_data(self, client, db, gemini):
        db.add("vendas", "1", sale("1", 2))
        gemini.replies.append("Olá! Como posso ajudar?")
        response = client.post("/api/chat", json={"question": "Oi, tudo bem?", "apiKey": "k"})

        body = response.json()
        assert body["answer"] == "Olá! Como posso ajudar?"
        assert body["dataUsed"] == []
        assert body["queriesExecuted"] == [{
            "collection": "vendas",
            "orderByField": "data",
            "orderDirection": "desc",
            "limitCount": 100,
        }]

    def test_empty_data_set(self, client, gemini):
        client.post("/api/chat", json={"question": "Qual o produto campeão?", "apiKey": "k"})
        assert "não há dados" in gemini.calls[0]["prompt"]

    def test_analysis_uses_recent_snapshot(self, client, db, gemini):
        for day in range(1, 6):
            db.add("vendas", str(day), sale(str(day), day, revenue=day * 10))
        response = client.post(
            "/api/chat",
            json={"question": "Qual o faturamento?", "apiKey": "k", "pathname": "/dashboard/vendas"},
        )
        body = response.json()
        prompt = gemini.calls[0]["prompt"]
        assert [r["id"] for r in body["dataUsed"]] == ["5", "4", "3", "2", "1"]
        assert '"/dashboard/vendas"' in prompt
        assert json.dumps(body["dataUsed"], ensure_ascii=False) in prompt

    def test_model_failure_is_500(self, client, db, gemini):
        db.add("vendas", "1", sale("1", 2))
        gemini.replies.append(GenerationError("API Error: 500"))
        response = client.post("/api/chat", json={"question": "Qual o faturamento?", "apiKey": "k"})
        assert response.status_code == 500
        assert response.json() == {"error": "Erro ao processar pergunta", "details": "API Error: 500"}
