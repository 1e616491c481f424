"""
Conversational Q&A over a snapshot of recent sales.

The branch (greeting, empty data set, analytical answer) is picked with
plain checks before the model is called; only the prompt differs.
"""
import json
import logging
import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import List, Sequence

from salesdash.schemas.records import SaleRecord
from salesdash.services.gemini_client import GeminiClient

logger = logging.getLogger(__name__)

GREETING_RE = re.compile(r"^(oi|olá|ola|oie|hey|bom dia|boa tarde|boa noite|tudo bem)\b", re.IGNORECASE)

GREETING_PROMPT = 'Você é a "Maria", uma IA amigável. O usuário disse "{question}". Responda com uma saudação curta e simpática.'

EMPTY_DATA_PROMPT = (
    'Você é a "Maria", uma IA amigável. O usuário perguntou "{question}", mas não há dados de vendas para '
    "analisar. Informe ao usuário de forma educada que não há dados disponíveis no período selecionado e que "
    "ele deve escolher um período com vendas para que você possa ajudar."
)

ANALYSIS_PROMPT = """Você é a "Maria", uma analista de vendas expert da empresa "Sol de Maria". Sua tarefa é responder a perguntas sobre um conjunto de dados de vendas.
Seja concisa, direta e amigável em suas respostas. Aja como uma assistente prestativa.
Baseie sua resposta SOMENTE nos dados de vendas fornecidos. Não invente informações.
Se a resposta não estiver nos dados, informe que não encontrou a informação.
Apresente valores monetários em R$ (Real brasileiro) e use markdown para listas e rankings.

CONTEXTO ATUAL: O usuário está visualizando a página "{pathname}". Use isso para entender melhor a pergunta dele.

Os dados de vendas (as {count} vendas mais recentes) estão no seguinte formato JSON:
{sales_data}

A pergunta do usuário é: "{question}"

Analise os dados e forneça uma resposta clara e objetiva."""

_EPOCH = datetime.min.replace(tzinfo=timezone.utc)


def is_greeting(question: str) -> bool:
    return bool(GREETING_RE.match(question.strip()))


def recent_snapshot(sales: Sequence[SaleRecord], limit: int) -> List[SaleRecord]:
    """The ``limit`` most recent sales, newest first."""
    ordered = sorted(sales, key=lambda s: s.date or _EPOCH, reverse=True)
    return ordered[:limit]


@dataclass
class ChatAnswer:
    answer: str
    branch: str
    data_used: List[dict] = field(default_factory=list)


def build_prompt(question: str, sales_json: str, pathname: str, count: int) -> tuple:
    """Return (branch, prompt) for the question."""
    if is_greeting(question):
        return "greeting", GREETING_PROMPT.format(question=question)
    if count == 0 or not sales_json.strip() or sales_json.strip() == "[]":
        return "empty", EMPTY_DATA_PROMPT.format(question=question)
    return "analysis", ANALYSIS_PROMPT.format(
        pathname=pathname or "/dashboard",
        count=count,
        sales_data=sales_json,
        question=question,
    )


async def answer_question(client: GeminiClient, question: str, sales: Sequence[SaleRecord],
                          pathname: str, api_key: str, limit: int = 100) -> ChatAnswer:
    snapshot = [s.to_document() for s in recent_snapshot(sales, limit)]
    sales_json = json.dumps(snapshot, ensure_ascii=False)
    branch, prompt = build_prompt(question, sales_json, pathname, len(snapshot))
    logger.info("Chat question on %s answered via %s branch (%d records)", pathname, branch, len(snapshot))
    text = await client.generate(prompt, api_key, temperature=0.2)
    return ChatAnswer(answer=text, branch=branch, data_used=snapshot if branch == "analysis" else [])
