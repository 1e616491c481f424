"""
Chat endpoint: questions about recent sales, answered by the model.
"""
import json
import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from salesdash.config import settings
from salesdash.database import get_db
from salesdash.dependencies import get_gemini
from salesdash.limiter import limiter
from salesdash.schemas.ai import ChatRequest, ChatResponse
from salesdash.services import data_service
from salesdash.services.chat_service import answer_question

logger = logging.getLogger(__name__)

router = APIRouter(tags=["chat"])


def _queries_executed() -> list:
    return [{
        "collection": settings.SALES_COLLECTION,
        "orderByField": "data",
        "orderDirection": "desc",
        "limitCount": settings.CHAT_SNAPSHOT_LIMIT,
    }]


@router.post("", response_model=ChatResponse)
@limiter.limit(settings.CHAT_RATE_LIMIT)
async def chat(request: Request, db=Depends(get_db), client=Depends(get_gemini)):
    try:
        body = ChatRequest.model_validate(json.loads(await request.body()))
    except (ValueError, ValidationError) as exc:
        return JSONResponse(
            status_code=400,
            content={"error": "Corpo da requisição inválido", "details": str(exc)},
        )

    if not body.question or not body.question.strip():
        return JSONResponse(status_code=400, content={"error": "Pergunta não fornecida"})
    if not body.apiKey:
        return JSONResponse(status_code=400, content={"error": "Chave da API do Gemini não configurada"})

    try:
        resource = data_service.sales_resource(db, None, None)
        try:
            await resource.load()
        finally:
            resource.close()
        if resource.error is not None:
            raise resource.error
        result = await answer_question(
            client,
            body.question.strip(),
            resource.data,
            body.pathname or "/dashboard",
            body.apiKey,
            limit=settings.CHAT_SNAPSHOT_LIMIT,
        )
    except Exception as exc:
        logger.exception("Chat question failed")
        return JSONResponse(
            status_code=500,
            content={"error": "Erro ao processar pergunta", "details": str(exc)},
        )

    return {
        "answer": result.answer,
        "dataUsed": result.data_used,
        "queriesExecuted": _queries_executed(),
    }
