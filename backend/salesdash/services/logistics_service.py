"""
Logistics field extraction.

The free-text ``logistica`` field holds either the store-pickup sentinel
(``"Loja"``, older uploads ``"X_Loja"``) or ``"<delivery person>/<fee>"``,
e.g. ``"Matheus/R$20"``. Those shapes are parsed deterministically; the
generative model is asked only about the records the parser cannot read.
"""
import json
import logging
import re
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional

from salesdash.services.gemini_client import GeminiClient, GenerationError
from salesdash.utils.parsing import parse_brl

logger = logging.getLogger(__name__)

STORE_PICKUP = "Loja"
_STORE_PICKUP_VALUES = {"loja", "x_loja"}
_NAME_FEE_RE = re.compile(r"^\s*(?P<name>[^/]+?)\s*/\s*(?P<fee>(?:R\$)?\s*-?[\d.,]+)\s*$", re.IGNORECASE)

EXTRACTION_PROMPT = """Organize estes dados de logística. Para cada item:
- Se logistica = "X_Loja" ou "Loja", defina: entregador = "", valor = 0, logistica = "Loja"
- Se logistica indica um entregador e um valor, extraia o nome do entregador e o valor numérico em reais
- Mantenha sempre o id original, sem alterações

Dados: {items}

Retorne apenas este JSON:
{{"results": [{{"id": "...", "entregador": "...", "valor": 0, "logistica": "..."}}]}}"""


@dataclass(frozen=True)
class Extraction:
    id: str
    delivery_person: str = ""
    fee: float = 0.0
    logistics: Optional[str] = None

    @property
    def is_store_pickup(self) -> bool:
        return self.logistics == STORE_PICKUP


@dataclass
class OrganizeResult:
    records: List[dict]
    parsed_ids: List[str] = field(default_factory=list)
    ai_ids: List[str] = field(default_factory=list)
    unresolved_ids: List[str] = field(default_factory=list)


def parse_logistics_text(record_id: str, text: Optional[str]) -> Optional[Extraction]:
    """Read a logistics field. Returns None when the text is ambiguous."""
    if text is None:
        return None
    value = str(text).strip()
    if value.lower() in _STORE_PICKUP_VALUES:
        return Extraction(id=record_id, logistics=STORE_PICKUP)
    match = _NAME_FEE_RE.match(value)
    if match:
        return Extraction(id=record_id, delivery_person=match.group("name").strip(), fee=parse_brl(match.group("fee")))
    return None


def merge_extractions(records: Iterable[dict], extractions: Iterable[Extraction]) -> List[dict]:
    """
    Merge extractions back into ``records`` by id.

    Records without an extraction are returned untouched; ids are never
    rewritten.
    """
    by_id: Dict[str, Extraction] = {str(e.id): e for e in extractions}
    merged = []
    for original in records:
        extraction = by_id.get(str(original.get("id")))
        if extraction is None:
            merged.append(original)
            continue
        merged.append({
            **original,
            "entregador": extraction.delivery_person or "",
            "valor": extraction.fee or 0,
            "logistica": STORE_PICKUP if extraction.is_store_pickup else original.get("logistica"),
        })
    return merged


def parse_model_output(text: str) -> List[Extraction]:
    """Extractions from the model's JSON reply. Raises ValueError when unusable."""
    match = re.search(r"\{[\s\S]*\}", text)
    if not match:
        raise ValueError("JSON não encontrado na resposta")
    parsed = json.loads(match.group(0))
    results = parsed.get("results") if isinstance(parsed, dict) else None
    if not isinstance(results, list):
        raise ValueError("Formato inválido da resposta da IA")

    extractions = []
    for item in results:
        if not isinstance(item, dict) or item.get("id") is None:
            continue
        extractions.append(Extraction(
            id=str(item["id"]),
            delivery_person=str(item.get("entregador") or "").strip(),
            fee=parse_brl(item.get("valor")),
            logistics=STORE_PICKUP if item.get("logistica") == STORE_PICKUP else None,
        ))
    return extractions


async def extract_with_model(client: GeminiClient, records: List[dict], api_key: str) -> List[Extraction]:
    items = [
        {
            "id": r.get("id"),
            "logistica": r.get("logistica"),
            "entregador": r.get("entregador", ""),
            "valor": r.get("valor", 0),
        }
        for r in records
    ]
    text = await client.generate(
        EXTRACTION_PROMPT.format(items=json.dumps(items, ensure_ascii=False, indent=2)),
        api_key,
        temperature=0.1,
        max_output_tokens=4096,
        json_output=True,
    )
    requested = {str(r.get("id")) for r in records}
    # ignore anything the model made up
    return [e for e in parse_model_output(text) if e.id in requested]


async def organize_logistics(records: List[dict], client: Optional[GeminiClient] = None,
                             api_key: str = "") -> OrganizeResult:
    """Fill ``entregador``/``valor`` for every record that can be read."""
    extractions: List[Extraction] = []
    ambiguous: List[dict] = []
    for record in records:
        extraction = parse_logistics_text(str(record.get("id")), record.get("logistica"))
        if extraction is None:
            ambiguous.append(record)
        else:
            extractions.append(extraction)

    result = OrganizeResult(records=[], parsed_ids=[e.id for e in extractions])

    if ambiguous and client is not None and api_key:
        logger.info("Asking the model about %d ambiguous logistics records", len(ambiguous))
        try:
            from_model = await extract_with_model(client, ambiguous, api_key)
        except (GenerationError, ValueError) as exc:
            logger.warning("Model extraction unusable, leaving %d records untouched: %s", len(ambiguous), exc)
            from_model = []
        extractions.extend(from_model)
        result.ai_ids = [e.id for e in from_model]

    resolved = {e.id for e in extractions}
    result.unresolved_ids = [str(r.get("id")) for r in ambiguous if str(r.get("id")) not in resolved]
    result.records = merge_extractions(records, extractions)
    return result
