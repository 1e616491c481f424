"""
Cost spreadsheet normalisation

Uploaded cost sheets name their columns after the ERP export
(``mov_estoque``, ``valor_da_parcela``...). ``organize_costs`` maps them onto
the fields the costs pages read and never drops a row.
"""
import logging
from typing import List

from salesdash.utils.parsing import parse_brl

logger = logging.getLogger(__name__)

# export column -> stored field; a present value always wins
COLUMN_MAP = (
    ("mov_estoque", "codigo"),
    ("valor_da_parcela", "valor"),
    ("tipo", "tipo_pagamento"),
    ("parcelas1", "parcela"),
)

# alternative spellings, only used when the stored field is empty
FIELD_ALIASES = (
    ("modo_pagamento", "modo_de_pagamento"),
    ("instituicao", "instituicao_financeira"),
)

TEXT_DEFAULTS = ("modo_de_pagamento", "instituicao_financeira", "tipo_pagamento", "parcela")

CODE_WIDTH = 6


class RowCountMismatch(ValueError):
    pass


def fallback_code(position: int) -> str:
    """Sequential code for rows without a stock movement number."""
    return str(position + 1).zfill(CODE_WIDTH)


def organize_cost_row(row: dict, position: int) -> dict:
    item = dict(row)

    for source, target in COLUMN_MAP:
        if item.get(source):
            item[target] = item[source]
    if item.get("codigo"):
        item["codigo"] = str(item["codigo"])
    else:
        item["codigo"] = fallback_code(position)

    for source, target in FIELD_ALIASES:
        if not item.get(target) and item.get(source):
            item[target] = item[source]

    item["valor"] = parse_brl(item.get("valor"))
    for field in TEXT_DEFAULTS:
        item[field] = item.get(field) or ""
    return item


def organize_costs(rows: List[dict]) -> List[dict]:
    """
    Normalise uploaded cost rows.

    Args:
        rows: Rows as parsed from the spreadsheet

    Returns:
        One organised row per input row, in input order

    Raises:
        RowCountMismatch: if the output would not hold every input row
    """
    organized = [organize_cost_row(row, position) for position, row in enumerate(rows)]
    if len(organized) != len(rows):
        raise RowCountMismatch(f"Perda de dados: {len(rows)} → {len(organized)}")
    logger.info("Organised %d cost rows", len(organized))
    return organized
