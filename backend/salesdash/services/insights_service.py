"""
Sales insight generation: free-form narrative over a sales data set.
"""
import logging

from salesdash.services.gemini_client import GeminiClient

logger = logging.getLogger(__name__)

INSIGHTS_PROMPT = """Você é um analista de vendas sênior especializado em identificar tendências e oportunidades em dados de vendas. Analise os seguintes dados de vendas e forneça insights concisos e acionáveis em português do Brasil.

Dados de Vendas:
{sales_data}

Considere os seguintes aspectos ao gerar os insights:

*   Tendências de vendas por categoria de produto.
*   Produtos com melhor e pior desempenho.
*   Variações sazonais nas vendas.
*   Oportunidades para aumentar as vendas.

Formato de saída:
Os insights devem ser apresentados em um formato de texto claro e conciso, destacando as principais descobertas e recomendações."""


async def generate_sales_insights(client: GeminiClient, sales_json: str, api_key: str) -> str:
    """Narrative insights for a JSON-encoded sales array. Raises GenerationError."""
    logger.info("Generating sales insights (%d chars of data)", len(sales_json))
    return await client.generate(INSIGHTS_PROMPT.format(sales_data=sales_json), api_key, temperature=0.4)
