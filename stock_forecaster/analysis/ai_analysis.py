"""
LLM narrative analysis via the Gemini generative-language API.

API:   https://generativelanguage.googleapis.com/v1beta/
Docs:  https://ai.google.dev/api/generate-content

Credential setup (.env, gitignored):
  GEMINI_API_KEY=your_api_key

Request::

    POST {base_url}/models/{model}:generateContent?key={api_key}
    {"contents": [{"parts": [{"text": prompt}]}],
     "generationConfig": {"temperature": ..., "topK": ..., "topP": ...,
                          "maxOutputTokens": ...}}

The prompt embeds the stock's quote and fundamentals as JSON and asks for a
JSON reply.  The first ``{...}`` block in the reply text is parsed into
``AIAnalysis``.  ``analyze_stock`` never raises for provider problems: a
missing key, an HTTP failure or an unparseable reply all produce a neutral
HOLD fallback carrying an error message.
"""

from __future__ import annotations

import json
import logging
import re
from typing import Any, Literal, Optional

import httpx
from pydantic import BaseModel, ConfigDict, ValidationError, field_validator
from pydantic.alias_generators import to_camel

from stock_forecaster.config import AnalysisConfig
from stock_forecaster.models.market import StockInfo

logger = logging.getLogger(__name__)

_JSON_BLOCK = re.compile(r"\{[\s\S]*\}")

FALLBACK_ERROR = "Failed to generate AI analysis. Please try again."

RESPONSE_SCHEMA = """{
  "overallScore": number (0-100),
  "recommendation": "BUY" | "HOLD" | "SELL",
  "confidence": number (0-100),
  "targetPrice": number,
  "riskLevel": "Low" | "Medium" | "High",
  "timeHorizon": string,
  "strengths": [string array of 4-6 key strengths],
  "concerns": [string array of 3-5 key concerns],
  "catalysts": [string array of 3-5 growth catalysts],
  "riskFactors": [
    {
      "factor": string,
      "level": "Low" | "Medium" | "High",
      "score": number (0-100),
      "description": string
    }
  ],
  "fundamentalScore": number (0-100),
  "technicalScore": number (0-100),
  "sentimentScore": number (0-100),
  "momentumScore": number (0-100),
  "valueScore": number (0-100)
}"""


class _CamelModel(BaseModel):
    model_config = ConfigDict(
        frozen=True, alias_generator=to_camel, populate_by_name=True, extra="ignore"
    )


class RiskFactor(_CamelModel):
    factor: str
    level: Literal["Low", "Medium", "High"] = "Medium"
    score: float = 0.0
    description: str = ""


class AIAnalysis(_CamelModel):
    """Parsed narrative analysis.  ``error`` is set only on the fallback."""

    overall_score: float = 0.0
    recommendation: Literal["BUY", "HOLD", "SELL"] = "HOLD"
    confidence: float = 0.0
    target_price: float = 0.0
    risk_level: Literal["Low", "Medium", "High"] = "High"
    time_horizon: str = ""
    strengths: tuple[str, ...] = ()
    concerns: tuple[str, ...] = ()
    catalysts: tuple[str, ...] = ()
    risk_factors: tuple[RiskFactor, ...] = ()
    fundamental_score: Optional[float] = None
    technical_score: Optional[float] = None
    sentiment_score: Optional[float] = None
    momentum_score: Optional[float] = None
    value_score: Optional[float] = None
    error: Optional[str] = None

    @field_validator("recommendation", mode="before")
    @classmethod
    def normalise_recommendation(cls, v: Any) -> Any:
        return v.strip().upper() if isinstance(v, str) else v

    @field_validator("risk_level", mode="before")
    @classmethod
    def normalise_risk_level(cls, v: Any) -> Any:
        return v.strip().capitalize() if isinstance(v, str) else v


class GeminiClient:
    """Client for the ``generateContent`` endpoint.

    Args:
        api_key:     Key from ``GEMINI_API_KEY``; ``None`` disables calls.
        config:      ``[analysis]`` section of ``AppConfig``.
        http_client: Optional ``httpx.Client`` (tests pass one built on a
            ``MockTransport``).
    """

    def __init__(
        self,
        api_key: Optional[str],
        config: AnalysisConfig,
        http_client: Optional[httpx.Client] = None,
    ) -> None:
        self.api_key = api_key
        self.config = config
        self._http = http_client or httpx.Client(timeout=config.timeout_seconds)

    def generate(self, prompt: str) -> str:
        """Send ``prompt`` and return the first candidate's text.

        Raises:
            RuntimeError:          If no API key is configured.
            httpx.HTTPStatusError: On non-2xx API response.
            ValueError:            If the response has no candidate text.
        """
        if not self.api_key:
            raise RuntimeError("GEMINI_API_KEY must be set in .env.")

        resp = self._http.post(
            f"{self.config.base_url}/models/{self.config.model}:generateContent",
            params={"key": self.api_key},
            json={
                "contents": [{"parts": [{"text": prompt}]}],
                "generationConfig": {
                    "temperature": self.config.temperature,
                    "topK": self.config.top_k,
                    "topP": self.config.top_p,
                    "maxOutputTokens": self.config.max_output_tokens,
                },
            },
        )
        resp.raise_for_status()
        return _candidate_text(resp.json())


def _candidate_text(payload: dict) -> str:
    try:
        return payload["candidates"][0]["content"]["parts"][0]["text"]
    except (KeyError, IndexError, TypeError):
        raise ValueError("Invalid response from Gemini API: no candidate text.") from None


def build_stock_payload(symbol: str, info: StockInfo) -> dict[str, Any]:
    """Flatten quote and fundamentals into the JSON shown to the model."""
    return {
        "symbol": symbol,
        "currentPrice": info.current_price or 0,
        "marketCap": info.market_cap or 0,
        "peRatio": info.trailing_pe or 0,
        "priceToBook": info.price_to_book or 0,
        "debtToEquity": info.debt_to_equity or 0,
        "roe": info.return_on_equity or 0,
        "volume": info.volume or 0,
        "fiftyTwoWeekHigh": info.fifty_two_week_high or 0,
        "fiftyTwoWeekLow": info.fifty_two_week_low or 0,
        "dividendYield": info.dividend_yield or 0,
        "sector": info.sector or "Unknown",
        "industry": info.industry or "Unknown",
        "currentRatio": info.current_ratio or 0,
        "beta": info.beta or 0,
        "eps": info.trailing_eps or 0,
        "fundamentalsEstimated": info.is_estimated,
    }


def build_prompt(symbol: str, info: StockInfo) -> str:
    payload = json.dumps(build_stock_payload(symbol, info), indent=2)
    return (
        "You are a professional investment analyst. Analyze the following stock data "
        f"for {symbol} and provide a comprehensive investment analysis.\n\n"
        f"Stock Data:\n{payload}\n\n"
        "Please provide a detailed analysis in the following JSON format:\n"
        f"{RESPONSE_SCHEMA}\n\n"
        "Analyze the financial ratios, growth metrics, valuation, and market position. "
        "Consider sector dynamics, competitive landscape, and current market conditions. "
        "Be specific and actionable in your recommendations."
    )


def parse_analysis(text: str) -> AIAnalysis:
    """Parse the first ``{...}`` block of a model reply.

    Raises:
        ValueError: If no JSON block is found or it does not validate.
    """
    match = _JSON_BLOCK.search(text)
    if match is None:
        raise ValueError("No valid JSON found in AI response.")
    try:
        return AIAnalysis.model_validate(json.loads(match.group(0)))
    except (json.JSONDecodeError, ValidationError) as exc:
        raise ValueError(f"Failed to parse AI analysis: {exc}") from exc


def fallback_analysis(current_price: float, error: str = FALLBACK_ERROR) -> AIAnalysis:
    return AIAnalysis(
        overall_score=0.0,
        recommendation="HOLD",
        confidence=0.0,
        target_price=current_price,
        risk_level="High",
        time_horizon="Unable to analyze",
        error=error,
    )


def analyze_stock(symbol: str, info: StockInfo, client: GeminiClient) -> AIAnalysis:
    """Ask the model for an analysis of ``symbol``; fall back to HOLD on any provider failure."""
    try:
        text = client.generate(build_prompt(symbol, info))
        analysis = parse_analysis(text)
    except RuntimeError as exc:
        logger.warning("AI analysis skipped for %s: %s", symbol, exc)
        return fallback_analysis(info.current_price, error=str(exc))
    except (httpx.HTTPError, ValueError) as exc:
        logger.error("AI analysis failed for %s: %s", symbol, exc)
        return fallback_analysis(info.current_price)

    logger.info(
        "AI analysis for %s: %s (confidence %.0f)",
        symbol, analysis.recommendation, analysis.confidence,
    )
    return analysis
