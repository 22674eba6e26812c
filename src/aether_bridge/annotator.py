"""Advisory transaction summaries. Never gates a transfer."""

from __future__ import annotations

import logging
from decimal import Decimal
from typing import Any, Protocol

import requests

from .config import AnnotatorConfig

logger = logging.getLogger(__name__)

FALLBACK_SUMMARY = (
    "AI Security Analysis unavailable at this time. Proceeding with standard verification."
)
EMPTY_SUMMARY = "Transaction analysis unavailable."

_PROMPT = (
    "You are a blockchain security auditor for cross-chain bridge transfers. "
    "A user is bridging {amount} {asset} from {source} to {destination}. "
    "Transaction Hash: {tx_id}. "
    "Provide a brief, technical, yet reassuring analysis of this transaction and "
    "mention the off-chain proof it will wait for. Keep it under 60 words."
)


class Annotator(Protocol):
    def summarize(
        self,
        amount: Decimal | str,
        source_name: str,
        destination_name: str,
        tx_id: str,
        asset: str = "USDC",
    ) -> str: ...


class StaticAnnotator:
    """Returns a fixed text; used when no annotation service is configured."""

    def __init__(self, text: str = FALLBACK_SUMMARY) -> None:
        self.text = text
        self.calls: list[str] = []

    def summarize(
        self,
        amount: Decimal | str,
        source_name: str,
        destination_name: str,
        tx_id: str,
        asset: str = "USDC",
    ) -> str:
        self.calls.append(tx_id)
        return self.text


class GeminiAnnotator:
    """Summaries from the Generative Language REST API.

    Every failure (missing key, transport, HTTP status, response shape) is
    absorbed into :data:`FALLBACK_SUMMARY`.
    """

    def __init__(
        self, config: AnnotatorConfig | None = None, session: requests.Session | None = None
    ) -> None:
        self._config = config or AnnotatorConfig()
        self._session = session or requests.Session()

    def summarize(
        self,
        amount: Decimal | str,
        source_name: str,
        destination_name: str,
        tx_id: str,
        asset: str = "USDC",
    ) -> str:
        if not self._config.api_key:
            logger.debug("Annotator has no API key; returning fallback summary")
            return FALLBACK_SUMMARY

        prompt = _PROMPT.format(
            amount=amount,
            asset=asset,
            source=source_name,
            destination=destination_name,
            tx_id=tx_id,
        )
        url = f"{self._config.base_url.rstrip('/')}/models/{self._config.model}:generateContent"
        body = {"contents": [{"parts": [{"text": prompt}]}]}

        try:
            response = self._session.post(
                url,
                params={"key": self._config.api_key},
                json=body,
                timeout=self._config.request_timeout,
            )
            response.raise_for_status()
            payload = response.json()
        except (requests.RequestException, ValueError) as exc:
            logger.warning("Transaction analysis failed: %s", exc)
            return FALLBACK_SUMMARY

        return _extract_text(payload) or EMPTY_SUMMARY


def _extract_text(payload: Any) -> str:
    if not isinstance(payload, dict):
        return ""
    for candidate in payload.get("candidates") or []:
        if not isinstance(candidate, dict):
            continue
        content = candidate.get("content") or {}
        parts = content.get("parts") if isinstance(content, dict) else None
        texts = [
            part["text"]
            for part in parts or []
            if isinstance(part, dict) and isinstance(part.get("text"), str)
        ]
        if texts:
            return "".join(texts).strip()
    return ""
