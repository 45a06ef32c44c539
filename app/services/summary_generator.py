"""
Natural-language synopsis for a region's overlays and metrics.

The completion provider is preferred but never trusted: failures, timeouts
and empty or unusable output all degrade to a deterministic system summary.
"""

from __future__ import annotations

import asyncio
import json
import logging
import re
from textwrap import dedent
from typing import Optional, Protocol

from app.core.errors import SummaryProviderError
from app.schemas import InsightSummary, MapOverlays, MetricsSnapshot

logger = logging.getLogger(__name__)

MAX_BULLETS = 3
_PROMPT_LIST_LIMIT = 25
_BULLET_MARKUP = re.compile(r"^\s*(?:[-*•>#]+|\d+[.)])(?:\s+|$)")
_EMPHASIS_MARKUP = re.compile(r"(\*\*|__)(.+?)\1")

SYSTEM_PROMPT = dedent(
    """
    You are a procurement intelligence analyst summarizing RFx opportunity
    activity on a live map. Be concise and factual.
    """
).strip()


class CompletionClient(Protocol):
    async def complete(self, system_prompt: str, user_prompt: str) -> str:
        ...


def _format_number(value: float | int) -> str:
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    return f"{value:,}" if isinstance(value, int) else f"{value:,.2f}"


def build_user_prompt(
    *, region: str, overlays: MapOverlays, metrics: MetricsSnapshot
) -> str:
    context = {
        "region": region,
        "totals": metrics.totals.model_dump(by_alias=True),
        "hotspots": metrics.hotspots[:_PROMPT_LIST_LIMIT],
        "anomalies": overlays.ai_insights.anomalies[:_PROMPT_LIST_LIMIT],
    }
    return (
        "Summarize the current RFx map activity for this region:\n"
        f"{json.dumps(context, default=str)}\n\n"
        "Respond with one overview sentence on the first line, followed by up "
        f"to {MAX_BULLETS} short bullet points, one per line. No other text."
    )


def parse_completion(text: Optional[str]) -> Optional[InsightSummary]:
    """Turn completion text into a summary, or ``None`` when it is unusable."""
    if not text or not isinstance(text, str):
        return None

    lines = []
    for raw_line in text.splitlines():
        line = _BULLET_MARKUP.sub("", raw_line)
        line = _EMPHASIS_MARKUP.sub(r"\2", line).strip()
        if line:
            lines.append(line)
    if not lines:
        return None

    return InsightSummary(
        text=lines[0],
        bullets=lines[1 : MAX_BULLETS + 1],
        provider="openai",
    )


def build_fallback_summary(
    *, region: str, overlays: MapOverlays, metrics: MetricsSnapshot
) -> InsightSummary:
    """Deterministic synopsis templated from the metric totals."""
    totals = metrics.totals
    hotspot_count = len(metrics.hotspots) or len(overlays.ai_insights.heatmap)
    return InsightSummary(
        text=(
            f"{_format_number(totals.active_rfx)} active RFx opportunities in "
            f"{region} across {hotspot_count} hotspot"
            f"{'' if hotspot_count == 1 else 's'}."
        ),
        bullets=[
            f"{_format_number(totals.open_opportunities)} open opportunities awaiting responses.",
            f"Vendor coverage at {_format_number(totals.vendor_coverage)}%.",
            f"{_format_number(totals.anomalies)} anomalies flagged for review.",
        ],
        provider="system",
    )


class SummaryGenerator:
    """Produce an ``InsightSummary``; never raises."""

    def __init__(
        self,
        completion_client: Optional[CompletionClient],
        *,
        timeout_seconds: float = 8.0,
    ) -> None:
        self._client = completion_client
        self._timeout = timeout_seconds

    async def generate(
        self, *, region: str, overlays: MapOverlays, metrics: MetricsSnapshot
    ) -> InsightSummary:
        if self._client is None:
            return build_fallback_summary(region=region, overlays=overlays, metrics=metrics)

        summary = await self._try_completion(region=region, overlays=overlays, metrics=metrics)
        if summary is not None:
            return summary
        return build_fallback_summary(region=region, overlays=overlays, metrics=metrics)

    async def _try_completion(
        self, *, region: str, overlays: MapOverlays, metrics: MetricsSnapshot
    ) -> Optional[InsightSummary]:
        user_prompt = build_user_prompt(region=region, overlays=overlays, metrics=metrics)
        try:
            text = await asyncio.wait_for(
                self._client.complete(SYSTEM_PROMPT, user_prompt),
                timeout=self._timeout,
            )
        except asyncio.TimeoutError:
            logger.warning(
                "Completion provider timed out after %.1fs for region %s",
                self._timeout,
                region,
            )
            return None
        except SummaryProviderError as exc:
            logger.warning("Completion provider failed for region %s: %s", region, exc)
            return None
        except Exception:
            logger.exception("Unexpected completion provider error for region %s", region)
            return None

        summary = parse_completion(text)
        if summary is None:
            logger.warning("Completion provider returned no usable text for region %s", region)
        return summary


__all__ = [
    "CompletionClient",
    "SummaryGenerator",
    "build_fallback_summary",
    "build_user_prompt",
    "parse_completion",
]
