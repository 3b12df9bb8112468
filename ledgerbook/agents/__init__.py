"""AI Agents package."""

from ledgerbook.agents.ai_agents import (
    ANALYSIS_PROMPT,
    LedgerAnalysisAgent,
    TextClient,
)

__all__ = [
    "ANALYSIS_PROMPT",
    "LedgerAnalysisAgent",
    "TextClient",
]
