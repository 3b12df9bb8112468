"""
AI Agent for Ledgerbook

The agent turns ledger data into prompts for the text client.

CRITICAL BOUNDARIES:
- CAN: Summarize records it is given, answer free-text questions
- CANNOT: Read or change the ledger (it only receives copies)
- CANNOT: Invent records; the analysis prompt carries the exact snapshot data
"""

import json
from typing import Optional, Protocol, Sequence

from ledgerbook.models.record import Record


ANALYSIS_PROMPT = """You are a financial expert. Analyze the following JSON list of \
transactions (income and expenses) and write a short report with:

1. Total income and total expenses
2. The most frequent category (store)
3. The largest single transaction
4. Whether there were savings, and the final balance
5. One useful, personalized piece of advice

Use only the data below. If the list is empty, say that there is nothing to analyze.
{scope}
Transactions:
{transactions}
"""


class TextClient(Protocol):
    """Anything that turns a prompt into text (see GeminiTextClient)."""

    async def complete(self, prompt: str) -> str:
        ...


class LedgerAnalysisAgent:
    """
    Builds ledger prompts and forwards them to a text client.

    Errors from the client (ConfigurationError, RemoteError) propagate
    unchanged; the command layer reports them.
    """

    def __init__(self, client: TextClient):
        self._client = client

    @staticmethod
    def build_analysis_prompt(
        records: Sequence[Record],
        category: Optional[str] = None,
    ) -> str:
        """Embed the records, in snapshot encoding, into the analysis prompt."""
        transactions = json.dumps(
            [record.to_snapshot() for record in records],
            indent=2,
            ensure_ascii=False,
        )
        scope = f"Only transactions for the category '{category}' are included.\n" if category else ""
        return ANALYSIS_PROMPT.format(scope=scope, transactions=transactions)

    async def analyze(
        self,
        records: Sequence[Record],
        category: Optional[str] = None,
    ) -> str:
        """Ask the model for a report over `records`."""
        prompt = self.build_analysis_prompt(records, category)
        return await self._client.complete(prompt)

    async def ask(self, question: str) -> str:
        """Forward a free-text question."""
        return await self._client.complete(question.strip())
