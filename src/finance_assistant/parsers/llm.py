import asyncio
import json
import os
from datetime import date
from typing import Any

from openai import OpenAI
from pydantic import ValidationError

from finance_assistant.core import settings
from finance_assistant.domain.categories import categories_for, normalize_category
from finance_assistant.errors import ParseError
from finance_assistant.logger import get_logger
from finance_assistant.models import TransactionCandidate, TransactionType

from .base import TransactionParser

logger = get_logger(__name__)

PROMPT_TEMPLATE = """
Extract one personal finance transaction from the message below.
Message: {text}
Today is {today}.

Amounts are in VND. Expand shorthand: "45k" = 45000, "2tr" or "2 triệu" = 2000000,
"1 củ" = 1000000, "200.000" = 200000.
Expense categories: {expense_categories}
Income categories: {income_categories}

Return ONLY a JSON object with the keys:
"amount" (number), "type" ("expense" or "income"), "category" (one of the categories
for that type), "description" (short text), "date" (YYYY-MM-DD, or null if the
message does not mention a date).
"""


class LLMTransactionParser(TransactionParser):
    def __init__(
        self,
        api_key: str | None = None,
        model: str | None = None,
        base_url: str | None = None,
        category_threshold: float | None = None,
    ):
        self.client = OpenAI(
            api_key=api_key or os.getenv("OPENAI_API_KEY"),
            base_url=base_url or os.getenv("OPENAI_BASE_URL") or None
        )
        self.model = model or os.getenv("OPENAI_MODEL") or settings.DEFAULT_OPENAI_MODEL
        self.category_threshold = (
            category_threshold
            if category_threshold is not None
            else settings.get_category_match_threshold()
        )

    def build_prompt(self, text: str, today: date | None = None) -> str:
        return PROMPT_TEMPLATE.format(
            text=text,
            today=(today or date.today()).isoformat(),
            expense_categories=", ".join(categories_for(TransactionType.EXPENSE)),
            income_categories=", ".join(categories_for(TransactionType.INCOME)),
        )

    async def parse(self, text: str) -> TransactionCandidate:
        return await asyncio.to_thread(self.parse_sync, text)

    def parse_sync(self, text: str) -> TransactionCandidate:
        try:
            response = self.client.responses.create(
                model=self.model,
                instructions="You are a helpful financial assistant that outputs strict JSON.",
                input=self.build_prompt(text),
                temperature=0.0
            )
        except Exception as exc:
            logger.error("[PARSE] LLM request failed: %s", exc)
            raise ParseError("LLM request failed") from exc

        output = self._extract_output_text(response)
        if not output:
            raise ParseError("LLM returned no output")

        data = self._load_json(output)
        return self._build_candidate(data, text)

    @staticmethod
    def _load_json(output: str) -> dict[str, Any]:
        cleaned = output.strip()
        if cleaned.startswith("```"):
            cleaned = cleaned.strip("`")
            if cleaned.lower().startswith("json"):
                cleaned = cleaned[4:]
        start = cleaned.find("{")
        end = cleaned.rfind("}")
        if start == -1 or end < start:
            raise ParseError("LLM output did not contain a JSON object")
        try:
            data = json.loads(cleaned[start:end + 1])
        except json.JSONDecodeError as exc:
            raise ParseError("LLM output was not valid JSON") from exc
        if not isinstance(data, dict):
            raise ParseError("LLM output was not a JSON object")
        return data

    def _build_candidate(self, data: dict[str, Any], text: str) -> TransactionCandidate:
        raw_type = str(data.get("type") or "expense").strip().lower()
        transaction_type = TransactionType.INCOME if raw_type == "income" else TransactionType.EXPENSE
        category = normalize_category(
            transaction_type,
            data.get("category"),
            threshold=self.category_threshold,
        )
        if category != data.get("category"):
            logger.debug(
                "[PARSE] Category '%s' normalized to '%s'.",
                data.get("category"),
                category,
            )

        try:
            return TransactionCandidate(
                amount=data.get("amount"),
                category=category,
                description=data.get("description") or None,
                date=data.get("date"),
                type=transaction_type,
                original_text=text,
            )
        except ValidationError as exc:
            logger.warning("[PARSE] LLM result rejected for '%s...': %s", text[:50], exc)
            raise ParseError("LLM returned an invalid transaction") from exc

    @staticmethod
    def _extract_output_text(response: object) -> str | None:
        output_text = getattr(response, "output_text", None)
        if output_text:
            return output_text

        output = getattr(response, "output", None)
        if not output:
            return None

        parts: list[str] = []
        for item in output:
            content = getattr(item, "content", None)
            if not content:
                continue
            for block in content:
                block_type = getattr(block, "type", None)
                if block_type in {"output_text", "text"}:
                    text = getattr(block, "text", None)
                    if text:
                        parts.append(text)

        if parts:
            return "".join(parts)
        return None
