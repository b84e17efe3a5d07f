import json
from collections.abc import Generator
from datetime import date
from decimal import Decimal
from unittest.mock import MagicMock, patch

import pytest

from finance_assistant.errors import ParseError
from finance_assistant.models import TransactionType
from finance_assistant.parsers.llm import LLMTransactionParser


@pytest.fixture
def mock_openai_client() -> Generator[MagicMock, None, None]:
    with patch("finance_assistant.parsers.llm.OpenAI") as mock:
        yield mock


def _reply(mock_openai_client: MagicMock, payload: object) -> MagicMock:
    mock_instance = mock_openai_client.return_value
    mock_response = MagicMock()
    mock_response.output_text = payload if isinstance(payload, str) else json.dumps(payload)
    mock_instance.responses.create.return_value = mock_response
    return mock_instance


def test_llm_parse(mock_openai_client: MagicMock) -> None:
    mock_instance = _reply(
        mock_openai_client,
        {"amount": 45000, "type": "expense", "category": "food", "description": "Ăn phở", "date": "2025-11-20"},
    )

    parser = LLMTransactionParser(api_key="sk-fake", model="gpt-4")
    candidate = parser.parse_sync("Ăn phở 45k")

    assert candidate.amount == Decimal(45000)
    assert candidate.type is TransactionType.EXPENSE
    assert candidate.category == "food"
    assert candidate.date == date(2025, 11, 20)
    assert candidate.original_text == "Ăn phở 45k"

    mock_instance.responses.create.assert_called_once()
    kwargs = mock_instance.responses.create.call_args.kwargs
    assert kwargs["model"] == "gpt-4"
    assert "Ăn phở 45k" in kwargs["input"]


def test_llm_parse_normalizes_category_and_defaults_date(mock_openai_client: MagicMock) -> None:
    _reply(
        mock_openai_client,
        "```json\n{\"amount\": 15000000, \"type\": \"income\", \"category\": \"Lương\", \"date\": null}\n```",
    )

    parser = LLMTransactionParser(api_key="sk-fake")
    candidate = parser.parse_sync("Lương tháng này 15tr")

    assert candidate.type is TransactionType.INCOME
    assert candidate.category == "salary"
    assert candidate.date == date.today()


def test_llm_parse_unknown_category_becomes_other(mock_openai_client: MagicMock) -> None:
    _reply(mock_openai_client, {"amount": 80000, "type": "expense", "category": "zzzz"})

    parser = LLMTransactionParser(api_key="sk-fake")

    assert parser.parse_sync("mua đồ 80k").category == "other"


@pytest.mark.parametrize(
    "output",
    [
        "I could not find a transaction.",
        "{not json}",
        json.dumps({"amount": 0, "type": "expense", "category": "food"}),
        json.dumps({"type": "expense", "category": "food"}),
    ],
)
def test_llm_parse_rejects_bad_output(mock_openai_client: MagicMock, output: str) -> None:
    _reply(mock_openai_client, output)

    parser = LLMTransactionParser(api_key="sk-fake")

    with pytest.raises(ParseError):
        parser.parse_sync("Ăn phở 45k")


def test_llm_api_error(mock_openai_client: MagicMock) -> None:
    mock_instance = mock_openai_client.return_value
    mock_instance.responses.create.side_effect = Exception("API Error")

    parser = LLMTransactionParser(api_key="sk-fake")

    with pytest.raises(ParseError):
        parser.parse_sync("Ăn phở 45k")


@pytest.mark.anyio
async def test_llm_parse_async(mock_openai_client: MagicMock) -> None:
    _reply(mock_openai_client, {"amount": 30000, "type": "expense", "category": "food"})

    parser = LLMTransactionParser(api_key="sk-fake")
    candidate = await parser.parse("cafe 30k")

    assert candidate.amount == Decimal(30000)


def test_prompt_lists_categories(mock_openai_client: MagicMock) -> None:
    parser = LLMTransactionParser(api_key="sk-fake")

    prompt = parser.build_prompt("Ăn phở 45k", today=date(2025, 11, 20))

    assert "Today is 2025-11-20." in prompt
    assert "food, transport" in prompt
    assert "salary, freelance" in prompt
