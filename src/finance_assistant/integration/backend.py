import asyncio
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Any

import httpx
from pydantic import BaseModel, ValidationError

from finance_assistant.core import settings
from finance_assistant.domain.categories import normalize_category
from finance_assistant.errors import ParseError, PersistenceError
from finance_assistant.integration.base import PersistenceService
from finance_assistant.integration.session import Session
from finance_assistant.logger import get_logger
from finance_assistant.models import (
    Expense,
    Income,
    RecurringFields,
    RecurringTransaction,
    RecurringUpdate,
    TransactionCandidate,
    TransactionFields,
    TransactionType,
)
from finance_assistant.parsers.base import TransactionParser

logger = get_logger(__name__)

# Never retried after a 401; a failing refresh must not trigger another refresh.
AUTH_PATHS = frozenset({"/auth/login", "/auth/register", "/auth/refresh", "/auth/logout"})


def _json_number(value: Decimal) -> int | float:
    if value == value.to_integral_value():
        return int(value)
    return float(value)


def build_payload(model: BaseModel) -> dict[str, Any]:
    payload = model.model_dump(mode="python", by_alias=True, exclude_none=True)
    for key, value in list(payload.items()):
        if isinstance(value, Decimal):
            payload[key] = _json_number(value)
        elif isinstance(value, date):
            payload[key] = value.isoformat()
        elif isinstance(value, Enum):
            payload[key] = value.value
    return payload


class BackendClient(TransactionParser, PersistenceService):
    """
    Async client for the expense tracker REST API.

    Serves as both the remote parse service (``/ai/parse``) and the persistence
    service for expenses, incomes and recurring schedules.
    """

    def __init__(
        self,
        base_url: str | None = None,
        session: Session | None = None,
        client: httpx.AsyncClient | None = None,
        timeout: float | None = None,
        category_threshold: float | None = None,
    ):
        self.base_url = (base_url or settings.get_backend_url()).rstrip("/")
        self.session = session or Session()
        self.timeout = timeout if timeout is not None else settings.get_backend_timeout()
        self.category_threshold = (
            category_threshold
            if category_threshold is not None
            else settings.get_category_match_threshold()
        )
        self._client = client
        self._client_lock = asyncio.Lock()
        self._refresh_lock = asyncio.Lock()

    async def aclose(self) -> None:
        if self._client and not self._client.is_closed:
            await self._client.aclose()

    async def _get_client(self) -> httpx.AsyncClient:
        client = self._client
        if client is not None and not client.is_closed:
            return client

        async with self._client_lock:
            client = self._client
            if client is None or client.is_closed:
                client = httpx.AsyncClient()
                self._client = client
            return client

    def _headers(self) -> dict[str, str]:
        return {
            "Content-Type": "application/json",
            "Accept": "application/json",
            **self.session.auth_headers(),
        }

    async def _send(
        self,
        method: str,
        path: str,
        *,
        json: dict[str, Any] | None = None,
    ) -> httpx.Response:
        client = await self._get_client()
        return await client.request(
            method,
            f"{self.base_url}{path}",
            headers=self._headers(),
            json=json,
            timeout=self.timeout,
        )

    async def _refresh_session(self, stale_token: str | None) -> None:
        async with self._refresh_lock:
            # Another request already refreshed while this one waited.
            if self.session.access_token and self.session.access_token != stale_token:
                return
            response = await self._send("POST", "/auth/refresh")
            if response.status_code >= 400:
                self.session.clear()
                logger.warning("[BACKEND] Session refresh failed with status %s.", response.status_code)
                raise PersistenceError("Session expired", status_code=response.status_code)
            try:
                token = response.json().get("access_token")
            except ValueError:
                token = None
            if not token:
                self.session.clear()
                raise PersistenceError("Session expired", status_code=401)
            self.session.refreshed(token)
            logger.debug("[BACKEND] Access token refreshed.")

    async def request(
        self,
        method: str,
        path: str,
        *,
        json: dict[str, Any] | None = None,
    ) -> httpx.Response:
        token_used = self.session.access_token
        response = await self._send(method, path, json=json)
        if response.status_code == 401 and path not in AUTH_PATHS:
            await self._refresh_session(token_used)
            response = await self._send(method, path, json=json)
        response.raise_for_status()
        return response

    async def _call(
        self,
        method: str,
        path: str,
        *,
        json: dict[str, Any] | None = None,
        action: str,
        error_cls: type[ParseError] | type[PersistenceError] = PersistenceError,
    ) -> Any:
        try:
            response = await self.request(method, path, json=json)
        except (ParseError, PersistenceError):
            raise
        except httpx.HTTPStatusError as exc:
            status = exc.response.status_code
            logger.error("[BACKEND] %s failed with status %s: %s", action, status, exc.response.text[:200])
            if error_cls is PersistenceError:
                raise PersistenceError(f"{action} failed", status_code=status) from exc
            raise error_cls(f"{action} failed") from exc
        except httpx.HTTPError as exc:
            logger.error("[BACKEND] %s failed: %s", action, exc)
            if error_cls is PersistenceError:
                raise PersistenceError(f"{action} failed") from exc
            raise error_cls(f"{action} failed") from exc

        if response.status_code == 204 or not response.content:
            return None
        try:
            return response.json()
        except ValueError as exc:
            logger.error("[BACKEND] %s returned a non-JSON body: %s", action, response.text[:200])
            raise error_cls(f"{action} returned an invalid response") from exc

    async def login(self, email: str, password: str) -> Session:
        data = await self._call(
            "POST",
            "/auth/login",
            json={"email": email, "password": password},
            action="Login",
        )
        token = (data or {}).get("access_token")
        if not token:
            raise PersistenceError("Login response did not include an access token")
        self.session.acquire(token, user=(data or {}).get("user"))
        logger.info("[BACKEND] Logged in as %s.", email)
        return self.session

    async def logout(self) -> None:
        try:
            await self._call("POST", "/auth/logout", action="Logout")
        except PersistenceError as exc:
            logger.warning("[BACKEND] Logout request failed (%s); clearing session anyway.", exc)
        finally:
            self.session.clear()

    async def parse(self, text: str) -> TransactionCandidate:
        data = await self._call(
            "POST",
            "/ai/parse",
            json={"text": text},
            action="Parse",
            error_cls=ParseError,
        )
        if not isinstance(data, dict):
            raise ParseError("Parse service returned an empty response")
        data.setdefault("originalText", text)
        data["category"] = self._normalize_category(data)
        try:
            return TransactionCandidate.model_validate(data)
        except ValidationError as exc:
            logger.warning("[PARSE] Rejected parse result for '%s': %s", text[:50], exc)
            raise ParseError("Parse service returned an invalid transaction") from exc

    def _normalize_category(self, data: dict[str, Any]) -> Any:
        raw_type = str(data.get("type") or "").strip().lower()
        if raw_type not in {member.value for member in TransactionType}:
            return data.get("category")
        category = normalize_category(raw_type, data.get("category"), threshold=self.category_threshold)
        if category != data.get("category"):
            logger.debug("[PARSE] Category '%s' normalized to '%s'.", data.get("category"), category)
        return category

    def _validate(self, model: type[BaseModel], data: Any, action: str) -> Any:
        try:
            return model.model_validate(data)
        except ValidationError as exc:
            logger.error("[BACKEND] %s returned an unexpected payload: %s", action, exc)
            raise PersistenceError(f"{action} returned an unexpected payload") from exc

    async def create_expense(self, fields: TransactionFields) -> Expense:
        data = await self._call("POST", "/expenses", json=build_payload(fields), action="Create expense")
        return self._validate(Expense, data, "Create expense")

    async def create_income(self, fields: TransactionFields) -> Income:
        data = await self._call("POST", "/incomes", json=build_payload(fields), action="Create income")
        return self._validate(Income, data, "Create income")

    async def list_recurring(self) -> list[RecurringTransaction]:
        data = await self._call("GET", "/recurring", action="List recurring")
        return [self._validate(RecurringTransaction, item, "List recurring") for item in data or []]

    async def create_recurring(self, fields: RecurringFields) -> RecurringTransaction:
        data = await self._call("POST", "/recurring", json=build_payload(fields), action="Create recurring")
        return self._validate(RecurringTransaction, data, "Create recurring")

    async def update_recurring(self, recurring_id: str, fields: RecurringUpdate) -> RecurringTransaction:
        data = await self._call(
            "PATCH",
            f"/recurring/{recurring_id}",
            json=build_payload(fields),
            action="Update recurring",
        )
        return self._validate(RecurringTransaction, data, "Update recurring")

    async def delete_recurring(self, recurring_id: str) -> None:
        await self._call("DELETE", f"/recurring/{recurring_id}", action="Delete recurring")

    async def toggle_recurring(self, recurring_id: str) -> RecurringTransaction:
        data = await self._call("PATCH", f"/recurring/{recurring_id}/toggle", action="Toggle recurring")
        return self._validate(RecurringTransaction, data, "Toggle recurring")
