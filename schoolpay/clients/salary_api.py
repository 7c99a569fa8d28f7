"""HTTP client for the salary calculation API."""
from __future__ import annotations

from decimal import Decimal
from typing import Any, Callable, TypeVar
from urllib.parse import quote

import httpx
from pydantic import ValidationError as PayloadError

from schoolpay.core.log import get_logger, timeit
from schoolpay.domain.salary import (
    ErrorCode,
    NetworkError,
    SalaryCalculation,
    SalaryCalculationDetail,
    SalaryPreview,
)
from schoolpay.domain.salary.errors import error_from_response
from schoolpay.schemas.salary import (
    ApproveSalaryRequest,
    GenerateSalaryRequest,
    ReopenSalaryRequest,
    SalaryCalculationDetailPayload,
    SalaryCalculationPayload,
    TeacherSalaryPreviewPayload,
)

from .base import CalculationFilters

LOGGER = get_logger(__name__)

T = TypeVar("T")


class SalaryApiPaths:
    """Endpoint templates of the teacher salary API."""

    @staticmethod
    def calculations(teacher_id: str) -> str:
        return f"/api/teachers/{quote(teacher_id, safe='')}/salary-calculations"

    @classmethod
    def calculation(cls, teacher_id: str, calculation_id: str) -> str:
        return f"{cls.calculations(teacher_id)}/{quote(calculation_id, safe='')}"

    @classmethod
    def approve(cls, teacher_id: str, calculation_id: str) -> str:
        return f"{cls.calculation(teacher_id, calculation_id)}/approve"

    @classmethod
    def reopen(cls, teacher_id: str, calculation_id: str) -> str:
        return f"{cls.calculation(teacher_id, calculation_id)}/reopen"

    @staticmethod
    def preview(teacher_id: str) -> str:
        return f"/api/teachers/{quote(teacher_id, safe='')}/salary-preview"


def _response_payload(response: httpx.Response) -> Any:
    if not response.content:
        return None
    try:
        return response.json()
    except ValueError:
        return {"detail": response.text}


def _parse(payload: Any, parser: Callable[[Any], T], what: str) -> T:
    try:
        return parser(payload)
    except (PayloadError, ValueError, TypeError) as exc:
        LOGGER.error("Malformed %s payload from salary API: %s", what, exc)
        raise NetworkError(
            f"Received a malformed {what} from the salary service", code=ErrorCode.SERVER
        ) from exc


class SalaryApiClient:
    """Async client implementing ``SalaryCalculationApi`` over HTTP.

    Transport failures, timeouts and 5xx responses become ``NetworkError``;
    other error responses are mapped by their ProblemDetails code.
    """

    def __init__(
        self,
        base_url: str,
        *,
        token: str | None = None,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._slow_after = timeout / 2
        headers = {"Accept": "application/json"}
        if token:
            headers["Authorization"] = f"Bearer {token}"
        self._client = httpx.AsyncClient(
            base_url=base_url,
            headers=headers,
            timeout=timeout,
            transport=transport,
        )

    async def __aenter__(self) -> "SalaryApiClient":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _request(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, Any] | None = None,
        json: dict[str, Any] | None = None,
    ) -> Any:
        with timeit(f"{method} {path}", logger=LOGGER, slow_after=self._slow_after) as timer:
            try:
                response = await self._client.request(method, path, params=params, json=json)
            except httpx.TimeoutException as exc:
                raise NetworkError("The salary service did not respond in time") from exc
            except httpx.HTTPError as exc:
                LOGGER.warning("Salary API transport error: %s", exc)
                raise NetworkError("Could not reach the salary service") from exc
            timer.outcome = str(response.status_code)

        payload = _response_payload(response)
        if response.is_error:
            error = error_from_response(response.status_code, payload)
            LOGGER.info(
                "Salary API rejected %s %s with %s (%s)",
                method,
                path,
                response.status_code,
                error.code,
            )
            raise error
        return payload

    async def list_calculations(
        self,
        teacher_id: str,
        filters: CalculationFilters | None = None,
    ) -> list[SalaryCalculation]:
        params = filters.as_query() if filters else None
        payload = await self._request("GET", SalaryApiPaths.calculations(teacher_id), params=params)
        if isinstance(payload, dict):
            payload = payload.get("items", [])
        return _parse(
            payload or [],
            lambda rows: [SalaryCalculationPayload.model_validate(row).to_domain() for row in rows],
            "calculation list",
        )

    async def get_calculation(
        self, teacher_id: str, calculation_id: str
    ) -> SalaryCalculationDetail:
        payload = await self._request("GET", SalaryApiPaths.calculation(teacher_id, calculation_id))
        return _parse(
            payload,
            lambda data: SalaryCalculationDetailPayload.model_validate(data).to_detail(),
            "calculation detail",
        )

    async def generate(
        self, teacher_id: str, period_start: str, period_end: str
    ) -> SalaryCalculation:
        body = GenerateSalaryRequest(period_start=period_start, period_end=period_end)
        payload = await self._request(
            "POST",
            SalaryApiPaths.calculations(teacher_id),
            json=body.model_dump(by_alias=True),
        )
        return self._calculation(payload)

    async def approve(
        self,
        teacher_id: str,
        calculation_id: str,
        approved_amount: Decimal,
        adjustment_reason: str | None = None,
    ) -> SalaryCalculation:
        body = ApproveSalaryRequest(
            approved_amount=approved_amount, adjustment_reason=adjustment_reason
        )
        payload = await self._request(
            "POST",
            SalaryApiPaths.approve(teacher_id, calculation_id),
            json=body.model_dump(by_alias=True, exclude_none=True),
        )
        return self._calculation(payload)

    async def reopen(
        self, teacher_id: str, calculation_id: str, reason: str
    ) -> SalaryCalculation:
        body = ReopenSalaryRequest(reason=reason)
        payload = await self._request(
            "POST",
            SalaryApiPaths.reopen(teacher_id, calculation_id),
            json=body.model_dump(by_alias=True),
        )
        return self._calculation(payload)

    async def preview(
        self, teacher_id: str, period_start: str, period_end: str
    ) -> SalaryPreview:
        payload = await self._request(
            "GET",
            SalaryApiPaths.preview(teacher_id),
            params={"periodStart": period_start, "periodEnd": period_end},
        )
        return _parse(
            payload,
            lambda data: TeacherSalaryPreviewPayload.model_validate(data).to_domain(),
            "salary preview",
        )

    @staticmethod
    def _calculation(payload: Any) -> SalaryCalculation:
        # Mutations answer with either a bare calculation or {"calculation": {...}}.
        if isinstance(payload, dict) and isinstance(payload.get("calculation"), dict):
            payload = payload["calculation"]
        return _parse(
            payload,
            lambda data: SalaryCalculationPayload.model_validate(data).to_domain(),
            "calculation",
        )
