"""Shared FastAPI dependency definitions."""
from __future__ import annotations

from functools import lru_cache

from schoolpay.clients import InMemorySalaryApi, SalaryApiClient, SalaryCalculationApi
from schoolpay.core.config import Settings, get_settings
from schoolpay.core.log import get_logger
from schoolpay.repositories import SalaryCalculationStore
from schoolpay.services import SalaryCalculationService, SalaryPreviewEngine, SalaryPreviewPanel

LOGGER = get_logger(__name__)


def build_salary_api(settings: Settings) -> SalaryCalculationApi:
    """Create the collaborator selected by ``SALARY_API_BACKEND``."""

    if settings.api.backend == "http":
        return SalaryApiClient(
            settings.api.base_url,
            token=settings.api.token,
            timeout=settings.api.timeout_seconds,
        )
    LOGGER.warning("Using the in-memory salary backend; data is lost on restart")
    return InMemorySalaryApi()


class SalaryRuntime:
    """Process-wide collaborator, store and preview panels.

    The store and the panels hold per-teacher state, so they live as long as
    the application rather than a single request.
    """

    def __init__(
        self,
        api: SalaryCalculationApi,
        *,
        currency: str = "MKD",
        service: SalaryCalculationService | None = None,
    ) -> None:
        self.api = api
        self.currency = currency
        self.service = service or SalaryCalculationService(api, SalaryCalculationStore(api))
        self._panels: dict[str, SalaryPreviewPanel] = {}

    def preview_panel(self, teacher_id: str) -> SalaryPreviewPanel:
        panel = self._panels.get(teacher_id)
        if panel is None:
            engine = SalaryPreviewEngine(
                self.api,
                teacher_id,
                availability_provider=lambda: self.service.availability(teacher_id),
            )
            panel = self._panels[teacher_id] = SalaryPreviewPanel(engine)
        return panel

    async def aclose(self) -> None:
        close = getattr(self.api, "aclose", None)
        if close is not None:
            await close()


@lru_cache(maxsize=1)
def get_runtime() -> SalaryRuntime:
    """Return the shared runtime; tests override this dependency."""

    settings = get_settings()
    return SalaryRuntime(build_salary_api(settings), currency=settings.currency)
