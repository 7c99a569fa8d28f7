"""FastAPI application instance and startup hooks."""
from __future__ import annotations

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, RedirectResponse

from schoolpay import __version__
from schoolpay.core import get_logger
from schoolpay.domain.salary import SalaryError
from schoolpay.schemas.salary_views import OutcomeView
from schoolpay.services import outcome_from_error
from schoolpay.web.dependencies import get_runtime
from schoolpay.web.routers import salary_calculations_router
from schoolpay.web.routers.salary_calculations import STATUS_BY_KIND

LOGGER = get_logger(__name__)


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""

    app = FastAPI(title="Teacher Salary Calculations", version=__version__)
    app.include_router(salary_calculations_router)

    @app.exception_handler(SalaryError)
    async def salary_error_handler(request: Request, exc: SalaryError) -> JSONResponse:
        outcome = outcome_from_error(exc)
        LOGGER.warning("Unhandled salary error on %s: %s", request.url.path, exc.message)
        return JSONResponse(
            status_code=STATUS_BY_KIND[outcome.kind],
            content=OutcomeView.from_domain(outcome).model_dump(mode="json", by_alias=True),
        )

    @app.on_event("shutdown")
    async def close_collaborator() -> None:
        runtime = app.dependency_overrides.get(get_runtime, get_runtime)()
        await runtime.aclose()
        LOGGER.info("Salary collaborator closed")

    @app.get("/", include_in_schema=False)
    async def root_redirect() -> RedirectResponse:  # pragma: no cover - simple redirect
        return RedirectResponse(url="/docs")

    LOGGER.info("FastAPI application initialised")
    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("schoolpay.main:app", host="127.0.0.1", port=8000, reload=False)
