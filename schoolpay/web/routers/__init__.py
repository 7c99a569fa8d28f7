"""Routers exposed by the salary web API."""

from .salary_calculations import router as salary_calculations_router

__all__ = ["salary_calculations_router"]
