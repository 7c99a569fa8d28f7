"""Pydantic schemas for the collaborator wire format and the web API."""
