"""FastAPI surface for the salary tab."""
