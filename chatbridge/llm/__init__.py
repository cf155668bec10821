"""LLM orchestration service: FastAPI app, schemas and services."""
