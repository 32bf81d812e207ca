"""
Serving — FastAPI application for ingestion, search, stats and chat.

Run locally with ``uvicorn knowledge_hub.serving.app:app``.
"""
