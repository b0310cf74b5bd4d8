from __future__ import annotations

from fastapi import FastAPI

from .endpoints import router

app = FastAPI(title="Log Ingestion Verifier", version="0.1.0")
app.include_router(router)
