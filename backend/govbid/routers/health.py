from __future__ import annotations

from fastapi import APIRouter

from ..settings import settings

router = APIRouter()


@router.get("/", tags=["health"])
def health():
    return {
        "message": "GovBid Contract Finder API",
        "version": "1.0.0",
        "status": "running",
        "port": settings.port,
        "environment": settings.environment,
        "storage": "dynamodb" if settings.ddb_table_name else "memory",
        "chatProvider": settings.normalized_chat_provider,
        "endpoints": [
            "GET /api/opportunities/{id}/summary",
            "GET /api/opportunities/{id}/chat",
            "POST /api/opportunities/{id}/chat",
            "DELETE /api/opportunities/{id}/view",
            "POST /api/opportunities/{id}/bid/drafting",
            "POST /api/opportunities/{id}/bid/rfqs-sent",
            "GET /api/bids",
        ],
    }
