"""Liveness endpoint with a database check."""

from __future__ import annotations

import logging
from typing import Any, Dict

from fastapi import APIRouter
from sqlalchemy import text as sql_text
from sqlalchemy.exc import SQLAlchemyError

from app.db.base import get_engine

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("/health", include_in_schema=False)
def health() -> Dict[str, Any]:
    try:
        with get_engine().connect() as conn:
            conn.execute(sql_text("SELECT 1")).fetchone()
    except SQLAlchemyError as e:
        logger.error("Health DB check failed", exc_info=True)
        return {"status": "degraded", "db": False, "reason": str(e)}
    return {"status": "ok", "db": True}
