"""FastAPI application package for the thank-you page survey service.

Exposes the application factory. Business logic lives in `app/logic/`,
route handlers in `app/routes/` and the headless checkout client in
`app/wizard.py`.
"""

from __future__ import annotations

from app.main import create_app

__all__ = ["create_app"]
