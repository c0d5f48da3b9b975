from __future__ import annotations

from typing import Any, Dict, List, Optional

from fastapi import Body, FastAPI, Header, HTTPException, Request

from . import __version__
from . import logger as log
from .service import IntakeService


def _user_key(request: Request, x_user_email: Optional[str]) -> str:
    if x_user_email and x_user_email.strip():
        return x_user_email.strip().lower()
    return request.client.host if request.client else "anonymous"


def create_app(service: IntakeService) -> FastAPI:
    app = FastAPI(title="Sheet Intake", version=__version__)

    @app.get("/health")
    async def health() -> Dict[str, str]:
        return {"status": "ok"}

    # Handlers are sync so FastAPI runs them in its threadpool; the
    # submission lock then serializes concurrent requests.
    @app.get("/api/sheets")
    def get_sheet_names() -> List[str]:
        try:
            return service.get_sheet_names()
        except Exception:
            log.exception("Failed to list sheets")
            raise HTTPException(status_code=503, detail="Unable to load sheet names.")

    @app.post("/api/upload")
    def upload_file(meta: Dict[str, Any] = Body(...)) -> Dict[str, Any]:
        return service.upload_file(meta)

    @app.post("/api/submit")
    def submit_data(payload: Dict[str, Any] = Body(...)) -> Dict[str, Any]:
        return service.submit_data(payload)

    @app.post("/api/session/start")
    def start_session(
        request: Request, x_user_email: Optional[str] = Header(default=None)
    ) -> Dict[str, Any]:
        return service.start_session(_user_key(request, x_user_email))

    @app.get("/api/session/check")
    def check_session(
        request: Request, x_user_email: Optional[str] = Header(default=None)
    ) -> Dict[str, Any]:
        return service.check_session(_user_key(request, x_user_email))

    return app
