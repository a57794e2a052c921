from __future__ import annotations

import argparse
import logging
from datetime import datetime
from typing import Callable, Optional

from apscheduler.schedulers.background import BackgroundScheduler
from fastapi import APIRouter, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from config import Settings
from database import create_store_engine, init_db, make_session_factory
from identity_store import IdentityStore
from routers.auth import router as auth_router
from routers.register import router as register_router
from routers.verify import router as verify_router
from utils.brevo_sms import BrevoSmsChannel, DeliveryChannel
from utils.housekeeping import purge_stale_guests
from utils.identity_service import IdentityService
from utils.otp_service import OtpService
from utils.password_hasher import CredentialHasher
from utils.results import ErrorKind


logger = logging.getLogger(__name__)


def create_app(
    settings: Optional[Settings] = None,
    *,
    channel: Optional[DeliveryChannel] = None,
    clock: Optional[Callable[[], datetime]] = None,
    run_scheduler: bool = True,
) -> FastAPI:
    settings = settings or Settings.from_env()
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    app = FastAPI(title="Lost & Found API")

    engine = create_store_engine(settings)
    init_db(engine)
    store = IdentityStore(make_session_factory(engine))

    app.state.settings = settings
    app.state.engine = engine
    app.state.identity_store = store
    app.state.otp_service = OtpService(
        store,
        channel or BrevoSmsChannel.from_settings(settings),
        settings=settings,
        clock=clock,
    )
    app.state.identity_service = IdentityService(
        store,
        CredentialHasher(settings.credential_hash_cost),
        settings=settings,
        clock=clock,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(RequestValidationError)
    async def _invalid_input(request: Request, exc: RequestValidationError):
        # Report field names only; inputs may hold passwords.
        fields = [".".join(str(p) for p in err.get("loc", ()) if p != "body") for err in exc.errors()]
        kind = ErrorKind.INVALID_INPUT
        return JSONResponse(
            status_code=kind.status_code,
            content={"detail": {"error": kind.value, "message": kind.message, "fields": fields}},
        )

    api = APIRouter()

    @api.get("/")
    def root():
        return {"message": "Welcome to Lost & Found API"}

    api.include_router(register_router)
    api.include_router(verify_router)
    api.include_router(auth_router)
    app.include_router(api, prefix="/api")

    @app.on_event("startup")
    def _start_scheduler():
        if not run_scheduler:
            return
        # Drop abandoned guest sign-ups periodically.
        sched = BackgroundScheduler(timezone="UTC")
        sched.add_job(
            purge_stale_guests,
            "interval",
            minutes=30,
            id="purge_stale_guests",
            replace_existing=True,
            kwargs={"store": store, "retention_hours": settings.guest_retention_hours},
        )
        sched.start()
        app.state._scheduler = sched

    @app.on_event("shutdown")
    def _shutdown():
        sched = getattr(app.state, "_scheduler", None)
        if sched:
            sched.shutdown(wait=False)
        engine.dispose()

    return app


def main() -> None:
    import uvicorn

    parser = argparse.ArgumentParser(description="Run the Lost & Found API server")
    parser.add_argument("--host", default="0.0.0.0")
    parser.add_argument("--port", type=int, default=5000)
    args = parser.parse_args()

    settings = Settings.from_env()
    app = create_app(settings)
    logger.info("Starting Lost & Found API on port %d", args.port)
    uvicorn.run(app, host=args.host, port=args.port)


if __name__ == "__main__":
    main()
