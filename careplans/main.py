"""FastAPI application entrypoint for the Care Plan Tracker."""

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, RedirectResponse
from starlette.middleware.sessions import SessionMiddleware

from careplans.api.admin import router as admin_router
from careplans.api.auth import router as auth_router
from careplans.api.dashboard import router as dashboard_router
from careplans.api.history import router as history_router
from careplans.api.plans import router as plans_router
from careplans.api.settings import router as settings_router
from careplans.core.config import settings
from careplans.core.errors import PlanTrackerError, StaleSession
from careplans.core.logging_config import setup_logging

setup_logging()

app = FastAPI(title="Care Plan Tracker")
app.add_middleware(SessionMiddleware, secret_key=settings.session_secret)


@app.exception_handler(StaleSession)
async def stale_session_handler(request: Request, exc: StaleSession):
    """Send visitors without a valid session to the sign-in page."""
    return RedirectResponse(url="/auth/login", status_code=303)


@app.exception_handler(PlanTrackerError)
async def plan_tracker_error_handler(request: Request, exc: PlanTrackerError):
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail})


app.include_router(auth_router)
app.include_router(dashboard_router)
app.include_router(history_router)
app.include_router(plans_router)
app.include_router(admin_router)
app.include_router(settings_router)


@app.get("/health")
def health() -> dict[str, bool]:
    """Basic liveness probe endpoint."""
    return {"ok": True}
