from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from app.core.config import settings
from app.core.exceptions import AccessDeniedError
from app.core.logging import configure_logging

configure_logging()

from app.api.routers.access import router as access_router  # noqa: E402
from app.api.routers.audit import router as audit_router  # noqa: E402
from app.api.routers.auth import router as auth_router  # noqa: E402
from app.api.routers.records import router as records_router  # noqa: E402

app = FastAPI(
    title=settings.app_name,
    version="1.0.0",
    description=(
        "Role-based permission resolution and record visibility for the Upteky Central "
        "HR/CRM dashboard: navigation gating, per-user overrides, team-scoped records."
    ),
)


@app.exception_handler(AccessDeniedError)
def access_denied_handler(request: Request, exc: AccessDeniedError) -> JSONResponse:
    return JSONResponse(status_code=403, content={"detail": "Forbidden"})


@app.get("/")
def health() -> dict[str, str]:
    return {"status": "ok", "service": settings.app_name}


app.include_router(auth_router)
app.include_router(access_router)
app.include_router(records_router)
app.include_router(audit_router)
