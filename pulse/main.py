from __future__ import annotations

from dotenv import load_dotenv
from fastapi import FastAPI, Request

from pulse.api import (
    auth,
    backup,
    chats,
    containers,
    damage_reports,
    files,
    hiring,
    injury_reports,
    readiness,
    reports,
    terminations,
    users,
    work_orders,
    workforce,
)
from pulse.config import environment, setup_logging
from pulse.errors import install_error_handlers

load_dotenv()
setup_logging()

app = FastAPI(title="Precision Pulse")
install_error_handlers(app)

for module in (
    auth,
    users,
    containers,
    work_orders,
    reports,
    workforce,
    hiring,
    injury_reports,
    readiness,
    terminations,
    damage_reports,
    chats,
    files,
    backup,
):
    app.include_router(module.router)


@app.middleware("http")
async def disable_cache_for_auth_and_api(request: Request, call_next):
    response = await call_next(request)
    path = request.url.path
    if path.startswith("/api/") or path.startswith("/auth/"):
        response.headers.setdefault("Cache-Control", "no-store, no-cache, max-age=0, must-revalidate")
        response.headers["Pragma"] = "no-cache"
    return response


@app.get("/health")
def health() -> dict[str, bool | str]:
    return {"ok": True, "env": environment()}
