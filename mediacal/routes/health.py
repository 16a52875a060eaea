# mediacal/routes/health.py
"""
Health check endpoints: liveness, plus readiness reporting storage and the
optional integrations.
"""

import time

from fastapi import APIRouter, Request

router = APIRouter()


@router.get("/healthz")
async def healthz():
    """Basic health check - always returns 200 if app is running."""
    return {"status": "ok", "service": "mediacal"}


@router.get("/readyz")
async def readyz(request: Request):
    """
    Readiness check. Only storage is required; providers, SMTP and blob
    storage are optional and reported for visibility.
    """
    state = request.app.state
    settings = state.settings
    checks = {}
    overall_ok = True

    # 1) Storage destination
    try:
        storage = state.storage
        writable = storage.is_writable()
        checks["storage"] = {
            "ok": writable,
            "kind": storage.storage_kind,
            "public": storage.is_public,
        }
        overall_ok = overall_ok and writable
    except Exception as e:
        checks["storage"] = {"ok": False, "error": f"{type(e).__name__}: {e}"}
        overall_ok = False

    # 2) Optional integrations (presence only, never the keys)
    checks["transcription"] = {"ok": True, "provider": state.orchestrator.provider_name}
    checks["email"] = {"ok": True, "configured": state.reminder_scheduler.enabled}
    checks["blob"] = {"ok": True, "enabled": settings.blob_enabled()}
    checks["youtube"] = {"ok": True, "configured": state.youtube.configured}

    checks["configuration"] = {"ok": True, "environment": settings.environment}

    return {"overall_ok": overall_ok, "checks": checks, "timestamp": time.time()}
