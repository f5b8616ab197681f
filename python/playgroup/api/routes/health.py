"""GET /health for the Playgroup API.

Deploy health checks poll this before routing traffic to a worker.
It sits in PUBLIC_PATHS, so no caller identity or internal header is needed.
"""

from fastapi import APIRouter

from playgroup.responses import success_response

router = APIRouter()


@router.get("/health")
async def health_check() -> dict:
    """Report that the process is up.

    Never opens a database session: a Postgres outage must not make the
    orchestrator restart healthy API workers.
    """
    return success_response({"status": "ok"})
