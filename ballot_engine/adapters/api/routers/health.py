# ballot_engine/adapters/api/routers/health.py
from typing import Dict

import structlog
from dependency_injector.wiring import Provide, inject
from fastapi import APIRouter, Depends, Response, status

from ballot_engine.core.ports.fallback_resolver import IFallbackResolver
from ballot_engine.core.ports.ledger_gateway import ILedgerGateway
from ballot_engine.shared.config import settings
from ballot_engine.shared.container import Container

logger = structlog.get_logger()

router = APIRouter(prefix="/health", tags=["System"])


@router.get("/live", status_code=status.HTTP_200_OK)
async def liveness_probe():
    """
    K8s Liveness Probe.
    Returns 200 OK if the service is operational.
    """
    return {"status": "ok", "service": settings.APP_NAME}


@router.get("/ready", status_code=status.HTTP_200_OK)
@inject
async def readiness_probe(
    response: Response,
    gateway: ILedgerGateway = Depends(Provide[Container.ledger_gateway]),
    fallback_resolver: IFallbackResolver = Depends(Provide[Container.fallback_resolver]),
) -> Dict[str, str]:
    """
    K8s Readiness Probe.
    Checks the ledger RPC node. With demo mode enabled the service can still
    answer every poll it has a fallback for, so only ledger-down with
    fallback disabled returns 503.
    """
    health_status = {
        "ledger": "down",
        "fallback": "enabled" if fallback_resolver.enabled else "disabled",
    }

    try:
        if await gateway.health_check():
            health_status["ledger"] = "up"
    except Exception as e:
        logger.error("health_check_failed", component="ledger", error=str(e))

    if health_status["ledger"] != "up" and not fallback_resolver.enabled:
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
        logger.warning("readiness_probe_failed", status=health_status)

    return health_status
