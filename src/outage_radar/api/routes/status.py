"""Read-only status endpoints plus the admin cache flush."""

from __future__ import annotations

import asyncio
from typing import Any, Dict, List

from fastapi import APIRouter, Depends, HTTPException, Request

from outage_radar.api.auth import require_api_key
from outage_radar.events.emitter import FLUSHED
from outage_radar.monitor.orchestrator import StatusOrchestrator
from outage_radar.registry.models import ServiceDetail

router = APIRouter(tags=["status"])


def _get_orchestrator(request: Request) -> StatusOrchestrator:
    orchestrator = getattr(request.app.state, "orchestrator", None)
    if orchestrator is None:
        raise HTTPException(status_code=503, detail="Status service is not initialised")
    return orchestrator


def _deadline(request: Request) -> float:
    return request.app.state.config.api.query_deadline


@router.get("/services")
async def list_services(request: Request) -> List[Dict[str, Any]]:
    orchestrator = _get_orchestrator(request)
    services: List[Dict[str, Any]] = []
    for descriptor in orchestrator.registry.descriptors:
        cached = orchestrator.peek(descriptor.id)
        services.append(
            {
                "id": descriptor.id,
                "name": descriptor.display_name,
                "slug": descriptor.site_slug,
                "keywords": list(descriptor.keywords),
                "severity": cached.severity.value if cached else None,
            }
        )
    return services


@router.get("/status")
async def aggregate_status(request: Request) -> Dict[str, Any]:
    orchestrator = _get_orchestrator(request)
    report = await orchestrator.get_aggregate(deadline=_deadline(request))
    return report.to_dict()


@router.get("/status/critical")
async def top_critical(request: Request, limit: int = 10) -> Dict[str, Any]:
    """Worst problem services first, with their timelines and incidents."""
    orchestrator = _get_orchestrator(request)
    report = await orchestrator.get_top_critical(limit=limit, deadline=_deadline(request))
    return report.to_dict()


@router.get("/status/{service_id}")
async def service_status(request: Request, service_id: str) -> Dict[str, Any]:
    orchestrator = _get_orchestrator(request)
    descriptor = orchestrator.registry.resolve(service_id)
    if descriptor is None:
        raise HTTPException(status_code=404, detail=f"Unknown service: {service_id}")

    deadline = _deadline(request)
    report = await orchestrator.get_aggregate([descriptor.id], deadline=deadline)
    try:
        detail = await asyncio.wait_for(orchestrator.get_detail(descriptor.id), timeout=deadline)
    except TimeoutError:
        detail = ServiceDetail(service_id=descriptor.id)

    body = report.details[0].to_dict()
    body["name"] = descriptor.display_name
    body["detail"] = detail.to_dict()
    return body


@router.post("/status/flush", dependencies=[Depends(require_api_key)])
async def flush_cache(request: Request) -> Dict[str, str]:
    orchestrator = _get_orchestrator(request)
    orchestrator.flush()
    emitter = getattr(request.app.state, "emitter", None)
    if emitter is not None:
        await emitter.publish(FLUSHED)
    return {"status": "flushed"}
