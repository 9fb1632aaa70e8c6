"""
Alerts API
Endpoints for querying, acknowledging and streaming alerts.

Endpoints:
    GET    /api/alerts                    → Filtered alert list (newest first)
    GET    /api/alerts/recent             → Latest N alerts
    GET    /api/alerts/counts             → Unacknowledged counts by severity
    GET    /api/alerts/stats              → Alert log statistics
    GET    /api/alerts/export             → CSV download
    GET    /api/alerts/stream             → SSE stream of log summaries
    POST   /api/alerts/test               → Dry-run evaluation of a reading
    POST   /api/alerts/acknowledge-all    → Acknowledge everything
    POST   /api/alerts/{id}/acknowledge   → Acknowledge one alert
    DELETE /api/alerts                    → Clear log
    DELETE /api/alerts/acknowledged       → Clear acknowledged alerts
"""

import asyncio
import io
import json
from datetime import datetime
from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import StreamingResponse
from pydantic import BaseModel
from typing import Optional

from alerts import (
    get_alert_log,
    get_rule_store,
    evaluate,
    AlertLog,
    AlertFilter,
    AlertSeverity,
    RuleStore,
)
from core.models import SensorType, to_sensor_reading

router = APIRouter(prefix="/alerts", tags=["Alerts"])


# =============================================================================
# Request Models
# =============================================================================

class TestReadingRequest(BaseModel):
    """Reading to evaluate without logging anything"""
    sensor_type: SensorType
    value: float
    unit: str = ""
    timestamp: Optional[datetime] = None


def alert_filter(
    severity: Optional[AlertSeverity] = None,
    sensor_type: Optional[SensorType] = None,
    acknowledged: Optional[bool] = None,
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
) -> AlertFilter:
    return AlertFilter(
        severity=severity,
        sensor_type=sensor_type,
        acknowledged=acknowledged,
        start_date=start_date,
        end_date=end_date,
    )


def summarize(log: AlertLog, limit: int = 5) -> dict:
    return {
        "total": len(log),
        "unacknowledged": log.unacknowledged_count(),
        "counts": {k.value: v for k, v in log.count_by_severity().items()},
        "recent": [a.to_dict() for a in log.recent(limit)],
    }


# =============================================================================
# Queries
# =============================================================================

@router.get("")
async def list_alerts(
    criteria: AlertFilter = Depends(alert_filter),
    limit: Optional[int] = Query(default=None, ge=1),
    log: AlertLog = Depends(get_alert_log),
):
    """Alerts matching every provided filter, newest first"""
    alerts = log.query(criteria)
    if limit:
        alerts = alerts[:limit]
    return {
        "count": len(alerts),
        "alerts": [a.to_dict() for a in alerts]
    }


@router.get("/recent")
async def recent_alerts(
    n: int = Query(default=20, ge=0),
    log: AlertLog = Depends(get_alert_log),
):
    alerts = log.recent(n)
    return {
        "count": len(alerts),
        "alerts": [a.to_dict() for a in alerts]
    }


@router.get("/counts")
async def alert_counts(log: AlertLog = Depends(get_alert_log)):
    """Unacknowledged alerts per severity"""
    return {
        "by_severity": {k.value: v for k, v in log.count_by_severity().items()},
        "unacknowledged": log.unacknowledged_count(),
    }


@router.get("/stats")
async def alert_stats(log: AlertLog = Depends(get_alert_log)):
    return log.stats()


@router.get("/export")
async def export_alerts(
    criteria: AlertFilter = Depends(alert_filter),
    log: AlertLog = Depends(get_alert_log),
):
    """Download the (filtered) alert log as CSV"""
    df = log.to_dataframe(criteria)
    output = io.StringIO()
    df.to_csv(output, index=False)
    output.seek(0)

    filename = f"alerts_{datetime.now().strftime('%Y%m%d_%H%M%S')}.csv"
    return StreamingResponse(
        io.BytesIO(output.getvalue().encode()),
        media_type="text/csv",
        headers={"Content-Disposition": f"attachment; filename={filename}"}
    )


# =============================================================================
# Commands
# =============================================================================

@router.post("/acknowledge-all")
async def acknowledge_all(log: AlertLog = Depends(get_alert_log)):
    changed = log.acknowledge_all()
    return {"message": f"Acknowledged {changed} alerts", "acknowledged": changed}


@router.post("/{alert_id}/acknowledge")
async def acknowledge_alert(alert_id: str, log: AlertLog = Depends(get_alert_log)):
    if not log.acknowledge(alert_id):
        raise HTTPException(404, f"Alert not found: {alert_id}")
    return {"message": f"Alert {alert_id} acknowledged"}


@router.delete("")
async def clear_alerts(log: AlertLog = Depends(get_alert_log)):
    removed = log.clear()
    return {"message": "Alert log cleared", "removed": removed}


@router.delete("/acknowledged")
async def clear_acknowledged(log: AlertLog = Depends(get_alert_log)):
    removed = log.clear_acknowledged()
    return {"message": "Acknowledged alerts cleared", "removed": removed}


# =============================================================================
# Testing
# =============================================================================

@router.post("/test")
async def test_reading(request: TestReadingRequest, store: RuleStore = Depends(get_rule_store)):
    """
    Evaluate a reading against the current rules without logging.

    Useful for checking a rule set before enabling a sensor.
    """
    payload = request.model_dump(exclude_none=True)
    payload["id"] = "test-reading"
    reading = to_sensor_reading(payload)
    alert = evaluate(reading, store.list())

    return {
        "input": reading.model_dump(mode="json"),
        "triggered": alert is not None,
        "alert": alert.to_dict() if alert else None
    }


# =============================================================================
# SSE Stream
# =============================================================================

@router.get("/stream")
async def stream_alerts(log: AlertLog = Depends(get_alert_log)):
    """
    Server-Sent Events stream of alert log summaries.

    A summary is pushed right away and after every change to the log.
    Connect via EventSource in browser:
        const es = new EventSource('/api/alerts/stream');
        es.onmessage = (e) => console.log(JSON.parse(e.data));
    """
    loop = asyncio.get_running_loop()
    updates: asyncio.Queue = asyncio.Queue(maxsize=100)

    def on_change(_alerts) -> None:
        # Log mutations may happen on worker threads
        loop.call_soon_threadsafe(_offer, summarize(log))

    def _offer(summary: dict) -> None:
        if updates.full():
            updates.get_nowait()
        updates.put_nowait(summary)

    async def event_generator():
        unsubscribe = log.subscribe(on_change)
        try:
            while True:
                try:
                    summary = await asyncio.wait_for(updates.get(), timeout=30.0)
                    yield f"data: {json.dumps(summary)}\n\n"
                except asyncio.TimeoutError:
                    yield ": keepalive\n\n"
        finally:
            unsubscribe()

    return StreamingResponse(
        event_generator(),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "Connection": "keep-alive",
            "X-Accel-Buffering": "no"
        }
    )
