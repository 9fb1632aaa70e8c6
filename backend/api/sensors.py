"""
Sensors API
Sensor catalog, stream control and reading ingestion.
"""

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel
from typing import Optional
from datetime import datetime

from core.models import to_sensor_reading
from services import get_monitor, SensorMonitor


router = APIRouter(prefix="/sensors", tags=["Sensors"])


class ReadingRequest(BaseModel):
    """External reading for a known sensor"""
    value: float
    id: Optional[str] = None
    unit: Optional[str] = None
    timestamp: Optional[datetime] = None


@router.get("")
async def list_sensors(monitor: SensorMonitor = Depends(get_monitor)):
    """Sensor metadata with active flag and latest reading"""
    sensors = []
    for sensor in monitor.registry.get_sensors():
        latest = monitor.feed.latest(sensor.id)
        sensors.append({
            **sensor.to_dict(),
            "active": monitor.registry.is_active(sensor.id),
            "dispatching": monitor.dispatcher.is_running(sensor.id),
            "latest": latest.model_dump(mode="json") if latest else None,
        })
    return {"count": len(sensors), "sensors": sensors}


@router.get("/status")
async def monitor_status(monitor: SensorMonitor = Depends(get_monitor)):
    return monitor.status()


@router.post("/{sensor_id}/toggle")
async def toggle_sensor(sensor_id: str, monitor: SensorMonitor = Depends(get_monitor)):
    active = await monitor.toggle_sensor(sensor_id)
    if active is None:
        raise HTTPException(404, f"Sensor not found: {sensor_id}")
    return {"sensor_id": sensor_id, "active": active}


@router.post("/{sensor_id}/readings", status_code=202)
async def ingest_reading(
    sensor_id: str,
    request: ReadingRequest,
    monitor: SensorMonitor = Depends(get_monitor),
):
    """
    Inject a reading into a sensor's stream.

    It is evaluated only if that sensor's dispatch loop is running.
    """
    sensor = monitor.registry.get_sensor(sensor_id)
    if sensor is None:
        raise HTTPException(404, f"Sensor not found: {sensor_id}")

    reading = to_sensor_reading(request.model_dump(exclude_none=True), sensor=sensor)
    delivered = monitor.ingest(sensor_id, reading)
    return {
        "reading": reading.model_dump(mode="json"),
        "subscribers": delivered,
        "dispatching": monitor.dispatcher.is_running(sensor_id),
    }
