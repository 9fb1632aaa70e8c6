from contextlib import asynccontextmanager
from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware

from api import rules_router, alerts_router, sensors_router
from alerts import get_alert_log, get_rule_store, AlertLog, RuleStore
from core import configure_logging, get_config
from services import get_monitor, SensorMonitor


@asynccontextmanager
async def lifespan(app: FastAPI):
    config = get_config()
    configure_logging(config.log.level, config.log.file)

    get_rule_store()
    get_alert_log()
    monitor = get_monitor()
    if config.feed.autostart:
        await monitor.start()
    yield
    if monitor.is_running:
        await monitor.stop()

app = FastAPI(
    title="Sensor Alerts API",
    version="1.0.0",
    lifespan=lifespan,
    docs_url="/docs",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(rules_router, prefix="/api")
app.include_router(alerts_router, prefix="/api")
app.include_router(sensors_router, prefix="/api")

@app.get("/")
async def root():
    return {
        "name": "Sensor Alerts API",
        "version": "1.0.0",
        "docs": "/docs",
    }

@app.get("/health")
async def health(
    store: RuleStore = Depends(get_rule_store),
    log: AlertLog = Depends(get_alert_log),
    monitor: SensorMonitor = Depends(get_monitor),
):
    rules = store.stats()

    return {
        "status": "healthy",
        "rules": {
            "total": rules["total"],
            "enabled": rules["enabled"],
        },
        "alerts": {
            "size": len(log),
            "capacity": log.capacity,
            "unacknowledged": log.unacknowledged_count(),
        },
        "monitor": {
            "is_running": monitor.is_running,
            "dispatching": monitor.dispatcher.running_sensors(),
            "readings_processed": monitor.dispatcher.stats.readings_processed,
        }
    }

if __name__ == "__main__":
    import uvicorn
    uvicorn.run("main:app", host="0.0.0.0", port=8000, reload=True)
