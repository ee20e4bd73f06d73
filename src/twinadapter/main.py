
import os
from pathlib import Path
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from .api.routes import router as adapters_router
from .api.events import router as events_router
from .api.ws import router as ws_router
from .api.health import router as health_router
from .core.adapter_manager import manager
from .logging_config import configure_logging

configure_logging()

app = FastAPI(title="TwinAdapter",
              description="Emulated physical adapter publishing capabilities and telemetry to a digital twin event bus",
              version="0.1.0")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(health_router)
app.include_router(adapters_router)
app.include_router(events_router)
app.include_router(ws_router)

@app.on_event("startup")
async def startup_event():
    cfg_path = os.getenv('TWINADAPTER_CONFIG', str(Path(__file__).parent / 'config' / 'adapter.yaml'))
    manager.load_from_config(Path(cfg_path))

@app.on_event("shutdown")
def shutdown_event():
    manager.stop_all()

# Run: uvicorn twinadapter.main:app --host 0.0.0.0 --port 8080
