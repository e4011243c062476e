from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from backend.core import llm
from backend.core.worker import init_worker, stop_scheduler, get_scheduler_status
from backend.api.routers import name_match_router


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage application lifecycle - startup and shutdown."""
    # Startup
    try:
        init_worker()
    except Exception as e:
        print(f"Warning: Failed to start worker: {e}")

    yield  # Application runs here

    # Shutdown
    stop_scheduler()


app = FastAPI(title="Personality De-duplicator", version="1.0.0", lifespan=lifespan)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(name_match_router)


@app.get("/api/health")
def health_check():
    return {
        "status": "ok",
        "version": "1.0.0",
        "llm_available": llm.check_available(),
        "worker": get_scheduler_status(),
    }
