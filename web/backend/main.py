import os

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from loopcast.core.config import ServerConfig

app = FastAPI(title="Loopcast Radio API", version="0.1.0")

# CORS: Allow environment override for production
allowed_origins_env = os.getenv("ALLOWED_ORIGINS", "")
allowed_origins = (
    [origin.strip() for origin in allowed_origins_env.split(",") if origin.strip()]
    if allowed_origins_env
    else ServerConfig().allowed_origins  # Dev default
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
from web.backend.routers import radio

app.include_router(radio.router, prefix="/api", tags=["radio"])


@app.get("/health")
async def health_check():
    return {"status": "healthy"}
