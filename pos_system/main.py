from __future__ import annotations

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .database import dispose_engine
from .endpoints.auth import router as auth_router
from .endpoints.orders import router as orders_router
from .models.api import HealthResponse
from .startup import startup

app = FastAPI(title="POS System API", version="1.0.0")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(auth_router)
app.include_router(orders_router)


@app.on_event("startup")
async def startup_event():
    await startup()


@app.on_event("shutdown")
async def shutdown_event():
    await dispose_engine()


@app.get("/health", response_model=HealthResponse)
async def health() -> HealthResponse:
    return HealthResponse()
