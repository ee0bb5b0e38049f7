"""
PVGIS query service: FastAPI application entry point.
"""

import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.api.router import router
from app.config import CORS_ORIGINS, LOG_LEVEL

logging.basicConfig(level=LOG_LEVEL, format="%(levelname)-8s %(name)s %(message)s")

app = FastAPI(
    title="PVGIS Query API",
    description="Monthly and yearly PV yield estimates from the PVGIS radiation service",
    version="0.1.0",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["Content-Type"],
    max_age=3600,
)

app.include_router(router)


@app.get("/health")
async def health_check():
    return {"status": "ok", "service": "pvgis-query"}
