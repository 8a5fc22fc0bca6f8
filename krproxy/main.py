from __future__ import annotations

import logging
import os
import sys
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .clients.upstreams import ALLOWED_DOMAINS
from .net import build_clients
from .routers import proxy_router

# ------------------------------------------------------------------------------
# Logging
# ------------------------------------------------------------------------------
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
logging.basicConfig(
    level=LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s :: %(message)s",
    stream=sys.stdout,
)
log = logging.getLogger("krproxy.main")

# ------------------------------------------------------------------------------
# App metadata / env
# ------------------------------------------------------------------------------
APP_NAME = os.getenv("APP_TITLE", "Korean API Proxy")
APP_VERSION = os.getenv("APP_VERSION", "1.5.0")
HOST = os.getenv("HOST", "0.0.0.0")
PORT = int(os.getenv("PORT", "3000"))


@asynccontextmanager
async def lifespan(app: FastAPI):
    # one immutable set of outbound clients shared by every request
    app.state.http = build_clients()
    log.info("Outbound clients ready; allowed domains: %s", ", ".join(ALLOWED_DOMAINS))
    try:
        yield
    finally:
        await app.state.http.aclose()


# ------------------------------------------------------------------------------
# FastAPI app
# ------------------------------------------------------------------------------
app = FastAPI(title=APP_NAME, version=APP_VERSION, lifespan=lifespan)

# CORS (default permissive; tighten with CORS_ALLOW_ORIGINS)
app.add_middleware(
    CORSMiddleware,
    allow_origins=[o for o in os.getenv("CORS_ALLOW_ORIGINS", "*").split(",") if o],
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["Content-Type"],
)

app.include_router(proxy_router.router)

# ------------------------------------------------------------------------------
# Health / metadata
# ------------------------------------------------------------------------------
@app.get("/health")
async def health():
    return {
        "status": "ok",
        "version": APP_VERSION,
        "timestamp": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
    }

@app.get("/")
async def root():
    return {
        "name": APP_NAME,
        "version": APP_VERSION,
        "endpoints": {
            "proxy": "/proxy?url=<encoded_url>",
            "health": "/health",
        },
        "allowedDomains": list(ALLOWED_DOMAINS),
    }


def run() -> None:
    import uvicorn
    log.info("%s v%s running on port %s", APP_NAME, APP_VERSION, PORT)
    uvicorn.run("krproxy.main:app", host=HOST, port=PORT)


if __name__ == "__main__":
    run()
