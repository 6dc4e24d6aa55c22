"""
HTTP API for payment pushes.

Endpoints:
- GET /health
- POST /v1/push (body: PushRequest)

Failures are returned as `{"error": [code, name, context?]}` with the error
code as HTTP status.
"""

from __future__ import annotations

import logging
import os
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI
from fastapi.responses import JSONResponse

from domains.lightning.collaborators import LightningNode, PriceFeed
from domains.lightning.push_payment import push_payment
from main import build_collaborators
from observability.logger import Observability
from shared.errors import PushError
from shared.models import PushRequest
from shared.response_formatter import error_payload

logger = logging.getLogger(__name__)


def create_app(node: LightningNode | None = None, price_feed: PriceFeed | None = None) -> FastAPI:
    """Build the API; collaborators default to the environment configuration."""

    @asynccontextmanager
    async def lifespan(_app: FastAPI):
        if node is None or price_feed is None:
            default_node, default_feed = build_collaborators()
            _app.state.node = node or default_node
            _app.state.price_feed = price_feed or default_feed
        else:
            _app.state.node = node
            _app.state.price_feed = price_feed
        yield

    app = FastAPI(
        title="Lightning Push API",
        version="0.1.0",
        lifespan=lifespan,
    )

    @app.get("/health")
    def health() -> dict[str, str]:
        return {"status": "ok"}

    @app.post("/v1/push")
    async def push(request: PushRequest) -> Any:
        try:
            result = await push_payment(
                request,
                node=app.state.node,
                price_feed=app.state.price_feed,
                observability=Observability(),
            )
        except PushError as e:
            status = e.code if 400 <= e.code < 600 else 500
            return JSONResponse(status_code=status, content={"error": error_payload(e)})
        except Exception as e:
            logger.exception("Unexpected push failure")
            return JSONResponse(status_code=500, content={"error": error_payload(e)})
        return result.model_dump(mode="json")

    return app


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(create_app(), host="0.0.0.0", port=int(os.getenv("PUSH_API_PORT", "8003")))
