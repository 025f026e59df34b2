"""
Gate service for the Bearer Gate.

A FastAPI application that serves health and metrics publicly and puts
everything under ``/api`` behind the bearer gate.
"""

import os
import time
from contextlib import asynccontextmanager
from typing import Any, Dict, Optional

from fastapi import FastAPI, Request, Response
from fastapi.responses import JSONResponse
from starlette.routing import Mount, Route

from shared.config import GateConfig, get_config
from shared.errors import OAuthError
from shared.logging import clear_context, configure_logging, get_logger
from shared.metrics import get_metrics_collector
from .middleware import BearerGate, ErrorResponder
from .oidc import OIDCClient


class GateService:
    """Service wiring: configuration, logging, metrics, gate and routes."""

    def __init__(self, config: Optional[GateConfig] = None, client: Optional[OIDCClient] = None):
        self.config = config or get_config()
        self.service_name = self.config.service_name
        self.logger = get_logger(self.service_name)
        self.metrics = get_metrics_collector(self.service_name)
        self._start_time = time.time()

        configure_logging(self.service_name, self.config.log_level)

        self.client = client or OIDCClient.from_config(self.config, metrics=self.metrics)
        self.gate = BearerGate.from_config(self.config, client=self.client, metrics=self.metrics)

        self.app = self._create_app()
        self._setup_middleware()
        self._setup_routes()
        self.app.router.routes.append(self._create_api())

    def _create_app(self) -> FastAPI:
        @asynccontextmanager
        async def lifespan(app: FastAPI):
            yield
            await self.client.close()

        return FastAPI(
            title=f"{self.service_name.title()} Service",
            description="Bearer Gate - OAuth2 bearer token authentication",
            version="1.0.0",
            docs_url="/docs" if self.config.env == "local" else None,
            redoc_url=None,
            lifespan=lifespan,
        )

    def _setup_middleware(self):
        @self.app.middleware("http")
        async def add_request_timing(request: Request, call_next):
            start_time = time.time()
            try:
                response = await call_next(request)
            finally:
                clear_context()

            duration = time.time() - start_time
            self.metrics.record_http_request(
                method=request.method,
                endpoint=request.url.path,
                status_code=response.status_code,
                duration=duration
            )
            self.logger.info(
                "HTTP request",
                method=request.method,
                path=request.url.path,
                status_code=response.status_code,
                duration_ms=round(duration * 1000, 2)
            )
            return response

    def _setup_routes(self):

        @self.app.get("/health")
        async def health_check():
            """Health check endpoint."""
            dependencies = self._check_dependencies()
            return {
                "service": self.service_name,
                "status": "ok",
                "uptime_seconds": round(time.time() - self._start_time, 3),
                "dependencies": dependencies,
                "version": "1.0.0",
                "commit": os.getenv("GIT_COMMIT", "unknown")
            }

        @self.app.get("/metrics")
        async def metrics_endpoint():
            """Prometheus metrics endpoint."""
            from prometheus_client import CONTENT_TYPE_LATEST
            return Response(content=self.metrics.export(), media_type=CONTENT_TYPE_LATEST)

        @self.app.exception_handler(OAuthError)
        async def oauth_error_handler(request: Request, exc: OAuthError):
            """Render errors the gate forwards when it is not configured to respond."""
            self.logger.info("Forwarded authentication error", error=exc.error, status_code=exc.status_code)
            return ErrorResponder(respond=True).handle(exc)

        @self.app.exception_handler(Exception)
        async def general_exception_handler(request: Request, exc: Exception):
            """Handle general exceptions."""
            self.logger.error("Unhandled exception", error=str(exc), exc_info=True)
            return JSONResponse(
                status_code=500,
                content={"error": "server_error", "error_description": "Internal server error"}
            )

    def _create_api(self) -> Mount:
        """Protected routes; the gate only wraps this mount."""

        async def whoami(request: Request) -> JSONResponse:
            return JSONResponse(identity_of(request))

        return Mount(
            "/api",
            routes=[Route("/me", whoami, methods=["GET", "POST"])],
            middleware=[self.gate.middleware()],
        )

    def _check_dependencies(self) -> Dict[str, str]:
        circuit = self.client.provider.breaker.get_state()["state"]
        return {
            "trust_material": "ready" if self.client.provider.ready else "pending",
            "issuer_circuit": circuit,
        }

    def run(self):
        """Run the service."""
        import uvicorn
        uvicorn.run(
            self.app,
            host=self.config.host,
            port=self.config.port,
            log_level=self.config.log_level.lower()
        )


def identity_of(request: Request) -> Dict[str, Any]:
    """What the gate attached to ``request``."""
    claims = getattr(request.state, "access_token_claims", None)
    return {
        "authenticated": claims is not None,
        "sub": (claims or {}).get("sub"),
        "claims": claims or {},
        "user_info": getattr(request.state, "user_info", None),
    }


def create_app(config: Optional[GateConfig] = None, client: Optional[OIDCClient] = None) -> FastAPI:
    """Create FastAPI application."""
    service = GateService(config=config, client=client)
    return service.app


if __name__ == "__main__":
    service = GateService()
    service.run()
