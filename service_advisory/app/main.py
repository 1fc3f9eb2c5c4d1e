"""
Travel advisory gateway service.
"""

from typing import Dict, Optional

from fastapi import Query, Request, Response
from fastapi.exception_handlers import http_exception_handler
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from shared.base_service import BaseService
from shared.config import ServiceConfig, get_config
from shared.errors import AdvisoryGatewayException, InternalError, MethodNotAllowed
from shared.retry import BackoffScheduler, RetryConfig

from .adapters.advisory_client import AdvisoryClient
from .adapters.reference_data_client import ReferenceDataClient
from .caching.cache_manager import AdvisoryCacheManager
from .caching.cache_store import RedisCacheStore
from .domain.composition import AdvisoryComposer, parse_identifier
from .domain.cors import ALLOWED_METHODS, CORSPolicy


SERVICE_NAME = "advisory"
SERVICE_PORT = 8000
ADVISORY_PATH = "/api/travel-safety"


class AdvisoryGatewayService(BaseService):
    """Resilient advisory gateway implementation."""

    def __init__(
        self,
        config: Optional[ServiceConfig] = None,
        *,
        reference_client: Optional[ReferenceDataClient] = None,
        advisory_client: Optional[AdvisoryClient] = None,
        cache_store: Optional[RedisCacheStore] = None,
    ):
        super().__init__(SERVICE_NAME, SERVICE_PORT, config or get_config(SERVICE_NAME, SERVICE_PORT))
        cfg = self.config

        self.cache_store = cache_store or RedisCacheStore(cfg.redis_url)
        self.cache = AdvisoryCacheManager(
            self.cache_store,
            long_ttl=cfg.cache_long_ttl_seconds,
            short_ttl=cfg.cache_short_ttl_seconds,
            metrics=self.metrics,
        )
        self.reference_client = reference_client or ReferenceDataClient(
            cfg.reference_service_url,
            timeout=cfg.reference_timeout_seconds,
            scheduler=BackoffScheduler(RetryConfig.from_milliseconds(
                cfg.reference_max_attempts,
                cfg.backoff_base_ms,
                cfg.backoff_increment_ms,
                cfg.backoff_jitter_ms,
            )),
            metrics=self.metrics,
        )
        self.advisory_client = advisory_client or AdvisoryClient(
            cfg.generation_service_url,
            cfg.openai_api_key,
            cfg.model,
            BackoffScheduler(RetryConfig.from_milliseconds(
                cfg.advisory_max_attempts,
                cfg.backoff_base_ms,
                cfg.backoff_increment_ms,
                cfg.backoff_jitter_ms,
            )),
            timeout=cfg.advisory_timeout_seconds,
            deadline=cfg.advisory_deadline_seconds,
            temperature=cfg.advisory_temperature,
            max_output_tokens=cfg.advisory_max_output_tokens,
            metrics=self.metrics,
        )
        self.composer = AdvisoryComposer(
            self.reference_client,
            self.advisory_client,
            self.cache,
            metrics=self.metrics,
        )
        self.cors = CORSPolicy(cfg.allowed_origins, max_age=cfg.preflight_max_age_seconds)

        self._setup_cors_middleware()
        self._setup_advisory_routes()

        self.app.state.advisory_service = self

    def _setup_cors_middleware(self):
        """Attach CORS headers to every advisory endpoint response, errors included."""

        @self.app.middleware("http")
        async def add_cors_headers(request: Request, call_next):
            response = await call_next(request)
            if request.url.path == ADVISORY_PATH:
                for name, value in self.cors.headers(request.headers.get("origin")).items():
                    if name not in response.headers:
                        response.headers[name] = value
            return response

    def _cache_control(self, max_age: int) -> str:
        return (
            f"public, s-maxage={max_age}, "
            f"stale-while-revalidate={self.config.stale_while_revalidate_seconds}"
        )

    def _setup_advisory_routes(self):
        """Set up the advisory endpoint."""

        @self.app.options(ADVISORY_PATH)
        async def travel_safety_preflight(request: Request):
            """CORS preflight; never touches the cache or upstreams."""
            headers = self.cors.preflight_headers(request.headers.get("origin"))
            headers["Cache-Control"] = f"public, max-age=0, s-maxage={self.config.preflight_max_age_seconds}"
            return Response(status_code=204, headers=headers)

        @self.app.get(ADVISORY_PATH)
        async def travel_safety(
            country: Optional[str] = Query(None),
            code: Optional[str] = Query(None),
        ):
            """Country basics plus AI travel advisory, cached at the edge."""
            advisory_request = parse_identifier(code, country, self.config.max_identifier_length)

            try:
                response, max_age, cached = await self.composer.respond(advisory_request)
            except AdvisoryGatewayException:
                raise
            except Exception as exc:
                self.logger.error(
                    "Advisory composition failed",
                    identity=advisory_request.cache_key,
                    error=str(exc),
                    exc_info=True
                )
                raise InternalError(details={"reason": str(exc)})

            return JSONResponse(
                content=response.to_payload(),
                headers={
                    "Cache-Control": self._cache_control(max_age),
                    "X-Cache": "HIT" if cached else "MISS",
                },
            )

        @self.app.exception_handler(StarletteHTTPException)
        async def advisory_http_exception_handler(request: Request, exc: StarletteHTTPException):
            """Any method outside GET/OPTIONS on the advisory path is a gateway 405."""
            if exc.status_code == 405 and request.url.path == ADVISORY_PATH:
                return self.error_response(MethodNotAllowed(ALLOWED_METHODS))
            return await http_exception_handler(request, exc)

    async def _on_shutdown(self):
        await self.cache_store.close()

    async def _check_dependencies(self) -> Dict[str, str]:
        """Report edge cache reachability."""
        try:
            redis_ok = await self.cache_store.ping()
        except Exception as exc:
            self.logger.warning("Redis health check failed", error=str(exc))
            redis_ok = False
        return {"redis": "ok" if redis_ok else "error"}


def create_app(config: Optional[ServiceConfig] = None):
    """Create FastAPI application."""
    service = AdvisoryGatewayService(config)
    return service.app


if __name__ == "__main__":
    service = AdvisoryGatewayService()
    service.run()
