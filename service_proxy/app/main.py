"""
GraphQL edge cache proxy service.
"""

from typing import Any, Dict, Optional

import httpx
from fastapi import Request, Response

from shared.base_service import BaseService
from shared.errors import EdgeCacheException, ExternalServiceError, UpstreamNotConfiguredError

from service_proxy.app.adapters.upstream_client import UpstreamClient
from service_proxy.app.caching.cache_store import CacheBackend, CacheStore, RedisCacheBackend
from service_proxy.app.caching.meta_guard import MetaGuard
from service_proxy.app.caching.singleflight import SingleFlight
from service_proxy.app.caching.ttl_policy import TtlPolicy, edge_cache_control
from service_proxy.app.domain.models import CacheStatus, ProxyResponse, QueryRequest, is_force_fresh
from service_proxy.app.domain.pipeline import RequestPipeline

META_TTL_SECONDS = 3


class ProxyService(BaseService):
    """Edge cache proxy service implementation."""

    def __init__(
        self,
        *,
        cache_backend: Optional[CacheBackend] = None,
        upstream_transport: Optional[httpx.AsyncBaseTransport] = None,
        **config_overrides: Any,
    ):
        super().__init__("proxy", 8000, **config_overrides)

        self.upstream_client = UpstreamClient(
            self.config.upstream_url,
            timeout=self.config.upstream_timeout_seconds,
            progress_timeout=self.config.progress_timeout_seconds,
            metrics=self.metrics,
            transport=upstream_transport,
        )
        self.cache_store = CacheStore(
            cache_backend or RedisCacheBackend(self.config.redis_url),
            namespace=self.config.cache_namespace,
            metrics=self.metrics,
        )
        self.meta_guard = MetaGuard(
            self.upstream_client,
            self.cache_store,
            record_ttl_seconds=self.config.progress_record_ttl_seconds,
            metrics=self.metrics,
        )
        self.pipeline = RequestPipeline(
            self.upstream_client,
            self.cache_store,
            self.meta_guard,
            singleflight=SingleFlight(metrics=self.metrics),
            ttl_policy=TtlPolicy(),
            metrics=self.metrics,
        )

        @self.app.on_event("startup")
        async def _startup():
            self.logger.info(
                "Proxy starting",
                upstream_configured=self.upstream_client.configured,
                cache_namespace=self.config.cache_namespace,
                env=self.config.env,
            )

        @self.app.on_event("shutdown")
        async def _shutdown():
            await self.cache_store.close()
            await self.upstream_client.close()

        self._setup_proxy_routes()

        # Expose service instance via app state for introspection/testing
        self.app.state.proxy_service = self

    async def _check_dependencies(self) -> Dict[str, str]:
        return {
            "cache": "ok" if await self.cache_store.ping() else "error",
            "upstream": "configured" if self.upstream_client.configured else "missing",
        }

    def _setup_proxy_routes(self):
        """Set up GraphQL proxy routes."""

        @self.app.post("/graphql")
        async def graphql_proxy(request: Request):
            """Serve a GraphQL query through the edge cache."""
            if not self.upstream_client.configured:
                raise UpstreamNotConfiguredError()

            force_fresh = is_force_fresh(request.headers.get(self.config.force_fresh_header, ""))
            query_request = QueryRequest.from_body(
                await request.body(),
                force_fresh=force_fresh,
                max_query_length=self.config.max_query_length,
            )

            try:
                result = await self.pipeline.handle(query_request)
            except EdgeCacheException:
                raise
            except Exception as exc:
                self.logger.error("Pipeline failure", error=str(exc), exc_info=True)
                self.metrics.record_error("PROXY_INTERNAL_ERROR")
                return self._internal_error(str(exc))

            return self._to_response(result)

        @self.app.get("/meta")
        async def upstream_meta():
            """Pass through the upstream progress probe (edge-cacheable only)."""
            if not self.upstream_client.configured:
                raise UpstreamNotConfiguredError()

            directives = edge_cache_control(META_TTL_SECONDS)
            try:
                upstream = await self.upstream_client.probe_progress()
            except ExternalServiceError as exc:
                return Response(
                    content=exc.to_response().model_dump_json(),
                    status_code=exc.status_code,
                    media_type="application/json",
                )

            return Response(
                content=upstream.content,
                status_code=upstream.status_code,
                headers={
                    "content-type": upstream.headers.get("content-type", "application/json"),
                    "Cache-Control": directives,
                    "CDN-Cache-Control": directives,
                    "X-Cache": CacheStatus.MISS.value,
                },
            )

    @staticmethod
    def _to_response(result: ProxyResponse) -> Response:
        return Response(
            content=result.body,
            status_code=result.status,
            headers=result.headers,
        )

    @staticmethod
    def _internal_error(message: str) -> Response:
        error = EdgeCacheException("PROXY_INTERNAL_ERROR", message, status_code=500)
        return Response(
            content=error.to_response().model_dump_json(),
            status_code=500,
            headers={
                "content-type": "application/json",
                "Cache-Control": "no-store",
                "X-Cache": CacheStatus.ERROR.value,
            },
        )


def create_app(**kwargs: Any):
    """Create FastAPI application."""
    service = ProxyService(**kwargs)
    return service.app


if __name__ == "__main__":
    service = ProxyService()
    service.run()
