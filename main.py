# /main.py
# Service entrypoint: validates config, builds the shared services and serves health and metrics.
import asyncio

from aiohttp import web
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from userop_engine.chains.registry import get_chain
from userop_engine.core.bootstrap import build_services
from userop_engine.core.config import settings
from userop_engine.core.config_validator import validate as validate_config
from userop_engine.core.logger import configure_logging, get_logger, record_active_connections

SWEEP_INTERVAL = 1


def create_app(services) -> web.Application:
    async def healthz(request):
        """Provides a JSON health status for the service."""
        return web.json_response({
            "status": "ok",
            "chains": services.gas_estimator.supported_chains,
            "cached_providers": len(services.provider_cache.provider_cache),
        })

    async def metrics(request):
        return web.Response(body=generate_latest(), headers={"Content-Type": CONTENT_TYPE_LATEST})

    app = web.Application()
    app.add_routes([web.get("/healthz", healthz), web.get("/metrics", metrics)])
    return app


async def main():
    configure_logging()
    log = get_logger("UserOpEngine.System")
    chains = validate_config()
    log.info("USEROP_ENGINE_STARTING")

    services = build_services(chains)
    for chain_id in services.gas_estimator.supported_chains:
        spec = get_chain(chain_id)
        retry = services.gas_estimator.retry_config_for(chain_id)
        log.info(
            "CHAIN_READY",
            chain=spec.name,
            chain_id=chain_id,
            confirmations=spec.confirmations,
            max_attempts=retry.max_attempts,
            rate_limit_per_window=retry.rate_limiter.max_requests,
        )

    runner = web.AppRunner(create_app(services))
    await runner.setup()
    site = web.TCPSite(runner, "0.0.0.0", settings.HEALTH_PORT)
    await site.start()
    log.info("HEALTH_AND_METRICS_SERVER_STARTED", port=settings.HEALTH_PORT)

    try:
        while True:
            await asyncio.sleep(SWEEP_INTERVAL)
            services.purge_expired()
            for chain_id, url in services.providers.urls.items():
                cached = url in services.provider_cache.provider_cache
                record_active_connections(chain_id, 1 if cached else 0)
    finally:
        await runner.cleanup()
        log.warning("SYSTEM_SHUTDOWN_COMPLETE")


if __name__ == "__main__":
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        pass
