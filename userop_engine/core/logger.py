# /userop_engine/core/logger.py
import logging
import time

import structlog
from structlog.contextvars import bound_contextvars
import sentry_sdk
from prometheus_client import Counter, Gauge, Histogram

from userop_engine.core.config import settings

# --- Prometheus Metrics ---
USEROP_GENERATION = Counter("userop_generation_total", "User operations generated", ["chain", "outcome"])
GAS_ESTIMATION_DURATION = Histogram("gas_estimation_duration_seconds", "Time spent estimating gas", ["chain"])
RPC_CALLS = Counter("rpc_calls_total", "Remote calls issued through the retry executor", ["chain", "method"])
RPC_CALL_DURATION = Histogram("rpc_call_duration_seconds", "Remote call duration including retries", ["chain", "method"])
RPC_CALLS_FAILED = Counter("rpc_calls_failed_total", "Remote calls that exhausted their retries", ["chain", "method"])
CACHE_HITS = Counter("cache_hits_total", "Cache hits by logical cache name", ["type"])
CACHE_MISSES = Counter("cache_misses_total", "Cache misses by logical cache name", ["type"])
ACTIVE_CONNECTIONS = Gauge("active_connections", "Cached provider handles per chain", ["chain"])


class Timer:
    """Wall-clock stopwatch for duration histograms."""
    def __init__(self):
        self.start = time.perf_counter()

    def elapsed(self) -> float:
        return time.perf_counter() - self.start


def record_userop_generation(chain_id: int, success: bool):
    USEROP_GENERATION.labels(str(chain_id), "success" if success else "failure").inc()

def record_gas_estimation(chain_id: int, duration: float):
    GAS_ESTIMATION_DURATION.labels(str(chain_id)).observe(duration)

def record_rpc_call(chain_id: int, method: str, success: bool, duration: float):
    chain = str(chain_id)
    RPC_CALLS.labels(chain, method).inc()
    RPC_CALL_DURATION.labels(chain, method).observe(duration)
    if not success:
        RPC_CALLS_FAILED.labels(chain, method).inc()

def record_cache_hit(cache_type: str):
    CACHE_HITS.labels(cache_type).inc()

def record_cache_miss(cache_type: str):
    CACHE_MISSES.labels(cache_type).inc()

def record_active_connections(chain_id: int, count: int):
    ACTIVE_CONNECTIONS.labels(str(chain_id)).set(count)


def configure_logging():
    if settings.SENTRY_DSN:
        sentry_sdk.init(dsn=settings.SENTRY_DSN, traces_sample_rate=1.0)

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.StackInfoRenderer(),
            structlog.dev.set_exc_info,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(logging.getLevelName(settings.LOG_LEVEL)),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )

def get_logger(name: str):
    return structlog.get_logger(name)

def bind_request(chain_id: int, sender: str):
    """Context manager tagging every log line inside it with the request's chain and sender."""
    return bound_contextvars(chain_id=chain_id, sender=sender)

configure_logging()
log = get_logger("UserOpEngine.System")
