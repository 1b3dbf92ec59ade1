from prometheus_client import Counter, Histogram, Gauge
from fastapi import Request
from fastapi.routing import APIRoute
import time
import logging

logger = logging.getLogger(__name__)

# ============================================================================
# HTTP Metrics
# ============================================================================

# Request counter by method, endpoint, and status
http_requests_total = Counter(
    'http_requests_total',
    'Total HTTP requests',
    ['method', 'endpoint', 'status_code']
)

# Request duration histogram
http_request_duration_seconds = Histogram(
    'http_request_duration_seconds',
    'HTTP request latency in seconds',
    ['method', 'endpoint'],
    buckets=(0.01, 0.025, 0.05, 0.075, 0.1, 0.25, 0.5, 0.75, 1.0, 2.5, 5.0, 7.5, 10.0)
)

# Active requests gauge
http_requests_in_progress = Gauge(
    'http_requests_in_progress',
    'Number of HTTP requests in progress',
    ['method', 'endpoint']
)

# ============================================================================
# Application-Specific Metrics
# ============================================================================

# Database operations
db_operations_total = Counter(
    'db_operations_total',
    'Total database operations',
    ['operation_type', 'collection', 'status']
)

db_operation_duration_seconds = Histogram(
    'db_operation_duration_seconds',
    'Database operation duration in seconds',
    ['operation_type', 'collection']
)

# Target upserts
target_upserts_total = Counter(
    'target_upserts_total',
    'Total target upserts',
    ['result']  # created, updated, conflict, failed
)

# Change poller
change_poller_checks_total = Counter(
    'change_poller_checks_total',
    'Total change poller checks',
    ['outcome']  # emitted, unchanged, error
)

change_poller_subscribers = Gauge(
    'change_poller_subscribers',
    'Number of subscribers registered on the change poller'
)

# ============================================================================
# Middleware Class
# ============================================================================

class PrometheusMiddleware:
    """
    FastAPI middleware to collect Prometheus metrics
    """

    async def __call__(self, request: Request, call_next):
        # Extract route pattern (e.g., /api/targets/{date})
        route = request.url.path
        for route_obj in request.app.routes:
            if isinstance(route_obj, APIRoute):
                match = route_obj.path_regex.match(route)
                if match:
                    route = route_obj.path
                    break

        method = request.method

        # Track in-progress requests
        http_requests_in_progress.labels(method=method, endpoint=route).inc()

        # Start timer
        start_time = time.time()

        try:
            response = await call_next(request)

            duration = time.time() - start_time

            http_requests_total.labels(
                method=method,
                endpoint=route,
                status_code=response.status_code
            ).inc()

            http_request_duration_seconds.labels(
                method=method,
                endpoint=route
            ).observe(duration)

            return response

        except Exception as e:
            # Track failed requests
            http_requests_total.labels(
                method=method,
                endpoint=route,
                status_code=500
            ).inc()

            logger.error(f"Request failed: {str(e)}")
            raise

        finally:
            http_requests_in_progress.labels(method=method, endpoint=route).dec()


# ============================================================================
# Helper Functions for Application Metrics
# ============================================================================

def track_db_operation(operation_type: str, collection: str, duration: float, success: bool):
    """Track database operation metrics"""
    status = "success" if success else "error"
    db_operations_total.labels(
        operation_type=operation_type,
        collection=collection,
        status=status
    ).inc()

    db_operation_duration_seconds.labels(
        operation_type=operation_type,
        collection=collection
    ).observe(duration)


def track_target_upsert(result: str):
    """Track target upsert outcomes"""
    target_upserts_total.labels(result=result).inc()


def track_poller_check(outcome: str):
    """Track change poller checks"""
    change_poller_checks_total.labels(outcome=outcome).inc()


def set_poller_subscribers(count: int):
    change_poller_subscribers.set(count)
