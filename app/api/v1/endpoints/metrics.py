from fastapi import APIRouter, Response
from prometheus_client import Counter, Histogram, Gauge, generate_latest, CONTENT_TYPE_LATEST
import time

router = APIRouter()

# Métricas de Prometheus para el API
api_request_duration_seconds = Histogram(
    'video_progress_api_request_duration_seconds',
    'API request duration in seconds',
    ['method', 'endpoint', 'status']
)

video_progress_samples_total = Counter(
    'video_progress_samples_total',
    'Progress samples processed by outcome',
    ['action']
)

video_progress_store_failures_total = Counter(
    'video_progress_store_failures_total',
    'Writes rejected by the database',
    ['operation']
)

system_uptime_seconds = Gauge(
    'system_uptime_seconds',
    'System uptime in seconds'
)

start_time = time.time()


@router.get("/metrics", include_in_schema=False)
def get_metrics():
    """
    Endpoint de métricas para Prometheus.
    No incluido en la documentación de la API.
    """
    system_uptime_seconds.set(time.time() - start_time)

    return Response(
        generate_latest(),
        media_type=CONTENT_TYPE_LATEST
    )
