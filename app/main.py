# app/main.py
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from app.api.v1.endpoints import auth, health, metrics, video_progress, video_reports
from app.core.config import settings
from app.core.logging_config import setup_logging
from app.db import models_registry  # noqa: F401  registra todos los modelos en Base.metadata
from middleware.request_logging import RequestLoggingMiddleware
import logging

# Configurar logging al inicio de la aplicacion
setup_logging()
logger = logging.getLogger('app')

app = FastAPI(
    title=settings.PROJECT_NAME,
    description='''
    ## Seguimiento de progreso de videos

    **Servicios Disponibles:**
    - **Health Check**: Monitoreo de estado del servicio y la base de datos
    - **Authentication**: Login con usuario o email y contraseña (JWT)
    - **Video Progress**: Registro del porcentaje visto por usuario, video y sesión
    - **Video Reports**: Consulta, edición y exportación (CSV, Excel, JSON) para administradores
    - **Metrics**: Metricas Prometheus

    **Reglas de progreso:**
    - El porcentaje almacenado nunca retrocede
    - El estatus se deriva del porcentaje y la fecha de inscripción
    ''',
    version=settings.VERSION,
    openapi_url='/openapi.json',
    docs_url='/docs',
    redoc_url='/redoc'
)

logger.info(f'{settings.PROJECT_NAME} {settings.VERSION} starting up')

# Configurar CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=['*'],
    allow_headers=['*'],
)

# Logging de todas las requests
app.add_middleware(RequestLoggingMiddleware)

# Incluir rutas
app.include_router(health.router, prefix='/api/v1', tags=['Health Check'])
app.include_router(auth.router, prefix='/api/v1', tags=['Authentication'])
app.include_router(video_progress.router, prefix='/api/v1/video-progress', tags=['Video Progress'])
app.include_router(video_reports.router, prefix='/api/v1/video-reports', tags=['Video Reports'])
app.include_router(metrics.router, prefix='/api/v1', tags=['Metrics'])


@app.get('/')
async def root():
    return {
        'message': settings.PROJECT_NAME,
        'status': 'operativo',
        'version': settings.VERSION,
        'docs': '/docs',
        'available_services': ['health', 'auth', 'video-progress', 'video-reports', 'metrics'],
    }


if __name__ == '__main__':
    import uvicorn
    uvicorn.run(app, host='0.0.0.0', port=8000)
