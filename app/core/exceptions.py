# app/core/exceptions.py
"""
Excepciones de dominio del seguimiento de progreso.
Los endpoints las traducen a HTTPException; el núcleo nunca depende de FastAPI.
"""


class ProgressValidationError(Exception):
    """Falta un campo requerido o su valor no es válido (video, sesión, duración)"""
    pass


class StoreFailure(Exception):
    """Error de la capa de persistencia; la escritura no se aplicó"""
    pass


class DuplicateWatchRecord(StoreFailure):
    """Otra petición insertó primero el registro de la misma tripleta usuario/video/sesión"""
    pass


class WatchRecordNotFound(Exception):
    """No existe el registro solicitado"""

    def __init__(self, record_id: int):
        super().__init__(f"Watch record {record_id} not found")
        self.record_id = record_id
