"""Taxonomía de errores del pipeline de ingesta/inferencia.

- ValidationError: lectura mal formada/incompleta. Se rechaza, no se bufferiza.
- InsufficientDataError: interno, nunca sale del scoring (se usa el valor neutro).
- NotFoundError: alerta/dispositivo inexistente, error tipado para el caller.
- PersistenceError: falló el bulk insert. Se loggea, el batch se descarta.
"""

from __future__ import annotations


class PipelineError(Exception):
    """Base de todos los errores tipados del pipeline."""


class ValidationError(PipelineError):
    def __init__(self, message: str, field: str | None = None):
        self.field = field
        super().__init__(message)


class InsufficientDataError(PipelineError):
    pass


class NotFoundError(PipelineError):
    def __init__(self, entity: str, entity_id: str):
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"{entity} '{entity_id}' not found")


class PersistenceError(PipelineError):
    def __init__(self, message: str, device_id: str | None = None, dropped: int = 0):
        self.device_id = device_id
        self.dropped = dropped
        super().__init__(message)
