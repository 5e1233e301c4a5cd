"""Validation layer - Validación de lecturas entrantes."""

from .reading_validator import ReadingValidator

__all__ = ["ReadingValidator"]
