"""Core module - Arquitectura modular de ingesta.

Estructura:
- domain/      → Modelos y contratos de dominio
- validation/  → Validación de lecturas
- redis/       → Fan-out de eventos por Redis pub/sub
- transport/   → Recepción MQTT
- publishing   → Publicadores en memoria y en background
"""
