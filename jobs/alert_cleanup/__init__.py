"""Job de limpieza de alertas resueltas."""
