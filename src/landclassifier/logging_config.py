# src/landclassifier/logging_config.py
from __future__ import annotations

"""
Configuración de logging del paquete.

Todos los módulos obtienen su logger con `get_module_logger(__name__)`;
los handlers se instalan una sola vez con `setup_logging()` (CLI o host).
"""

import logging
import os
from typing import Optional

ROOT_LOGGER = "landclassifier"
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(threadName)s - %(message)s"


def setup_logging(log_level: str = "INFO", log_file: Optional[str] = None) -> logging.Logger:
    """
    Configura y devuelve el logger raíz del paquete.

    Parameters
    ----------
    log_level : str
        DEBUG, INFO, WARNING, ERROR o CRITICAL.
    log_file : str, optional
        Si se entrega, agrega un FileHandler (crea la carpeta si falta).
    """
    logger = logging.getLogger(ROOT_LOGGER)

    numeric_level = getattr(logging, log_level.upper(), None)
    if not isinstance(numeric_level, int):
        raise ValueError(f"Invalid log level: {log_level}")
    logger.setLevel(numeric_level)

    # Ya configurado: solo ajusta el nivel
    if logger.handlers:
        return logger

    formatter = logging.Formatter(LOG_FORMAT)

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    if log_file:
        log_dir = os.path.dirname(log_file)
        if log_dir:
            os.makedirs(log_dir, exist_ok=True)
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    logger.debug("Logging inicializado en nivel %s", log_level)
    return logger


def get_module_logger(module_name: str) -> logging.Logger:
    """Logger hijo de `landclassifier` para un módulo (típicamente __name__)."""
    if module_name == ROOT_LOGGER or module_name.startswith(ROOT_LOGGER + "."):
        return logging.getLogger(module_name)
    return logging.getLogger(f"{ROOT_LOGGER}.{module_name}")
