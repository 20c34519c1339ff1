"""
Logging centralizado da aplicação.

Cada módulo pede seu logger com get_logger(__name__). A saída vai para
stdout, que o Cloud Run encaminha ao Cloud Logging. O nível vem de
LOG_LEVEL (padrão INFO).
"""

import logging
import os
import sys

LOG_FORMAT = '[%(asctime)s] %(levelname)s in %(module)s: %(message)s'


def get_logger(name: str) -> logging.Logger:
    """
    Retorna o logger do módulo, configurando-o na primeira chamada.

    Args:
        name (str): Nome do módulo (geralmente __name__).
    """
    logger = logging.getLogger(name)

    if logger.handlers:
        return logger

    nivel = os.environ.get('LOG_LEVEL', 'INFO').upper()
    logger.setLevel(getattr(logging, nivel, logging.INFO))

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    logger.addHandler(handler)

    # Sem propagar ao root: o handler acima já imprime a linha
    logger.propagate = False
    return logger
