"""
Cliente dos Procedimentos do Backend.

`recalculate_fila_posicao` e `calculate_average_wait_time` rodam ao lado do
Firestore (funções HTTP). Aqui só existe o contrato de chamada.
"""

from typing import Any, Optional

import requests
from flask import current_app
from requests import RequestException

from filacmei.core.erros import ErroBackend
from filacmei.core.logger import get_logger

logger = get_logger(__name__)


def _chamar(nome: str) -> Any:
    base_url = current_app.config.get('PROCEDIMENTOS_URL')
    if not base_url:
        raise ErroBackend("PROCEDIMENTOS_URL não configurada.")

    url = f"{base_url.rstrip('/')}/{nome}"
    headers = {'Content-Type': 'application/json'}
    token = current_app.config.get('PROCEDIMENTOS_TOKEN')
    if token:
        headers['Authorization'] = f"Bearer {token}"

    try:
        r = requests.post(url, json={}, headers=headers, timeout=current_app.config.get('HTTP_TIMEOUT', 20))
    except RequestException as e:
        logger.error(f"Falha ao chamar o procedimento {nome}: {e}")
        raise ErroBackend(f"Falha ao chamar {nome}: {e}") from e

    if not r.ok:
        logger.error(f"Procedimento {nome} respondeu {r.status_code}: {r.text[:200]}")
        raise ErroBackend(f"{nome} respondeu com status {r.status_code}.")

    if not r.content:
        return None
    return r.json()


def recalcular_fila_posicao() -> None:
    """Reordena a fila (posicao_fila) no backend. Usado após importações em lote."""
    _chamar('recalculate_fila_posicao')
    logger.info("Recálculo da fila solicitado ao backend.")


def calcular_tempo_medio_espera() -> Optional[float]:
    """
    Média de espera em dias, ou None quando ainda não há dados.
    """
    dados = _chamar('calculate_average_wait_time')
    valor = dados.get('result') if isinstance(dados, dict) else dados
    if valor is None:
        return None
    return float(valor)
