"""
Coordenação de Consultas em Cache.

As telas leem listas inteiras (crianças, histórico, CMEIs, turmas) através do
coordenador. Depois que uma mutação é gravada, as chaves afetadas são
invalidadas e a próxima leitura busca de novo, uma única vez.

Cada chave tem uma geração, incrementada a cada invalidação. Uma busca que
começou antes da invalidação não grava o resultado no cache: o valor já
nasceu desatualizado.
"""

import threading
from typing import Any, Callable, Dict, Iterable, List

from flask import current_app

from filacmei.core.logger import get_logger

logger = get_logger(__name__)

CHAVE_CRIANCAS = 'criancas'
CHAVE_HISTORICO = 'historico'
CHAVE_CMEIS = 'cmeis'
CHAVE_TURMAS = 'turmas'
CHAVE_CONFIGURACOES = 'configuracoes'
CHAVE_TEMPO_MEDIO = 'tempo_medio_espera'

# Ações que não mexem na ocupação de CMEIs/turmas
ACOES_SEM_OCUPACAO = frozenset({'remanejamento', 'reativar', 'reenvio', 'atualizacao', 'inscricao'})


def chave_historico_crianca(crianca_id: str) -> str:
    return f"{CHAVE_HISTORICO}:{crianca_id}"


class CoordenadorConsultas:
    """
    Lê listas pelo cache e invalida de forma grosseira (lista inteira) após mutações.
    """

    def __init__(self, cache):
        self._cache = cache
        self._locks: Dict[str, threading.Lock] = {}
        self._geracoes: Dict[str, int] = {}
        self._locks_guard = threading.Lock()

    def _lock_para(self, chave: str) -> threading.Lock:
        with self._locks_guard:
            return self._locks.setdefault(chave, threading.Lock())

    def obter(self, chave: str, buscar: Callable[[], Any]) -> Any:
        """
        Retorna o valor em cache ou executa `buscar` (uma vez por invalidação).
        Os valores são guardados em tupla para que None também seja cacheável.
        """
        entrada = self._cache.get(chave)
        if entrada is not None:
            return entrada[0]

        with self._lock_para(chave):
            # Outra requisição pode ter buscado enquanto esperávamos o lock
            entrada = self._cache.get(chave)
            if entrada is not None:
                return entrada[0]

            with self._locks_guard:
                geracao = self._geracoes.get(chave, 0)

            valor = buscar()

            with self._locks_guard:
                if self._geracoes.get(chave, 0) != geracao:
                    logger.debug(f"Consulta '{chave}' invalidada durante a busca; resultado não guardado.")
                    return valor
                self._cache.set(chave, (valor,))
            logger.debug(f"Consulta '{chave}' recarregada do backend.")
            return valor

    def invalidar(self, *chaves: str) -> None:
        if not chaves:
            return
        with self._locks_guard:
            for chave in chaves:
                self._geracoes[chave] = self._geracoes.get(chave, 0) + 1
            self._cache.delete_many(*chaves)

    @staticmethod
    def chaves_afetadas(acao: str, crianca_ids: Iterable[str] = ()) -> List[str]:
        chaves = [CHAVE_CRIANCAS, CHAVE_HISTORICO, CHAVE_TEMPO_MEDIO]
        chaves.extend(chave_historico_crianca(cid) for cid in crianca_ids)
        if acao not in ACOES_SEM_OCUPACAO:
            chaves.extend([CHAVE_CMEIS, CHAVE_TURMAS])
        return chaves

    def invalidar_apos(self, acao: str, crianca_ids: Iterable[str] = ()) -> None:
        chaves = self.chaves_afetadas(acao, crianca_ids)
        self.invalidar(*chaves)
        logger.info(f"Cache invalidado após '{acao}': {', '.join(chaves)}")


def get_coordenador() -> CoordenadorConsultas:
    return current_app.extensions['coordenador_consultas']
