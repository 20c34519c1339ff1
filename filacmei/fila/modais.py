"""
Orquestração dos Formulários de Ação (modais).

Cada par (ação, alvo) tem um ModalAcao com a máquina de estados
fechado -> selecionando -> enviando -> (fechado | erro). Enquanto um envio
está pendente, um segundo envio recebe o mesmo Future em vez de disparar
outra mutação (duplo clique, duas abas).

O painel esquece o modal assim que o envio termina com sucesso e guarda no
máximo MAX_MODAIS entradas, descartando as mais antigas que não estejam
enviando.
"""

import threading
from collections import OrderedDict
from concurrent.futures import Future, ThreadPoolExecutor
from enum import Enum
from typing import Any, Callable, Iterable, List, Optional, Tuple

from flask import current_app

from filacmei.core.cache import CoordenadorConsultas
from filacmei.core.erros import ErroValidacao
from filacmei.core.logger import get_logger

logger = get_logger(__name__)

MAX_MODAIS = 200


class EstadoModal(str, Enum):
    FECHADO = 'fechado'
    SELECIONANDO = 'selecionando'
    ENVIANDO = 'enviando'
    ERRO = 'erro'


class ModalAcao:

    def __init__(self, acao: str, alvo: str, app, coordenador: CoordenadorConsultas, executor: ThreadPoolExecutor,
                 ao_fechar: Optional[Callable[['ModalAcao'], None]] = None):
        self.acao = acao
        self.alvo = alvo
        self.estado = EstadoModal.FECHADO
        self.opcoes: List[Any] = []
        self.carregando = False
        self.erro: Optional[str] = None

        self._app = app
        self._coordenador = coordenador
        self._executor = executor
        self._ao_fechar = ao_fechar
        self._pendente: Optional[Future] = None
        self._lock = threading.Lock()

    def abrir(self, buscar_opcoes: Callable[[], List[Any]]) -> List[Any]:
        """
        Abre (ou reabre) o modal buscando as opções do zero.
        Com um envio pendente, mantém o estado e devolve as opções atuais.
        """
        with self._lock:
            if self.estado == EstadoModal.ENVIANDO:
                return self.opcoes
            self.estado = EstadoModal.SELECIONANDO
            self.carregando = True
            self.erro = None

        try:
            opcoes = buscar_opcoes()
        except Exception as e:
            with self._lock:
                self.carregando = False
                self.estado = EstadoModal.ERRO
                self.erro = getattr(e, 'mensagem', str(e))
            raise

        with self._lock:
            self.opcoes = opcoes
            self.carregando = False
        return opcoes

    def fechar(self) -> None:
        with self._lock:
            if self.estado != EstadoModal.ENVIANDO:
                self.estado = EstadoModal.FECHADO
                self.opcoes = []
                self.erro = None

    def submeter(self, operacao: Callable[[], Any], crianca_ids: Iterable[str] = (), acao_cache: Optional[str] = None) -> Future:
        """
        Agenda a mutação no executor. Devolve o Future do envio em andamento
        se já houver um.
        """
        ids = list(crianca_ids)
        with self._lock:
            if self.estado == EstadoModal.ENVIANDO and self._pendente is not None:
                logger.info(f"Envio duplicado ignorado: {self.acao} ({self.alvo})")
                return self._pendente
            if self.carregando:
                raise ErroValidacao("Aguarde o carregamento das opções.")
            if self.estado not in (EstadoModal.SELECIONANDO, EstadoModal.ERRO):
                raise ErroValidacao("O formulário desta ação não está aberto.")

            self.estado = EstadoModal.ENVIANDO
            self.erro = None
            self._pendente = self._executor.submit(self._executar, operacao, ids, acao_cache or self.acao)
            return self._pendente

    def _executar(self, operacao: Callable[[], Any], crianca_ids: List[str], acao_cache: str) -> Any:
        # Roda numa thread do executor: precisa do contexto da aplicação
        with self._app.app_context():
            try:
                resultado = operacao()
                self._coordenador.invalidar_apos(acao_cache, crianca_ids)
            except Exception as e:
                with self._lock:
                    self.estado = EstadoModal.ERRO
                    self.erro = getattr(e, 'mensagem', str(e))
                    self._pendente = None
                logger.warning(f"Falha em {self.acao} ({self.alvo}): {e}")
                raise

        with self._lock:
            self.estado = EstadoModal.FECHADO
            self.opcoes = []
            self._pendente = None
        if self._ao_fechar:
            self._ao_fechar(self)
        return resultado


class PainelModais:
    """
    Registro dos modais abertos, um por (ação, alvo). Fica em app.extensions.
    """

    def __init__(self, app, coordenador: CoordenadorConsultas, max_workers: int = 4, max_modais: int = MAX_MODAIS):
        self._app = app
        self._coordenador = coordenador
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix='modal')
        self._modais: 'OrderedDict[Tuple[str, str], ModalAcao]' = OrderedDict()
        self._max_modais = max_modais
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._modais)

    @staticmethod
    def alvo_lote(crianca_ids: Iterable[str]) -> str:
        return ','.join(sorted(set(crianca_ids)))

    def modal(self, acao: str, alvo: str) -> ModalAcao:
        with self._lock:
            chave = (acao, alvo)
            if chave in self._modais:
                self._modais.move_to_end(chave)
                return self._modais[chave]

            self._liberar_espaco()
            modal = ModalAcao(acao, alvo, self._app, self._coordenador, self._executor, ao_fechar=self._esquecer)
            self._modais[chave] = modal
            return modal

    def _liberar_espaco(self) -> None:
        # Chamado com self._lock adquirido; envios em andamento nunca saem
        excedente = len(self._modais) - self._max_modais + 1
        if excedente <= 0:
            return
        antigos = [chave for chave, modal in self._modais.items() if modal.estado != EstadoModal.ENVIANDO]
        for chave in antigos[:excedente]:
            del self._modais[chave]

    def _esquecer(self, modal: ModalAcao) -> None:
        chave = (modal.acao, modal.alvo)
        with self._lock:
            if self._modais.get(chave) is modal:
                del self._modais[chave]

    def descartar(self, acao: str, alvo: str) -> None:
        with self._lock:
            modal = self._modais.get((acao, alvo))
            if modal and modal.estado == EstadoModal.FECHADO:
                del self._modais[(acao, alvo)]

    def encerrar(self) -> None:
        self._executor.shutdown(wait=True)


def get_painel() -> PainelModais:
    return current_app.extensions['painel_modais']
