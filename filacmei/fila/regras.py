"""
Regras de Transição de Status (lógica pura, sem acesso ao banco).

Dado o status atual e a ação pedida, decide se a transição é permitida e
quais dados extras ela exige (vaga, CMEI de destino, justificativa).
"""

from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Iterable, List, Optional

from filacmei.core.constants import (
    JUSTIFICATIVA_MIN,
    LIMITE_LOTE,
    STATUS_ATIVOS,
    STATUS_EM_MASSA,
    Status,
)
from filacmei.core.erros import ErroValidacao
from filacmei.fila.modelos import Cmei, Crianca, Turma


class Acao(str, Enum):
    CONVOCAR = 'convocar'
    MATRICULAR = 'matricular'
    REALOCAR = 'realocar'
    TRANSFERIR = 'transferir'
    REMANEJAMENTO = 'remanejamento'
    RECUSAR = 'recusar'
    DESISTENCIA = 'desistencia'
    FIM_DE_FILA = 'fim_de_fila'
    REATIVAR = 'reativar'


ORIGENS_PERMITIDAS = {
    # Convocado só pode ser reconvocado com prazo expirado (checado à parte)
    Acao.CONVOCAR: frozenset({Status.FILA_DE_ESPERA, Status.REMANEJAMENTO_SOLICITADO, Status.CONVOCADO}),
    Acao.MATRICULAR: frozenset({Status.CONVOCADO}),
    Acao.REALOCAR: STATUS_ATIVOS,
    Acao.TRANSFERIR: STATUS_ATIVOS,
    Acao.REMANEJAMENTO: STATUS_ATIVOS,
    Acao.RECUSAR: frozenset({Status.CONVOCADO}),
    Acao.DESISTENCIA: STATUS_ATIVOS,
    Acao.FIM_DE_FILA: frozenset({Status.CONVOCADO, Status.FILA_DE_ESPERA}),
    Acao.REATIVAR: frozenset({Status.DESISTENTE, Status.RECUSADA}),
}

ACOES_COM_JUSTIFICATIVA = frozenset({
    Acao.REMANEJAMENTO,
    Acao.RECUSAR,
    Acao.DESISTENCIA,
    Acao.FIM_DE_FILA,
})

ACOES_COM_VAGA = frozenset({Acao.CONVOCAR, Acao.REALOCAR, Acao.TRANSFERIR})

# Ações que exigem CMEI atual definido
ACOES_COM_CMEI_ATUAL = frozenset({Acao.REALOCAR, Acao.TRANSFERIR})


def acao_de_valor(valor: str) -> Acao:
    try:
        return Acao(valor)
    except ValueError:
        raise ErroValidacao(f"Ação desconhecida: {valor}")


def motivo_bloqueio(acao: Acao, crianca: Crianca, agora: Optional[datetime] = None) -> Optional[str]:
    """
    Retorna o motivo pelo qual a transição não é permitida, ou None se for.
    """
    if crianca.status not in ORIGENS_PERMITIDAS[acao]:
        return f"A ação '{acao.value}' não é permitida para crianças com status '{crianca.status.value}'."

    if acao == Acao.CONVOCAR and crianca.status == Status.CONVOCADO and not crianca.prazo_expirado(agora):
        return "A criança já está convocada e o prazo de resposta ainda não expirou."

    if acao == Acao.MATRICULAR and (not crianca.cmei_atual_id or not crianca.turma_atual_id):
        return "Dados de CMEI/Turma ausentes para confirmação."

    if acao in ACOES_COM_CMEI_ATUAL and not crianca.cmei_atual_id:
        return "A criança não possui CMEI atual."

    return None


def pode_transicionar(acao: Acao, crianca: Crianca, agora: Optional[datetime] = None) -> bool:
    return motivo_bloqueio(acao, crianca, agora) is None


def validar_transicao(acao: Acao, crianca: Crianca, agora: Optional[datetime] = None) -> None:
    motivo = motivo_bloqueio(acao, crianca, agora)
    if motivo:
        raise ErroValidacao(motivo)


def acoes_disponiveis(crianca: Crianca, agora: Optional[datetime] = None) -> List[Acao]:
    return [acao for acao in Acao if pode_transicionar(acao, crianca, agora)]


def validar_justificativa(justificativa: Optional[str]) -> str:
    texto = (justificativa or '').strip()
    if len(texto) < JUSTIFICATIVA_MIN:
        raise ErroValidacao(f"A justificativa deve ter pelo menos {JUSTIFICATIVA_MIN} caracteres.")
    return texto


def filtrar_turmas(acao: Acao, turmas: Iterable[Turma], cmei_atual_id: Optional[str]) -> List[Turma]:
    """
    Opções de vaga por ação:
    - convocar: qualquer turma com vaga livre
    - realocar: turmas do mesmo CMEI (inclusive lotadas)
    - transferir: turmas de outros CMEIs (inclusive lotadas)
    """
    if acao == Acao.CONVOCAR:
        return [t for t in turmas if t.vagas > 0]
    if acao == Acao.REALOCAR:
        return [t for t in turmas if t.cmei_id == cmei_atual_id]
    if acao == Acao.TRANSFERIR:
        return [t for t in turmas if t.cmei_id != cmei_atual_id]
    raise ErroValidacao(f"A ação '{acao.value}' não usa seleção de turma.")


def filtrar_cmeis_remanejamento(cmeis: Iterable[Cmei], cmei_atual_id: Optional[str]) -> List[Cmei]:
    return [c for c in cmeis if c.id != cmei_atual_id]


def validar_turma_escolhida(acao: Acao, turma: Turma, cmei_id: str, crianca: Crianca) -> None:
    """
    Confere a vaga escolhida contra a regra da ação.
    A lotação não é checada aqui: quem controla a capacidade é o backend.
    """
    if turma.cmei_id != cmei_id:
        raise ErroValidacao("A turma selecionada não pertence ao CMEI informado.")
    if acao == Acao.REALOCAR and cmei_id != crianca.cmei_atual_id:
        raise ErroValidacao("A realocação deve ser para uma turma do mesmo CMEI.")
    if acao == Acao.TRANSFERIR and cmei_id == crianca.cmei_atual_id:
        raise ErroValidacao("A transferência deve ser para uma turma de outro CMEI.")


def validar_status_em_massa(status: str) -> Status:
    try:
        alvo = Status(status)
    except ValueError:
        raise ErroValidacao(f"Status inválido: {status}")
    if alvo not in STATUS_EM_MASSA:
        raise ErroValidacao(f"O status '{alvo.value}' não pode ser aplicado em massa.")
    return alvo


def validar_lote(crianca_ids: Iterable[str]) -> List[str]:
    # Remove duplicados mantendo a ordem
    ids = list(dict.fromkeys(i for i in crianca_ids if i))
    if not ids:
        raise ErroValidacao("Selecione pelo menos uma criança.")
    if len(ids) > LIMITE_LOTE:
        raise ErroValidacao(f"Selecione no máximo {LIMITE_LOTE} crianças por operação.")
    return ids


def calcular_prazo(dias: int, agora: Optional[datetime] = None) -> datetime:
    """Prazo de resposta da convocação: agora + N dias."""
    agora = agora or datetime.now(timezone.utc)
    return agora + timedelta(days=dias)
