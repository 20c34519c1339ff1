"""
Constantes Globais do Sistema.
Fonte Única da Verdade (Single Source of Truth) para status e coleções da fila.
"""

from enum import Enum


class Status(str, Enum):
    """Status possíveis de uma criança no sistema (conjunto fechado)."""

    FILA_DE_ESPERA = 'Fila de Espera'
    CONVOCADO = 'Convocado'
    MATRICULADO = 'Matriculado'
    MATRICULADA = 'Matriculada'
    DESISTENTE = 'Desistente'
    RECUSADA = 'Recusada'
    REMANEJAMENTO_SOLICITADO = 'Remanejamento Solicitado'

    @classmethod
    def de_valor(cls, valor: str) -> 'Status':
        try:
            return cls(valor)
        except ValueError:
            raise ValueError(f"Status desconhecido: {valor}")


STATUS_MATRICULADOS = frozenset({Status.MATRICULADO, Status.MATRICULADA})

STATUS_ATIVOS = frozenset({
    Status.FILA_DE_ESPERA,
    Status.CONVOCADO,
    Status.MATRICULADO,
    Status.MATRICULADA,
    Status.REMANEJAMENTO_SOLICITADO,
})

# Status aceitos na mudança de status em massa.
# 'Fila de Espera' aqui significa "Fim de Fila" (requeue com penalidade).
STATUS_EM_MASSA = (
    Status.DESISTENTE,
    Status.RECUSADA,
    Status.FILA_DE_ESPERA,
    Status.REMANEJAMENTO_SOLICITADO,
)

# Status que liberam a vaga e limpam os campos de fila/convocação.
STATUS_QUE_LIBERAM_VAGA = frozenset({
    Status.DESISTENTE,
    Status.RECUSADA,
    Status.FILA_DE_ESPERA,
})

JUSTIFICATIVA_MIN = 10

# Firestore aceita no máximo 500 escritas por batch; cada criança gera duas
# (registro + histórico).
LIMITE_LOTE = 250

# === COLEÇÕES DO FIRESTORE ===
COLLECTION_CRIANCAS = 'criancas'
COLLECTION_TURMAS = 'turmas'
COLLECTION_CMEIS = 'cmeis'
COLLECTION_HISTORICO = 'historico'
COLLECTION_CONFIGURACOES = 'configuracoes'
COLLECTION_USUARIOS = 'usuarios'

DOC_CONFIGURACOES = 'sistema'

# === RÓTULOS DO HISTÓRICO ===
ACOES_HISTORICO = {
    'inscricao': 'Inscrição Realizada',
    'atualizacao': 'Dados Cadastrais Atualizados',
    'convocar': 'Convocação Enviada',
    'convocar_remanejamento': 'Convocação para Remanejamento Enviada',
    'matricular': 'Matrícula Confirmada',
    'realocar': 'Realocação de Turma',
    'transferir': 'Transferência de CMEI',
    'remanejamento': 'Solicitação de Remanejamento',
    'recusar': 'Convocação Recusada',
    'desistencia': 'Desistência Registrada',
    'fim_de_fila': 'Fim de Fila Aplicado',
    'reativar': 'Reativação na Fila',
    'realocacao_massa': 'Realocação em Massa',
    'exclusao': 'Criança Excluída',
    'reenvio': 'Notificação Reenviada (Webhook)',
}

SEXOS = {
    'feminino': 'Feminino',
    'masculino': 'Masculino',
}
