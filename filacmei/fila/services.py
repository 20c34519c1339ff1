"""
Camada de Serviço (Service Layer) da Fila

Uma função por transição de status. Cada uma lê o registro atual, valida a
transição e grava tudo (registro + linha de histórico) em um único batch do
Firestore: sucesso total ou falha total.
"""

import functools
from datetime import date, datetime, timezone
from typing import Any, Dict, Iterable, List, Optional

from flask import current_app
from google.api_core.exceptions import GoogleAPICallError
from google.cloud import firestore

from filacmei.core.constants import (
    ACOES_HISTORICO,
    COLLECTION_CMEIS,
    COLLECTION_CONFIGURACOES,
    COLLECTION_CRIANCAS,
    COLLECTION_HISTORICO,
    COLLECTION_TURMAS,
    DOC_CONFIGURACOES,
    Status,
)
from filacmei.core.database import get_db
from filacmei.core.erros import ErroBackend, ErroValidacao
from filacmei.core.logger import get_logger
from filacmei.fila import regras
from filacmei.fila.modelos import Cmei, ConvocacaoDados, Crianca, HistoricoEntrada, Turma
from filacmei.fila.regras import Acao

logger = get_logger(__name__)

# Campos zerados quando a criança deixa a vaga/convocação (inclusive a penalidade)
CAMPOS_LIBERADOS = {
    'cmei_atual_id': None,
    'turma_atual_id': None,
    'convocacao_deadline': None,
    'posicao_fila': None,
    'cmei_remanejamento_id': None,
    'fila_penalizada': False,
    'data_penalidade': None,
}

# Status em massa -> chave do rótulo no histórico (e da invalidação de cache)
ACAO_POR_STATUS_EM_MASSA = {
    Status.DESISTENTE: 'desistencia',
    Status.RECUSADA: 'recusar',
    Status.FILA_DE_ESPERA: 'fim_de_fila',
    Status.REMANEJAMENTO_SOLICITADO: 'remanejamento',
}

CONFIGURACOES_PADRAO = {
    'nome_municipio': '',
    'nome_secretaria': '',
    'email_contato': '',
    'telefone_contato': '',
    'data_inicio_inscricao': None,
    'data_fim_inscricao': None,
    'notificacao_whatsapp': False,
    'webhook_url_notificacao': None,
}


def _agora() -> datetime:
    return datetime.now(timezone.utc)


def erros_backend(func):
    """
    Converte falhas do Firestore em ErroBackend com mensagem legível.
    """
    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except GoogleAPICallError as e:
            logger.error(f"Erro do Firestore em {func.__name__}: {e}", exc_info=True)
            raise ErroBackend(f"Erro ao acessar o banco de dados: {e.message}") from e
    return wrapper


def _colecao(nome: str):
    return get_db().collection(nome)


def adicionar_historico(batch, crianca_id: str, chave_acao: str, detalhes: str, usuario: str) -> None:
    ref = _colecao(COLLECTION_HISTORICO).document()
    batch.set(ref, {
        'crianca_id': crianca_id,
        'acao': ACOES_HISTORICO[chave_acao],
        'detalhes': detalhes,
        'usuario': usuario,
        'data': date.today().isoformat(),
        'created_at': firestore.SERVER_TIMESTAMP,
    })


def _gravar(crianca: Crianca, alteracoes: Dict[str, Any], chave_acao: str, detalhes: str, usuario: str) -> Crianca:
    """Um commit: atualização da criança + linha de histórico."""
    batch = get_db().batch()
    batch.update(_colecao(COLLECTION_CRIANCAS).document(crianca.id), alteracoes)
    adicionar_historico(batch, crianca.id, chave_acao, detalhes, usuario)
    batch.commit()

    logger.info(f"[{chave_acao}] {crianca.nome} ({crianca.id}) por {usuario}")
    return crianca.com_alteracoes(alteracoes)


# === LEITURAS ===

@erros_backend
def obter_crianca(crianca_id: str) -> Optional[Crianca]:
    doc = _colecao(COLLECTION_CRIANCAS).document(crianca_id).get()
    if not doc.exists:
        return None
    return Crianca.de_doc(doc.id, doc.to_dict())


def _exigir_crianca(crianca_id: str) -> Crianca:
    crianca = obter_crianca(crianca_id)
    if crianca is None:
        raise ErroValidacao("Criança não encontrada.")
    return crianca


@erros_backend
def obter_cmei(cmei_id: str) -> Optional[Cmei]:
    if not cmei_id:
        return None
    doc = _colecao(COLLECTION_CMEIS).document(cmei_id).get()
    if not doc.exists:
        return None
    return Cmei.de_doc(doc.id, doc.to_dict())


@erros_backend
def obter_turma(turma_id: str) -> Optional[Turma]:
    if not turma_id:
        return None
    doc = _colecao(COLLECTION_TURMAS).document(turma_id).get()
    if not doc.exists:
        return None
    dados = doc.to_dict()
    cmei = obter_cmei(dados.get('cmei_id'))
    return Turma.de_doc(doc.id, dados, cmei_nome=cmei.nome if cmei else '')


def _exigir_vaga(convocacao: ConvocacaoDados):
    cmei = obter_cmei(convocacao.cmei_id)
    if cmei is None:
        raise ErroValidacao("CMEI não encontrado.")
    turma = obter_turma(convocacao.turma_id)
    if turma is None:
        raise ErroValidacao("Turma não encontrada.")
    return cmei, turma


@erros_backend
def listar_cmeis() -> List[Cmei]:
    docs = _colecao(COLLECTION_CMEIS).order_by('nome').stream()
    return [Cmei.de_doc(doc.id, doc.to_dict()) for doc in docs]


@erros_backend
def listar_turmas(cmei_id: Optional[str] = None) -> List[Turma]:
    """Turmas com o nome do CMEI resolvido, ordenadas por CMEI e nome."""
    nomes_cmeis = {c.id: c.nome for c in listar_cmeis()}
    consulta = _colecao(COLLECTION_TURMAS)
    if cmei_id:
        consulta = consulta.where('cmei_id', '==', cmei_id)

    turmas = [
        Turma.de_doc(doc.id, doc.to_dict(), cmei_nome=nomes_cmeis.get(doc.to_dict().get('cmei_id'), ''))
        for doc in consulta.stream()
    ]
    turmas.sort(key=lambda t: (t.cmei_nome, t.nome))
    return turmas


def _chave_ordem_fila(crianca: Crianca):
    # Penalizados vão para o fim; sem posição calculada vão depois dos com posição
    return (
        crianca.fila_penalizada,
        crianca.posicao_fila is None,
        crianca.posicao_fila or 0,
        crianca.nome.lower(),
    )


@erros_backend
def listar_criancas() -> List[Crianca]:
    """Todas as crianças com os nomes de CMEI/turma resolvidos para exibição."""
    nomes_cmeis = {c.id: c.nome for c in listar_cmeis()}
    nomes_turmas = {t.id: t.nome for t in listar_turmas()}

    criancas = []
    for doc in _colecao(COLLECTION_CRIANCAS).stream():
        crianca = Crianca.de_doc(doc.id, doc.to_dict())
        crianca.cmei_nome = nomes_cmeis.get(crianca.cmei_atual_id)
        crianca.turma_nome = nomes_turmas.get(crianca.turma_atual_id)
        criancas.append(crianca)

    criancas.sort(key=_chave_ordem_fila)
    return criancas


@erros_backend
def historico_crianca(crianca_id: str) -> List[HistoricoEntrada]:
    docs = _colecao(COLLECTION_HISTORICO).where('crianca_id', '==', crianca_id).stream()
    entradas = [HistoricoEntrada.de_doc(doc.to_dict()) for doc in docs]
    # Ordenação em memória: evita índice composto no Firestore
    entradas.sort(key=lambda e: e.created_at or datetime.min.replace(tzinfo=timezone.utc), reverse=True)
    return entradas


@erros_backend
def historico_geral(limite: int = 200) -> List[HistoricoEntrada]:
    docs = (
        _colecao(COLLECTION_HISTORICO)
        .order_by('created_at', direction=firestore.Query.DESCENDING)
        .limit(limite)
        .stream()
    )
    return [HistoricoEntrada.de_doc(doc.to_dict()) for doc in docs]


@erros_backend
def obter_configuracoes() -> Dict[str, Any]:
    """
    Configurações do sistema (documento configuracoes/sistema) com valores padrão.
    """
    dados = dict(CONFIGURACOES_PADRAO)
    dados['prazo_resposta_dias'] = current_app.config.get('PRAZO_RESPOSTA_DIAS_PADRAO', 7)

    doc = _colecao(COLLECTION_CONFIGURACOES).document(DOC_CONFIGURACOES).get()
    if doc.exists:
        dados.update({k: v for k, v in doc.to_dict().items() if v is not None})
    return dados


@erros_backend
def salvar_configuracoes(dados: Dict[str, Any], usuario: str) -> None:
    dados = dict(dados, updated_at=firestore.SERVER_TIMESTAMP, updated_by=usuario)
    _colecao(COLLECTION_CONFIGURACOES).document(DOC_CONFIGURACOES).set(dados, merge=True)
    logger.info(f"Configurações do sistema atualizadas por {usuario}")


def opcoes_turmas(acao: Acao, crianca: Crianca) -> List[Turma]:
    """Lista de vagas oferecida no formulário da ação (sempre lida do banco)."""
    return regras.filtrar_turmas(acao, listar_turmas(), crianca.cmei_atual_id)


def opcoes_remanejamento(crianca: Crianca) -> List[Cmei]:
    return regras.filtrar_cmeis_remanejamento(listar_cmeis(), crianca.cmei_atual_id)


# === TRANSIÇÕES INDIVIDUAIS ===

@erros_backend
def convocar(crianca_id: str, convocacao: ConvocacaoDados, usuario: str) -> Crianca:
    crianca = _exigir_crianca(crianca_id)
    regras.validar_transicao(Acao.CONVOCAR, crianca)
    cmei, turma = _exigir_vaga(convocacao)
    regras.validar_turma_escolhida(Acao.CONVOCAR, turma, cmei.id, crianca)

    prazo_dias = int(obter_configuracoes().get('prazo_resposta_dias') or 7)
    prazo = regras.calcular_prazo(prazo_dias)

    chave = 'convocar'
    if crianca.status == Status.REMANEJAMENTO_SOLICITADO:
        chave = 'convocar_remanejamento'

    alteracoes = {
        'status': Status.CONVOCADO.value,
        'cmei_atual_id': cmei.id,
        'turma_atual_id': turma.id,
        'convocacao_deadline': prazo,
        'posicao_fila': None,
        'cmei_remanejamento_id': None,
        'fila_penalizada': False,
        'data_penalidade': None,
    }
    detalhes = f"Convocado para {cmei.nome} - {turma.nome}. Prazo de resposta: {prazo.strftime('%d/%m/%Y')}."
    return _gravar(crianca, alteracoes, chave, detalhes, usuario)


@erros_backend
def confirmar_matricula(crianca_id: str, usuario: str) -> Crianca:
    crianca = _exigir_crianca(crianca_id)
    regras.validar_transicao(Acao.MATRICULAR, crianca)

    alteracoes = {
        'status': Status.MATRICULADO.value,
        'convocacao_deadline': None,
        'posicao_fila': None,
        'cmei_remanejamento_id': None,
        'fila_penalizada': False,
        'data_penalidade': None,
    }
    return _gravar(crianca, alteracoes, 'matricular', "Matrícula confirmada na vaga convocada.", usuario)


@erros_backend
def realocar(crianca_id: str, convocacao: ConvocacaoDados, usuario: str) -> Crianca:
    """Troca apenas a turma, dentro do mesmo CMEI."""
    crianca = _exigir_crianca(crianca_id)
    regras.validar_transicao(Acao.REALOCAR, crianca)
    cmei, turma = _exigir_vaga(convocacao)
    regras.validar_turma_escolhida(Acao.REALOCAR, turma, cmei.id, crianca)

    anterior = obter_turma(crianca.turma_atual_id)
    detalhes = f"Turma alterada de {anterior.nome if anterior else 'N/A'} para {turma.nome} ({cmei.nome})."
    return _gravar(crianca, {'turma_atual_id': turma.id}, 'realocar', detalhes, usuario)


@erros_backend
def transferir(crianca_id: str, convocacao: ConvocacaoDados, usuario: str) -> Crianca:
    """Move para uma turma de outro CMEI; o status não muda."""
    crianca = _exigir_crianca(crianca_id)
    regras.validar_transicao(Acao.TRANSFERIR, crianca)
    cmei, turma = _exigir_vaga(convocacao)
    regras.validar_turma_escolhida(Acao.TRANSFERIR, turma, cmei.id, crianca)

    origem = obter_cmei(crianca.cmei_atual_id)
    alteracoes = {'cmei_atual_id': cmei.id, 'turma_atual_id': turma.id}
    detalhes = f"Transferida de {origem.nome if origem else 'N/A'} para {cmei.nome} - {turma.nome}."
    return _gravar(crianca, alteracoes, 'transferir', detalhes, usuario)


@erros_backend
def solicitar_remanejamento(crianca_id: str, cmei_destino_id: str, justificativa: str, usuario: str) -> Crianca:
    texto = regras.validar_justificativa(justificativa)
    crianca = _exigir_crianca(crianca_id)
    regras.validar_transicao(Acao.REMANEJAMENTO, crianca)

    if not cmei_destino_id or cmei_destino_id == crianca.cmei_atual_id:
        raise ErroValidacao("O CMEI de destino deve ser diferente do CMEI atual.")
    destino = obter_cmei(cmei_destino_id)
    if destino is None:
        raise ErroValidacao("CMEI de destino não encontrado.")

    alteracoes = {
        'status': Status.REMANEJAMENTO_SOLICITADO.value,
        'cmei_remanejamento_id': destino.id,
    }
    detalhes = f"Remanejamento solicitado para {destino.nome}. Justificativa: {texto}"
    return _gravar(crianca, alteracoes, 'remanejamento', detalhes, usuario)


@erros_backend
def marcar_recusada(crianca_id: str, justificativa: str, usuario: str) -> Crianca:
    texto = regras.validar_justificativa(justificativa)
    crianca = _exigir_crianca(crianca_id)
    regras.validar_transicao(Acao.RECUSAR, crianca)

    alteracoes = dict(CAMPOS_LIBERADOS, status=Status.RECUSADA.value)
    return _gravar(crianca, alteracoes, 'recusar', f"Justificativa: {texto}", usuario)


@erros_backend
def marcar_desistente(crianca_id: str, justificativa: str, usuario: str) -> Crianca:
    texto = regras.validar_justificativa(justificativa)
    crianca = _exigir_crianca(crianca_id)
    regras.validar_transicao(Acao.DESISTENCIA, crianca)

    alteracoes = dict(CAMPOS_LIBERADOS, status=Status.DESISTENTE.value)
    return _gravar(crianca, alteracoes, 'desistencia', f"Justificativa: {texto}", usuario)


@erros_backend
def marcar_fim_de_fila(crianca_id: str, justificativa: str, usuario: str) -> Crianca:
    """Volta para a fila com penalidade (fila_penalizada + data_penalidade)."""
    texto = regras.validar_justificativa(justificativa)
    crianca = _exigir_crianca(crianca_id)
    regras.validar_transicao(Acao.FIM_DE_FILA, crianca)

    alteracoes = dict(
        CAMPOS_LIBERADOS,
        status=Status.FILA_DE_ESPERA.value,
        fila_penalizada=True,
        data_penalidade=_agora(),
    )
    return _gravar(crianca, alteracoes, 'fim_de_fila', f"Justificativa: {texto}", usuario)


@erros_backend
def reativar(crianca_id: str, usuario: str) -> Crianca:
    crianca = _exigir_crianca(crianca_id)
    regras.validar_transicao(Acao.REATIVAR, crianca)

    alteracoes = dict(CAMPOS_LIBERADOS, status=Status.FILA_DE_ESPERA.value)
    detalhes = f"Reativada na fila (status anterior: {crianca.status.value})."
    return _gravar(crianca, alteracoes, 'reativar', detalhes, usuario)


@erros_backend
def atualizar_dados(crianca_id: str, dados: Dict[str, Any], usuario: str) -> Crianca:
    """Edição dos dados cadastrais (não mexe em status nem vaga)."""
    crianca = _exigir_crianca(crianca_id)
    bloqueados = {'status', 'cmei_atual_id', 'turma_atual_id', 'convocacao_deadline', 'posicao_fila'}
    alteracoes = {k: v for k, v in dados.items() if k not in bloqueados}
    if not alteracoes:
        raise ErroValidacao("Nenhum dado para atualizar.")
    return _gravar(crianca, alteracoes, 'atualizacao', "Dados cadastrais editados pela equipe.", usuario)


@erros_backend
def excluir_crianca(crianca_id: str, usuario: str) -> None:
    """
    Exclusão definitiva. Só permitida fora dos status ativos.
    O histórico da criança é mantido (registro de auditoria).
    """
    crianca = _exigir_crianca(crianca_id)
    if crianca.ativa:
        raise ErroValidacao("Só é possível excluir crianças desistentes ou que recusaram a vaga.")

    batch = get_db().batch()
    batch.delete(_colecao(COLLECTION_CRIANCAS).document(crianca.id))
    adicionar_historico(batch, crianca.id, 'exclusao', f"Registro de {crianca.nome} excluído.", usuario)
    batch.commit()
    logger.warning(f"Criança {crianca.nome} ({crianca.id}) excluída por {usuario}")


@erros_backend
def registrar_historico(crianca_id: str, chave_acao: str, detalhes: str, usuario: str) -> None:
    """Linha de histórico avulsa (ex.: reenvio de notificação)."""
    batch = get_db().batch()
    adicionar_historico(batch, crianca_id, chave_acao, detalhes, usuario)
    batch.commit()


# === OPERAÇÕES EM MASSA ===

def _carregar_lote(crianca_ids: Iterable[str]) -> List[Crianca]:
    criancas = []
    for crianca_id in regras.validar_lote(crianca_ids):
        criancas.append(_exigir_crianca(crianca_id))
    return criancas


def alteracoes_status_em_massa(status: Status) -> Dict[str, Any]:
    if status == Status.REMANEJAMENTO_SOLICITADO:
        return {'status': status.value}
    alteracoes = dict(CAMPOS_LIBERADOS, status=status.value)
    if status == Status.FILA_DE_ESPERA:
        alteracoes.update(fila_penalizada=True, data_penalidade=_agora())
    return alteracoes


@erros_backend
def atualizar_status_em_massa(crianca_ids: Iterable[str], status: str, justificativa: str, usuario: str) -> None:
    """
    Aplica o mesmo status a várias crianças em um único commit.
    Não devolve os registros: quem chama só sabe se deu certo ou não.
    """
    texto = regras.validar_justificativa(justificativa)
    alvo = regras.validar_status_em_massa(status)
    criancas = _carregar_lote(crianca_ids)

    inativas = [c.nome for c in criancas if not c.ativa]
    if inativas:
        raise ErroValidacao(f"Crianças fora da fila não podem mudar de status em massa: {', '.join(inativas)}")

    alteracoes = alteracoes_status_em_massa(alvo)
    chave = ACAO_POR_STATUS_EM_MASSA[alvo]
    detalhes = f"Alteração em massa para '{alvo.value}'. Justificativa: {texto}"

    batch = get_db().batch()
    for crianca in criancas:
        batch.update(_colecao(COLLECTION_CRIANCAS).document(crianca.id), alteracoes)
        adicionar_historico(batch, crianca.id, chave, detalhes, usuario)
    batch.commit()

    logger.info(f"Status '{alvo.value}' aplicado em massa a {len(criancas)} crianças por {usuario}")


@erros_backend
def realocar_em_massa(crianca_ids: Iterable[str], convocacao: ConvocacaoDados, usuario: str) -> None:
    criancas = _carregar_lote(crianca_ids)
    cmei, turma = _exigir_vaga(convocacao)
    if turma.cmei_id != cmei.id:
        raise ErroValidacao("A turma selecionada não pertence ao CMEI informado.")

    inativas = [c.nome for c in criancas if not c.ativa]
    if inativas:
        raise ErroValidacao(f"Crianças fora da fila não podem ser realocadas: {', '.join(inativas)}")

    alteracoes = {'cmei_atual_id': cmei.id, 'turma_atual_id': turma.id}
    detalhes = f"Realocada em massa para {cmei.nome} - {turma.nome}."

    batch = get_db().batch()
    for crianca in criancas:
        batch.update(_colecao(COLLECTION_CRIANCAS).document(crianca.id), alteracoes)
        adicionar_historico(batch, crianca.id, 'realocacao_massa', detalhes, usuario)
    batch.commit()

    logger.info(f"{len(criancas)} crianças realocadas para {turma.nome} ({cmei.nome}) por {usuario}")
