"""
Camada de Serviço do Admin

Painel (contagens por status e tempo médio de espera) e cadastro de
CMEIs e turmas.
"""

from collections import Counter
from typing import Any, Dict, List, Optional

from google.cloud import firestore

from filacmei.core import procedimentos
from filacmei.core.constants import (
    COLLECTION_CMEIS,
    COLLECTION_CRIANCAS,
    COLLECTION_TURMAS,
    STATUS_ATIVOS,
    STATUS_MATRICULADOS,
    Status,
)
from filacmei.core.database import get_db
from filacmei.core.erros import ErroValidacao
from filacmei.core.logger import get_logger
from filacmei.fila.modelos import Crianca, Turma
from filacmei.fila.services import erros_backend

logger = get_logger(__name__)


def resumo_painel(criancas: List[Crianca], turmas: List[Turma]) -> Dict[str, Any]:
    """Números do dashboard a partir das listas já carregadas."""
    por_status = Counter(c.status for c in criancas)
    return {
        'total': len(criancas),
        'por_status': {s.value: por_status.get(s, 0) for s in Status},
        'fila': por_status.get(Status.FILA_DE_ESPERA, 0),
        'penalizados': sum(1 for c in criancas if c.status == Status.FILA_DE_ESPERA and c.fila_penalizada),
        'convocados': por_status.get(Status.CONVOCADO, 0),
        'matriculados': sum(por_status.get(s, 0) for s in STATUS_MATRICULADOS),
        'remanejamentos': por_status.get(Status.REMANEJAMENTO_SOLICITADO, 0),
        'capacidade': sum(t.capacidade for t in turmas),
        'vagas_livres': sum(max(t.vagas, 0) for t in turmas),
    }


def tempo_medio_espera() -> Optional[float]:
    return procedimentos.calcular_tempo_medio_espera()


def _tem_criancas_ativas(campo: str, valor: str) -> bool:
    docs = get_db().collection(COLLECTION_CRIANCAS).where(campo, '==', valor).stream()
    return any(Crianca.de_doc(doc.id, doc.to_dict()).status in STATUS_ATIVOS for doc in docs)


# === CMEIs ===

@erros_backend
def salvar_cmei(dados: Dict[str, Any], cmei_id: Optional[str] = None) -> str:
    colecao = get_db().collection(COLLECTION_CMEIS)
    if cmei_id:
        colecao.document(cmei_id).update(dados)
        logger.info(f"CMEI atualizado: {dados.get('nome')} ({cmei_id})")
        return cmei_id

    ref = colecao.document()
    ref.set(dict(dados, ocupacao=0, created_at=firestore.SERVER_TIMESTAMP))
    logger.info(f"CMEI criado: {dados.get('nome')} ({ref.id})")
    return ref.id


@erros_backend
def excluir_cmei(cmei_id: str) -> None:
    db = get_db()
    if _tem_criancas_ativas('cmei_atual_id', cmei_id):
        raise ErroValidacao("Não é possível excluir um CMEI com crianças ativas vinculadas.")
    turmas = list(db.collection(COLLECTION_TURMAS).where('cmei_id', '==', cmei_id).stream())
    if turmas:
        raise ErroValidacao("Exclua as turmas do CMEI antes de excluí-lo.")
    db.collection(COLLECTION_CMEIS).document(cmei_id).delete()
    logger.warning(f"CMEI excluído: {cmei_id}")


# === TURMAS ===

@erros_backend
def salvar_turma(dados: Dict[str, Any], turma_id: Optional[str] = None) -> str:
    colecao = get_db().collection(COLLECTION_TURMAS)
    if turma_id:
        colecao.document(turma_id).update(dados)
        logger.info(f"Turma atualizada: {dados.get('nome')} ({turma_id})")
        return turma_id

    ref = colecao.document()
    ref.set(dict(dados, ocupacao=0, created_at=firestore.SERVER_TIMESTAMP))
    logger.info(f"Turma criada: {dados.get('nome')} ({ref.id})")
    return ref.id


@erros_backend
def excluir_turma(turma_id: str) -> None:
    if _tem_criancas_ativas('turma_atual_id', turma_id):
        raise ErroValidacao("Não é possível excluir uma turma com crianças ativas vinculadas.")
    get_db().collection(COLLECTION_TURMAS).document(turma_id).delete()
    logger.warning(f"Turma excluída: {turma_id}")
