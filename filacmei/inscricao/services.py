"""
Camada de Serviço da Inscrição

Cria novas inscrições (criança + histórico no mesmo batch), verifica o
período de inscrições e busca dados do responsável pelo CPF.
"""

from datetime import date
from typing import Any, Dict, Optional

from google.cloud import firestore

from filacmei.core import procedimentos
from filacmei.core.constants import COLLECTION_CRIANCAS, Status
from filacmei.core.database import get_db
from filacmei.core.erros import ErroBackend
from filacmei.core.logger import get_logger
from filacmei.fila.services import adicionar_historico, erros_backend
from filacmei.inscricao.cpf import CAMPOS_RESPONSAVEL

logger = get_logger(__name__)


def _para_data(valor) -> Optional[date]:
    if not valor:
        return None
    if isinstance(valor, date):
        return valor
    try:
        return date.fromisoformat(str(valor)[:10])
    except ValueError:
        return None


def periodo_aberto(configuracoes: Dict[str, Any], hoje: Optional[date] = None) -> bool:
    """
    Sem datas configuradas, as inscrições ficam abertas.
    """
    hoje = hoje or date.today()
    inicio = _para_data(configuracoes.get('data_inicio_inscricao'))
    fim = _para_data(configuracoes.get('data_fim_inscricao'))
    if inicio and hoje < inicio:
        return False
    if fim and hoje > fim:
        return False
    return True


@erros_backend
def gravar_inscricao(dados: Dict[str, Any], usuario: str, detalhes: Optional[str] = None) -> str:
    """
    Grava a criança (status padrão 'Fila de Espera') e a linha de histórico
    no mesmo batch. Retorna o id do novo registro.
    """
    db = get_db()
    ref = db.collection(COLLECTION_CRIANCAS).document()
    registro = dict(dados)
    registro.setdefault('status', Status.FILA_DE_ESPERA.value)
    registro.setdefault('fila_penalizada', False)
    registro['created_at'] = firestore.SERVER_TIMESTAMP

    batch = db.batch()
    batch.set(ref, registro)
    adicionar_historico(batch, ref.id, 'inscricao', detalhes or f"Inscrição de {registro.get('nome')}.", usuario)
    batch.commit()
    logger.info(f"Nova inscrição: {registro.get('nome')} ({ref.id})")
    return ref.id


def adicionar_crianca(dados: Dict[str, Any], usuario: str = 'inscricao-publica') -> str:
    """Inscrição pelo formulário público: grava e pede o recálculo da fila."""
    crianca_id = gravar_inscricao(dados, usuario)

    # A inscrição já foi gravada; a posição será corrigida no próximo recálculo
    try:
        procedimentos.recalcular_fila_posicao()
    except ErroBackend as e:
        logger.warning(f"Inscrição {crianca_id} gravada, mas o recálculo da fila falhou: {e.mensagem}")

    return crianca_id


@erros_backend
def buscar_responsavel_por_cpf(cpf: str) -> Optional[Dict[str, Any]]:
    """Dados do responsável da inscrição mais recente com esse CPF."""
    docs = get_db().collection(COLLECTION_CRIANCAS).where('responsavel_cpf', '==', cpf).stream()
    registros = [doc.to_dict() for doc in docs]
    if not registros:
        return None

    registros.sort(key=lambda r: str(r.get('created_at') or ''), reverse=True)
    mais_recente = registros[0]
    return {campo: mais_recente.get(campo) for campo in CAMPOS_RESPONSAVEL if mais_recente.get(campo)}
