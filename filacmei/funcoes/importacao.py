"""
Importação de crianças via CSV.

Cada linha é gravada separadamente: uma linha com erro não desfaz as
anteriores. O número da linha reportado conta o cabeçalho (índice + 2).
"""

import csv
import io
from dataclasses import asdict, dataclass, field
from datetime import date, datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

from filacmei.core import procedimentos
from filacmei.core.constants import Status
from filacmei.core.erros import ErroBackend, ErroValidacao
from filacmei.core.logger import get_logger
from filacmei.fila import services as fila_services
from filacmei.inscricao import services as inscricao_services

logger = get_logger(__name__)

ERRO_CAMPOS_OBRIGATORIOS = "Missing required fields (Nome, Data Nascimento, CPF)."

SEXO_CSV = {'M': 'masculino', 'F': 'feminino'}


@dataclass
class ResultadoImportacao:
    totalRecords: int = 0
    successCount: int = 0
    errorCount: int = 0
    errors: List[Dict[str, Any]] = field(default_factory=list)

    def para_dict(self) -> Dict[str, Any]:
        return asdict(self)


def _sim(valor: Optional[str]) -> bool:
    return (valor or '').strip().lower() == 'sim'


def _data_utc(valor: Optional[str]) -> Optional[datetime]:
    if not valor:
        return None
    try:
        dia = date.fromisoformat(valor)
    except ValueError:
        raise ErroValidacao(f"Data inválida: {valor}")
    return datetime(dia.year, dia.month, dia.day, tzinfo=timezone.utc)


def ler_csv(conteudo: str) -> List[Dict[str, str]]:
    """Linhas do CSV como dicts, com espaços aparados e linhas vazias ignoradas."""
    leitor = csv.DictReader(io.StringIO(conteudo.strip()))
    registros = []
    for linha in leitor:
        limpa = {(k or '').strip(): (v or '').strip() for k, v in linha.items() if k is not None}
        if any(limpa.values()):
            registros.append(limpa)
    return registros


class Importador:
    """
    Resolve nomes de CMEI/turma para ids (uma leitura por importação) e
    monta o registro de cada linha.
    """

    def __init__(self):
        self._cmeis = {c.nome: c.id for c in fila_services.listar_cmeis()}
        self._turmas = {(t.cmei_id, t.nome): t.id for t in fila_services.listar_turmas()}

    def _vaga(self, cmei_nome: str, turma_nome: str) -> Tuple[Optional[str], Optional[str]]:
        if not cmei_nome or not turma_nome:
            return None, None
        cmei_id = self._cmeis.get(cmei_nome)
        if not cmei_id:
            raise ErroValidacao(f"CMEI não encontrado: {cmei_nome}")
        turma_id = self._turmas.get((cmei_id, turma_nome))
        if not turma_id:
            raise ErroValidacao(f"Turma não encontrada: {turma_nome} no CMEI {cmei_nome}")
        return cmei_id, turma_id

    def montar_registro(self, linha: Dict[str, str]) -> Dict[str, Any]:
        if not linha.get('nome') or not linha.get('data_nascimento') or not linha.get('responsavel_cpf'):
            raise ErroValidacao(ERRO_CAMPOS_OBRIGATORIOS)

        try:
            status = Status.de_valor(linha.get('status') or Status.FILA_DE_ESPERA.value)
        except ValueError as e:
            raise ErroValidacao(str(e))

        cmei_atual_id, turma_atual_id = self._vaga(linha.get('cmei_atual_nome'), linha.get('turma_atual_nome'))
        posicao = linha.get('posicao_fila')
        data_penalidade = _data_utc(linha.get('data_penalidade'))

        return {
            'nome': linha['nome'],
            'data_nascimento': linha['data_nascimento'],
            'sexo': SEXO_CSV.get((linha.get('sexo') or '').upper(), linha.get('sexo') or ''),
            'programas_sociais': _sim(linha.get('programas_sociais')),
            'aceita_qualquer_cmei': _sim(linha.get('aceita_qualquer_cmei')),
            'cmei1_preferencia': linha.get('cmei1_preferencia') or '',
            'cmei2_preferencia': linha.get('cmei2_preferencia') or None,
            'responsavel_nome': linha.get('responsavel_nome') or '',
            'responsavel_cpf': linha['responsavel_cpf'],
            'responsavel_telefone': linha.get('responsavel_telefone') or '',
            'responsavel_email': linha.get('responsavel_email') or None,
            'endereco': linha.get('endereco') or None,
            'bairro': linha.get('bairro') or None,
            'observacoes': linha.get('observacoes') or None,
            'status': status.value,
            'cmei_atual_id': cmei_atual_id,
            'turma_atual_id': turma_atual_id,
            'posicao_fila': int(posicao) if posicao and posicao.isdigit() else None,
            'convocacao_deadline': _data_utc(linha.get('convocacao_deadline')),
            'data_penalidade': data_penalidade,
            'fila_penalizada': data_penalidade is not None,
        }


def importar_csv(conteudo: str, usuario: str) -> Optional[ResultadoImportacao]:
    """
    Importa as linhas do CSV. Retorna None se não houver registros.
    O recálculo da fila é pedido uma única vez, ao final do lote.
    """
    linhas = ler_csv(conteudo)
    if not linhas:
        return None

    resultado = ResultadoImportacao(totalRecords=len(linhas))
    importador = Importador()

    for indice, linha in enumerate(linhas):
        numero_linha = indice + 2
        try:
            registro = importador.montar_registro(linha)
            inscricao_services.gravar_inscricao(registro, usuario, detalhes="Importado via CSV.")
            resultado.successCount += 1
        except (ErroValidacao, ErroBackend) as e:
            resultado.errorCount += 1
            resultado.errors.append({'row': numero_linha, 'error': e.mensagem})

    try:
        procedimentos.recalcular_fila_posicao()
    except ErroBackend as e:
        logger.error(f"Importação concluída, mas o recálculo da fila falhou: {e.mensagem}")

    logger.info(
        f"Importação por {usuario}: {resultado.successCount} ok, "
        f"{resultado.errorCount} com erro de {resultado.totalRecords}"
    )
    return resultado
