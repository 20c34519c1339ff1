"""
Modelos de domínio da fila (Crianca, Turma, Cmei, ConvocacaoDados, HistoricoEntrada).

Os documentos do Firestore chegam como dict; estes dataclasses dão nome aos
campos e concentram os cálculos derivados (idade, vagas).
"""

import calendar
from dataclasses import asdict, dataclass, field
from datetime import date, datetime
from typing import Any, Dict, Optional

from filacmei.core.constants import STATUS_ATIVOS, Status


def calcular_idade(data_nascimento: str, hoje: Optional[date] = None) -> str:
    """
    Idade por extenso: "1 ano(s), 6 meses e 10 dia(s)".
    """
    try:
        nascimento = date.fromisoformat(data_nascimento)
    except (TypeError, ValueError):
        return "Data de Nascimento Inválida"

    hoje = hoje or date.today()
    anos = hoje.year - nascimento.year
    meses = hoje.month - nascimento.month
    dias = hoje.day - nascimento.day

    if dias < 0:
        meses -= 1
        mes_anterior = hoje.month - 1 or 12
        ano_mes_anterior = hoje.year if hoje.month > 1 else hoje.year - 1
        dias += calendar.monthrange(ano_mes_anterior, mes_anterior)[1]

    if meses < 0:
        anos -= 1
        meses += 12

    if anos < 0:
        return "Data de Nascimento Inválida"

    partes = []
    if anos > 0:
        partes.append(f"{anos} ano(s)")
    if meses > 0:
        partes.append(f"{meses} meses")
    if dias > 0 or not partes:
        partes.append(f"{dias} dia(s)")

    if len(partes) == 1:
        return partes[0]
    return f"{', '.join(partes[:-1])} e {partes[-1]}"


@dataclass
class ConvocacaoDados:
    """Vaga escolhida num formulário: {cmei_id, turma_id}."""

    cmei_id: str
    turma_id: str

    @classmethod
    def de_valor(cls, valor: str) -> 'ConvocacaoDados':
        """Lê o valor combinado do select: "cmei_id|turma_id"."""
        partes = (valor or '').split('|')
        if len(partes) < 2 or not partes[0] or not partes[1]:
            raise ValueError("Formato de CMEI/Turma inválido.")
        return cls(cmei_id=partes[0], turma_id=partes[1])

    @classmethod
    def de_dict(cls, dados: Dict[str, Any]) -> 'ConvocacaoDados':
        # Variante legada: {cmei, turma}
        cmei_id = dados.get('cmei_id') or dados.get('cmei')
        turma_id = dados.get('turma_id') or dados.get('turma')
        if not cmei_id or not turma_id:
            raise ValueError("CMEI e Turma são obrigatórios.")
        return cls(cmei_id=cmei_id, turma_id=turma_id)

    @property
    def valor(self) -> str:
        return f"{self.cmei_id}|{self.turma_id}"


@dataclass
class Turma:
    id: str
    cmei_id: str
    nome: str
    sala: str = ''
    capacidade: int = 0
    ocupacao: int = 0
    cmei_nome: str = ''

    @classmethod
    def de_doc(cls, doc_id: str, dados: Dict[str, Any], cmei_nome: str = '') -> 'Turma':
        return cls(
            id=doc_id,
            cmei_id=dados.get('cmei_id', ''),
            nome=dados.get('nome', ''),
            sala=dados.get('sala') or '',
            capacidade=int(dados.get('capacidade') or 0),
            ocupacao=int(dados.get('ocupacao') or 0),
            cmei_nome=cmei_nome or dados.get('cmei_nome', ''),
        )

    @property
    def vagas(self) -> int:
        # Pode ser negativo se a turma estiver lotada além da capacidade
        return self.capacidade - self.ocupacao

    @property
    def rotulo(self) -> str:
        return f"{self.cmei_nome} - {self.nome} ({self.vagas} vagas)"

    @property
    def valor(self) -> str:
        return f"{self.cmei_id}|{self.id}"


@dataclass
class Cmei:
    id: str
    nome: str
    endereco: str = ''
    telefone: str = ''
    email: str = ''
    diretor: str = ''
    coordenador: str = ''
    capacidade: int = 0
    ocupacao: int = 0

    @classmethod
    def de_doc(cls, doc_id: str, dados: Dict[str, Any]) -> 'Cmei':
        return cls(
            id=doc_id,
            nome=dados.get('nome', ''),
            endereco=dados.get('endereco') or '',
            telefone=dados.get('telefone') or '',
            email=dados.get('email') or '',
            diretor=dados.get('diretor') or '',
            coordenador=dados.get('coordenador') or '',
            capacidade=int(dados.get('capacidade') or 0),
            ocupacao=int(dados.get('ocupacao') or 0),
        )


@dataclass
class Crianca:
    id: str
    nome: str
    data_nascimento: str
    status: Status
    sexo: str = ''
    programas_sociais: bool = False
    aceita_qualquer_cmei: bool = False
    cmei1_preferencia: str = ''
    cmei2_preferencia: Optional[str] = None
    responsavel_nome: str = ''
    responsavel_cpf: str = ''
    responsavel_telefone: str = ''
    responsavel_telefone2: Optional[str] = None
    responsavel_email: Optional[str] = None
    endereco: Optional[str] = None
    bairro: Optional[str] = None
    observacoes: Optional[str] = None
    cmei_atual_id: Optional[str] = None
    turma_atual_id: Optional[str] = None
    cmei_remanejamento_id: Optional[str] = None
    posicao_fila: Optional[int] = None
    convocacao_deadline: Optional[datetime] = None
    data_penalidade: Optional[datetime] = None
    fila_penalizada: bool = False
    created_at: Optional[datetime] = None
    # Nomes resolvidos para exibição (não gravados)
    cmei_nome: Optional[str] = field(default=None, compare=False)
    turma_nome: Optional[str] = field(default=None, compare=False)

    CAMPOS_EXIBICAO = ('cmei_nome', 'turma_nome')

    @classmethod
    def de_doc(cls, doc_id: str, dados: Dict[str, Any]) -> 'Crianca':
        return cls(
            id=doc_id,
            nome=dados.get('nome', ''),
            data_nascimento=dados.get('data_nascimento', ''),
            status=Status.de_valor(dados.get('status', Status.FILA_DE_ESPERA.value)),
            sexo=dados.get('sexo', ''),
            programas_sociais=bool(dados.get('programas_sociais', False)),
            aceita_qualquer_cmei=bool(dados.get('aceita_qualquer_cmei', False)),
            cmei1_preferencia=dados.get('cmei1_preferencia', ''),
            cmei2_preferencia=dados.get('cmei2_preferencia'),
            responsavel_nome=dados.get('responsavel_nome', ''),
            responsavel_cpf=dados.get('responsavel_cpf', ''),
            responsavel_telefone=dados.get('responsavel_telefone', ''),
            responsavel_telefone2=dados.get('responsavel_telefone2'),
            responsavel_email=dados.get('responsavel_email'),
            endereco=dados.get('endereco'),
            bairro=dados.get('bairro'),
            observacoes=dados.get('observacoes'),
            cmei_atual_id=dados.get('cmei_atual_id'),
            turma_atual_id=dados.get('turma_atual_id'),
            cmei_remanejamento_id=dados.get('cmei_remanejamento_id'),
            posicao_fila=dados.get('posicao_fila'),
            convocacao_deadline=dados.get('convocacao_deadline'),
            data_penalidade=dados.get('data_penalidade'),
            fila_penalizada=bool(dados.get('fila_penalizada', False)),
            created_at=dados.get('created_at'),
        )

    def para_dict(self) -> Dict[str, Any]:
        """Payload gravável no Firestore (sem id nem campos de exibição)."""
        dados = asdict(self)
        dados.pop('id')
        for campo in self.CAMPOS_EXIBICAO:
            dados.pop(campo)
        dados['status'] = self.status.value
        return dados

    def com_alteracoes(self, alteracoes: Dict[str, Any]) -> 'Crianca':
        dados = self.para_dict()
        dados.update(alteracoes)
        return Crianca.de_doc(self.id, dados)

    @property
    def idade(self) -> str:
        return calcular_idade(self.data_nascimento)

    @property
    def ativa(self) -> bool:
        return self.status in STATUS_ATIVOS

    def prazo_expirado(self, agora: Optional[datetime] = None) -> bool:
        if not self.convocacao_deadline:
            return False
        agora = agora or datetime.now(self.convocacao_deadline.tzinfo)
        return self.convocacao_deadline < agora


@dataclass
class HistoricoEntrada:
    crianca_id: str
    acao: str
    detalhes: str
    usuario: str
    data: str
    created_at: Optional[datetime] = None

    @classmethod
    def de_doc(cls, dados: Dict[str, Any]) -> 'HistoricoEntrada':
        return cls(
            crianca_id=dados.get('crianca_id', ''),
            acao=dados.get('acao', ''),
            detalhes=dados.get('detalhes', ''),
            usuario=dados.get('usuario', ''),
            data=dados.get('data', ''),
            created_at=dados.get('created_at'),
        )
