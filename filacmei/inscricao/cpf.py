"""
Preenchimento automático pelo CPF do responsável.

A consulta só dispara quando o CPF está completo (000.000.000-00) e é
diferente do último consultado. Apagar um dígito zera o estado, então
redigitar o mesmo CPF depois consulta de novo.
"""

import re
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

CPF_COMPLETO = re.compile(r'^\d{3}\.\d{3}\.\d{3}-\d{2}$')
CHAVE_SESSAO = 'consulta_cpf'

# Campos do responsável copiados da inscrição mais recente
CAMPOS_RESPONSAVEL = (
    'responsavel_nome',
    'responsavel_telefone',
    'responsavel_telefone2',
    'responsavel_email',
    'endereco',
    'bairro',
)


def cpf_completo(cpf: Optional[str]) -> bool:
    return bool(cpf and CPF_COMPLETO.match(cpf))


@dataclass
class ConsultaCpf:
    ultimo_cpf: Optional[str] = None

    @classmethod
    def carregar(cls, sessao) -> 'ConsultaCpf':
        return cls(ultimo_cpf=sessao.get(CHAVE_SESSAO))

    def salvar(self, sessao) -> None:
        sessao[CHAVE_SESSAO] = self.ultimo_cpf

    def deve_consultar(self, cpf: Optional[str]) -> bool:
        if not cpf_completo(cpf):
            self.ultimo_cpf = None
            return False
        return cpf != self.ultimo_cpf

    def consultar(self, cpf: Optional[str], buscar: Callable[[str], Optional[Dict[str, Any]]]) -> Optional[Dict[str, Any]]:
        """
        Devolve os campos do responsável a preencher, ou None quando não há
        consulta a fazer (CPF incompleto, repetido ou sem cadastro).
        """
        if not self.deve_consultar(cpf):
            return None
        # Só marca o CPF depois de uma busca bem-sucedida
        dados = buscar(cpf)
        self.ultimo_cpf = cpf
        return dados
