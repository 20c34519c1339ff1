"""
Estado de Interface do usuário (sidebar aberta/fechada).

Guardado na sessão de cada usuário e injetado nos templates pela factory.
"""

from dataclasses import asdict, dataclass

CHAVE_SESSAO = 'estado_interface'


@dataclass
class EstadoInterface:
    sidebar_aberta: bool = True

    @classmethod
    def carregar(cls, sessao) -> 'EstadoInterface':
        dados = sessao.get(CHAVE_SESSAO) or {}
        return cls(sidebar_aberta=bool(dados.get('sidebar_aberta', True)))

    def salvar(self, sessao) -> None:
        sessao[CHAVE_SESSAO] = asdict(self)

    def alternar_sidebar(self) -> None:
        self.sidebar_aberta = not self.sidebar_aberta
