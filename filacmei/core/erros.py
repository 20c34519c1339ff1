"""
Exceções de domínio da aplicação.

- ErroValidacao: detectado antes de qualquer escrita (justificativa curta,
  seleção ausente, transição não permitida).
- ErroBackend: falha do Firestore ou de um procedimento remoto.
- ErroAutorizacao: token ausente ou inválido.
- ErroFuncao: erro de uma função JSON, com o status HTTP a devolver.
"""


class ErroFilaCmei(Exception):
    """Base de todas as exceções do sistema."""

    def __init__(self, mensagem: str):
        super().__init__(mensagem)
        self.mensagem = mensagem


class ErroValidacao(ErroFilaCmei):
    pass


class ErroBackend(ErroFilaCmei):
    pass


class ErroAutorizacao(ErroFilaCmei):
    def __init__(self, mensagem: str = 'Unauthorized'):
        super().__init__(mensagem)


class ErroFuncao(ErroFilaCmei):
    def __init__(self, status_code: int, mensagem: str, detalhes: dict = None):
        super().__init__(mensagem)
        self.status_code = status_code
        self.detalhes = detalhes or {}
