"""
Módulo de Inscrição (Blueprint)

Formulário público de inscrição na fila e consulta de CPF do responsável.
"""

from flask import Blueprint

inscricao_bp = Blueprint(
    'inscricao_bp',
    __name__,
    url_prefix='/inscricao'
)

from . import routes
