"""
Módulo da Fila (Blueprint)

Gerencia a lista de espera e as transições de status das crianças
(convocação, matrícula, realocação, transferência, ações em massa).
"""

from flask import Blueprint

fila_bp = Blueprint(
    'fila_bp',
    __name__,
    url_prefix='/admin'  # Área restrita: mesmas regras de acesso do admin
)

from . import routes
