"""
Módulo Admin (Blueprint)

Gerencia as rotas de administração (Painel, CMEIs, Turmas, Configurações,
Log e Importação).
"""

from flask import Blueprint

admin_bp = Blueprint(
    'admin_bp',
    __name__,
    url_prefix='/admin'  # Todas as rotas começarão com /admin
)

from . import routes
