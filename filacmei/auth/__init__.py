"""
Módulo de Autenticação (Blueprint)

Define o Blueprint do Flask para todas as rotas relacionadas
à autenticação da equipe (Login, Logout, Callback).
"""

from flask import Blueprint

# Cria uma instância do Blueprint para 'auth'
auth_bp = Blueprint('auth_bp', __name__)

# Importa as rotas no final para evitar dependência circular
from . import routes
