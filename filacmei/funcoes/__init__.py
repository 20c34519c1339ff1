"""
Módulo de Funções (Blueprint)

Endpoints JSON chamados por integrações e pelo painel: importação de CSV,
reenvio de notificação (webhook) e envio de mensagem pelo WhatsApp.
Autenticação por token Bearer; sem CSRF; CORS liberado.
"""

from flask import Blueprint
from flask_cors import CORS

from filacmei.core.extensions import csrf

funcoes_bp = Blueprint(
    'funcoes_bp',
    __name__,
    url_prefix='/funcoes'
)

csrf.exempt(funcoes_bp)
CORS(funcoes_bp, allow_headers=['authorization', 'x-client-info', 'apikey', 'content-type'])

from . import routes
