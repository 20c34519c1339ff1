"""
Rotas do Módulo de Funções (JSON)

Todas exigem 'Authorization: Bearer <token>'; o token é emitido em /funcoes/token
para um admin logado.
"""

from flask import g, jsonify, request, session

from . import funcoes_bp
from .importacao import importar_csv
from .notificacoes import enviar_whatsapp, reenviar_notificacao
from .tokens import emitir_token, exigir_token
from filacmei.auth.acesso import verificar_admin
from filacmei.core.cache import get_coordenador
from filacmei.core.erros import ErroFilaCmei, ErroFuncao
from filacmei.core.logger import get_logger

logger = get_logger(__name__)


def _corpo_json() -> dict:
    corpo = request.get_json(silent=True)
    if not isinstance(corpo, dict):
        raise ErroFuncao(400, 'Invalid JSON body received.')
    return corpo


def _resposta_erro(e: ErroFilaCmei):
    status = getattr(e, 'status_code', 500)
    corpo = {"error": e.mensagem}
    if getattr(e, 'detalhes', None):
        corpo['details'] = e.detalhes
    return jsonify(corpo), status


@funcoes_bp.route('/token')
def token():
    """ Emite o token Bearer para o admin logado. """
    if not verificar_admin():
        return jsonify({"error": "Unauthorized"}), 401
    email = session['user_profile']['email']
    return jsonify({"token": emitir_token(email)})


@funcoes_bp.route('/import-data', methods=['POST'])
@exigir_token
def import_data():
    try:
        conteudo = _corpo_json().get('csvContent')
        if not conteudo:
            raise ErroFuncao(400, 'CSV content is missing')

        resultado = importar_csv(conteudo, g.usuario_funcoes)
        if resultado is None:
            return jsonify({"message": "No records found in CSV."}), 200

        get_coordenador().invalidar_apos('importacao')
        return jsonify({"message": "Import process finished.", "results": resultado.para_dict()}), 200

    except ErroFilaCmei as e:
        return _resposta_erro(e)


@funcoes_bp.route('/resend-notification', methods=['POST'])
@exigir_token
def resend_notification():
    try:
        crianca_id = _corpo_json().get('criancaId')
        reenviar_notificacao(crianca_id, g.usuario_funcoes)
        get_coordenador().invalidar_apos('reenvio', [crianca_id])
        return jsonify({"message": "Notification resent successfully"}), 200
    except ErroFilaCmei as e:
        return _resposta_erro(e)


@funcoes_bp.route('/send-whatsapp-message', methods=['POST'])
@exigir_token
def send_whatsapp_message():
    try:
        corpo = _corpo_json()
        resultado = enviar_whatsapp(corpo.get('phone'), corpo.get('message'))
        return jsonify(resultado), 200
    except ErroFilaCmei as e:
        return _resposta_erro(e)
