"""
Notificações: reenvio manual do webhook de status e envio pelo WhatsApp.

As falhas viram ErroFuncao com o status HTTP que a rota deve devolver.
"""

import re
from datetime import datetime, timezone
from typing import Any, Dict, Optional

import requests
from flask import current_app
from requests import RequestException

from filacmei.core.erros import ErroFuncao
from filacmei.core.logger import get_logger
from filacmei.fila import services as fila_services
from filacmei.fila.modelos import Crianca

logger = get_logger(__name__)


def _timeout() -> int:
    return current_app.config.get('HTTP_TIMEOUT', 20)


def _iso(valor) -> Optional[str]:
    if isinstance(valor, datetime):
        return valor.isoformat()
    return valor


# === WEBHOOK ===

def montar_payload(crianca: Crianca, cmei_nome: Optional[str], turma_nome: Optional[str]) -> Dict[str, Any]:
    return {
        'crianca_id': crianca.id,
        'status': crianca.status.value,
        'responsavel_nome': crianca.responsavel_nome,
        'responsavel_telefone': crianca.responsavel_telefone,
        'responsavel_email': crianca.responsavel_email,
        'cmei_nome': cmei_nome or 'N/A',
        'turma_nome': turma_nome or 'N/A',
        'convocacao_deadline': _iso(crianca.convocacao_deadline),
        'data_acao': datetime.now(timezone.utc).isoformat(),
        'is_resend': True,
    }


def reenviar_notificacao(crianca_id: Optional[str], usuario: str) -> None:
    """
    Reenvia ao webhook configurado a notificação do status atual da criança
    e registra o reenvio no histórico.
    """
    if not crianca_id:
        raise ErroFuncao(400, 'criancaId is required')

    webhook_url = fila_services.obter_configuracoes().get('webhook_url_notificacao')
    if not webhook_url:
        raise ErroFuncao(400, 'Webhook URL is not set in system configuration.')

    crianca = fila_services.obter_crianca(crianca_id)
    if crianca is None:
        raise ErroFuncao(404, 'Child not found.')

    cmei = fila_services.obter_cmei(crianca.cmei_atual_id)
    turma = fila_services.obter_turma(crianca.turma_atual_id)
    payload = montar_payload(crianca, cmei.nome if cmei else None, turma.nome if turma else None)

    try:
        r = requests.post(webhook_url, json=payload, timeout=_timeout())
    except RequestException as e:
        logger.error(f"Falha ao chamar o webhook de notificação: {e}")
        raise ErroFuncao(500, f"Webhook request failed: {e}") from e

    if not r.ok:
        mensagem = f"Webhook failed with status {r.status_code}"
        if r.text:
            mensagem += f": {r.text[:300]}"
        logger.error(mensagem)
        raise ErroFuncao(500, mensagem)

    fila_services.registrar_historico(
        crianca.id,
        'reenvio',
        f"Notificação de status {crianca.status.value} reenviada manualmente.",
        usuario,
    )
    logger.info(f"Notificação reenviada para {crianca.nome} ({crianca.id}) por {usuario}")


# === WHATSAPP ===

def formatar_telefone(telefone: Optional[str]) -> Optional[str]:
    """
    Normaliza para 55 + DDD + número. Aceita 10 ou 11 dígitos (com ou sem o 55).
    Retorna None se o número for inválido.
    """
    digitos = re.sub(r'\D', '', telefone or '')
    if digitos.startswith('55') and len(digitos) > 11:
        digitos = digitos[2:]
    if len(digitos) not in (10, 11):
        return None
    return f"55{digitos}"


def enviar_whatsapp(telefone: Optional[str], mensagem: Optional[str]) -> Dict[str, Any]:
    """
    Envia a mensagem pelo gateway. Devolve a resposta do gateway.
    Com as notificações desativadas, não envia e devolve apenas um aviso.
    """
    configuracoes = fila_services.obter_configuracoes()
    if not configuracoes.get('notificacao_whatsapp'):
        return {'message': 'WhatsApp notifications are disabled in system configuration.'}

    gateway_url = current_app.config.get('WHATSAPP_GATEWAY_URL')
    gateway_token = current_app.config.get('WHATSAPP_GATEWAY_TOKEN')
    if not gateway_url or not gateway_token:
        logger.error("Segredos do gateway de WhatsApp não configurados.")
        raise ErroFuncao(500, 'WhatsApp gateway secrets not configured. Cannot send message.')

    numero = formatar_telefone(telefone)
    if not numero or not mensagem:
        raise ErroFuncao(400, 'Missing required fields: phone and message, or phone format is invalid.')

    headers = {
        'Content-Type': 'application/json',
        'Authorization': f"Bearer {gateway_token}",
    }
    try:
        r = requests.post(gateway_url, json={'phone': numero, 'message': mensagem},
                          headers=headers, timeout=_timeout())
    except RequestException as e:
        logger.error(f"Gateway de WhatsApp indisponível: {e}")
        raise ErroFuncao(502, f"Failed to reach WhatsApp gateway: {e}") from e

    try:
        resultado = r.json()
    except ValueError:
        resultado = None
    if not isinstance(resultado, dict):
        resultado = {'raw': r.text}

    if not r.ok:
        detalhe = resultado.get('error') or resultado.get('message') or str(resultado)
        logger.error(f"Gateway de WhatsApp respondeu {r.status_code}: {detalhe}")
        raise ErroFuncao(r.status_code, f"Failed to send message via gateway: {detalhe}", detalhes=resultado)

    logger.info(f"Mensagem de WhatsApp enviada para {numero[:4]}******")
    return {'message': 'WhatsApp message sent successfully', 'gatewayResult': resultado}
