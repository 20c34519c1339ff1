"""
Tokens Bearer das funções (assinados com itsdangerous).
"""

from functools import wraps
from typing import Optional

from flask import current_app, g, jsonify, request
from itsdangerous import BadSignature, SignatureExpired, URLSafeTimedSerializer

from filacmei.core.erros import ErroAutorizacao
from filacmei.core.logger import get_logger

logger = get_logger(__name__)


def _serializer() -> URLSafeTimedSerializer:
    return URLSafeTimedSerializer(current_app.config['SECRET_KEY'], salt='funcoes-bearer')


def emitir_token(email: str) -> str:
    return _serializer().dumps({'email': email})


def _token_do_header() -> Optional[str]:
    header = request.headers.get('Authorization', '')
    if header.lower().startswith('bearer '):
        return header.split(None, 1)[1].strip() or None
    return None


def validar_token(token: Optional[str]) -> str:
    """Retorna o e-mail do portador ou levanta ErroAutorizacao."""
    if not token:
        raise ErroAutorizacao('Unauthorized: Missing Authorization header')
    try:
        dados = _serializer().loads(token, max_age=current_app.config.get('FUNCOES_TOKEN_MAX_AGE', 3600))
    except SignatureExpired:
        raise ErroAutorizacao('Unauthorized: token expired')
    except BadSignature:
        raise ErroAutorizacao('Unauthorized: invalid token')

    email = dados.get('email') if isinstance(dados, dict) else None
    if not email:
        raise ErroAutorizacao('Unauthorized: invalid token')
    return email


def exigir_token(fn):
    """Decorator: 401 sem token válido; o e-mail fica em g.usuario_funcoes."""

    @wraps(fn)
    def wrapper(*args, **kwargs):
        try:
            g.usuario_funcoes = validar_token(_token_do_header())
        except ErroAutorizacao as e:
            logger.warning(f"Chamada não autorizada em {request.path}: {e.mensagem}")
            return jsonify({"error": e.mensagem}), 401
        return fn(*args, **kwargs)

    return wrapper
