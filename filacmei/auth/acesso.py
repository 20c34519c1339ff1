"""
Controle de acesso da equipe (sessão + role).
"""

from flask import abort, redirect, session, url_for

from filacmei.core.logger import get_logger

logger = get_logger(__name__)

ROLE_ADMIN = 'admin'


def verificar_admin() -> bool:
    user_profile = session.get('user_profile')
    if not user_profile:
        return False
    e_admin = user_profile.get('role') == ROLE_ADMIN
    if not e_admin:
        logger.warning(f"Acesso negado: {user_profile.get('email')}")
    return e_admin


def restringir_acesso():
    """Usado como before_request das áreas administrativas."""
    if 'user_profile' not in session:
        return redirect(url_for('auth_bp.login'))
    if not verificar_admin():
        abort(403)
    return None


def usuario_atual() -> str:
    user_profile = session.get('user_profile') or {}
    return user_profile.get('email') or 'sistema'
