"""
Rotas do Módulo de Autenticação

Gerencia as rotas para /login, /logout e o callback do Google.
"""

from flask import (
    render_template,
    redirect,
    url_for,
    session,
    abort,
    flash
)

from . import services as auth_services
from . import auth_bp
from filacmei.auth.acesso import verificar_admin
from filacmei.core.extensions import oauth
from filacmei.core.logger import get_logger

logger = get_logger(__name__)


def _destino_apos_login():
    if verificar_admin():
        return redirect(url_for('admin_bp.dashboard'))
    return redirect(url_for('inscricao_bp.formulario'))


@auth_bp.route('/')
def index():
    """ Equipe vai para o painel; o público, para a inscrição. """
    if 'user_profile' in session:
        return _destino_apos_login()
    return redirect(url_for('inscricao_bp.formulario'))


@auth_bp.route('/login')
def login():
    """ Exibe a página de login da equipe. """
    if 'user_profile' in session:
        return _destino_apos_login()
    return render_template('login.html')


@auth_bp.route('/google/login')
def google_login():
    """ Redireciona para o Google. """
    google = oauth.create_client('google')
    if google is None:
        abort(503, "Login com Google não configurado.")
    redirect_uri = url_for('auth_bp.google_callback', _external=True)
    return google.authorize_redirect(redirect_uri)


@auth_bp.route('/google/callback')
def google_callback():
    """ Retorno do Google após login. """
    try:
        token = oauth.google.authorize_access_token()
        user_info = oauth.google.userinfo(token=token)

        if not user_info:
            abort(500, "Falha ao obter dados do Google.")

        google_profile = {
            'email': user_info.get('email'),
            'nome': user_info.get('name'),
            'google_id': user_info.get('sub')
        }

        session['user_profile'] = auth_services.verificar_ou_criar_usuario(google_profile)

    except Exception as e:
        logger.error(f"Erro no login: {e}", exc_info=True)
        flash("Não foi possível concluir o login.", "error")
        return redirect(url_for('auth_bp.login'))

    if not verificar_admin():
        flash("Seu usuário ainda não tem acesso ao painel administrativo.", "error")
    return _destino_apos_login()


@auth_bp.route('/logout')
def logout():
    session.pop('user_profile', None)
    return redirect(url_for('auth_bp.login'))
