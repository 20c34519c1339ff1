"""
Módulo Principal da Aplicação (Application Factory)
"""

from flask import Flask, render_template, session
from werkzeug.middleware.proxy_fix import ProxyFix  # Importação necessária para o Cloud Run

from config import Config

from .core.cache import CoordenadorConsultas
from .core.extensions import cache, csrf, init_cache, limiter, oauth
from .core.interface import EstadoInterface
from .core.logger import get_logger

logger = get_logger(__name__)


def create_app(config_class=Config):
    """
    Cria e configura uma instância da aplicação Flask.
    """

    app = Flask(__name__,
                instance_relative_config=True,
                static_folder='static',
                template_folder='templates')

    # === CORREÇÃO HTTPS (Cloud Run) ===
    # O Flask fica atrás de um Proxy; gera URLs com 'https://' em vez de 'http://'
    app.wsgi_app = ProxyFix(app.wsgi_app, x_for=1, x_proto=1, x_host=1, x_prefix=1)

    # 1. Carrega a configuração
    app.config.from_object(config_class)

    # 2. Inicializa as extensões
    csrf.init_app(app)
    limiter.init_app(app)
    init_cache(app)
    oauth.init_app(app)

    google_client_id = app.config.get('GOOGLE_CLIENT_ID')
    google_client_secret = app.config.get('GOOGLE_CLIENT_SECRET')

    if google_client_id and google_client_secret:
        oauth.register(
            name='google',
            client_id=google_client_id,
            client_secret=google_client_secret,
            server_metadata_url='https://accounts.google.com/.well-known/openid-configuration',
            client_kwargs={
                'scope': 'openid email profile'
            }
        )
    else:
        logger.warning("GOOGLE_CLIENT_ID ou GOOGLE_CLIENT_SECRET não definidos.")

    # 3. Coordenação de consultas e registro dos modais (um por aplicação)
    from .fila.modais import PainelModais

    coordenador = CoordenadorConsultas(cache)
    app.extensions['coordenador_consultas'] = coordenador
    app.extensions['painel_modais'] = PainelModais(app, coordenador)

    # === Context Processor ===
    # Injeta o estado da interface (sidebar) em todos os templates.
    @app.context_processor
    def inject_estado_interface():
        return dict(estado_interface=EstadoInterface.carregar(session))

    # 4. Configura os Blueprints (Módulos)
    from .auth import auth_bp
    app.register_blueprint(auth_bp, url_prefix='/')

    from .inscricao import inscricao_bp
    app.register_blueprint(inscricao_bp)

    # O url_prefix='/admin' já está definido dentro de admin/ e fila/
    from .admin import admin_bp
    app.register_blueprint(admin_bp)

    from .fila import fila_bp
    app.register_blueprint(fila_bp)

    from .funcoes import funcoes_bp
    app.register_blueprint(funcoes_bp)

    # 5. Rota de Health Check
    @app.route("/health")
    def health_check():
        return "Servidor Fila CMEI no ar!", 200

    # 6. Páginas de erro
    @app.errorhandler(404)
    def pagina_nao_encontrada(e):
        return render_template('errors/404.html'), 404

    @app.errorhandler(500)
    def erro_interno(e):
        logger.error(f"Erro interno: {e}", exc_info=True)
        return render_template('errors/500.html'), 500

    return app
