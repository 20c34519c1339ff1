"""
Módulo Central de Extensões.
Evita importações circulares centralizando as instâncias das extensões.
"""
from flask_caching import Cache
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address
from flask_wtf.csrf import CSRFProtect
from authlib.integrations.flask_client import OAuth

# 1. Limiter (Rate Limiting)
# Sem limite global: apenas as rotas públicas (inscrição, consulta de CPF) são limitadas.
# O storage vem de RATELIMIT_STORAGE_URI (memória em dev, Redis em produção).
limiter = Limiter(key_func=get_remote_address)

# 2. CSRF Protection
csrf = CSRFProtect()

# 3. OAuth (Authlib)
oauth = OAuth()

# 4. Cache das consultas (listas da fila, histórico, CMEIs e turmas)
cache = Cache()


def init_cache(app) -> None:
    """
    Inicializa o cache: Redis quando REDIS_URL existir, SimpleCache (memória) caso contrário.
    """
    redis_url = app.config.get('REDIS_URL')
    if redis_url:
        app.config.setdefault('CACHE_TYPE', 'RedisCache')
        app.config.setdefault('CACHE_REDIS_URL', redis_url)
        app.config.setdefault('CACHE_IGNORE_ERRORS', True)
    else:
        app.config.setdefault('CACHE_TYPE', 'SimpleCache')

    cache.init_app(app)
