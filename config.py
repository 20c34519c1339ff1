"""
Módulo de Configuração (Blindado)

Define a classe de configuração principal. Implementa o padrão 'Fail Fast':
se uma variável crítica estiver faltando, a aplicação nem inicia.
"""

import os
from dotenv import load_dotenv

# Carrega variáveis do arquivo .env
load_dotenv()

# Em produção (Cloud Run), OAUTHLIB_INSECURE_TRANSPORT não deve existir.
if os.environ.get('FLASK_DEBUG') == '1':
    os.environ['OAUTHLIB_INSECURE_TRANSPORT'] = '1'


class Config:
    """
    Classe de configuração base da aplicação.
    """

    # === SEGURANÇA CRÍTICA (Fail Fast) ===
    SECRET_KEY = os.environ.get('SECRET_KEY')
    if not SECRET_KEY:
        raise ValueError("ERRO CRÍTICO: 'SECRET_KEY' não encontrada no .env. A aplicação não pode iniciar insegura.")

    # === GOOGLE CLOUD (FIRESTORE) ===
    GOOGLE_CLOUD_PROJECT = os.environ.get('GOOGLE_CLOUD_PROJECT')

    # === FLASK ===
    DEBUG = os.environ.get('FLASK_DEBUG', 'False').lower() in ('true', '1')

    # === OAUTH (LOGIN DA EQUIPE) ===
    GOOGLE_CLIENT_ID = os.environ.get('GOOGLE_CLIENT_ID')
    GOOGLE_CLIENT_SECRET = os.environ.get('GOOGLE_CLIENT_SECRET')

    if not GOOGLE_CLIENT_ID or not GOOGLE_CLIENT_SECRET:
        print("AVISO: Credenciais OAuth (CLIENT_ID/SECRET) ausentes. O login da equipe não funcionará.")

    # === FILA / CONVOCAÇÕES ===
    # Usado quando o documento configuracoes/sistema não define o prazo.
    PRAZO_RESPOSTA_DIAS_PADRAO = int(os.environ.get('PRAZO_RESPOSTA_DIAS_PADRAO', '7'))

    # === PROCEDIMENTOS DO BACKEND (fila e tempo médio de espera) ===
    PROCEDIMENTOS_URL = os.environ.get('PROCEDIMENTOS_URL')
    PROCEDIMENTOS_TOKEN = os.environ.get('PROCEDIMENTOS_TOKEN')

    if not PROCEDIMENTOS_URL:
        print("AVISO: 'PROCEDIMENTOS_URL' não configurada. O recálculo da fila não será disparado.")

    # === WHATSAPP (GATEWAY) ===
    WHATSAPP_GATEWAY_URL = os.environ.get('WHATSAPP_GATEWAY_URL')
    WHATSAPP_GATEWAY_TOKEN = os.environ.get('WHATSAPP_GATEWAY_TOKEN')

    # === INTEGRAÇÕES HTTP ===
    HTTP_TIMEOUT = int(os.environ.get('HTTP_TIMEOUT', '20'))

    # Validade (segundos) dos tokens Bearer emitidos para as funções.
    FUNCOES_TOKEN_MAX_AGE = int(os.environ.get('FUNCOES_TOKEN_MAX_AGE', '3600'))

    # === CACHE ===
    REDIS_URL = os.environ.get('REDIS_URL')
    CACHE_DEFAULT_TIMEOUT = int(os.environ.get('CACHE_DEFAULT_TIMEOUT', '120'))
    CACHE_KEY_PREFIX = 'filacmei'

    # === RATE LIMIT ===
    RATELIMIT_STORAGE_URI = REDIS_URL or 'memory://'


class TestConfig(Config):
    """
    Configuração usada pela suíte de testes.
    """
    TESTING = True
    WTF_CSRF_ENABLED = False
    RATELIMIT_ENABLED = False
    CACHE_TYPE = 'SimpleCache'
    REDIS_URL = None
    PROCEDIMENTOS_URL = 'http://procedimentos.test'
    PROCEDIMENTOS_TOKEN = 'token-procedimentos'
    WHATSAPP_GATEWAY_URL = 'http://gateway.test/send-text'
    WHATSAPP_GATEWAY_TOKEN = 'token-gateway'
