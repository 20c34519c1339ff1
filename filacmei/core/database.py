"""
Módulo de Conexão com o Banco de Dados (Core)

Inicializa o cliente do Google Firestore, que será usado
pelos "Service Layers" da aplicação.
"""

from typing import Optional

from google.cloud import firestore

from filacmei.core.logger import get_logger

logger = get_logger(__name__)

_db: Optional[firestore.Client] = None


def get_db() -> firestore.Client:
    """
    Retorna o cliente do Firestore, criando-o na primeira chamada.

    O SDK busca as credenciais em 'GOOGLE_APPLICATION_CREDENTIALS' (definida no .env).
    """
    global _db
    if _db is None:
        try:
            _db = firestore.Client()
            logger.info("Conexão com o Firestore estabelecida com sucesso.")
        except Exception as e:
            logger.critical(f"Erro ao conectar com o Firestore: {e}")
            raise ConnectionError("Não foi possível conectar ao Firestore.") from e
    return _db
