"""
Camada de Serviço (Service Layer) da Autenticação

Responsável pela lógica de banco de dados dos usuários da equipe,
com suporte a Roles e Logging estruturado.
"""

from google.cloud import firestore

from filacmei.core.constants import COLLECTION_USUARIOS
from filacmei.core.database import get_db
from filacmei.core.logger import get_logger

# Inicializa o logger para este módulo
logger = get_logger(__name__)

ROLE_PADRAO = 'equipe'


def verificar_ou_criar_usuario(google_profile: dict) -> dict:
    """
    Verifica ou cria um usuário da equipe no Firestore.
    Novos cadastros recebem role='equipe'; a promoção a admin é manual (setup_admin.py).
    """
    user_email = google_profile.get('email')
    if not user_email:
        logger.error("Perfil do Google recebido sem e-mail.")
        raise ValueError("Perfil do Google não contém e-mail.")

    doc_ref = get_db().collection(COLLECTION_USUARIOS).document(user_email)

    try:
        doc = doc_ref.get()

        if doc.exists:
            user_data = doc.to_dict()
            user_data['email'] = user_email
            user_data.pop('criado_em', None)

            # Garante que campos novos existam em usuários antigos
            if 'role' not in user_data:
                user_data['role'] = ROLE_PADRAO

            logger.info(f"Login efetuado: {user_email} (Role: {user_data.get('role')})")
            return user_data

        # Primeiro Acesso (Novo Usuário)
        logger.info(f"Criando novo usuário: {user_email}")

        novo_usuario = {
            'nome': google_profile.get('nome'),
            'google_id': google_profile.get('google_id'),
            'role': ROLE_PADRAO,  # Ninguém nasce admin
            'criado_em': firestore.SERVER_TIMESTAMP
        }
        doc_ref.set(novo_usuario)

        # Prepara objeto para sessão (sem o Timestamp)
        dados_sessao = {k: v for k, v in novo_usuario.items() if k != 'criado_em'}
        dados_sessao['email'] = user_email
        return dados_sessao

    except Exception as e:
        logger.error(f"Erro ao processar login para {user_email}: {e}", exc_info=True)
        raise


def promover_admin(email: str) -> bool:
    """Define role='admin'. Retorna False se o usuário ainda não existe."""
    doc_ref = get_db().collection(COLLECTION_USUARIOS).document(email)
    if not doc_ref.get().exists:
        return False
    doc_ref.update({'role': 'admin'})
    logger.info(f"Usuário promovido a admin: {email}")
    return True
