"""
Script Utilitário: setup_admin.py

Dá acesso ao painel administrativo a um membro da equipe.
Uso: python setup_admin.py [email]
"""

import sys

from filacmei import create_app
from filacmei.auth.services import promover_admin


def promover_usuario(app, email):
    with app.app_context():
        if not promover_admin(email):
            print(f"❌ '{email}' não tem cadastro. Entre uma vez pelo login do Google e rode o script de novo.")
            return False

    print(f"✅ '{email}' agora é ADMIN. Saia e entre novamente para atualizar a sessão.")
    return True


if __name__ == "__main__":
    email_alvo = sys.argv[1] if len(sys.argv) > 1 else input("E-mail do novo admin: ")
    sucesso = promover_usuario(create_app(), email_alvo.strip().lower())
    sys.exit(0 if sucesso else 1)
