import os
from datetime import datetime, timedelta, timezone

# Precisa existir antes de importar config (fail fast na SECRET_KEY)
os.environ.setdefault('SECRET_KEY', 'chave-secreta-de-teste')
os.environ.setdefault('LOG_LEVEL', 'WARNING')

import pytest

from config import TestConfig
from fakes import FakeFirestore
from filacmei import create_app
from filacmei.core import database
from filacmei.core.constants import (
    COLLECTION_CMEIS,
    COLLECTION_CONFIGURACOES,
    COLLECTION_CRIANCAS,
    COLLECTION_TURMAS,
    DOC_CONFIGURACOES,
)


@pytest.fixture
def fake_db(monkeypatch):
    db = FakeFirestore()
    monkeypatch.setattr(database, '_db', db)
    return db


@pytest.fixture
def app(fake_db):
    app = create_app(TestConfig)
    yield app
    app.extensions['painel_modais'].encerrar()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def runner(app):
    return app.test_cli_runner()


@pytest.fixture
def app_context(app):
    with app.app_context():
        yield app


@pytest.fixture
def admin_client(client):
    with client.session_transaction() as sess:
        sess['user_profile'] = {'email': 'admin@prefeitura.gov.br', 'nome': 'Admin', 'role': 'admin'}
    return client


@pytest.fixture
def token(app):
    from filacmei.funcoes.tokens import emitir_token
    with app.app_context():
        return emitir_token('admin@prefeitura.gov.br')


@pytest.fixture
def auth_headers(token):
    return {'Authorization': f'Bearer {token}'}


def _crianca(nome, status, **extra):
    dados = {
        'nome': nome,
        'data_nascimento': '2023-03-10',
        'sexo': 'feminino',
        'status': status,
        'responsavel_nome': f'Responsável de {nome}',
        'responsavel_cpf': '111.222.333-44',
        'responsavel_telefone': '(44) 99999-0000',
        'responsavel_email': 'resp@example.com',
        'endereco': 'Rua A, 10',
        'bairro': 'Centro',
        'cmei1_preferencia': 'cmei-x',
        'created_at': datetime(2024, 1, 1, tzinfo=timezone.utc),
    }
    dados.update(extra)
    return dados


@pytest.fixture
def cenario(fake_db):
    """
    Dois CMEIs (X e Y), três turmas (duas em X, uma lotada; uma em Y) e
    crianças em vários status.
    """
    fake_db.semear(COLLECTION_CMEIS, 'cmei-x', {'nome': 'CMEI X', 'capacidade': 15, 'ocupacao': 10})
    fake_db.semear(COLLECTION_CMEIS, 'cmei-y', {'nome': 'CMEI Y', 'capacidade': 10, 'ocupacao': 0})

    fake_db.semear(COLLECTION_TURMAS, 'turma-x1', {'cmei_id': 'cmei-x', 'nome': 'Berçário I', 'capacidade': 10, 'ocupacao': 5})
    fake_db.semear(COLLECTION_TURMAS, 'turma-x2', {'cmei_id': 'cmei-x', 'nome': 'Maternal I', 'capacidade': 5, 'ocupacao': 5})
    fake_db.semear(COLLECTION_TURMAS, 'turma-y1', {'cmei_id': 'cmei-y', 'nome': 'Berçário II', 'capacidade': 10, 'ocupacao': 0})

    fake_db.semear(COLLECTION_CRIANCAS, 'c-fila', _crianca('Ana Souza', 'Fila de Espera', posicao_fila=1))
    fake_db.semear(COLLECTION_CRIANCAS, 'c-fila2', _crianca('Bruno Lima', 'Fila de Espera', posicao_fila=2,
                                                           responsavel_cpf='555.666.777-88'))
    fake_db.semear(COLLECTION_CRIANCAS, 'c-fila3', _crianca('Carla Dias', 'Fila de Espera', posicao_fila=3))
    fake_db.semear(COLLECTION_CRIANCAS, 'c-convocado', _crianca(
        'Davi Rocha', 'Convocado',
        cmei_atual_id='cmei-x', turma_atual_id='turma-x1',
        convocacao_deadline=datetime.now(timezone.utc) + timedelta(days=3),
    ))
    fake_db.semear(COLLECTION_CRIANCAS, 'c-expirado', _crianca(
        'Eva Martins', 'Convocado',
        cmei_atual_id='cmei-x', turma_atual_id='turma-x1',
        convocacao_deadline=datetime.now(timezone.utc) - timedelta(days=1),
    ))
    fake_db.semear(COLLECTION_CRIANCAS, 'c-matriculado', _crianca(
        'Felipe Alves', 'Matriculado', cmei_atual_id='cmei-x', turma_atual_id='turma-x1'))
    fake_db.semear(COLLECTION_CRIANCAS, 'c-remanejamento', _crianca(
        'Gabi Nunes', 'Remanejamento Solicitado',
        cmei_atual_id='cmei-x', turma_atual_id='turma-x1', cmei_remanejamento_id='cmei-y'))
    fake_db.semear(COLLECTION_CRIANCAS, 'c-desistente', _crianca('Hugo Reis', 'Desistente'))

    fake_db.semear(COLLECTION_CONFIGURACOES, DOC_CONFIGURACOES, {
        'nome_municipio': 'Municipio Teste',
        'prazo_resposta_dias': 7,
        'notificacao_whatsapp': True,
        'webhook_url_notificacao': 'http://webhook.test/notificar',
    })
    return fake_db
