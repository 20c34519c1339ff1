from unittest.mock import patch

from filacmei.core.constants import COLLECTION_CRIANCAS, COLLECTION_HISTORICO

RECALCULAR = 'filacmei.inscricao.services.procedimentos.recalcular_fila_posicao'


def test_home_page(client, cenario):
    """O público que acessa a raiz cai no formulário de inscrição."""
    response = client.get('/', follow_redirects=True)
    assert response.status_code == 200
    assert "Fila CMEI" in response.data.decode('utf-8')
    assert b"CMEI X" in response.data


def test_health_check(client):
    """Teste da rota de health check."""
    response = client.get('/health')
    assert response.status_code == 200
    assert b"Servidor Fila CMEI no ar!" in response.data


def test_404_page(client):
    """Teste para verificar se a página 404 é exibida para rotas inexistentes."""
    response = client.get('/rota-que-nao-existe')
    assert response.status_code == 404
    assert b"404" in response.data
    content = response.data.decode('utf-8')
    assert "Página não encontrada" in content


def test_admin_sem_login_vai_para_o_login(client):
    response = client.get('/admin/fila')
    assert response.status_code == 302
    assert '/login' in response.headers['Location']


def test_admin_sem_permissao(client):
    with client.session_transaction() as sess:
        sess['user_profile'] = {'email': 'equipe@prefeitura.gov.br', 'role': 'equipe'}
    assert client.get('/admin/').status_code == 403


def test_dashboard(admin_client, cenario):
    with patch('filacmei.admin.services.procedimentos.calcular_tempo_medio_espera', return_value=42.5):
        response = admin_client.get('/admin/')
    assert response.status_code == 200
    assert "42" in response.data.decode('utf-8')


def test_sidebar_alterna_estado_na_sessao(admin_client):
    admin_client.post('/admin/sidebar')
    with admin_client.session_transaction() as sess:
        assert sess['estado_interface'] == {'sidebar_aberta': False}


# === FILA ===

def test_lista_da_fila_filtra_por_status(admin_client, cenario):
    response = admin_client.get('/admin/fila?status=Convocado')
    content = response.data.decode('utf-8')
    assert response.status_code == 200
    assert 'Davi Rocha' in content
    assert 'Ana Souza' not in content


def test_detalhe_mostra_acoes_permitidas(admin_client, cenario):
    content = admin_client.get('/admin/crianca/c-convocado').data.decode('utf-8')
    assert 'Confirmar Matrícula' in content
    assert 'Reativar na Fila' not in content


def test_detalhe_inexistente(admin_client, cenario):
    assert admin_client.get('/admin/crianca/nao-existe').status_code == 404


def test_formulario_de_convocacao_lista_so_turmas_com_vaga(admin_client, cenario):
    content = admin_client.get('/admin/crianca/c-fila/acao/convocar').data.decode('utf-8')
    assert 'cmei-x|turma-x1' in content
    assert 'cmei-y|turma-y1' in content
    assert 'cmei-x|turma-x2' not in content


def test_convocar_pelo_formulario(admin_client, cenario):
    admin_client.get('/admin/crianca/c-fila/acao/convocar')
    response = admin_client.post('/admin/crianca/c-fila/acao/convocar', data={'vaga': 'cmei-y|turma-y1'})

    assert response.status_code == 302
    assert response.headers['Location'].endswith('/admin/crianca/c-fila')
    doc = cenario.doc(COLLECTION_CRIANCAS, 'c-fila')
    assert doc['status'] == 'Convocado'
    assert doc['turma_atual_id'] == 'turma-y1'
    assert cenario.commits == 1


def test_vaga_fora_das_opcoes_e_rejeitada(admin_client, cenario):
    admin_client.get('/admin/crianca/c-fila/acao/convocar')
    response = admin_client.post('/admin/crianca/c-fila/acao/convocar', data={'vaga': 'cmei-x|turma-x2'})

    assert response.status_code == 200
    assert cenario.commits == 0


def test_acao_bloqueada_redireciona_sem_gravar(admin_client, cenario):
    response = admin_client.post('/admin/crianca/c-matriculado/acao/convocar',
                                 data={'vaga': 'cmei-y|turma-y1'}, follow_redirects=True)
    assert 'não é permitida' in response.data.decode('utf-8')
    assert cenario.commits == 0


def test_desistencia_exige_justificativa(admin_client, cenario):
    url = '/admin/crianca/c-fila/acao/desistencia'
    response = admin_client.post(url, data={'justificativa': '123456789'})
    assert response.status_code == 200
    assert cenario.commits == 0

    response = admin_client.post(url, data={'justificativa': '1234567890'})
    assert response.status_code == 302
    assert cenario.doc(COLLECTION_CRIANCAS, 'c-fila')['status'] == 'Desistente'


def test_mutacao_invalida_lista_e_historico(admin_client, cenario):
    admin_client.get('/admin/fila')
    admin_client.get('/admin/crianca/c-convocado')
    consultas = cenario.consultas

    admin_client.get('/admin/fila')
    assert cenario.consultas == consultas

    response = admin_client.post('/admin/crianca/c-convocado/acao/matricular', data={})
    assert response.status_code == 302
    assert cenario.doc(COLLECTION_CRIANCAS, 'c-convocado')['status'] == 'Matriculado'

    admin_client.get('/admin/fila')
    admin_client.get('/admin/crianca/c-convocado')
    recarregadas = cenario.consultas
    assert recarregadas > consultas

    # Depois de recarregar, as próximas leituras voltam a vir do cache
    admin_client.get('/admin/fila')
    admin_client.get('/admin/crianca/c-convocado')
    assert cenario.consultas == recarregadas


def test_status_em_massa(admin_client, cenario):
    response = admin_client.post('/admin/massa/status', data={
        'ids': ['c-fila', 'c-fila2', 'c-fila3'],
        'status': 'Desistente',
        'justificativa': 'Encerramento do ciclo 2025',
    })

    assert response.status_code == 302
    assert cenario.commits == 1
    for crianca_id in ('c-fila', 'c-fila2', 'c-fila3'):
        assert cenario.doc(COLLECTION_CRIANCAS, crianca_id)['status'] == 'Desistente'


def test_status_em_massa_sem_selecao(admin_client, cenario):
    response = admin_client.post('/admin/massa/status', data={'status': 'Desistente'})
    assert response.status_code == 302
    assert response.headers['Location'].endswith('/admin/fila')
    assert cenario.commits == 0


def test_realocar_em_massa(admin_client, cenario):
    response = admin_client.post('/admin/massa/realocar', data={
        'ids': ['c-fila', 'c-fila2'],
        'vaga': 'cmei-y|turma-y1',
    })
    assert response.status_code == 302
    assert cenario.doc(COLLECTION_CRIANCAS, 'c-fila2')['cmei_atual_id'] == 'cmei-y'


def test_excluir_crianca_desistente(admin_client, cenario):
    response = admin_client.post('/admin/crianca/c-desistente/excluir')
    assert response.status_code == 302
    assert cenario.doc(COLLECTION_CRIANCAS, 'c-desistente') is None


# === INSCRIÇÃO PÚBLICA ===

DADOS_INSCRICAO = {
    'nome': 'joana prado',
    'data_nascimento': '2024-02-15',
    'sexo': 'feminino',
    'cmei1_preferencia': 'cmei-x',
    'cmei2_preferencia': '',
    'responsavel_nome': 'marta prado',
    'responsavel_cpf': '321.654.987-00',
    'responsavel_telefone': '(44) 98888-7777',
    'endereco': 'Rua B, 20',
    'bairro': 'Jardim',
}


@patch(RECALCULAR)
def test_inscricao_publica(mock_recalcular, client, cenario):
    response = client.post('/inscricao/', data=DADOS_INSCRICAO)

    assert response.status_code == 302
    assert '/inscricao/sucesso/' in response.headers['Location']
    joana = next(c for c in cenario.todos(COLLECTION_CRIANCAS) if c['nome'] == 'Joana Prado')
    assert joana['status'] == 'Fila de Espera'
    assert joana['responsavel_nome'] == 'Marta Prado'
    assert any(h['acao'] == 'Inscrição Realizada' for h in cenario.todos(COLLECTION_HISTORICO))
    mock_recalcular.assert_called_once_with()


@patch(RECALCULAR)
def test_inscricao_cpf_mal_formatado(mock_recalcular, client, cenario):
    response = client.post('/inscricao/', data=dict(DADOS_INSCRICAO, responsavel_cpf='32165498700'))
    assert response.status_code == 200
    assert cenario.commits == 0
    mock_recalcular.assert_not_called()


def test_inscricao_fora_do_periodo(client, cenario):
    cenario.dados['configuracoes']['sistema']['data_fim_inscricao'] = '2020-01-31'
    response = client.get('/inscricao/')
    assert response.status_code == 200
    assert 'encerrad' in response.data.decode('utf-8').lower()


def test_realocar_em_massa_com_destino_pre_selecionado(admin_client, cenario):
    response = admin_client.get('/admin/massa/realocar?ids=c-fila&cmei=cmei-y&turma=turma-y1')

    assert response.status_code == 200
    opcoes = response.data.decode('utf-8').split('<option')
    escolhida = next(o for o in opcoes if 'cmei-y|turma-y1' in o)
    assert 'selected' in escolhida


def test_lote_so_com_ids_inexistentes(admin_client, cenario):
    response = admin_client.get('/admin/massa/status?ids=nao-existe')
    assert response.status_code == 302
    assert response.headers['Location'].endswith('/admin/fila')
