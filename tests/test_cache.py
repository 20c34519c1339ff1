import threading
import time

from filacmei.core.cache import (
    CHAVE_CMEIS,
    CHAVE_CRIANCAS,
    CHAVE_HISTORICO,
    CHAVE_TURMAS,
    CoordenadorConsultas,
    chave_historico_crianca,
    get_coordenador,
)


class Contador:
    def __init__(self, valor=None, espera=0.0):
        self.chamadas = 0
        self.valor = valor
        self.espera = espera

    def __call__(self):
        self.chamadas += 1
        if self.espera:
            time.sleep(self.espera)
        return self.valor if self.valor is not None else [self.chamadas]


def test_segunda_leitura_vem_do_cache(app_context):
    coordenador = get_coordenador()
    buscar = Contador()

    assert coordenador.obter(CHAVE_CRIANCAS, buscar) == [1]
    assert coordenador.obter(CHAVE_CRIANCAS, buscar) == [1]
    assert buscar.chamadas == 1


def test_none_tambem_fica_em_cache(app_context):
    coordenador = get_coordenador()
    chamadas = []

    def buscar():
        chamadas.append(1)
        return None

    coordenador.obter('tempo_medio_espera', buscar)
    coordenador.obter('tempo_medio_espera', buscar)
    assert len(chamadas) == 1


def test_mutacao_marca_lista_e_historico_como_desatualizados(app_context):
    coordenador = get_coordenador()
    buscar_criancas = Contador()
    buscar_historico = Contador()
    coordenador.obter(CHAVE_CRIANCAS, buscar_criancas)
    coordenador.obter(CHAVE_HISTORICO, buscar_historico)

    # Invalidações repetidas em sequência não multiplicam as buscas
    coordenador.invalidar_apos('convocar', ['c1'])
    coordenador.invalidar_apos('convocar', ['c1'])
    coordenador.invalidar_apos('desistencia', ['c2'])

    for _ in range(3):
        coordenador.obter(CHAVE_CRIANCAS, buscar_criancas)
        coordenador.obter(CHAVE_HISTORICO, buscar_historico)

    assert buscar_criancas.chamadas == 2
    assert buscar_historico.chamadas == 2


def test_leituras_concorrentes_buscam_uma_vez(app):
    coordenador = app.extensions['coordenador_consultas']
    buscar = Contador(valor=['lista'], espera=0.05)
    resultados = []

    def ler():
        with app.app_context():
            resultados.append(coordenador.obter(CHAVE_CRIANCAS, buscar))

    threads = [threading.Thread(target=ler) for _ in range(5)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert buscar.chamadas == 1
    assert resultados == [['lista']] * 5


def test_chaves_afetadas_por_acao():
    chaves = CoordenadorConsultas.chaves_afetadas('transferir', ['c1'])
    assert CHAVE_CRIANCAS in chaves
    assert CHAVE_HISTORICO in chaves
    assert chave_historico_crianca('c1') in chaves
    assert CHAVE_TURMAS in chaves and CHAVE_CMEIS in chaves

    # Remanejamento não mexe na ocupação
    chaves = CoordenadorConsultas.chaves_afetadas('remanejamento')
    assert CHAVE_TURMAS not in chaves
    assert CHAVE_CRIANCAS in chaves


def test_leitura_iniciada_antes_da_mutacao_nao_fica_em_cache(app):
    coordenador = app.extensions['coordenador_consultas']
    leu_banco = threading.Event()
    liberar = threading.Event()
    resultados = []

    def buscar_antigo():
        # Foto tirada antes do commit da mutação
        leu_banco.set()
        liberar.wait(timeout=5)
        return {'status': 'Fila de Espera'}

    def ler():
        with app.app_context():
            resultados.append(coordenador.obter(CHAVE_CRIANCAS, buscar_antigo))

    leitor = threading.Thread(target=ler)
    leitor.start()
    assert leu_banco.wait(timeout=5)

    # A mutação grava e invalida enquanto a leitura ainda está em andamento
    with app.app_context():
        coordenador.invalidar_apos('convocar', ['c1'])
    liberar.set()
    leitor.join(timeout=5)

    assert resultados == [{'status': 'Fila de Espera'}]
    with app.app_context():
        atual = coordenador.obter(CHAVE_CRIANCAS, lambda: {'status': 'Convocado'})
    assert atual == {'status': 'Convocado'}
