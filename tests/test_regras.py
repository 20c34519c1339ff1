import unittest
from datetime import date, datetime, timedelta, timezone

from filacmei.core.constants import LIMITE_LOTE, Status
from filacmei.core.erros import ErroValidacao
from filacmei.fila import regras
from filacmei.fila.modelos import ConvocacaoDados, Crianca, Turma, calcular_idade
from filacmei.fila.regras import Acao


def _crianca(status, **extra):
    return Crianca(id='c1', nome='Ana', data_nascimento='2023-01-01', status=status, **extra)


class TestTransicoes(unittest.TestCase):

    def test_convocar_permitido_da_fila_e_do_remanejamento(self):
        self.assertTrue(regras.pode_transicionar(Acao.CONVOCAR, _crianca(Status.FILA_DE_ESPERA)))
        self.assertTrue(regras.pode_transicionar(Acao.CONVOCAR, _crianca(Status.REMANEJAMENTO_SOLICITADO)))

    def test_convocar_bloqueado_para_matriculado(self):
        with self.assertRaises(ErroValidacao):
            regras.validar_transicao(Acao.CONVOCAR, _crianca(Status.MATRICULADO))

    def test_reconvocar_so_com_prazo_expirado(self):
        agora = datetime(2025, 5, 10, tzinfo=timezone.utc)
        no_prazo = _crianca(Status.CONVOCADO, convocacao_deadline=agora + timedelta(days=1))
        expirado = _crianca(Status.CONVOCADO, convocacao_deadline=agora - timedelta(days=1))

        self.assertFalse(regras.pode_transicionar(Acao.CONVOCAR, no_prazo, agora))
        self.assertTrue(regras.pode_transicionar(Acao.CONVOCAR, expirado, agora))

    def test_matricular_exige_convocado_com_vaga(self):
        self.assertFalse(regras.pode_transicionar(Acao.MATRICULAR, _crianca(Status.FILA_DE_ESPERA)))
        sem_vaga = _crianca(Status.CONVOCADO)
        self.assertIn("ausentes", regras.motivo_bloqueio(Acao.MATRICULAR, sem_vaga))
        com_vaga = _crianca(Status.CONVOCADO, cmei_atual_id='x', turma_atual_id='t')
        self.assertTrue(regras.pode_transicionar(Acao.MATRICULAR, com_vaga))

    def test_realocar_exige_cmei_atual(self):
        self.assertFalse(regras.pode_transicionar(Acao.REALOCAR, _crianca(Status.MATRICULADO)))
        self.assertTrue(regras.pode_transicionar(
            Acao.REALOCAR, _crianca(Status.MATRICULADO, cmei_atual_id='x', turma_atual_id='t')))

    def test_reativar_so_para_inativos(self):
        self.assertTrue(regras.pode_transicionar(Acao.REATIVAR, _crianca(Status.DESISTENTE)))
        self.assertTrue(regras.pode_transicionar(Acao.REATIVAR, _crianca(Status.RECUSADA)))
        self.assertFalse(regras.pode_transicionar(Acao.REATIVAR, _crianca(Status.FILA_DE_ESPERA)))

    def test_desistente_nao_tem_acoes_alem_de_reativar(self):
        self.assertEqual(regras.acoes_disponiveis(_crianca(Status.DESISTENTE)), [Acao.REATIVAR])

    def test_acao_desconhecida(self):
        with self.assertRaises(ErroValidacao):
            regras.acao_de_valor('teletransportar')


class TestJustificativa(unittest.TestCase):

    def test_nove_caracteres_bloqueia(self):
        with self.assertRaises(ErroValidacao):
            regras.validar_justificativa('123456789')

    def test_dez_caracteres_passa(self):
        self.assertEqual(regras.validar_justificativa('1234567890'), '1234567890')

    def test_espacos_nao_contam(self):
        with self.assertRaises(ErroValidacao):
            regras.validar_justificativa('   curta     ')
        with self.assertRaises(ErroValidacao):
            regras.validar_justificativa(None)


class TestOpcoesDeTurma(unittest.TestCase):

    def setUp(self):
        self.turmas = [
            Turma(id='t1', cmei_id='X', nome='Berçário', capacidade=10, ocupacao=4),
            Turma(id='t2', cmei_id='X', nome='Maternal', capacidade=5, ocupacao=5),
            Turma(id='t3', cmei_id='Y', nome='Pré', capacidade=8, ocupacao=9),
        ]

    def test_realocacao_lista_apenas_o_mesmo_cmei(self):
        opcoes = regras.filtrar_turmas(Acao.REALOCAR, self.turmas, 'X')
        self.assertEqual([t.id for t in opcoes], ['t1', 't2'])

    def test_transferencia_lista_apenas_outros_cmeis(self):
        opcoes = regras.filtrar_turmas(Acao.TRANSFERIR, self.turmas, 'X')
        self.assertEqual([t.id for t in opcoes], ['t3'])

    def test_convocacao_lista_apenas_turmas_com_vaga(self):
        opcoes = regras.filtrar_turmas(Acao.CONVOCAR, self.turmas, None)
        self.assertEqual([t.id for t in opcoes], ['t1'])

    def test_vagas_podem_ser_negativas(self):
        self.assertEqual(self.turmas[2].vagas, -1)

    def test_turma_de_outro_cmei_e_recusada_na_realocacao(self):
        crianca = _crianca(Status.MATRICULADO, cmei_atual_id='X', turma_atual_id='t1')
        with self.assertRaises(ErroValidacao):
            regras.validar_turma_escolhida(Acao.REALOCAR, self.turmas[2], 'Y', crianca)

    def test_turma_precisa_pertencer_ao_cmei_informado(self):
        crianca = _crianca(Status.FILA_DE_ESPERA)
        with self.assertRaises(ErroValidacao):
            regras.validar_turma_escolhida(Acao.CONVOCAR, self.turmas[0], 'Y', crianca)


class TestMassa(unittest.TestCase):

    def test_status_permitidos(self):
        self.assertEqual(regras.validar_status_em_massa('Desistente'), Status.DESISTENTE)
        with self.assertRaises(ErroValidacao):
            regras.validar_status_em_massa('Matriculado')
        with self.assertRaises(ErroValidacao):
            regras.validar_status_em_massa('Inexistente')

    def test_lote_remove_duplicados(self):
        self.assertEqual(regras.validar_lote(['a', 'b', 'a', '']), ['a', 'b'])

    def test_lote_vazio_ou_grande_demais(self):
        with self.assertRaises(ErroValidacao):
            regras.validar_lote([])
        with self.assertRaises(ErroValidacao):
            regras.validar_lote([str(i) for i in range(LIMITE_LOTE + 1)])


class TestModelos(unittest.TestCase):

    def test_calcular_prazo(self):
        agora = datetime(2025, 1, 30, 12, tzinfo=timezone.utc)
        self.assertEqual(regras.calcular_prazo(7, agora), datetime(2025, 2, 6, 12, tzinfo=timezone.utc))

    def test_convocacao_dados_valor_combinado(self):
        dados = ConvocacaoDados.de_valor('cmei-1|turma-2')
        self.assertEqual((dados.cmei_id, dados.turma_id), ('cmei-1', 'turma-2'))
        self.assertEqual(dados.valor, 'cmei-1|turma-2')
        with self.assertRaises(ValueError):
            ConvocacaoDados.de_valor('cmei-1')

    def test_convocacao_dados_formato_legado(self):
        dados = ConvocacaoDados.de_dict({'cmei': 'a', 'turma': 'b'})
        self.assertEqual(dados, ConvocacaoDados('a', 'b'))

    def test_calcular_idade(self):
        self.assertEqual(calcular_idade('2023-07-05', hoje=date(2025, 1, 15)), "1 ano(s), 6 meses e 10 dia(s)")
        self.assertEqual(calcular_idade('2025-01-15', hoje=date(2025, 1, 15)), "0 dia(s)")
        self.assertEqual(calcular_idade('invalida'), "Data de Nascimento Inválida")

    def test_com_alteracoes_preserva_campos(self):
        crianca = _crianca(Status.FILA_DE_ESPERA, responsavel_cpf='111.222.333-44')
        alterada = crianca.com_alteracoes({'status': 'Desistente'})
        self.assertEqual(alterada.status, Status.DESISTENTE)
        self.assertEqual(alterada.responsavel_cpf, '111.222.333-44')
        self.assertFalse(alterada.ativa)


if __name__ == '__main__':
    unittest.main()
