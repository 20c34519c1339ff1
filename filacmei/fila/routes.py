"""
Rotas do Módulo da Fila

Lista de espera, ficha da criança, formulários de ação (um modal por
ação/criança) e ações em massa.
"""

from datetime import date

from flask import abort, flash, redirect, render_template, request, url_for

from . import fila_bp
from filacmei.auth.acesso import restringir_acesso, usuario_atual
from filacmei.core.cache import CHAVE_CRIANCAS, chave_historico_crianca, get_coordenador
from filacmei.core.constants import SEXOS, STATUS_ATIVOS, Status
from filacmei.core.erros import ErroFilaCmei, ErroValidacao
from filacmei.core.logger import get_logger
from filacmei.fila import regras, services
from filacmei.fila.forms import (
    ConfirmacaoForm,
    JustificativaForm,
    RealocacaoMassaForm,
    RemanejamentoForm,
    StatusMassaForm,
    VagaForm,
)
from filacmei.fila.modais import EstadoModal, PainelModais, get_painel
from filacmei.fila.modelos import ConvocacaoDados
from filacmei.fila.regras import Acao
from filacmei.inscricao.forms import InscricaoForm

logger = get_logger(__name__)

FORMULARIOS = {
    Acao.CONVOCAR: VagaForm,
    Acao.MATRICULAR: ConfirmacaoForm,
    Acao.REALOCAR: VagaForm,
    Acao.TRANSFERIR: VagaForm,
    Acao.REMANEJAMENTO: RemanejamentoForm,
    Acao.RECUSAR: JustificativaForm,
    Acao.DESISTENCIA: JustificativaForm,
    Acao.FIM_DE_FILA: JustificativaForm,
    Acao.REATIVAR: ConfirmacaoForm,
}

TITULOS = {
    Acao.CONVOCAR: 'Convocar',
    Acao.MATRICULAR: 'Confirmar Matrícula',
    Acao.REALOCAR: 'Realocar Turma',
    Acao.TRANSFERIR: 'Transferir de CMEI',
    Acao.REMANEJAMENTO: 'Solicitar Remanejamento',
    Acao.RECUSAR: 'Registrar Recusa',
    Acao.DESISTENCIA: 'Registrar Desistência',
    Acao.FIM_DE_FILA: 'Fim de Fila',
    Acao.REATIVAR: 'Reativar na Fila',
}

MENSAGENS_SUCESSO = {
    Acao.CONVOCAR: "Convocação registrada com sucesso!",
    Acao.MATRICULAR: "Matrícula confirmada com sucesso!",
    Acao.REALOCAR: "Criança realocada com sucesso!",
    Acao.TRANSFERIR: "Criança transferida com sucesso!",
    Acao.REMANEJAMENTO: "Remanejamento solicitado com sucesso!",
    Acao.RECUSAR: "Recusa registrada com sucesso!",
    Acao.DESISTENCIA: "Desistência registrada com sucesso!",
    Acao.FIM_DE_FILA: "Criança movida para o fim da fila!",
    Acao.REATIVAR: "Criança reativada na fila!",
}


@fila_bp.before_request
def restringir():
    return restringir_acesso()


# === FUNÇÕES AUXILIARES ===

def _buscar_opcoes(acao: Acao, crianca):
    if acao in regras.ACOES_COM_VAGA:
        return services.opcoes_turmas(acao, crianca)
    if acao == Acao.REMANEJAMENTO:
        return services.opcoes_remanejamento(crianca)
    return []


def _preencher_choices(form, acao: Acao, opcoes) -> None:
    if acao in regras.ACOES_COM_VAGA:
        form.vaga.choices = [(t.valor, t.rotulo) for t in opcoes]
    elif acao == Acao.REMANEJAMENTO:
        form.cmei_destino.choices = [(c.id, c.nome) for c in opcoes]


def _montar_operacao(acao: Acao, crianca_id: str, form, usuario: str):
    """
    Congela os dados do formulário numa função sem argumentos para o executor.
    """
    if acao in regras.ACOES_COM_VAGA:
        convocacao = ConvocacaoDados.de_valor(form.vaga.data)
        funcoes = {
            Acao.CONVOCAR: services.convocar,
            Acao.REALOCAR: services.realocar,
            Acao.TRANSFERIR: services.transferir,
        }
        funcao = funcoes[acao]
        return lambda: funcao(crianca_id, convocacao, usuario)

    if acao == Acao.REMANEJAMENTO:
        destino = form.cmei_destino.data
        justificativa = form.justificativa.data
        return lambda: services.solicitar_remanejamento(crianca_id, destino, justificativa, usuario)

    if acao in regras.ACOES_COM_JUSTIFICATIVA:
        justificativa = form.justificativa.data
        funcoes = {
            Acao.RECUSAR: services.marcar_recusada,
            Acao.DESISTENCIA: services.marcar_desistente,
            Acao.FIM_DE_FILA: services.marcar_fim_de_fila,
        }
        funcao = funcoes[acao]
        return lambda: funcao(crianca_id, justificativa, usuario)

    if acao == Acao.MATRICULAR:
        return lambda: services.confirmar_matricula(crianca_id, usuario)
    return lambda: services.reativar(crianca_id, usuario)


def _deve_reabrir(modal) -> bool:
    # GET sempre busca opções novas; POST só reabre se não houver seleção em curso
    if request.method == 'GET':
        return True
    return modal.estado not in (EstadoModal.SELECIONANDO, EstadoModal.ENVIANDO)


# === LISTA E FICHA ===

@fila_bp.route('/fila')
def lista():
    coordenador = get_coordenador()
    try:
        criancas = coordenador.obter(CHAVE_CRIANCAS, services.listar_criancas)
    except ErroFilaCmei as e:
        flash(e.mensagem, 'error')
        criancas = []

    status = request.args.get('status')
    busca = (request.args.get('busca') or '').strip().lower()
    if status:
        criancas = [c for c in criancas if c.status.value == status]
    if busca:
        criancas = [c for c in criancas if busca in c.nome.lower() or busca in c.responsavel_cpf]

    return render_template('fila/lista.html', criancas=criancas, status_filtro=status,
                           busca=busca, todos_status=list(Status))


@fila_bp.route('/crianca/<crianca_id>')
def detalhe(crianca_id):
    coordenador = get_coordenador()
    crianca = services.obter_crianca(crianca_id)
    if crianca is None:
        abort(404)

    cmei = services.obter_cmei(crianca.cmei_atual_id)
    turma = services.obter_turma(crianca.turma_atual_id)
    crianca.cmei_nome = cmei.nome if cmei else None
    crianca.turma_nome = turma.nome if turma else None

    historico = coordenador.obter(
        chave_historico_crianca(crianca_id),
        lambda: services.historico_crianca(crianca_id)
    )
    return render_template('fila/detalhe.html', crianca=crianca, historico=historico,
                           acoes=regras.acoes_disponiveis(crianca), titulos=TITULOS, sexos=SEXOS)


# === AÇÕES INDIVIDUAIS ===

@fila_bp.route('/crianca/<crianca_id>/acao/<acao_nome>', methods=['GET', 'POST'])
def acao_crianca(crianca_id, acao_nome):
    try:
        acao = regras.acao_de_valor(acao_nome)
    except ErroValidacao:
        abort(404)

    crianca = services.obter_crianca(crianca_id)
    if crianca is None:
        abort(404)

    # Transição inválida nem chega a abrir o formulário
    motivo = regras.motivo_bloqueio(acao, crianca)
    if motivo:
        flash(motivo, 'error')
        return redirect(url_for('fila_bp.detalhe', crianca_id=crianca_id))

    modal = get_painel().modal(acao.value, crianca_id)
    form = FORMULARIOS[acao]()

    try:
        if _deve_reabrir(modal):
            modal.abrir(lambda: _buscar_opcoes(acao, crianca))
        _preencher_choices(form, acao, modal.opcoes)

        if form.validate_on_submit():
            operacao = _montar_operacao(acao, crianca_id, form, usuario_atual())
            futuro = modal.submeter(operacao, [crianca_id])
            futuro.result()
            flash(MENSAGENS_SUCESSO[acao], 'success')
            return redirect(url_for('fila_bp.detalhe', crianca_id=crianca_id))

    except ErroFilaCmei as e:
        flash(e.mensagem, 'error')
    except ValueError as e:
        flash(str(e), 'error')

    return render_template('fila/acao.html', crianca=crianca, acao=acao, titulo=TITULOS[acao],
                           form=form, modal=modal)


@fila_bp.route('/crianca/<crianca_id>/acao/<acao_nome>/cancelar', methods=['POST'])
def cancelar_acao(crianca_id, acao_nome):
    painel = get_painel()
    painel.modal(acao_nome, crianca_id).fechar()
    painel.descartar(acao_nome, crianca_id)
    return redirect(url_for('fila_bp.detalhe', crianca_id=crianca_id))


@fila_bp.route('/crianca/<crianca_id>/editar', methods=['GET', 'POST'])
def editar(crianca_id):
    crianca = services.obter_crianca(crianca_id)
    if crianca is None:
        abort(404)

    if request.method == 'GET':
        dados = crianca.para_dict()
        try:
            dados['data_nascimento'] = date.fromisoformat(crianca.data_nascimento)
        except ValueError:
            dados['data_nascimento'] = None
        form = InscricaoForm(data=dados)
    else:
        form = InscricaoForm()
    form.preencher_cmeis(services.listar_cmeis())

    if form.validate_on_submit():
        try:
            services.atualizar_dados(crianca_id, form.dados(), usuario_atual())
            get_coordenador().invalidar_apos('atualizacao', [crianca_id])
            flash("Dados atualizados com sucesso!", 'success')
            return redirect(url_for('fila_bp.detalhe', crianca_id=crianca_id))
        except ErroFilaCmei as e:
            flash(e.mensagem, 'error')

    return render_template('fila/editar.html', crianca=crianca, form=form)


@fila_bp.route('/crianca/<crianca_id>/excluir', methods=['POST'])
def excluir(crianca_id):
    try:
        services.excluir_crianca(crianca_id, usuario_atual())
        get_coordenador().invalidar_apos('exclusao', [crianca_id])
        flash("Registro excluído.", 'success')
        return redirect(url_for('fila_bp.lista'))
    except ErroFilaCmei as e:
        flash(e.mensagem, 'error')
        return redirect(url_for('fila_bp.detalhe', crianca_id=crianca_id))


# === AÇÕES EM MASSA ===

def _lote_selecionado():
    ids = regras.validar_lote(request.values.getlist('ids'))
    selecionadas = [c for c in get_coordenador().obter(CHAVE_CRIANCAS, services.listar_criancas) if c.id in ids]
    # Ids que não existem mais ficam de fora (e não abrem modal)
    ids = [c.id for c in selecionadas]
    if not ids:
        raise ErroValidacao("Nenhuma das crianças selecionadas foi encontrada.")
    return ids, selecionadas


@fila_bp.route('/massa/status', methods=['GET', 'POST'])
def status_em_massa():
    try:
        ids, selecionadas = _lote_selecionado()
    except ErroFilaCmei as e:
        flash(e.mensagem, 'error')
        return redirect(url_for('fila_bp.lista'))

    modal = get_painel().modal('status_massa', PainelModais.alvo_lote(ids))
    form = StatusMassaForm()

    try:
        if _deve_reabrir(modal):
            modal.abrir(lambda: [])

        if form.validate_on_submit():
            alvo = regras.validar_status_em_massa(form.status.data)
            justificativa = form.justificativa.data
            usuario = usuario_atual()
            futuro = modal.submeter(
                lambda: services.atualizar_status_em_massa(ids, alvo.value, justificativa, usuario),
                ids,
                acao_cache=services.ACAO_POR_STATUS_EM_MASSA[alvo],
            )
            futuro.result()
            flash(f"Status de {len(ids)} criança(s) atualizado para '{alvo.value}'.", 'success')
            return redirect(url_for('fila_bp.lista'))

    except ErroFilaCmei as e:
        flash(e.mensagem, 'error')

    return render_template('fila/massa.html', titulo='Alterar Status em Massa', form=form,
                           criancas=selecionadas, ids=ids, modal=modal,
                           endpoint='fila_bp.status_em_massa')


@fila_bp.route('/massa/realocar', methods=['GET', 'POST'])
def realocar_em_massa():
    try:
        ids, selecionadas = _lote_selecionado()
    except ErroFilaCmei as e:
        flash(e.mensagem, 'error')
        return redirect(url_for('fila_bp.lista'))

    ativas = [c for c in selecionadas if c.status in STATUS_ATIVOS]
    modal = get_painel().modal('realocacao_massa', PainelModais.alvo_lote(ids))
    form = RealocacaoMassaForm()

    try:
        if _deve_reabrir(modal):
            modal.abrir(services.listar_turmas)
        form.vaga.choices = [(t.valor, t.rotulo) for t in modal.opcoes]
        # Destino pré-selecionado por parâmetros ({cmei_id, turma_id} ou {cmei, turma})
        if request.method == 'GET' and any(k in request.args for k in ('turma_id', 'turma')):
            form.vaga.data = ConvocacaoDados.de_dict(request.args).valor

        if form.validate_on_submit():
            convocacao = ConvocacaoDados.de_valor(form.vaga.data)
            usuario = usuario_atual()
            futuro = modal.submeter(lambda: services.realocar_em_massa(ids, convocacao, usuario), ids)
            futuro.result()
            flash(f"{len(ids)} criança(s) realocada(s) com sucesso!", 'success')
            return redirect(url_for('fila_bp.lista'))

    except ErroFilaCmei as e:
        flash(e.mensagem, 'error')
    except ValueError as e:
        flash(str(e), 'error')

    return render_template('fila/massa.html', titulo='Realocação em Massa', form=form,
                           criancas=selecionadas, ativas=ativas, ids=ids, modal=modal,
                           endpoint='fila_bp.realocar_em_massa')
