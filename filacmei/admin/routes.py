"""
Rotas do Módulo Admin

Painel, cadastro de CMEIs e turmas, configurações do sistema, log geral
e importação de CSV.
"""

from datetime import date

from flask import abort, flash, redirect, render_template, request, session, url_for

from . import admin_bp
from . import services as admin_services
from .forms import CmeiForm, ConfiguracoesForm, ImportacaoForm, TurmaForm
from filacmei.auth.acesso import restringir_acesso, usuario_atual
from filacmei.core.cache import (
    CHAVE_CMEIS,
    CHAVE_CONFIGURACOES,
    CHAVE_CRIANCAS,
    CHAVE_HISTORICO,
    CHAVE_TEMPO_MEDIO,
    CHAVE_TURMAS,
    get_coordenador,
)
from filacmei.core.erros import ErroFilaCmei
from filacmei.core.interface import EstadoInterface
from filacmei.core.logger import get_logger
from filacmei.fila import services as fila_services
from filacmei.funcoes.importacao import importar_csv

logger = get_logger(__name__)


@admin_bp.before_request
def restringir():
    return restringir_acesso()


def _para_date(valor):
    if not valor:
        return None
    try:
        return date.fromisoformat(str(valor)[:10])
    except ValueError:
        return None


# === PAINEL ===

@admin_bp.route('/')
def dashboard():
    coordenador = get_coordenador()
    try:
        criancas = coordenador.obter(CHAVE_CRIANCAS, fila_services.listar_criancas)
        turmas = coordenador.obter(CHAVE_TURMAS, fila_services.listar_turmas)
        resumo = admin_services.resumo_painel(criancas, turmas)
    except ErroFilaCmei as e:
        logger.error(f"Erro dashboard: {e.mensagem}", exc_info=True)
        flash(e.mensagem, "error")
        resumo = admin_services.resumo_painel([], [])

    try:
        tempo_medio = coordenador.obter(CHAVE_TEMPO_MEDIO, admin_services.tempo_medio_espera)
    except ErroFilaCmei as e:
        logger.warning(f"Tempo médio de espera indisponível: {e.mensagem}")
        tempo_medio = None

    return render_template('admin/dashboard.html', resumo=resumo, tempo_medio=tempo_medio)


@admin_bp.route('/sidebar', methods=['POST'])
def alternar_sidebar():
    estado = EstadoInterface.carregar(session)
    estado.alternar_sidebar()
    estado.salvar(session)
    return redirect(request.referrer or url_for('admin_bp.dashboard'))


# === CMEIs ===

@admin_bp.route('/cmeis')
def cmeis():
    cmeis = get_coordenador().obter(CHAVE_CMEIS, fila_services.listar_cmeis)
    return render_template('admin/cmeis.html', cmeis=cmeis)


@admin_bp.route('/cmeis/novo', methods=['GET', 'POST'])
@admin_bp.route('/cmeis/<cmei_id>/editar', methods=['GET', 'POST'])
def editar_cmei(cmei_id=None):
    cmei = fila_services.obter_cmei(cmei_id) if cmei_id else None
    if cmei_id and cmei is None:
        abort(404)

    form = CmeiForm(obj=cmei)
    if form.validate_on_submit():
        dados = {campo: form[campo].data for campo in
                 ('nome', 'endereco', 'telefone', 'email', 'diretor', 'coordenador', 'capacidade')}
        try:
            admin_services.salvar_cmei(dados, cmei_id)
            get_coordenador().invalidar(CHAVE_CMEIS, CHAVE_TURMAS, CHAVE_CRIANCAS)
            flash("CMEI salvo com sucesso!", "success")
            return redirect(url_for('admin_bp.cmeis'))
        except ErroFilaCmei as e:
            flash(e.mensagem, "error")

    return render_template('admin/cmei_form.html', form=form, cmei=cmei)


@admin_bp.route('/cmeis/<cmei_id>/excluir', methods=['POST'])
def excluir_cmei(cmei_id):
    try:
        admin_services.excluir_cmei(cmei_id)
        get_coordenador().invalidar(CHAVE_CMEIS, CHAVE_TURMAS)
        flash("CMEI excluído.", "success")
    except ErroFilaCmei as e:
        flash(e.mensagem, "error")
    return redirect(url_for('admin_bp.cmeis'))


# === TURMAS ===

@admin_bp.route('/turmas')
def turmas():
    turmas = get_coordenador().obter(CHAVE_TURMAS, fila_services.listar_turmas)
    cmei_id = request.args.get('cmei')
    if cmei_id:
        turmas = [t for t in turmas if t.cmei_id == cmei_id]
    return render_template('admin/turmas.html', turmas=turmas, cmei_filtro=cmei_id)


@admin_bp.route('/turmas/nova', methods=['GET', 'POST'])
@admin_bp.route('/turmas/<turma_id>/editar', methods=['GET', 'POST'])
def editar_turma(turma_id=None):
    turma = fila_services.obter_turma(turma_id) if turma_id else None
    if turma_id and turma is None:
        abort(404)

    form = TurmaForm(obj=turma)
    form.cmei_id.choices = [(c.id, c.nome) for c in get_coordenador().obter(CHAVE_CMEIS, fila_services.listar_cmeis)]

    if form.validate_on_submit():
        dados = {campo: form[campo].data for campo in ('cmei_id', 'nome', 'sala', 'capacidade')}
        try:
            admin_services.salvar_turma(dados, turma_id)
            get_coordenador().invalidar(CHAVE_TURMAS, CHAVE_CMEIS, CHAVE_CRIANCAS)
            flash("Turma salva com sucesso!", "success")
            return redirect(url_for('admin_bp.turmas'))
        except ErroFilaCmei as e:
            flash(e.mensagem, "error")

    return render_template('admin/turma_form.html', form=form, turma=turma)


@admin_bp.route('/turmas/<turma_id>/excluir', methods=['POST'])
def excluir_turma(turma_id):
    try:
        admin_services.excluir_turma(turma_id)
        get_coordenador().invalidar(CHAVE_TURMAS, CHAVE_CMEIS)
        flash("Turma excluída.", "success")
    except ErroFilaCmei as e:
        flash(e.mensagem, "error")
    return redirect(url_for('admin_bp.turmas'))


# === CONFIGURAÇÕES ===

@admin_bp.route('/configuracoes', methods=['GET', 'POST'])
def configuracoes():
    coordenador = get_coordenador()
    atuais = coordenador.obter(CHAVE_CONFIGURACOES, fila_services.obter_configuracoes)

    if request.method == 'GET':
        dados = dict(atuais)
        dados['data_inicio_inscricao'] = _para_date(atuais.get('data_inicio_inscricao'))
        dados['data_fim_inscricao'] = _para_date(atuais.get('data_fim_inscricao'))
        form = ConfiguracoesForm(data=dados)
    else:
        form = ConfiguracoesForm()

    if form.validate_on_submit():
        try:
            fila_services.salvar_configuracoes(form.dados(), usuario_atual())
            coordenador.invalidar(CHAVE_CONFIGURACOES)
            flash("Configurações salvas com sucesso!", "success")
            return redirect(url_for('admin_bp.configuracoes'))
        except ErroFilaCmei as e:
            flash(e.mensagem, "error")

    return render_template('admin/configuracoes.html', form=form)


# === LOG GERAL ===

@admin_bp.route('/logs')
def logs():
    try:
        historico = get_coordenador().obter(CHAVE_HISTORICO, fila_services.historico_geral)
    except ErroFilaCmei as e:
        flash(e.mensagem, "error")
        historico = []
    return render_template('admin/logs.html', historico=historico)


# === IMPORTAÇÃO ===

@admin_bp.route('/importar', methods=['GET', 'POST'])
def importar():
    form = ImportacaoForm()
    resultado = None

    if form.validate_on_submit():
        try:
            conteudo = form.arquivo.data.read().decode('utf-8-sig')
        except UnicodeDecodeError:
            flash("O arquivo precisa estar em UTF-8.", "error")
            return render_template('admin/importar.html', form=form, resultado=None)

        try:
            resultado = importar_csv(conteudo, usuario_atual())
            if resultado is None:
                flash("Nenhum registro encontrado no CSV.", "error")
            else:
                get_coordenador().invalidar_apos('importacao')
                flash(f"Importação concluída: {resultado.successCount} de {resultado.totalRecords} registros.", "success")
        except ErroFilaCmei as e:
            logger.error(f"Erro na importação: {e.mensagem}", exc_info=True)
            flash(e.mensagem, "error")

    return render_template('admin/importar.html', form=form, resultado=resultado)
