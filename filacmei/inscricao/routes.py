"""
Rotas do Módulo de Inscrição (públicas, com rate limit)
"""

from flask import flash, jsonify, redirect, render_template, request, session, url_for

from . import inscricao_bp
from . import services as inscricao_services
from .cpf import ConsultaCpf
from .forms import InscricaoForm
from filacmei.core.cache import CHAVE_CMEIS, get_coordenador
from filacmei.core.erros import ErroFilaCmei
from filacmei.core.extensions import limiter
from filacmei.core.logger import get_logger
from filacmei.fila import services as fila_services

logger = get_logger(__name__)


@inscricao_bp.route('/', methods=['GET', 'POST'])
@limiter.limit("20 per minute", methods=['POST'])
def formulario():
    """ Exibe e processa o formulário público de inscrição. """
    try:
        configuracoes = fila_services.obter_configuracoes()
        cmeis = get_coordenador().obter(CHAVE_CMEIS, fila_services.listar_cmeis)
    except ErroFilaCmei as e:
        logger.error(f"Falha ao carregar a inscrição: {e.mensagem}")
        flash("Não foi possível carregar o formulário. Tente novamente mais tarde.", "error")
        return render_template('inscricao/fechada.html', configuracoes={}), 503

    if not inscricao_services.periodo_aberto(configuracoes):
        return render_template('inscricao/fechada.html', configuracoes=configuracoes)

    form = InscricaoForm()
    form.preencher_cmeis(cmeis)

    if form.validate_on_submit():
        try:
            crianca_id = inscricao_services.adicionar_crianca(form.dados())
            get_coordenador().invalidar_apos('inscricao', [crianca_id])
            # Nova inscrição: a próxima digitação do CPF pode consultar de novo
            ConsultaCpf().salvar(session)
            return redirect(url_for('inscricao_bp.sucesso', protocolo=crianca_id))
        except ErroFilaCmei as e:
            flash(e.mensagem, "error")

    return render_template('inscricao/formulario.html', form=form, configuracoes=configuracoes)


@inscricao_bp.route('/sucesso/<protocolo>')
def sucesso(protocolo):
    return render_template('inscricao/sucesso.html', protocolo=protocolo)


@inscricao_bp.route('/consulta-cpf')
@limiter.limit("30 per minute")
def consulta_cpf():
    """
    Chamado pelo formulário a cada alteração do CPF.
    Retorna os campos do responsável somente na primeira vez que um CPF
    completo é digitado.
    """
    consulta = ConsultaCpf.carregar(session)
    try:
        dados = consulta.consultar(request.args.get('cpf'), inscricao_services.buscar_responsavel_por_cpf)
    except ErroFilaCmei as e:
        return jsonify({"error": e.mensagem}), 500
    finally:
        consulta.salvar(session)

    return jsonify({"encontrado": bool(dados), "dados": dados or {}})
