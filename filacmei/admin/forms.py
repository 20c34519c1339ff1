from flask_wtf import FlaskForm
from flask_wtf.file import FileAllowed, FileField, FileRequired
from wtforms import BooleanField, DateField, IntegerField, SelectField, StringField
from wtforms.validators import DataRequired, Length, NumberRange, Optional, Regexp, URL

from filacmei.inscricao.forms import EMAIL_REGEX


class CmeiForm(FlaskForm):
    nome = StringField('Nome', validators=[DataRequired(message="Nome é obrigatório"), Length(max=120)])
    endereco = StringField('Endereço', validators=[Optional(), Length(max=200)])
    telefone = StringField('Telefone', validators=[Optional(), Length(max=20)])
    email = StringField('E-mail', validators=[Optional(), Regexp(EMAIL_REGEX, message="E-mail inválido")])
    diretor = StringField('Diretor(a)', validators=[Optional(), Length(max=100)])
    coordenador = StringField('Coordenador(a)', validators=[Optional(), Length(max=100)])
    capacidade = IntegerField('Capacidade', validators=[
        DataRequired(message="Capacidade é obrigatória"),
        NumberRange(min=1, message="Capacidade deve ser maior que zero")
    ])


class TurmaForm(FlaskForm):
    cmei_id = SelectField('CMEI', choices=[], validators=[DataRequired(message="Selecione o CMEI")])
    nome = StringField('Nome', validators=[DataRequired(message="Nome é obrigatório"), Length(max=80)])
    sala = StringField('Sala', validators=[Optional(), Length(max=40)])
    capacidade = IntegerField('Capacidade', validators=[
        DataRequired(message="Capacidade é obrigatória"),
        NumberRange(min=1, message="Capacidade deve ser maior que zero")
    ])


class ConfiguracoesForm(FlaskForm):
    nome_municipio = StringField('Município', validators=[Optional(), Length(max=100)])
    nome_secretaria = StringField('Secretaria', validators=[Optional(), Length(max=150)])
    email_contato = StringField('E-mail de contato', validators=[Optional(), Regexp(EMAIL_REGEX, message="E-mail inválido")])
    telefone_contato = StringField('Telefone de contato', validators=[Optional(), Length(max=20)])
    data_inicio_inscricao = DateField('Início das inscrições', validators=[Optional()])
    data_fim_inscricao = DateField('Fim das inscrições', validators=[Optional()])
    prazo_resposta_dias = IntegerField('Prazo de resposta da convocação (dias)', validators=[
        DataRequired(),
        NumberRange(min=1, max=60)
    ])
    notificacao_whatsapp = BooleanField('Enviar notificações pelo WhatsApp')
    webhook_url_notificacao = StringField('URL do webhook de notificação', validators=[
        Optional(),
        URL(message="URL inválida")
    ])

    def validate(self, extra_validators=None):
        if not super().validate(extra_validators):
            return False
        inicio, fim = self.data_inicio_inscricao.data, self.data_fim_inscricao.data
        if inicio and fim and fim < inicio:
            self.data_fim_inscricao.errors.append("A data final deve ser posterior à inicial.")
            return False
        return True

    def dados(self) -> dict:
        return {
            'nome_municipio': self.nome_municipio.data or '',
            'nome_secretaria': self.nome_secretaria.data or '',
            'email_contato': self.email_contato.data or '',
            'telefone_contato': self.telefone_contato.data or '',
            'data_inicio_inscricao': self.data_inicio_inscricao.data.isoformat() if self.data_inicio_inscricao.data else None,
            'data_fim_inscricao': self.data_fim_inscricao.data.isoformat() if self.data_fim_inscricao.data else None,
            'prazo_resposta_dias': self.prazo_resposta_dias.data,
            'notificacao_whatsapp': bool(self.notificacao_whatsapp.data),
            'webhook_url_notificacao': self.webhook_url_notificacao.data or None,
        }


class ImportacaoForm(FlaskForm):
    arquivo = FileField('Arquivo CSV', validators=[
        FileRequired(message="Selecione um arquivo."),
        FileAllowed(['csv'], message="Apenas arquivos .csv são permitidos.")
    ])
