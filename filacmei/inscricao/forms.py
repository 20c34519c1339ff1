from flask_wtf import FlaskForm
from wtforms import BooleanField, DateField, SelectField, StringField, TextAreaField
from wtforms.validators import DataRequired, Length, Optional, Regexp

from filacmei.core.constants import SEXOS

CPF_REGEX = r'^\d{3}\.\d{3}\.\d{3}-\d{2}$'
TELEFONE_REGEX = r'^\(?\d{2}\)?\s?\d{4,5}-?\d{4}$'
# Validação simples (sem depender do pacote email-validator)
EMAIL_REGEX = r'^[^@\s]+@[^@\s]+\.[^@\s]+$'


class InscricaoForm(FlaskForm):
    # === CRIANÇA ===
    nome = StringField('Nome da criança', validators=[
        DataRequired(message="Nome é obrigatório"),
        Length(min=3, max=100, message="Nome deve ter entre 3 e 100 caracteres"),
        Regexp(r'^[A-Za-zÀ-ÖØ-öø-ÿ\s\.\']+$', message="Nome deve conter apenas letras")
    ])
    data_nascimento = DateField('Data de nascimento', validators=[
        DataRequired(message="Data de nascimento é obrigatória")
    ])
    sexo = SelectField('Sexo', choices=list(SEXOS.items()), validators=[DataRequired()])
    programas_sociais = BooleanField('Participa de programas sociais (Bolsa Família, BPC...)')

    # === PREFERÊNCIAS ===
    cmei1_preferencia = SelectField('CMEI de 1ª preferência', choices=[], validators=[
        DataRequired(message="Escolha ao menos um CMEI")
    ])
    cmei2_preferencia = SelectField('CMEI de 2ª preferência', choices=[], validators=[Optional()])
    aceita_qualquer_cmei = BooleanField('Aceito vaga em qualquer CMEI')

    # === RESPONSÁVEL ===
    responsavel_nome = StringField('Nome do responsável', validators=[
        DataRequired(message="Nome do responsável é obrigatório"),
        Length(min=3, max=100)
    ])
    responsavel_cpf = StringField('CPF', validators=[
        DataRequired(message="CPF é obrigatório"),
        Regexp(CPF_REGEX, message="CPF deve estar no formato 000.000.000-00")
    ])
    responsavel_telefone = StringField('Telefone', validators=[
        DataRequired(message="Telefone é obrigatório"),
        Regexp(TELEFONE_REGEX, message="Telefone inválido")
    ])
    responsavel_telefone2 = StringField('Telefone alternativo', validators=[
        Optional(),
        Regexp(TELEFONE_REGEX, message="Telefone inválido")
    ])
    responsavel_email = StringField('E-mail', validators=[
        Optional(),
        Regexp(EMAIL_REGEX, message="E-mail inválido")
    ])
    endereco = StringField('Endereço', validators=[DataRequired(message="Endereço é obrigatório"), Length(max=200)])
    bairro = StringField('Bairro', validators=[DataRequired(message="Bairro é obrigatório"), Length(max=100)])
    observacoes = TextAreaField('Observações', validators=[Optional(), Length(max=1000)])

    def preencher_cmeis(self, cmeis) -> None:
        opcoes = [(c.id, c.nome) for c in cmeis]
        self.cmei1_preferencia.choices = opcoes
        self.cmei2_preferencia.choices = [('', 'Nenhum')] + opcoes

    def dados(self) -> dict:
        """Campos prontos para gravar no Firestore."""
        return {
            'nome': self.nome.data.strip().title(),
            'data_nascimento': self.data_nascimento.data.isoformat(),
            'sexo': self.sexo.data,
            'programas_sociais': bool(self.programas_sociais.data),
            'aceita_qualquer_cmei': bool(self.aceita_qualquer_cmei.data),
            'cmei1_preferencia': self.cmei1_preferencia.data,
            'cmei2_preferencia': self.cmei2_preferencia.data or None,
            'responsavel_nome': self.responsavel_nome.data.strip().title(),
            'responsavel_cpf': self.responsavel_cpf.data,
            'responsavel_telefone': self.responsavel_telefone.data,
            'responsavel_telefone2': self.responsavel_telefone2.data or None,
            'responsavel_email': (self.responsavel_email.data or '').strip().lower() or None,
            'endereco': self.endereco.data.strip(),
            'bairro': self.bairro.data.strip(),
            'observacoes': (self.observacoes.data or '').strip() or None,
        }
