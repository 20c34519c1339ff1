from flask_wtf import FlaskForm
from wtforms import SelectField, TextAreaField
from wtforms.validators import DataRequired, Length

from filacmei.core.constants import JUSTIFICATIVA_MIN, STATUS_EM_MASSA


def _strip(valor):
    return valor.strip() if isinstance(valor, str) else valor


class JustificativaForm(FlaskForm):
    # O filtro remove espaços antes do Length: "   curto   " não passa
    justificativa = TextAreaField('Justificativa', filters=[_strip], validators=[
        DataRequired(message="A justificativa é obrigatória."),
        Length(min=JUSTIFICATIVA_MIN, message=f"A justificativa deve ter pelo menos {JUSTIFICATIVA_MIN} caracteres."),
    ])


class VagaForm(FlaskForm):
    # choices preenchidas pela rota com as opções do modal ("cmei_id|turma_id")
    vaga = SelectField('CMEI / Turma', choices=[], validators=[
        DataRequired(message="Selecione uma vaga.")
    ])


class RemanejamentoForm(JustificativaForm):
    cmei_destino = SelectField('CMEI de destino', choices=[], validators=[
        DataRequired(message="Selecione o CMEI de destino.")
    ])


class ConfirmacaoForm(FlaskForm):
    """Ações sem campos (matricular, reativar): só o CSRF."""
    pass


class StatusMassaForm(JustificativaForm):
    status = SelectField(
        'Novo status',
        choices=[(s.value, 'Fim de Fila' if s.value == 'Fila de Espera' else s.value) for s in STATUS_EM_MASSA],
        validators=[DataRequired()],
    )


class RealocacaoMassaForm(VagaForm):
    pass
