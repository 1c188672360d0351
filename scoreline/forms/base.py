import re

from flask import request
from flask_wtf import FlaskForm
from werkzeug.datastructures import ImmutableMultiDict
from wtforms import IntegerField

from scoreline.utils.errors import InvalidInputError

INTEGER_RE = re.compile(r"-?\d+")


def _form_value(name, value):
    # WTForms fields and validators expect strings, as from a submitted form
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        return str(value)
    if isinstance(value, str):
        return value
    raise InvalidInputError(
        "Invalid request data", details={name: ["Must be a string, number or boolean."]}
    )


def json_formdata():
    """Request JSON body as form data; null values count as not supplied"""
    if request.form:
        return request.form

    data = request.get_json(silent=True)
    if data is None:
        return ImmutableMultiDict()
    if not isinstance(data, dict):
        raise InvalidInputError("Request body must be a JSON object")

    return ImmutableMultiDict(
        {k: _form_value(k, v) for k, v in data.items() if v is not None}
    )


class StrictIntegerField(IntegerField):
    """IntegerField that only accepts plain decimal literals like 7 or -2"""

    def process_formdata(self, valuelist):
        if valuelist and not INTEGER_RE.fullmatch(valuelist[0]):
            self.data = None
            raise ValueError(self.gettext("Not a valid integer value."))
        super().process_formdata(valuelist)


class ApiForm(FlaskForm):
    """Base form for JSON endpoints"""

    class Meta:
        # Session cookie is SameSite=Lax and every write is JSON
        csrf = False

    def __init__(self, *args, **kwargs):
        if "formdata" not in kwargs:
            kwargs["formdata"] = json_formdata()
        super().__init__(*args, **kwargs)

    def supplied(self, name):
        field = self[name]
        return bool(field.raw_data) and field.data is not None

    def validate_or_raise(self):
        if not self.validate():
            raise InvalidInputError("Invalid request data", details=self.errors)
        return self
