from wtforms import BooleanField, PasswordField, SelectField, StringField
from wtforms.validators import Optional

from scoreline.forms.auth import PASSWORD_RULES, USERNAME_RULES, RegistrationForm
from scoreline.forms.base import ApiForm
from scoreline.models.user import ROLE_ADMIN, ROLE_USER

ROLES = [ROLE_USER, ROLE_ADMIN]


class UserCreateForm(RegistrationForm):
    role = SelectField("Role", choices=ROLES, default=ROLE_USER)


class UserUpdateForm(ApiForm):
    username = StringField("Username", validators=[Optional()] + USERNAME_RULES)
    password = PasswordField("Password", validators=[Optional()] + PASSWORD_RULES)
    # Admin only
    role = SelectField("Role", choices=ROLES, validators=[Optional()])
    is_active = BooleanField("Active")
