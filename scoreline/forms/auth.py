from wtforms import BooleanField, PasswordField, StringField
from wtforms.validators import DataRequired, Length, Regexp

from scoreline.forms.base import ApiForm

USERNAME_RULES = [
    Length(min=3, max=80, message="Username must be between 3 and 80 characters"),
    Regexp(
        r"^[a-zA-Z0-9_.-]+$",
        message="Username can only contain letters, numbers, dots, underscores, and hyphens",
    ),
]

PASSWORD_RULES = [
    Length(min=8, message="Password must be at least 8 characters long"),
    Regexp(
        r"^(?=.*[a-z])(?=.*[A-Z])(?=.*\d).*$",
        message="Password must contain at least one uppercase letter, one lowercase letter, and one number",
    ),
]


class LoginForm(ApiForm):
    username = StringField(
        "Username", validators=[DataRequired(), Length(min=3, max=80)]
    )
    password = PasswordField("Password", validators=[DataRequired()])
    remember_me = BooleanField("Remember Me")


class RegistrationForm(ApiForm):
    username = StringField("Username", validators=[DataRequired()] + USERNAME_RULES)
    password = PasswordField("Password", validators=[DataRequired()] + PASSWORD_RULES)
