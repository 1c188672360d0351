from wtforms import DateField, StringField, TextAreaField
from wtforms.validators import URL, DataRequired, Length, Optional

from scoreline.forms.base import ApiForm


class TeamForm(ApiForm):
    name = StringField("Name", validators=[DataRequired(), Length(max=100)])
    logo_url = StringField("Logo URL", validators=[Optional(), URL(), Length(max=500)])


class TeamUpdateForm(TeamForm):
    name = StringField("Name", validators=[Optional(), Length(min=1, max=100)])


class NewsForm(ApiForm):
    title = StringField("Title", validators=[DataRequired(), Length(max=200)])
    content = TextAreaField("Content", validators=[DataRequired()])
    image_url = StringField("Image URL", validators=[Optional(), URL(), Length(max=500)])
    date = DateField("Date", format="%Y-%m-%d", validators=[Optional()])


class NewsUpdateForm(NewsForm):
    title = StringField("Title", validators=[Optional(), Length(min=1, max=200)])
    content = TextAreaField("Content", validators=[Optional()])
