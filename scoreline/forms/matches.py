from wtforms import BooleanField, DateField, TimeField
from wtforms.validators import DataRequired, NumberRange, Optional, ValidationError

from scoreline.forms.base import ApiForm, StrictIntegerField

TIME_FORMATS = ["%H:%M:%S", "%H:%M"]


def _different_teams(form):
    if (
        form.team1_id.data is not None
        and form.team2_id.data is not None
        and form.team1_id.data == form.team2_id.data
    ):
        raise ValidationError("team1_id and team2_id must differ")


class MatchCreateForm(ApiForm):
    team1_id = StrictIntegerField("Team 1", validators=[DataRequired()])
    team2_id = StrictIntegerField("Team 2", validators=[DataRequired()])
    date = DateField("Date", format="%Y-%m-%d", validators=[DataRequired()])
    time = TimeField("Kickoff", format=TIME_FORMATS, validators=[DataRequired()])

    def validate_team2_id(self, field):
        _different_teams(self)


class MatchUpdateForm(ApiForm):
    team1_id = StrictIntegerField("Team 1", validators=[Optional()])
    team2_id = StrictIntegerField("Team 2", validators=[Optional()])
    date = DateField("Date", format="%Y-%m-%d", validators=[Optional()])
    time = TimeField("Kickoff", format=TIME_FORMATS, validators=[Optional()])
    score1 = StrictIntegerField("Team 1 score", validators=[Optional(), NumberRange(min=0)])
    score2 = StrictIntegerField("Team 2 score", validators=[Optional(), NumberRange(min=0)])
    is_finished = BooleanField("Finished")

    def changes(self):
        """Supplied fields as keyword changes for update_match()"""
        changes = {
            name: self[name].data
            for name in ("team1_id", "team2_id", "date", "time", "score1", "score2")
            if self.supplied(name)
        }
        if self.is_finished.data:
            changes["is_finished"] = True
        return changes


class FinishMatchForm(ApiForm):
    # Omitted scores fall back to the stored ones
    score1 = StrictIntegerField("Team 1 score", validators=[Optional(), NumberRange(min=0)])
    score2 = StrictIntegerField("Team 2 score", validators=[Optional(), NumberRange(min=0)])
