from wtforms.validators import ValidationError

from scoreline.forms.base import ApiForm, StrictIntegerField


class PredictionForm(ApiForm):
    match_id = StrictIntegerField("Match")
    # 0 is a valid value (draw), so presence is checked by hand
    predicted_team_id = StrictIntegerField("Predicted team")

    def validate_match_id(self, field):
        if field.data is None:
            raise ValidationError("This field is required.")

    def validate_predicted_team_id(self, field):
        if field.data is None:
            raise ValidationError("This field is required.")
