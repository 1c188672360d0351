from scoreline import create_app, db
from scoreline.models import AdminAction, Match, News, Prediction, Team, User
from scoreline.services import admission, ledger, settlement

app = create_app()


@app.shell_context_processor
def make_shell_context():
    return {
        "db": db,
        "User": User,
        "Team": Team,
        "Match": Match,
        "Prediction": Prediction,
        "News": News,
        "AdminAction": AdminAction,
        "admission": admission,
        "ledger": ledger,
        "settlement": settlement,
    }


if __name__ == "__main__":
    app.run(host="0.0.0.0", port=5000, debug=True)
