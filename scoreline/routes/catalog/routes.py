import logging
from datetime import date

from flask import jsonify
from flask_login import current_user, login_required
from sqlalchemy.exc import IntegrityError

from scoreline import db
from scoreline.forms.catalog import NewsForm, NewsUpdateForm, TeamForm, TeamUpdateForm
from scoreline.models import AdminAction, News, Team
from scoreline.routes.catalog import bp
from scoreline.utils.decorators import admin_required
from scoreline.utils.errors import ConflictError, NotFoundError
from scoreline.utils.pagination import paginate

logger = logging.getLogger(__name__)


def _get_team(team_id):
    team = db.session.get(Team, team_id)
    if team is None:
        raise NotFoundError(f"Team {team_id} not found")
    return team


def _get_news(news_id):
    news = db.session.get(News, news_id)
    if news is None:
        raise NotFoundError(f"News item {news_id} not found")
    return news


def _commit_team(team):
    name = team.name
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise ConflictError(f"A team named '{name}' already exists")


# Teams


@bp.route("/teams")
def teams():
    """Get all teams"""
    teams = Team.query.order_by(Team.name).all()
    return jsonify([team.to_dict() for team in teams])


@bp.route("/teams/<int:team_id>")
def team_detail(team_id):
    """Get a team with its win-draw-loss record"""
    return jsonify(_get_team(team_id).to_dict(include_record=True))


@bp.route("/teams", methods=["POST"])
@login_required
@admin_required
def create_team():
    form = TeamForm().validate_or_raise()

    team = Team(name=form.name.data.strip(), logo_url=form.logo_url.data or None)
    db.session.add(team)
    _commit_team(team)

    logger.info(f"Admin {current_user.username} created team {team.name}")
    return jsonify(team.to_dict()), 201


@bp.route("/teams/<int:team_id>", methods=["PUT", "PATCH"])
@login_required
@admin_required
def update_team(team_id):
    team = _get_team(team_id)
    form = TeamUpdateForm().validate_or_raise()

    if form.name.data:
        team.name = form.name.data.strip()
    if form.supplied("logo_url"):
        team.logo_url = form.logo_url.data or None

    _commit_team(team)
    return jsonify(team.to_dict())


@bp.route("/teams/<int:team_id>", methods=["DELETE"])
@login_required
@admin_required
def delete_team(team_id):
    team = _get_team(team_id)

    if team.is_referenced():
        raise ConflictError(f"Team '{team.name}' is referenced by matches and cannot be deleted")

    AdminAction.log_action(
        admin_user_id=current_user.id,
        action_type="delete_team",
        description=f"Deleted team {team.name}",
        action_metadata={"team_id": team.id, "name": team.name},
    )
    db.session.delete(team)
    db.session.commit()

    logger.info(f"Admin {current_user.username} deleted team {team_id}")
    return jsonify({"success": True})


# News


@bp.route("/news")
def news_list():
    """Get news, newest first"""
    query = News.query.order_by(News.date.desc(), News.id.desc())
    return jsonify(paginate(query, lambda item: item.to_dict()))


@bp.route("/news/<int:news_id>")
def news_detail(news_id):
    return jsonify(_get_news(news_id).to_dict())


@bp.route("/news", methods=["POST"])
@login_required
@admin_required
def create_news():
    form = NewsForm().validate_or_raise()

    news = News(
        title=form.title.data.strip(),
        content=form.content.data,
        image_url=form.image_url.data or None,
        date=form.date.data or date.today(),
    )
    db.session.add(news)
    db.session.commit()

    return jsonify(news.to_dict()), 201


@bp.route("/news/<int:news_id>", methods=["PUT", "PATCH"])
@login_required
@admin_required
def update_news(news_id):
    news = _get_news(news_id)
    form = NewsUpdateForm().validate_or_raise()

    if form.title.data:
        news.title = form.title.data.strip()
    if form.content.data:
        news.content = form.content.data
    if form.supplied("image_url"):
        news.image_url = form.image_url.data or None
    if form.supplied("date"):
        news.date = form.date.data

    db.session.commit()
    return jsonify(news.to_dict())


@bp.route("/news/<int:news_id>", methods=["DELETE"])
@login_required
@admin_required
def delete_news(news_id):
    news = _get_news(news_id)

    AdminAction.log_action(
        admin_user_id=current_user.id,
        action_type="delete_news",
        description=f"Deleted news item {news.title!r}",
        action_metadata={"news_id": news.id},
    )
    db.session.delete(news)
    db.session.commit()

    return jsonify({"success": True})
