"""
Scoring rules for match predictions.

This module is the single place that decides a match outcome from its
score and whether a prediction was right. The settlement engine in
scoreline/services/settlement.py applies these rules; the ledger in
scoreline/services/ledger.py applies the resulting points.
"""

TEAM1_WIN = "team1_win"
TEAM2_WIN = "team2_win"
DRAW = "draw"

# predicted_team_id value meaning "draw"; team ids start at 1
DRAW_SENTINEL = 0

# Flat reward per correct prediction
CORRECT_PREDICTION_POINTS = 10


def determine_outcome(score1, score2):
    """
    Decide the outcome of a finished match.

    A 0-0 final score is a draw like any other level score.

    Args:
        score1: Goals scored by team1
        score2: Goals scored by team2

    Returns:
        TEAM1_WIN, TEAM2_WIN or DRAW
    """
    if score1 > score2:
        return TEAM1_WIN
    if score2 > score1:
        return TEAM2_WIN
    return DRAW


def winning_team_id(outcome, team1_id, team2_id):
    """Team id that won, or None for a draw"""
    if outcome == TEAM1_WIN:
        return team1_id
    if outcome == TEAM2_WIN:
        return team2_id
    return None


def is_prediction_correct(predicted_team_id, outcome, team1_id, team2_id):
    """
    Decide whether a prediction matches the settled outcome.

    Returns:
        True if the user predicted a draw and the match was drawn, or
        predicted the winning team; False otherwise.
    """
    if outcome == DRAW:
        return predicted_team_id == DRAW_SENTINEL

    return predicted_team_id == winning_team_id(outcome, team1_id, team2_id)


def calculate_prediction_points(is_correct, reward=CORRECT_PREDICTION_POINTS):
    """
    Points earned by a settled prediction.

    Returns:
        reward for a correct prediction, 0 otherwise
    """
    return reward if is_correct else 0
