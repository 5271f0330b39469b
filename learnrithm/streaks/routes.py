# ================================================================================
# Streak Routes
# ================================================================================
# Mounted under /api/v2/streak.
# ================================================================================

from flask import jsonify, g

from . import streak_bp
from .service import record_activity, streak_status, get_or_create_score
from ..errors import error_response
from ..validation import validate, StreakBody


@streak_bp.route('/streak', methods=['POST'])
@validate(body=StreakBody)
def log_activity():
    """Record a learner activity (login, create_course, create_quiz, unlock_subtopic)."""
    data = g.body
    if not data.email or not data.activity:
        return error_response('Missing email or activity', 400)

    email = data.email.lower()
    streak = record_activity(email, data.activity)
    score = get_or_create_score(email)

    return jsonify({
        'success': True,
        'message': f"Activity '{data.activity}' recorded.",
        'streak': streak.to_dict(),
        'score': score.score
    })


@streak_bp.route('/streakStatus', methods=['POST'])
@validate(body=StreakBody)
def get_streak_status():
    if not g.body.email:
        return error_response('Missing email', 400)

    streak, score = streak_status(g.body.email.lower())
    return jsonify({
        'success': True,
        'message': 'Streak and Score successfully found.',
        'streak': streak.to_dict(),
        'score': score.score
    })
