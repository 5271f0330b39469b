# ================================================================================
# Streak Service
# ================================================================================
# One Streak row per learner per day. Logging in on consecutive days grows
# the streak's point; learning activities add to the learner's Score.
# ================================================================================

from datetime import timedelta

from flask import current_app
from sqlalchemy.exc import IntegrityError

from ..errors import BadRequest
from ..models import db, Streak, Score, utcnow

SCORE_PER_ACTIVITY = 10
LOGIN = 'login'
SCORED_ACTIVITIES = ('create_course', 'unlock_subtopic', 'create_quiz')
SUPPORTED_ACTIVITIES = (LOGIN,) + SCORED_ACTIVITIES


def today():
    return utcnow().date()


def get_or_create_score(email):
    score = Score.query.filter_by(email=email).first()
    if score is None:
        score = Score(email=email, score=0)
        db.session.add(score)
    return score


def _start_streak(email, activities):
    """Today's streak: yesterday's point + 1, or 1 when the run was broken."""
    day = today()
    yesterday = Streak.query.filter_by(email=email, date=day - timedelta(days=1)).first()
    streak = Streak(
        email=email,
        date=day,
        activities=activities,
        point=yesterday.point + 1 if yesterday else 1
    )
    db.session.add(streak)
    return streak


def create_new_streak(email):
    if Streak.query.filter_by(email=email, date=today()).first():
        raise BadRequest('Streak Already exist')

    streak = _start_streak(email, [LOGIN])
    get_or_create_score(email)
    try:
        db.session.commit()
    except IntegrityError:
        # Two logins raced for the same day
        db.session.rollback()
        raise BadRequest('Streak Already exist')

    current_app.logger.debug(f"Streak for {email}: day {streak.point}")
    return streak


def log_streak_activity(email, activity):
    streak = Streak.query.filter_by(email=email, date=today()).first()
    if streak is None:
        streak = _start_streak(email, [activity])
    else:
        # Reassign so SQLAlchemy sees the JSON column change
        streak.activities = list(streak.activities or []) + [activity]

    score = get_or_create_score(email)
    score.score = (score.score or 0) + SCORE_PER_ACTIVITY
    db.session.commit()
    return streak


def record_activity(email, activity):
    if activity == LOGIN:
        return create_new_streak(email)
    if activity in SCORED_ACTIVITIES:
        return log_streak_activity(email, activity)
    raise BadRequest(
        'Unknown activity',
        details=f"Supported activity: {', '.join(SUPPORTED_ACTIVITIES)}"
    )


def streak_status(email):
    """Today's streak and the total score, or BadRequest when either is missing."""
    streak = Streak.query.filter_by(email=email, date=today()).first()
    if streak is None:
        raise BadRequest('Streak not found.')

    score = Score.query.filter_by(email=email).first()
    if score is None:
        raise BadRequest('Score not found. Try log in first.')

    return streak, score
