"""
Scoring rules.

``award`` is called from model signals whenever a user does something
worth points.  It records the points, then checks the point milestones,
the first-time achievements and the activity badges.
"""
from __future__ import annotations

import logging
from typing import Optional

from django.contrib.auth import get_user_model
from django.db import transaction
from django.db.models import Count, Q
from django.utils import timezone

from events.models import Event, EventAttendance
from tribes.models import TribeMembership
from .models import Achievement, Badge, PointsEntry, Score

logger = logging.getLogger(__name__)
User = get_user_model()

POINT_VALUES = {
    "event_created": 100,
    "event_attended": 50,
    "tribe_created": 150,
    "tribe_joined": 30,
    "post_created": 20,
    "comment_posted": 5,
    "like_given": 1,
    "review_written": 25,
}

MILESTONES = [100, 500, 1000, 2500, 5000, 10000]

FIRST_TIME_ACHIEVEMENTS = {
    "event_created": ("Organiser", "Created your first event."),
    "tribe_created": ("Tribe leader", "Created your first tribe."),
    "event_attended": ("Attendee", "Joined your first event."),
    "review_written": ("Critic", "Wrote your first review."),
}
FIRST_TIME_BONUS = 50


def _hosted_count(user) -> int:
    return Event.objects.filter(host=user).exclude(status=Event.STATUS_DRAFT).count()


def _attended_count(user) -> int:
    return EventAttendance.objects.filter(user=user, status=EventAttendance.STATUS_CONFIRMED).count()


def _tribe_count(user) -> int:
    return TribeMembership.objects.filter(user=user, status=TribeMembership.STATUS_ACTIVE).count()


# code -> (action that triggers the check, title, description, icon, threshold, counter)
BADGES = {
    "event_host_5": ("event_created", "Host", "Hosted 5 events.", "star", 5, _hosted_count),
    "regular_5": ("event_attended", "Regular", "Joined 5 events.", "calendar-check", 5, _attended_count),
    "explorer_5": ("tribe_joined", "Explorer", "Belongs to 5 tribes.", "compass", 5, _tribe_count),
}


def _milestone_achievements(user, previous: int, current: int) -> list[Achievement]:
    earned = []
    for milestone in MILESTONES:
        if previous < milestone <= current:
            achievement, created = Achievement.objects.get_or_create(
                user=user,
                code=f"points_{milestone}",
                defaults={
                    "title": f"{milestone} points",
                    "description": f"Reached {milestone} points.",
                    "points": milestone // 10,
                },
            )
            if created:
                earned.append(achievement)
    return earned


def _first_time_achievement(user, action: str) -> list[Achievement]:
    if action not in FIRST_TIME_ACHIEVEMENTS:
        return []
    title, description = FIRST_TIME_ACHIEVEMENTS[action]
    achievement, created = Achievement.objects.get_or_create(
        user=user,
        code=action,
        defaults={"title": title, "description": description, "points": FIRST_TIME_BONUS},
    )
    return [achievement] if created else []


def _badges(user, action: str) -> list[Badge]:
    earned = []
    for code, (trigger, title, description, icon, threshold, counter) in BADGES.items():
        if trigger != action or Badge.objects.filter(user=user, code=code).exists():
            continue
        if counter(user) >= threshold:
            earned.append(
                Badge.objects.create(user=user, code=code, title=title, description=description, icon=icon)
            )
    return earned


def _credit(user, points: int) -> tuple[int, int]:
    score, _ = Score.objects.select_for_update().get_or_create(user=user)
    previous = score.points
    score.points = previous + points
    score.save(update_fields=["points", "updated_at"])
    return previous, score.points


def award(user, action: str, ref: str) -> Optional[dict]:
    """Give ``user`` the points for ``action`` on ``ref`` once.

    Returns what was earned, or None when the action is unknown or was
    already rewarded.
    """
    points = POINT_VALUES.get(action, 0)
    if points <= 0:
        logger.warning("No points defined for action %s", action)
        return None

    with transaction.atomic():
        _, created = PointsEntry.objects.get_or_create(
            user=user, action=action, ref=ref, defaults={"points": points}
        )
        if not created:
            return None
        previous, current = _credit(user, points)
        achievements = _milestone_achievements(user, previous, current)
        achievements += _first_time_achievement(user, action)
        badges = _badges(user, action)

    logger.info("User %s earned %s points for %s (%s)", user.pk, points, action, ref)
    return {
        "points": points,
        "total": current,
        "achievements": [a.code for a in achievements],
        "badges": [b.code for b in badges],
    }


def claim(achievement: Achievement) -> int:
    """Mark ``achievement`` claimed and credit its bonus; returns the new total."""
    with transaction.atomic():
        achievement.claimed_at = timezone.now()
        achievement.save(update_fields=["claimed_at"])
        previous, current = _credit(achievement.user, achievement.points)
        _milestone_achievements(achievement.user, previous, current)
    logger.info("User %s claimed %s", achievement.user_id, achievement.code)
    return current


def points_of(user) -> int:
    return Score.objects.filter(user=user).values_list("points", flat=True).first() or 0


def next_milestone(points: int) -> dict:
    upcoming = next((m for m in MILESTONES if m > points), None)
    if upcoming is None:
        return {"points": None, "progress": 100.0, "remaining": 0}
    return {
        "points": upcoming,
        "progress": round(points / upcoming * 100, 1),
        "remaining": upcoming - points,
    }


def rank(user) -> Optional[int]:
    points = points_of(user)
    if not points:
        return None
    return Score.objects.filter(points__gt=points).count() + 1


def _hosting_board():
    return (
        User.objects.filter(is_active=True)
        .annotate(hosted=Count("hosted_events", filter=~Q(hosted_events__status=Event.STATUS_DRAFT)))
        .filter(hosted__gt=0)
        .order_by("-hosted", "id")
    )


def events_rank(user) -> Optional[int]:
    hosted = _hosted_count(user)
    if not hosted:
        return None
    return _hosting_board().filter(hosted__gt=hosted).count() + 1


def leaderboard(category: str = "points", limit: int = 10) -> list[dict]:
    """Top users by points, or by published events hosted."""
    if category == "events":
        return [
            {"rank": i, "user": u, "events_hosted": u.hosted}
            for i, u in enumerate(_hosting_board()[:limit], start=1)
        ]
    scores = (
        Score.objects.filter(points__gt=0, user__is_active=True)
        .select_related("user__profile")
        .order_by("-points", "user_id")[:limit]
    )
    return [{"rank": i, "user": s.user, "points": s.points} for i, s in enumerate(scores, start=1)]
