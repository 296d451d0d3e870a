"""
Daily micro-challenges: catalog, challenge of the day and streaks.
"""

from dataclasses import dataclass
from datetime import date, timedelta
from typing import Dict, Iterable, List, Optional

from .models import ChallengeCompletion


@dataclass(frozen=True)
class ChallengeCategory:
    id: str
    name: str
    description: str


@dataclass(frozen=True)
class Challenge:
    id: str
    category: str
    title: str
    description: str
    rationale: str
    difficulty: str
    duration: str


CATEGORIES: Dict[str, ChallengeCategory] = {
    'hydration': ChallengeCategory(
        'hydration', 'Hydration',
        'Cellular hydration affects skin texture and fullness'),
    'sleep': ChallengeCategory(
        'sleep', 'Sleep',
        'Recovery cycles impact inflammation and tissue repair'),
    'posture': ChallengeCategory(
        'posture', 'Posture',
        'Structural alignment affects jaw position and neck tension'),
    'skincare': ChallengeCategory(
        'skincare', 'Skincare',
        'Consistent routine improves texture measurement accuracy'),
    'nutrition': ChallengeCategory(
        'nutrition', 'Nutrition',
        'Micronutrients influence inflammation markers'),
}

CHALLENGES: List[Challenge] = [
    Challenge('hydration-3l', 'hydration', 'Hydration experiment',
              'Track 3L water intake over 24 hours',
              'Acute hydration changes show in skin texture variance within 24-48 hours',
              'easy', '24h'),
    Challenge('hydration-morning', 'hydration', 'Morning hydration',
              '500ml water within 30 minutes of waking',
              'Rehydration after sleep affects morning facial volume measurements',
              'easy', '30min'),
    Challenge('hydration-sodium', 'hydration', 'Sodium observation',
              'Note sodium intake and observe facial puffiness',
              'Sodium-water balance affects soft tissue measurements',
              'medium', '24h'),
    Challenge('sleep-7h', 'sleep', 'Sleep duration',
              '7+ hours of sleep tonight',
              'Sleep debt visibly affects the periorbital area and skin recovery',
              'easy', 'overnight'),
    Challenge('sleep-consistency', 'sleep', 'Sleep schedule',
              'Same bedtime within 30 minutes for 3 consecutive nights',
              'Circadian consistency improves baseline measurement stability',
              'medium', '3 days'),
    Challenge('sleep-quality', 'sleep', 'Sleep environment',
              'Dark room, no screens 1 hour before bed',
              'Sleep quality affects recovery hormone release and tissue repair',
              'medium', 'overnight'),
    Challenge('posture-mewing', 'posture', 'Tongue posture check',
              'Maintain proper tongue position (mewing) for 4 hours',
              'Consistent oral posture may influence jaw muscle tension over time',
              'medium', '4h'),
    Challenge('posture-neck', 'posture', 'Neck alignment',
              'Avoid forward head posture while working',
              'Chronic forward posture affects submental angle and jaw definition',
              'medium', 'workday'),
    Challenge('posture-check', 'posture', 'Posture audit',
              'Set 4 hourly reminders to check head position',
              'Awareness is the first step to postural adaptation',
              'easy', '8h'),
    Challenge('skincare-routine', 'skincare', 'AM + PM routine',
              'Complete moisturizing routine morning and evening',
              'Consistent hydration improves texture measurement reliability',
              'easy', '24h'),
    Challenge('skincare-spf', 'skincare', 'Sun protection',
              'Apply SPF before any outdoor exposure',
              'UV damage creates cumulative pigmentation variance',
              'easy', 'daily'),
    Challenge('skincare-gentle', 'skincare', 'Gentle cleansing',
              'Use gentle cleanser only, no harsh exfoliation',
              'Barrier integrity affects redness and texture readings',
              'easy', '24h'),
    Challenge('nutrition-protein', 'nutrition', 'Protein tracking',
              'Aim for 1.6g/kg bodyweight protein intake',
              'Protein supports tissue maintenance and collagen synthesis',
              'medium', '24h'),
    Challenge('nutrition-sugar', 'nutrition', 'Sugar reduction',
              'Minimize added sugar intake today',
              'Glycation affects skin elasticity measurements over time',
              'medium', '24h'),
    Challenge('nutrition-anti-inflammatory', 'nutrition', 'Anti-inflammatory focus',
              'Include omega-3 rich foods or supplement',
              'Systemic inflammation affects redness and puffiness markers',
              'easy', '24h'),
]


def todays_challenge(day: Optional[date] = None) -> Challenge:
    """Challenge of the day, stable for a given calendar date."""
    day = day or date.today()
    digest = sum(ord(char) for char in day.isoformat())
    return CHALLENGES[digest % len(CHALLENGES)]


def challenge_by_id(challenge_id: str) -> Optional[Challenge]:
    return next((c for c in CHALLENGES if c.id == challenge_id), None)


def challenges_by_category(category_id: str) -> List[Challenge]:
    return [c for c in CHALLENGES if c.category == category_id]


def is_challenge_completed_on(
    completions: Iterable[ChallengeCompletion],
    challenge_id: str,
    day: date
) -> bool:
    return any(c.challenge_id == challenge_id and c.date == day for c in completions)


def current_streak(completions: Iterable[ChallengeCompletion], today: date) -> int:
    """
    Consecutive days with at least one completion, ending today (or
    yesterday, if nothing has been completed yet today).
    """
    days = {c.date for c in completions}
    cursor = today if today in days else today - timedelta(days=1)

    streak = 0
    while cursor in days:
        streak += 1
        cursor -= timedelta(days=1)
    return streak


def streak_info(completions: Iterable[ChallengeCompletion], today: Optional[date] = None) -> Dict[str, object]:
    today = today or date.today()
    completions = list(completions)
    days = {c.date for c in completions}

    streak = current_streak(completions, today)
    active_today = today in days
    active_yesterday = (today - timedelta(days=1)) in days

    if active_today:
        message = f"{streak} day streak"
    elif active_yesterday:
        message = 'Complete today to continue streak'
    else:
        message = 'Start a new streak today'

    return {
        'current': streak,
        'is_active_today': active_today,
        'was_active_yesterday': active_yesterday,
        'message': message,
    }
