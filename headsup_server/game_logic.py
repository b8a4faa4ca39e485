from typing import List

from .schemas import RoundResult

CATEGORIES = ['Movies', 'Celebrities', 'Animals', 'Random Words', 'Science', 'History']
DIFFICULTIES = ['Easy', 'Medium', 'Hard']
ROUND_DURATIONS = [60, 90, 120]  # seconds

CORRECT_POINTS = 2
SKIP_PENALTY = 1


def score_round(correct_words: List[str], skipped_words: List[str]) -> int:
    return CORRECT_POINTS * len(correct_words) - SKIP_PENALTY * len(skipped_words)


def round_result(correct_words: List[str], skipped_words: List[str]) -> RoundResult:
    return RoundResult(
        score=score_round(correct_words, skipped_words),
        correctWords=list(correct_words),
        skippedWords=list(skipped_words),
    )
