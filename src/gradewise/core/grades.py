from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Optional, Tuple

LETTER_GRADES: Tuple[str, ...] = ("A", "A-", "B+", "B", "B-", "C+", "C", "C-", "D+", "D", "D-", "F")

# (letter, minimum percentage), highest first. Anything below the last cutoff is an F.
DEFAULT_CUTOFFS: Tuple[Tuple[str, float], ...] = (
    ("A", 93.0),
    ("A-", 90.0),
    ("B+", 87.0),
    ("B", 83.0),
    ("B-", 80.0),
    ("C+", 77.0),
    ("C", 73.0),
    ("C-", 70.0),
    ("D+", 67.0),
    ("D", 63.0),
    ("D-", 60.0),
)

DEFAULT_GRADE_POINTS: Dict[str, float] = {
    "A": 4.0,
    "A-": 3.7,
    "B+": 3.3,
    "B": 3.0,
    "B-": 2.7,
    "C+": 2.3,
    "C": 2.0,
    "C-": 1.7,
    "D+": 1.3,
    "D": 1.0,
    "D-": 0.7,
    "F": 0.0,
}

MAX_GPA = 4.0


@dataclass(frozen=True)
class GradeScale:
    cutoffs: Tuple[Tuple[str, float], ...] = DEFAULT_CUTOFFS
    points: Tuple[Tuple[str, float], ...] = tuple(DEFAULT_GRADE_POINTS.items())
    failing_letter: str = "F"

    def __post_init__(self) -> None:
        minimums = [minimum for _, minimum in self.cutoffs]
        if minimums != sorted(minimums, reverse=True):
            raise ValueError("Grade cutoffs must be listed from highest to lowest")
        known = dict(self.points)
        missing = [letter for letter, _ in self.cutoffs if letter not in known]
        if self.failing_letter not in known:
            missing.append(self.failing_letter)
        if missing:
            raise ValueError(f"No grade point for letter(s): {', '.join(missing)}")

    def cutoff_for(self, letter: str) -> float:
        for candidate, minimum in self.cutoffs:
            if candidate == letter:
                return minimum
        if letter == self.failing_letter:
            return 0.0
        raise ValueError(f"Unsupported letter grade: {letter}")


DEFAULT_GRADE_SCALE = GradeScale()


def to_letter_grade(percentage: float, scale: GradeScale = DEFAULT_GRADE_SCALE) -> str:
    for letter, minimum in scale.cutoffs:
        if percentage >= minimum:
            return letter
    return scale.failing_letter


def to_grade_point(letter_grade: str, scale: GradeScale = DEFAULT_GRADE_SCALE) -> float:
    mapping = dict(scale.points)
    try:
        return mapping[letter_grade.upper()]
    except KeyError as exc:
        raise ValueError(f"Unsupported letter grade: {letter_grade}") from exc


def next_grade_up(letter_grade: str, scale: GradeScale = DEFAULT_GRADE_SCALE) -> Optional[Tuple[str, float]]:
    """Return the next letter above ``letter_grade`` and its cutoff, or None at the top."""
    letters = [letter for letter, _ in scale.cutoffs]
    if letter_grade == scale.failing_letter:
        index = len(letters)
    elif letter_grade in letters:
        index = letters.index(letter_grade)
    else:
        raise ValueError(f"Unsupported letter grade: {letter_grade}")
    if index == 0:
        return None
    letter = letters[index - 1]
    return letter, scale.cutoff_for(letter)
