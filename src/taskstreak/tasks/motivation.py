# src/taskstreak/tasks/motivation.py

from __future__ import annotations

from dataclasses import dataclass
from datetime import date

# Monday == 0, as date.weekday()
_DAY_LINES: dict[int, tuple[str, str]] = {
    0: ("Monday Momentum!", "Let's start this week strong!"),
    1: ("Tuesday Drive!", "Keep the momentum going!"),
    2: ("Wednesday Warrior!", "Midweek power - you're crushing it!"),
    3: ("Thursday Thrive!", "Almost there - finish strong!"),
    4: ("Friday Focus!", "End the week with a bang!"),
    5: ("Saturday Success!", "Weekend warrior mode activated!"),
    6: ("Sunday Planning Mode!", "Perfect day to strategize for the week ahead!"),
}


@dataclass(slots=True, frozen=True)
class MotivationalMessage:
    greeting: str
    encouragement: str
    action_call: str

    def render(self) -> str:
        return f"{self.greeting} {self.encouragement} {self.action_call}"


def _progress_encouragement(progress: float, completed: int, total: int) -> str:
    if progress >= 90:
        return f"Outstanding! You've completed {completed}/{total} tasks. You're absolutely crushing your goals!"
    if progress >= 75:
        return f"Excellent progress! {completed}/{total} tasks done. You're in the home stretch!"
    if progress >= 50:
        return f"Great work! You're {progress:.0f}% through your weekly tasks. Keep the momentum!"
    if progress >= 25:
        return f"Good start! {completed} tasks completed. You're building momentum!"
    if completed > 0:
        return f"Every journey starts with a single step. {completed} task{'s' if completed > 1 else ''} down!"
    return "Ready to make today count? Your marketing success starts with the first task!"


def motivational_message(
    today: date,
    progress: float,
    completed: int,
    total: int,
    streak: int = 0,
) -> MotivationalMessage:
    """
    Day-of-week + progress message for the weekly view.

    Monday, Friday and the weekend override the progress text.
    """
    weekday = today.weekday()
    greeting, action_call = _DAY_LINES[weekday]

    text = _progress_encouragement(progress, completed, total)
    if streak >= 7:
        text += f" Amazing {streak}-day streak!"
    elif streak >= 3:
        text += f" {streak}-day streak going strong!"
    elif streak > 0:
        text += f" {streak}-day streak!"

    if weekday in (5, 6):
        if progress >= 80:
            text = f"Weekend and winning! You've completed {progress:.0f}% of your weekly goals. Time to celebrate!"
        else:
            text = f"Weekend hustle! {completed} tasks done. Every successful entrepreneur works smart on weekends!"
    elif weekday == 0:
        if progress == 0:
            text = "Fresh week, fresh opportunities! Your marketing empire starts with today's first task!"
        else:
            text = f"Monday and already {progress:.0f}% done! You're ahead of the game!"
    elif weekday == 4:
        if progress >= 80:
            text = f"Friday and fantastic! {progress:.0f}% complete - what a week!"
        else:
            text = f"Friday finish line! {completed}/{total} tasks done. Let's close this week strong!"

    return MotivationalMessage(greeting=greeting, encouragement=text, action_call=action_call)


def streak_message(streak: int) -> str:
    if streak <= 0:
        return "Ready to start your streak?"
    if streak == 1:
        return "Great start! Day 1 of your streak!"
    if streak < 7:
        return f"{streak} days strong! Keep it going!"
    if streak < 30:
        return f"{streak}-day streak! You're on fire!"
    if streak < 100:
        return f"{streak} days! Absolutely incredible!"
    return f"{streak} days! You're a marketing legend!"
