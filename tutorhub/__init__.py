"""TutorHub gamification engine: XP, levels, daily streaks, badges and leaderboard"""

__version__ = "1.0.0"
