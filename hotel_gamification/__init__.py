"""Gamification scoring engine for the hotel operations back office"""

__version__ = "0.1.0"
