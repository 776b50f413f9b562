"""
TuneMood - Genre Classification and Mood Correlation

Classifies tracks and artists into canonical genres by fusing several
rate-limited external signal sources, caches the results, and correlates
listening history with journaled moods.
"""

__version__ = "0.1.0"
__author__ = "TuneMood Team"
