"""
ChronoFlux - LLM-driven turn resolution for alternate-history strategy games
"""

__version__ = "0.1.0"
