"""
Memo - Memory-matching card game engine

A deterministic, rules-driven engine for a 1-4 player pairs game.
The engine provides:
- Themed, uniformly shuffled decks
- The flip/match state machine and turn rotation
- Scoring, play timing and solo best times
- Persistence of names, settings and records
- A REST API and a terminal front end
"""

__version__ = "0.1.0"
