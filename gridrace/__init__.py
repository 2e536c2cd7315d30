"""
Gridrace - Simultaneous-programming robot race engine

An authoritative server for a board game where robots race across a
hazard-filled factory floor. Players program five registers with cards,
then every register resolves at once in priority order. Provides:
- Board model and card decks
- Deterministic round resolution
- AI players at three difficulty levels
- Concurrent multiplayer sessions over WebSocket
"""

__version__ = "0.1.0"
