"""
GameNexus Services Module

Provides services built on the source adapters:
- GameService: unified game pages plus popular and new game listings
"""

from .game_service import GameDetails, GameService

__all__ = ['GameDetails', 'GameService']
