"""
Abstract Game interface for the arena.

Games are single-player puzzles that several agents play independently on
identical seeded layouts, so results can be compared side by side.
"""

from abc import ABC, abstractmethod
from typing import Dict, Any, List, Optional, Tuple


class Game(ABC):
    """
    Abstract base class for arena games.

    Key concepts:
    - **Seed**: Identical seeds give every agent an identical hidden layout
    - **State**: The public state is everything the agent may see
    - **Actions**: Structured dicts with game-specific fields
    - **Outcome**: "playing" until the game reaches a terminal outcome

    Example implementation:
        class MyGame(Game):
            def reset(self, seed=None):
                self.layout = build_layout(seed)
                self.outcome = "playing"

            def is_over(self) -> bool:
                return self.outcome != "playing"
    """

    @property
    @abstractmethod
    def game_type(self) -> str:
        """
        Return the game type identifier.

        Returns:
            String identifier for this game type (e.g., "minesweeper")
        """
        pass

    @abstractmethod
    def reset(self, seed: Optional[int] = None) -> None:
        """
        Reset the game to its initial state.

        Args:
            seed: Optional random seed for reproducible game setup
        """
        pass

    @abstractmethod
    def get_public_state(self) -> Dict[str, Any]:
        """
        Get the state visible to the agent.

        Returns:
            Dict with game-specific public state fields. Must never leak
            hidden information.
        """
        pass

    @abstractmethod
    def get_available_actions(self) -> List[Dict[str, Any]]:
        """
        Get all currently legal actions.

        Returns:
            List of action dicts, each shaped like the input to step()
        """
        pass

    @abstractmethod
    def step(self, action: Dict[str, Any]) -> Tuple[Dict[str, Any], bool]:
        """
        Execute an action and advance the game state.

        Args:
            action: Action dict

        Returns:
            Tuple of (result_dict, game_over)

        Raises:
            ValueError: If the action is not legal in the current state
        """
        pass

    @abstractmethod
    def is_over(self) -> bool:
        """True once the game has a terminal outcome."""
        pass

    @abstractmethod
    def get_outcome(self) -> str:
        """
        Get the current outcome.

        Returns:
            "playing" while in progress, otherwise a game-specific
            terminal outcome (e.g., "win", "loss")
        """
        pass

    @abstractmethod
    def get_stats(self) -> Dict[str, Any]:
        """
        Get run statistics used for scoring.

        Returns:
            Dict of game-specific counters (moves, progress, penalties)
        """
        pass

    def serialize(self) -> Dict[str, Any]:
        """
        Serialize the game for storage/replay.

        Default implementation returns the public state and stats.
        """
        return {
            "game_type": self.game_type,
            "public_state": self.get_public_state(),
            "stats": self.get_stats(),
        }
