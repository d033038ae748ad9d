"""
Game implementations for Minesweeper Arena.

Each game is a self-contained submodule under games/<game_type>/ providing:
- game.py: Core game logic implementing core.Game
- state_adapter.py: State-to-prompt conversion (core.StateAdapter)
- action_parser.py: Tool call parsing (core.ActionParser)
- config.py: Game-specific configuration (Pydantic model)
- create_game(): Factory function for one agent's run
"""
