from minesweeper_arena.cli import main

main()
