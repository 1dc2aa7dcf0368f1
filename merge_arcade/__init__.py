"""
merge_arcade Package
====================

Simulation layer for a launch-and-merge arcade game. Items are fired from a
launcher at the bottom of the board, drift toward the top boundary, and
merge with items of the same tier into the next tier up.

The package controls:

- Tier table and its invariants
- Merge rules and scoring
- Launcher aim, power and fire cooldown
- Overflow (danger) detection and game-over

All tunable parameters are in game_config.yaml.
"""
