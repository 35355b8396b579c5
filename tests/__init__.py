"""Rapport Test Suite.

Test organization mirrors rapport/ structure:
    tests/
    ├── conftest.py          # Shared fixtures
    ├── test_cli.py          # Command line tests
    ├── test_core/           # Config, logging, exceptions
    ├── test_db/             # Models and database tests
    ├── test_engine/         # Scoring, heat, roll-ups, recalculation, export
    └── test_content/        # Attention brief tests
"""
