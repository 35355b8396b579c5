"""Rapport source package.

Relationship-management engine that ranks contacts by derived value
and surfaces which ones need attention.

Layers:
    - core: Configuration, logging, exceptions
    - db: Database, models, boundary validation
    - engine: Scoring, heat, roll-ups, recalculation cascade
    - content: Generated content (attention brief)
"""

__version__ = "0.1.0"
