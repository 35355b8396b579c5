"""Forward migration of contribution_details between generations.

contribution_details has had three shapes:

    legacy_9   {financial, network, trust}   unweighted sum, 9-point classes
    triad_15   {financial, network, trust}   weighted, 15-point classes
    pentad_15  five criteria                 weighted, 15-point classes (current)

Older records are normalized once, before the pipeline runs, so the
scorers only ever see the current shape. Ratings carry over key by key;
criteria the old shape lacked start at 0; keys the current shape does
not know are dropped.
"""

from dataclasses import dataclass, field
from typing import Mapping, Optional

from rapport.core.logging import get_logger
from rapport.db.models import (
    CONTRIBUTION_CRITERIA,
    CURRENT_GENERATION,
    DetailsGeneration,
    ScoreClass,
)
from rapport.engine.rules import DEFAULT_RULES, ScoringRules
from rapport.engine.scoring import score_contribution
from rapport.engine.thresholds import resolve_class

logger = get_logger(__name__)


@dataclass
class MigrationResult:
    """Normalized details plus what the record looked like before.

    Attributes:
        details: Current-generation contribution details
        source: Generation the details were stored in
        previous_class: Class the details had under their own generation's rule
        dropped: Keys removed because the current shape does not know them
    """

    details: dict[str, int]
    source: DetailsGeneration
    previous_class: ScoreClass
    dropped: list[str] = field(default_factory=list)

    @property
    def migrated(self) -> bool:
        return self.source is not CURRENT_GENERATION


def legacy_class(
    details: Optional[Mapping[str, int]],
    generation: DetailsGeneration,
    rules: ScoringRules = DEFAULT_RULES,
) -> ScoreClass:
    """Class a record had under its own generation's rule.

    legacy_9 summed its three ratings on a 9-point scale; the 15-point
    generations used the weighted contribution score.
    """
    if generation is DetailsGeneration.LEGACY_9:
        raw = sum((details or {}).get(key) or 0 for key in generation.criteria)
        return resolve_class(raw, generation.scale_ceiling)
    return score_contribution(details, rules).score_class


def migrate_contribution_details(
    details: Optional[Mapping[str, int]],
    generation: DetailsGeneration = CURRENT_GENERATION,
    rules: ScoringRules = DEFAULT_RULES,
) -> MigrationResult:
    """Map contribution details of any generation to the current shape.

    Args:
        details: Persisted contribution details
        generation: Generation the details were stored in
        rules: Scoring constants

    Returns:
        MigrationResult; details is a new dict
    """
    source = DetailsGeneration(generation)
    incoming = dict(details or {})

    normalized = {criterion: 0 for criterion in CONTRIBUTION_CRITERIA}
    dropped: list[str] = []
    for key, value in incoming.items():
        if key in normalized:
            normalized[key] = value
        else:
            dropped.append(key)

    result = MigrationResult(
        details=normalized,
        source=source,
        previous_class=legacy_class(incoming, source, rules),
        dropped=sorted(dropped),
    )

    if result.migrated or dropped:
        logger.debug(
            "Contribution details normalized",
            extra={
                "context": {
                    "from": source.value,
                    "to": CURRENT_GENERATION.value,
                    "dropped": result.dropped,
                }
            },
        )
    return result
