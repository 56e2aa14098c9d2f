"""
Assignment engine: eligibility, scoring and ranking of technicians.

Pure functions over a roster snapshot. Ranking is deterministic: equal
scores fall back to higher matching skill level, then lower current workload,
then roster order.
"""

from dataclasses import dataclass
from typing import Iterable
from uuid import UUID

from core.models.request import Priority
from core.models.technician import (
    AssignmentCandidate,
    AssignmentResult,
    AssignmentRule,
    AssignmentStrategy,
    CandidateFactors,
    TechnicianSeed,
)

# Skill factor when the request has no category; nobody can match or miss.
NO_CATEGORY_SKILL_MATCH = 0.5

# Scores are rounded so float noise cannot break ties.
_SCORE_DIGITS = 6


@dataclass(frozen=True)
class Weights:
    skill_match: float
    workload: float
    availability: float


STRATEGY_WEIGHTS = {
    AssignmentStrategy.SKILL_MATCH: Weights(skill_match=0.5, workload=0.3, availability=0.2),
    AssignmentStrategy.LEAST_LOADED: Weights(skill_match=0.2, workload=0.6, availability=0.2),
}


def ineligibility_reason(seed: TechnicianSeed, branch_id: UUID | None) -> str | None:
    """Why a technician cannot take the job, or None if they can."""
    if not seed.is_active:
        return "is inactive"
    if seed.current_workload >= seed.max_workload:
        return f"is at capacity ({seed.current_workload}/{seed.max_workload})"
    if branch_id is not None and seed.branch_id is not None and seed.branch_id != branch_id:
        return "works at a different branch"
    return None


def is_eligible(seed: TechnicianSeed, branch_id: UUID | None) -> bool:
    return ineligibility_reason(seed, branch_id) is None


def skill_match_factor(seed: TechnicianSeed, category: str | None) -> float:
    if category is None:
        return NO_CATEGORY_SKILL_MATCH
    skill = seed.skill_for(category)
    if skill is None:
        return 0.0
    return skill.skill_level / 5


def workload_factor(current: int, maximum: int) -> float:
    """1.0 for an idle technician, approaching 0 as they fill up."""
    if maximum <= 0:
        return 0.0
    return min(1.0, max(0.0, 1 - current / maximum))


def compute_factors(seed: TechnicianSeed, category: str | None) -> CandidateFactors:
    return CandidateFactors(
        skill_match=skill_match_factor(seed, category),
        workload=workload_factor(seed.current_workload, seed.max_workload),
        availability=seed.availability,
    )


def weighted_score(factors: CandidateFactors, strategy: AssignmentStrategy) -> float:
    weights = STRATEGY_WEIGHTS.get(strategy)
    if weights is None:
        raise ValueError(f"Strategy '{strategy.value}' has no weights")

    score = (
        factors.skill_match * weights.skill_match
        + factors.workload * weights.workload
        + factors.availability * weights.availability
    )
    return round(min(1.0, max(0.0, score)), _SCORE_DIGITS)


def _candidate(seed: TechnicianSeed, factors: CandidateFactors, score: float) -> AssignmentCandidate:
    return AssignmentCandidate(
        profile_id=seed.profile_id,
        name=seed.name,
        skills=seed.skills,
        current_workload=seed.current_workload,
        max_workload=seed.max_workload,
        score=score,
        factors=factors,
    )


def _round_robin(eligible: list[TechnicianSeed], category: str | None) -> list[AssignmentCandidate]:
    # Never-assigned first, then longest since last assignment; sort is stable.
    order = sorted(
        eligible,
        key=lambda s: (s.last_assigned_at is not None, s.last_assigned_at or 0),
    )
    total = len(order)
    return [
        _candidate(seed, compute_factors(seed, category), round((total - i) / total, _SCORE_DIGITS))
        for i, seed in enumerate(order)
    ]


def rank_candidates(
    roster: Iterable[TechnicianSeed],
    category: str | None,
    branch_id: UUID | None,
    strategy: AssignmentStrategy = AssignmentStrategy.SKILL_MATCH,
) -> list[AssignmentCandidate]:
    """Eligible technicians, best first. Ineligible ones are left out entirely."""
    eligible = [seed for seed in roster if is_eligible(seed, branch_id)]
    if not eligible:
        return []

    if strategy == AssignmentStrategy.ROUND_ROBIN:
        return _round_robin(eligible, category)

    scored = []
    for seed in eligible:
        factors = compute_factors(seed, category)
        skill = seed.skill_for(category)
        tie_break = (skill.skill_level if skill else 0, seed.current_workload)
        scored.append((_candidate(seed, factors, weighted_score(factors, strategy)), tie_break))

    scored.sort(key=lambda item: (-item[0].score, -item[1][0], item[1][1]))
    return [candidate for candidate, _ in scored]


def recommend(
    roster: Iterable[TechnicianSeed],
    category: str | None,
    branch_id: UUID | None,
    strategy: AssignmentStrategy = AssignmentStrategy.SKILL_MATCH,
) -> AssignmentResult:
    candidates = rank_candidates(roster, category, branch_id, strategy)
    return AssignmentResult(
        candidates=candidates,
        recommended_id=candidates[0].profile_id if candidates else None,
        strategy=strategy,
    )


def pinned_result(seed: TechnicianSeed) -> AssignmentResult:
    """Result for a manual rule that names one technician."""
    factors = CandidateFactors(skill_match=1.0, workload=1.0, availability=1.0)
    candidate = _candidate(seed, factors, 1.0)
    return AssignmentResult(
        candidates=[candidate],
        recommended_id=seed.profile_id,
        strategy=AssignmentStrategy.MANUAL,
    )


def rule_matches(rule: AssignmentRule, category: str | None, priority: Priority | None) -> bool:
    conditions = rule.conditions or {}
    wanted_category = conditions.get("category")
    if wanted_category and wanted_category != category:
        return False
    wanted_priority = conditions.get("priority")
    if wanted_priority and (priority is None or wanted_priority != priority.value):
        return False
    return True


def select_rule(
    rules: Iterable[AssignmentRule], category: str | None, priority: Priority | None
) -> AssignmentRule | None:
    """First active rule, by descending precedence, whose conditions match."""
    active = sorted((r for r in rules if r.is_active), key=lambda r: -r.priority)
    for rule in active:
        if rule_matches(rule, category, priority):
            return rule
    return None
