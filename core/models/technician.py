"""Technician roster and assignment models."""

from datetime import datetime
from enum import Enum
from uuid import UUID

from pydantic import BaseModel, Field


class AssignmentStrategy(str, Enum):
    """
    Closed set of ranking schemes.

    SKILL_MATCH and LEAST_LOADED are fixed weight triples; ROUND_ROBIN rotates
    by last assignment; MANUAL comes only from an assignment rule that pins a
    technician.
    """

    SKILL_MATCH = "skill_match"
    LEAST_LOADED = "least_loaded"
    ROUND_ROBIN = "round_robin"
    MANUAL = "manual"


STRATEGY_LABELS = {
    AssignmentStrategy.ROUND_ROBIN: "วนรอบ",
    AssignmentStrategy.LEAST_LOADED: "งานน้อยที่สุด",
    AssignmentStrategy.SKILL_MATCH: "ทักษะตรงกัน",
    AssignmentStrategy.MANUAL: "กำหนดเอง",
}

SKILL_LEVEL_LABELS = {
    1: "เริ่มต้น",
    2: "พื้นฐาน",
    3: "ปานกลาง",
    4: "ชำนาญ",
    5: "เชี่ยวชาญ",
}


class TechnicianSkill(BaseModel):
    profile_id: UUID
    category: str
    skill_level: int = Field(1, ge=1, le=5)

    model_config = {"from_attributes": True}


class TechnicianSeed(BaseModel):
    """Roster entry handed to the assignment engine."""

    profile_id: UUID
    name: str
    branch_id: UUID | None = None
    is_active: bool = True
    current_workload: int = Field(0, ge=0)
    max_workload: int = Field(10, ge=0)
    skills: list[TechnicianSkill] = Field(default_factory=list)
    availability: float = Field(1.0, ge=0.0, le=1.0)
    last_assigned_at: datetime | None = None

    def skill_for(self, category: str | None) -> TechnicianSkill | None:
        if category is None:
            return None
        for skill in self.skills:
            if skill.category == category:
                return skill
        return None


class CandidateFactors(BaseModel):
    skill_match: float = Field(..., ge=0.0, le=1.0)
    workload: float = Field(..., ge=0.0, le=1.0)
    availability: float = Field(..., ge=0.0, le=1.0)


class AssignmentCandidate(BaseModel):
    """Scored technician for one request. Computed per query, never stored."""

    profile_id: UUID
    name: str
    skills: list[TechnicianSkill]
    current_workload: int
    max_workload: int
    score: float = Field(..., ge=0.0, le=1.0)
    factors: CandidateFactors


class AssignmentResult(BaseModel):
    candidates: list[AssignmentCandidate]
    recommended_id: UUID | None
    strategy: AssignmentStrategy


class AssignmentOutcome(BaseModel):
    """Result of an assign action. error is human-readable when success is False."""

    success: bool
    error: str | None = None
    code: str | None = None
    request_id: UUID | None = None
    profile_id: UUID | None = None


class AssignmentRule(BaseModel):
    """Admin rule choosing a strategy (or a fixed technician) for matching requests."""

    id: UUID
    name: str
    conditions: dict = Field(default_factory=dict)
    assignment_strategy: AssignmentStrategy | None = None
    target_technician_id: UUID | None = None
    priority: int = 0
    is_active: bool = True

    model_config = {"from_attributes": True}
