"""
Technician roster lookups for the assignment engine.

Builds TechnicianSeed snapshots: profile, skills, and the availability signal
for a given day (1.0 unless a technician_availability row for that day says
otherwise).
"""

from datetime import date
from uuid import UUID

from clients.postgres_client import PostgresClient
from core.config import MaintenanceConfig
from core.models import TechnicianSeed, TechnicianSkill

_PROFILE_COLUMNS = """
    id, name, branch_id, is_active, last_assigned_at,
    COALESCE(current_workload, 0) AS current_workload,
    COALESCE(NULLIF(max_workload, 0), %s) AS max_workload
"""


class RosterService:
    """Read-only access to technicians."""

    def __init__(self, postgres: PostgresClient, config: MaintenanceConfig):
        self.postgres = postgres
        self.config = config

    def list_technicians(self, branch_id: UUID | None, on_date: date) -> list[TechnicianSeed]:
        """
        Technicians who could serve a branch, in roster (profile id) order.

        Only the branch restriction is applied here; capacity and activity are
        judged by the assignment engine so the result reflects one snapshot.
        """
        rows = self.postgres.execute(
            f"""
            SELECT {_PROFILE_COLUMNS}
            FROM profiles
            WHERE role = 'technician'
              AND (%s::uuid IS NULL OR branch_id IS NULL OR branch_id = %s::uuid)
            ORDER BY id
            """,
            (self.config.default_max_workload, branch_id, branch_id)
        )
        return self._seeds(rows, on_date)

    def get_technician(self, profile_id: UUID, on_date: date) -> TechnicianSeed | None:
        rows = self.postgres.execute(
            f"""
            SELECT {_PROFILE_COLUMNS}
            FROM profiles
            WHERE id = %s AND role = 'technician'
            """,
            (self.config.default_max_workload, profile_id)
        )
        seeds = self._seeds(rows, on_date)
        return seeds[0] if seeds else None

    def _seeds(self, rows: list[dict], on_date: date) -> list[TechnicianSeed]:
        if not rows:
            return []

        profile_ids = [row["id"] for row in rows]

        skills: dict[str, list[TechnicianSkill]] = {}
        for row in self.postgres.execute(
            """
            SELECT profile_id, category, COALESCE(skill_level, 1) AS skill_level
            FROM technician_skills
            WHERE profile_id = ANY(%s::uuid[])
            ORDER BY profile_id, category
            """,
            (profile_ids,)
        ):
            skills.setdefault(str(row["profile_id"]), []).append(TechnicianSkill.model_validate(row))

        availability = {
            str(row["profile_id"]): 1.0 if row["is_available"] else 0.0
            for row in self.postgres.execute(
                """
                SELECT profile_id, COALESCE(is_available, true) AS is_available
                FROM technician_availability
                WHERE date = %s AND profile_id = ANY(%s::uuid[])
                """,
                (on_date, profile_ids)
            )
        }

        return [
            TechnicianSeed(
                profile_id=row["id"],
                name=row["name"],
                branch_id=row["branch_id"],
                is_active=row["is_active"] if row["is_active"] is not None else True,
                current_workload=row["current_workload"],
                max_workload=row["max_workload"],
                skills=skills.get(str(row["id"]), []),
                availability=availability.get(str(row["id"]), 1.0),
                last_assigned_at=row["last_assigned_at"],
            )
            for row in rows
        ]
