"""
StudyPlanner — Entry Point.

`python main.py <user_id>` regenerates the user's study plan from the
subjects and study slots stored in the database and prints the sessions.
"""

import asyncio
import logging
import sys

from study_planner.config import settings

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)

from study_planner.adapters.calendar_factory import create_calendar_adapter
from study_planner.core.plan_service import PlanResponse, PlanService
from study_planner.data.db import PlannerDB


async def plan_week(user_id: str) -> int:
    db = PlannerDB()
    subjects = db.list_subject_preferences(user_id)
    slots = db.list_study_slots(user_id)

    service = PlanService(create_calendar_adapter())
    response = await service.generate_plan(
        user_id, subjects, slots, use_default_slots=True,
    )
    print(response.message)
    if not isinstance(response, PlanResponse):
        return 1

    for session in response.sessions:
        print(f"  {session.formatted_start}-{session.formatted_end}  {session.subject}")
    if response.warning:
        print(f"Note: {response.warning}")
    return 0


def main() -> None:
    if len(sys.argv) != 2:
        print("usage: python main.py <user_id>", file=sys.stderr)
        sys.exit(2)
    sys.exit(asyncio.run(plan_week(sys.argv[1])))


if __name__ == "__main__":
    main()
