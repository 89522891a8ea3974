"""Plan proposers for the recovery agent: the deterministic algorithm or an LLM."""
from __future__ import annotations

import json
import logging
import os
import re
from typing import Any, Dict, List, Protocol, Sequence
from uuid import UUID

import openai
from pydantic import BaseModel, Field, ValidationError

from app.core.config import settings
from app.scheduling.models import CalendarDay, DayAssignment, SchedulableTask
from app.scheduling.recovery import plan_recovery

logger = logging.getLogger(__name__)


class PlanProposerError(Exception):
    """Base class for recoverable proposer failures."""


class PlanParseError(PlanProposerError):
    """The proposer answered, but not with a usable plan."""


class ProposerUnavailableError(PlanProposerError):
    """The proposer could not be reached or errored before answering."""


class PlanProposer(Protocol):
    name: str

    def propose(
        self,
        overdue: Sequence[SchedulableTask],
        calendar: Sequence[CalendarDay],
        *,
        max_daily_minutes: int,
    ) -> List[DayAssignment]:
        ...


class DeterministicPlanProposer:
    """Runs the recovery algorithm in-process."""

    name = "deterministic"

    def propose(
        self,
        overdue: Sequence[SchedulableTask],
        calendar: Sequence[CalendarDay],
        *,
        max_daily_minutes: int,
    ) -> List[DayAssignment]:
        return plan_recovery(overdue, calendar, max_daily_minutes=max_daily_minutes)


class ProposedMove(BaseModel):
    task_id: UUID = Field(alias="taskId")
    new_date_offset: int = Field(alias="newDateOffset")


class LLMPlanProposer:
    """Asks a chat model to run the recovery rules and return JSON moves."""

    name = "llm"

    def __init__(
        self,
        api_key: str,
        *,
        model: str | None = None,
        base_url: str | None = None,
        timeout: float | None = None,
    ) -> None:
        self.api_key = api_key
        self.model = model or settings.llm_model
        self.base_url = base_url if base_url is not None else settings.llm_base_url
        self.timeout = timeout or settings.llm_timeout_seconds

    def propose(
        self,
        overdue: Sequence[SchedulableTask],
        calendar: Sequence[CalendarDay],
        *,
        max_daily_minutes: int,
    ) -> List[DayAssignment]:
        prompt = build_recovery_prompt(overdue, calendar, max_daily_minutes)
        try:
            client = openai.OpenAI(api_key=self.api_key, base_url=self.base_url, timeout=self.timeout)
            completion = client.chat.completions.create(
                model=self.model,
                messages=[{"role": "user", "content": prompt}],
                temperature=0.1,
                max_tokens=3000,
            )
            content = completion.choices[0].message.content or ""
        except Exception as exc:
            raise ProposerUnavailableError(str(exc)) from exc

        logger.debug("Recovery proposer output: %s", content[:500])
        payload = parse_plan_content(content)
        return validate_plan(payload, overdue, calendar)


def get_plan_proposer() -> PlanProposer:
    """Pick the configured proposer; the LLM needs OPENAI_API_KEY or we stay deterministic."""
    if settings.recovery_proposer == "llm":
        api_key = os.environ.get("OPENAI_API_KEY")
        if api_key:
            return LLMPlanProposer(api_key)
        logger.warning("RECOVERY_PROPOSER=llm but OPENAI_API_KEY is missing; using deterministic planner.")
    return DeterministicPlanProposer()


def build_recovery_prompt(
    overdue: Sequence[SchedulableTask],
    calendar: Sequence[CalendarDay],
    max_daily_minutes: int,
) -> str:
    overdue_json = json.dumps(
        [
            {
                "taskId": str(task.id),
                "goalId": str(task.goal_id),
                "priority": task.priority,
                "estimatedTime": task.minutes,
            }
            for task in overdue
        ]
    )
    calendar_json = json.dumps(
        [
            {
                "dayOffset": day.day_offset,
                "date": day.date.date().isoformat(),
                "loadMinutes": day.load_minutes,
                "tasks": [
                    {
                        "taskId": str(entry.task_id),
                        "goalId": str(entry.goal_id),
                        "estimatedTime": entry.estimated_time,
                    }
                    for entry in day.tasks
                ],
            }
            for day in calendar
        ]
    )
    return (
        "You are a strict scheduling gatekeeper.\n"
        f"OBJECTIVE: schedule overdue tasks under the full bucket rule. MAX_DAILY_MINUTES = {max_daily_minutes}.\n"
        f"Overdue tasks: {overdue_json}\n"
        f"Calendar: {calendar_json}\n"
        "For EACH overdue task, in order, updating loadMinutes after every move:\n"
        "1. If Calendar[0].loadMinutes + estimatedTime <= MAX_DAILY_MINUTES, schedule it on day 0.\n"
        "2. Otherwise, if Calendar[0].tasks holds a task with the same goalId, put the overdue task on day 0 "
        "and move that existing task to the first day >= 1 with room. Output both moves.\n"
        "3. Otherwise schedule it on the first day >= 1 where loadMinutes + estimatedTime <= MAX_DAILY_MINUTES.\n"
        "Return ONLY a JSON array of every move: "
        '[{"taskId": "...", "newDateOffset": <integer day offset>}]'
    )


_FENCE = re.compile(r"```(?:json)?", re.IGNORECASE)
_ARRAY = re.compile(r"\[[\s\S]*\]")


def parse_plan_content(content: str) -> List[Dict[str, Any]]:
    """Parse the model output, tolerating markdown fences and chatter around the array."""
    cleaned = _FENCE.sub("", content or "").strip()
    try:
        payload = json.loads(cleaned)
    except ValueError:
        match = _ARRAY.search(cleaned)
        if not match:
            raise PlanParseError(f"Could not parse JSON from content: {cleaned[:100]}")
        try:
            payload = json.loads(match.group(0))
        except ValueError as exc:
            raise PlanParseError(f"Could not parse JSON from content: {cleaned[:100]}") from exc

    if isinstance(payload, dict):
        # Some models wrap the array, e.g. {"updates": [...]}
        payload = next((value for value in payload.values() if isinstance(value, list)), None)
    if not isinstance(payload, list):
        raise PlanParseError("Recovery plan must be a JSON array")
    return payload


def validate_plan(
    payload: List[Dict[str, Any]],
    overdue: Sequence[SchedulableTask],
    calendar: Sequence[CalendarDay],
) -> List[DayAssignment]:
    """Reject moves for unknown tasks or days and require every overdue task to be placed."""
    known_ids = {task.id for task in overdue}
    for day in calendar:
        known_ids.update(entry.task_id for entry in day.tasks)
    window = len(calendar)

    assignments: Dict[UUID, DayAssignment] = {}
    for item in payload:
        try:
            move = ProposedMove.model_validate(item)
        except ValidationError as exc:
            raise PlanParseError(f"Malformed move {item!r}") from exc
        if move.task_id not in known_ids:
            raise PlanParseError(f"Move references unknown task {move.task_id}")
        if not 0 <= move.new_date_offset < window:
            raise PlanParseError(f"Move for {move.task_id} is outside the {window}-day window")
        # Last move wins when the model repeats a task
        assignments[move.task_id] = DayAssignment(task_id=move.task_id, day_offset=move.new_date_offset)

    unplaced = [task.id for task in overdue if task.id not in assignments]
    if unplaced:
        raise PlanParseError(f"{len(unplaced)} overdue tasks were left out of the plan")
    return list(assignments.values())
