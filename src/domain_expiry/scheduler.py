"""
Scheduler module for the domain expiry notifier.

Provides a cron expression parser and an asyncio scheduler that fires a
callback at every matching minute.

Supported syntax (standard 5-field cron):
- minute (0-59), hour (0-23), day of month (1-31), month (1-12),
  day of week (0-7, where 0 and 7 are Sunday)
- ``*``, lists (``1,15``), ranges (``1-5``), steps (``*/10``, ``0-30/5``)
- month names (``jan``) and weekday names (``mon``)

A 6-field expression with a leading seconds field is accepted; the seconds
field is ignored.
"""

import asyncio
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import TYPE_CHECKING, Awaitable, Callable, Optional

if TYPE_CHECKING:
    from .audit_logger import AuditLogger


class CronParseError(Exception):
    """Raised when a cron expression cannot be parsed."""

    def __init__(self, message: str, expression: str) -> None:
        self.message = message
        self.expression = expression
        super().__init__(f"{message}: '{expression}'")


@dataclass
class CronField:
    """A parsed cron field: the set of allowed values and its bounds."""

    values: set[int]
    min_value: int
    max_value: int

    @property
    def is_wildcard(self) -> bool:
        return self.values == set(range(self.min_value, self.max_value + 1))

    def matches(self, value: int) -> bool:
        return value in self.values


@dataclass
class CronSchedule:
    """A parsed cron schedule."""

    minute: CronField
    hour: CronField
    day_of_month: CronField
    month: CronField
    day_of_week: CronField  # 0 = Sunday
    original_expression: str

    def _day_matches(self, dt: datetime) -> bool:
        cron_weekday = (dt.weekday() + 1) % 7
        if self.day_of_month.is_wildcard or self.day_of_week.is_wildcard:
            return self.day_of_month.matches(dt.day) and self.day_of_week.matches(cron_weekday)
        # Both restricted: either may match
        return self.day_of_month.matches(dt.day) or self.day_of_week.matches(cron_weekday)

    def matches(self, dt: datetime) -> bool:
        """Check if a datetime (minute precision) matches this schedule."""
        return (
            self.minute.matches(dt.minute)
            and self.hour.matches(dt.hour)
            and self.month.matches(dt.month)
            and self._day_matches(dt)
        )

    def next_after(self, dt: datetime) -> datetime:
        """
        Return the first matching minute strictly after ``dt``.

        Raises:
            CronParseError: If no match exists within five years
                (e.g. ``0 0 31 2 *``)
        """
        candidate = dt.replace(second=0, microsecond=0) + timedelta(minutes=1)
        limit = candidate + timedelta(days=366 * 5)

        while candidate < limit:
            if not self.month.matches(candidate.month):
                # Jump to the first day of the next month
                year = candidate.year + (candidate.month // 12)
                month = candidate.month % 12 + 1
                candidate = candidate.replace(year=year, month=month, day=1, hour=0, minute=0)
                continue
            if not self._day_matches(candidate):
                candidate = candidate.replace(hour=0, minute=0) + timedelta(days=1)
                continue
            if not self.hour.matches(candidate.hour):
                candidate = candidate.replace(minute=0) + timedelta(hours=1)
                continue
            if not self.minute.matches(candidate.minute):
                candidate += timedelta(minutes=1)
                continue
            return candidate

        raise CronParseError("Schedule never fires", self.original_expression)


class CronParser:
    """Parser for cron expressions."""

    # (min, max, name)
    FIELD_DEFS = [
        (0, 59, "minute"),
        (0, 23, "hour"),
        (1, 31, "day_of_month"),
        (1, 12, "month"),
        (0, 7, "day_of_week"),
    ]

    MONTH_NAMES = {
        "jan": 1, "feb": 2, "mar": 3, "apr": 4,
        "may": 5, "jun": 6, "jul": 7, "aug": 8,
        "sep": 9, "oct": 10, "nov": 11, "dec": 12,
    }

    DOW_NAMES = {
        "sun": 0, "mon": 1, "tue": 2, "wed": 3,
        "thu": 4, "fri": 5, "sat": 6,
    }

    def parse(self, expression: str) -> CronSchedule:
        """
        Parse a cron expression into a CronSchedule.

        Raises:
            CronParseError: If the expression is invalid
        """
        expression = (expression or "").strip()
        if not expression:
            raise CronParseError("Empty cron expression", expression)

        fields = expression.split()
        if len(fields) == 6:
            fields = fields[1:]
        elif len(fields) != 5:
            raise CronParseError(
                f"Invalid number of fields (expected 5 or 6, got {len(fields)})",
                expression,
            )

        parsed_fields = []
        for field_str, (min_val, max_val, name) in zip(fields, self.FIELD_DEFS):
            try:
                parsed_fields.append(self._parse_field(field_str, min_val, max_val, name))
            except ValueError as e:
                raise CronParseError(f"Invalid {name} field: {e}", expression) from e

        day_of_week = parsed_fields[4]
        # 7 is an alias for Sunday
        values = {0 if v == 7 else v for v in day_of_week.values}
        day_of_week = CronField(values=values, min_value=0, max_value=6)

        return CronSchedule(
            minute=parsed_fields[0],
            hour=parsed_fields[1],
            day_of_month=parsed_fields[2],
            month=parsed_fields[3],
            day_of_week=day_of_week,
            original_expression=expression,
        )

    def _substitute_names(self, field_str: str, field_name: str) -> str:
        names = {}
        if field_name == "month":
            names = self.MONTH_NAMES
        elif field_name == "day_of_week":
            names = self.DOW_NAMES
        result = field_str.lower()
        for name, num in names.items():
            result = result.replace(name, str(num))
        return result

    def _parse_field(
        self, field_str: str, min_val: int, max_val: int, field_name: str
    ) -> CronField:
        """Parse a single cron field."""
        values: set[int] = set()
        field_str = self._substitute_names(field_str, field_name)

        for part in field_str.split(","):
            part = part.strip()
            if not part:
                raise ValueError("Empty list element")

            step = 1
            if "/" in part:
                part, step_str = part.split("/", 1)
                try:
                    step = int(step_str)
                except ValueError as e:
                    raise ValueError(f"Invalid step value: {step_str}") from e
                if step < 1:
                    raise ValueError(f"Step must be >= 1, got {step}")

            if part == "*":
                start, end = min_val, max_val
            elif "-" in part:
                start_str, end_str = part.split("-", 1)
                try:
                    start, end = int(start_str), int(end_str)
                except ValueError as e:
                    raise ValueError(f"Invalid range: {part}") from e
                if start > end:
                    raise ValueError(f"Range start {start} > end {end}")
            else:
                try:
                    start = int(part)
                except ValueError as e:
                    raise ValueError(f"Invalid value: {part}") from e
                end = max_val if step > 1 else start

            for bound in (start, end):
                if bound < min_val or bound > max_val:
                    raise ValueError(f"Value {bound} out of bounds [{min_val}-{max_val}]")

            values.update(range(start, end + 1, step))

        return CronField(values=values, min_value=min_val, max_value=max_val)


@dataclass
class ScheduledTask:
    """A callback bound to a cron schedule."""

    name: str
    schedule: CronSchedule
    callback: Callable[[], Awaitable[None]]
    last_run: Optional[datetime] = None
    runs: int = 0


class Scheduler:
    """
    Cron scheduler running callbacks on the asyncio event loop.

    Each firing starts the callback as a separate task, so a slow run does
    not delay the next firing and runs may overlap. Callback exceptions are
    logged and do not stop the scheduler.
    """

    def __init__(
        self,
        logger: Optional["AuditLogger"] = None,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self._parser = CronParser()
        self._tasks: dict[str, ScheduledTask] = {}
        self._running_jobs: set[asyncio.Task] = set()
        self._running = False
        self._logger = logger
        self._clock = clock

    def schedule(
        self,
        name: str,
        cron_expression: str,
        callback: Callable[[], Awaitable[None]],
    ) -> CronSchedule:
        """
        Schedule a callback with a cron expression.

        Raises:
            CronParseError: If the cron expression is invalid
            ValueError: If a task with the same name already exists
        """
        if name in self._tasks:
            raise ValueError(f"Task '{name}' already exists")

        schedule = self._parser.parse(cron_expression)
        self._tasks[name] = ScheduledTask(name=name, schedule=schedule, callback=callback)
        return schedule

    def get_task(self, name: str) -> Optional[ScheduledTask]:
        return self._tasks.get(name)

    def list_tasks(self) -> list[ScheduledTask]:
        return list(self._tasks.values())

    def next_fire_time(self, now: Optional[datetime] = None) -> Optional[datetime]:
        """Earliest upcoming firing across all tasks."""
        if not self._tasks:
            return None
        now = now or self._clock()
        return min(task.schedule.next_after(now) for task in self._tasks.values())

    def fire_due(self, at: datetime) -> list[asyncio.Task]:
        """Start every task whose schedule matches ``at`` (minute precision)."""
        at_minute = at.replace(second=0, microsecond=0)
        started = []
        for task in self._tasks.values():
            if not task.schedule.matches(at_minute):
                continue
            if task.last_run is not None and task.last_run >= at_minute:
                continue
            task.last_run = at_minute
            task.runs += 1
            job = asyncio.create_task(self._run_task(task))
            self._running_jobs.add(job)
            job.add_done_callback(self._running_jobs.discard)
            started.append(job)
        return started

    async def _run_task(self, task: ScheduledTask) -> None:
        try:
            await task.callback()
        except Exception as e:
            if self._logger:
                self._logger.log_error(
                    "Scheduler",
                    f"Scheduled task '{task.name}' failed",
                    error=e,
                )

    async def run(self, stop_event: Optional[asyncio.Event] = None) -> None:
        """
        Run until ``stop`` is called or ``stop_event`` is set.

        Sleeps until the next matching minute, then fires due tasks.
        """
        stop_event = stop_event or asyncio.Event()
        self._running = True

        try:
            while self._running and not stop_event.is_set():
                next_fire = self.next_fire_time()
                if next_fire is None:
                    break

                delay = max(0.0, (next_fire - self._clock()).total_seconds())
                if self._logger:
                    self._logger.debug(
                        "Scheduler",
                        f"Next run at {next_fire.isoformat()}",
                        {"sleep_seconds": round(delay, 1)},
                    )
                try:
                    await asyncio.wait_for(stop_event.wait(), timeout=delay)
                    break
                except asyncio.TimeoutError:
                    pass

                if self._running:
                    self.fire_due(next_fire)
        finally:
            self._running = False
            if self._running_jobs:
                await asyncio.gather(*self._running_jobs, return_exceptions=True)

    def stop(self) -> None:
        self._running = False

    def is_running(self) -> bool:
        return self._running
