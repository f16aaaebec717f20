"""Tee time calculations for schedule configs"""

from dataclasses import dataclass
from typing import Optional

from ...shared.dates import format_minutes, to_minutes
from .exceptions import InvalidConfiguration


@dataclass(frozen=True)
class BlockSpec:
    """A time block to be created, before it has a row"""

    start_time: str
    max_members: int
    sort_order: int
    display_name: Optional[str] = None


def _minutes(value: str, field_name: str) -> int:
    try:
        return to_minutes(value)
    except ValueError as e:
        raise InvalidConfiguration(f"Invalid {field_name} '{value}' - expected HH:MM") from e


def generate_time_blocks(start_time: str, end_time: str, interval: int) -> list[str]:
    """
    Inclusive sequence of start times from start_time to end_time.

    generate_time_blocks("08:00", "09:00", 15)
        -> ["08:00", "08:15", "08:30", "08:45", "09:00"]

    end_time is included only when it lands on the interval.

    Raises:
        InvalidConfiguration: malformed HH:MM, non-positive interval, or start after end
    """
    start = _minutes(start_time, "start time")
    end = _minutes(end_time, "end time")

    if not isinstance(interval, int) or isinstance(interval, bool) or interval <= 0:
        raise InvalidConfiguration(f"Invalid interval {interval!r} - must be a positive number of minutes")
    if start > end:
        raise InvalidConfiguration(f"Start time {start_time} is after end time {end_time}")

    return [format_minutes(minute) for minute in range(start, end + 1, interval)]


def regular_block_specs(
    start_time: str, end_time: str, interval: int, max_members: int
) -> list[BlockSpec]:
    return [
        BlockSpec(start_time=time, max_members=max_members, sort_order=index)
        for index, time in enumerate(generate_time_blocks(start_time, end_time, interval))
    ]


def template_block_specs(template_blocks) -> list[BlockSpec]:
    """Block specs from ordered template blocks, each keeping its own capacity and label"""
    specs = []
    for index, block in enumerate(template_blocks):
        _minutes(block.start_time, "template start time")
        if block.max_players is None or block.max_players <= 0:
            raise InvalidConfiguration(
                f"Template block at {block.start_time} must allow at least one player"
            )
        specs.append(
            BlockSpec(
                start_time=block.start_time,
                max_members=block.max_players,
                sort_order=index,
                display_name=block.display_name,
            )
        )
    return specs
