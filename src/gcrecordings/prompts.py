"""
Interactive prompts for region, date range, queue and final audio format
"""

from __future__ import annotations

import re
from collections.abc import Mapping, Sequence
from datetime import datetime
from typing import Any

import rich_click as click

from gcrecordings.models import FINAL_FORMATS
from gcrecordings.output import OutputFormatter

DATE_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")

FORMAT_LABELS = {
    "OGG": "OGG (default, fastest)",
    "WAV": "WAV (converted, uncompressed)",
    "MP3": "MP3 (converted, compressed)",
}


def parse_date(value: str) -> str:
    """
    Validate a YYYY-MM-DD date string

    Raises:
        click.BadParameter: If the format or the calendar date is invalid
    """
    value = value.strip()
    if not DATE_PATTERN.match(value):
        raise click.BadParameter(f"Date must be YYYY-MM-DD, got: {value}")
    try:
        datetime.strptime(value, "%Y-%m-%d")
    except ValueError as e:
        raise click.BadParameter(f"Invalid date: {e}")
    return value


def validate_date_option(
    ctx: click.Context, param: click.Parameter, value: str | None
) -> str | None:
    if value is None:
        return None
    return parse_date(value)


def check_date_order(start_date: str, end_date: str) -> None:
    if start_date > end_date:
        raise click.BadParameter(
            f"Start date {start_date} must be before or equal to end date {end_date}"
        )


def _select_index(message: str, count: int) -> int:
    """Prompt for a 1-based number within [1, count]; returns the 0-based index"""
    choice = click.prompt(message, type=click.IntRange(1, count))
    return int(choice) - 1


def select_region(regions: Mapping[str, str], formatter: OutputFormatter) -> str:
    formatter.output_regions(regions)
    domains = list(regions)
    region = domains[_select_index("Choose the region number", len(domains))]
    formatter.output_success(f"Region selected: {region}")
    return region


def select_date_range() -> tuple[str, str]:
    while True:
        start_date = click.prompt("Start date (YYYY-MM-DD)", value_proc=parse_date)
        end_date = click.prompt("End date (YYYY-MM-DD)", value_proc=parse_date)
        try:
            check_date_order(start_date, end_date)
        except click.BadParameter as e:
            click.echo(f"Error: {e.message}", err=True)
            continue
        return start_date, end_date


def select_queue(queues: Sequence[dict[str, Any]], formatter: OutputFormatter) -> dict[str, Any]:
    """
    Show the queue table and ask for a queue number

    Raises:
        click.UsageError: If there are no queues to choose from
    """
    if not queues:
        raise click.UsageError("No routing queues available for this OAuth client")
    formatter.output_queues(queues)
    queue = queues[_select_index("Choose the queue number", len(queues))]
    formatter.output_success(f"Queue selected: {queue.get('name', queue.get('id'))}")
    return queue


def select_format(formatter: OutputFormatter) -> str:
    for idx, fmt in enumerate(FINAL_FORMATS, 1):
        formatter.output_info(f"[cyan]{idx}.[/cyan] {FORMAT_LABELS[fmt]}")
    fmt = FINAL_FORMATS[_select_index("Choose the final audio format", len(FINAL_FORMATS))]
    formatter.output_success(f"Final format selected: {fmt}")
    return fmt
