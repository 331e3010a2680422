"""
Pipeline event logging utilities for TIKZCACHE (Tier 2 logging).

Appends one JSON object per line to a figure events file so that cache hits,
regenerations and failures can be audited across runs.

For detailed within-context logging (Tier 1), use tikzcache.utils.logger instead.

Usage:
    from tikzcache.utils.event_logging import log_figure_event

    log_figure_event(
        events_file=Path("outs/logs/figure_events.log"),
        event_type="figure_rendered",
        figure="fig01-pipeline",
        source="doc.md",
        formats=["png", "svg"],
    )
"""

import json
from pathlib import Path
from typing import List, Optional

from tikzcache.utils.timestamp import now_exact


def log_figure_event(
    events_file: Optional[Path], event_type: str, figure: str, source: str, **extra_fields
) -> None:
    """
    Log an event to the figure event log.

    Events are appended in JSON Lines format. Does nothing when events_file is None.

    Args:
        events_file: Path of the JSON Lines file (None disables event logging)
        event_type: Type of event (e.g., "figure_cached", "figure_rendered", "figure_failed")
        figure: Figure basename (e.g., "fig01-pipeline")
        source: Source document the figure's cache is keyed on
        **extra_fields: Additional event-specific fields
    """
    if events_file is None:
        return

    events_file = Path(events_file)
    events_file.parent.mkdir(parents=True, exist_ok=True)

    event = {
        "timestamp": now_exact(),
        "event_type": event_type,
        "figure": figure,
        "source": str(source),
        **extra_fields,
    }

    with open(events_file, "a", encoding="utf-8") as f:
        f.write(json.dumps(event, default=str) + "\n")


def get_recent_events(
    events_file: Path, n: int = 10, figure: Optional[str] = None, event_type: Optional[str] = None
) -> List[dict]:
    """
    Get the last n events from the event log, optionally filtered.

    Args:
        events_file: Path of the JSON Lines file
        n: Number of events to return
        figure: Only return events for this figure basename
        event_type: Only return events of this type

    Returns:
        List of event dicts, oldest first
    """
    events_file = Path(events_file)
    if not events_file.exists():
        return []

    events = []
    with open(events_file, "r", encoding="utf-8") as f:
        for line in f:
            line = line.strip()
            if not line:
                continue
            event = json.loads(line)
            if figure and event.get("figure") != figure:
                continue
            if event_type and event.get("event_type") != event_type:
                continue
            events.append(event)

    return events[-n:] if n > 0 else events
