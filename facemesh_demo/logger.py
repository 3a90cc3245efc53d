"""
Logging setup and the optional lifecycle event log.

`configure_logging` sets up stdlib logging for the entry points.
`log_event` appends JSON lines to `logs/events.jsonl`. Each line is a JSON
object containing at least `timestamp` and `type` fields. The event log is
meant for experiments (load times, failures, option changes) and is a no-op
until enabled.
"""
import os
import json
import time
import logging
from typing import Dict

LOG_DIR = os.path.join(os.path.dirname(__file__), '..', 'logs')
LOG_FILE = os.path.join(LOG_DIR, 'events.jsonl')

LOG_FORMAT = "%(asctime)s %(levelname)-7s %(name)s: %(message)s"

log = logging.getLogger(__name__)

_enabled = False


def configure_logging(level: str = "INFO", event_log: bool = False):
    logging.basicConfig(level=getattr(logging, level.upper(), logging.INFO), format=LOG_FORMAT)
    set_event_log_enabled(event_log)


def set_event_log_enabled(enabled: bool):
    global _enabled
    _enabled = bool(enabled)


def log_event(event: Dict):
    """Append event (dict) as JSON line to log file."""
    if not _enabled:
        return
    event = dict(event)
    event.setdefault("timestamp", time.time())
    try:
        os.makedirs(LOG_DIR, exist_ok=True)
        with open(LOG_FILE, 'a', encoding='utf-8') as f:
            f.write(json.dumps(event, ensure_ascii=False, default=str) + '\n')
    except OSError as e:
        # Logging failure should not crash the pipeline
        log.warning("event log write failed: %s", e)
