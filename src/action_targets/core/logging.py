from __future__ import annotations

import logging
from typing import Any, Dict

import structlog
from rich.logging import RichHandler


def configure_logging(level: str) -> None:
    """
    Human-friendly logs for following actions and revalidation as they happen.
    """
    logging.basicConfig(
        level=level.upper(),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[
            RichHandler(
                rich_tracebacks=True,
                markup=True,  # allow rich markup in messages
                show_time=True,
                show_level=True,
                show_path=False,
            )
        ],
    )

    # asyncio debug chatter drowns out dispatcher events.
    logging.getLogger("asyncio").setLevel(logging.WARNING)

    structlog.configure(
        processors=[
            structlog.processors.add_log_level,
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            _pretty_rich_renderer,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.make_filtering_bound_logger(logging.getLevelName(level.upper())),
        cache_logger_on_first_use=True,
    )


def get_logger(**kwargs: Any) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger().bind(**kwargs)


_ICONS = {
    "starting": "🚀",
    "stopping": "🛑",
    "demo_starting": "🧩",
    "submitted": "📨",
    "cancelled": "✋",
    "settled": "✅",
    "revalidate": "♻️",
    "targets_invalidated": "♻️",
    "fetch_started": "📡",
}

_LEVEL_STYLES = {
    "critical": ("❌", "bold red"),
    "error": ("❌", "bold red"),
    "warning": ("⚠️", "bold yellow"),
}


def _pretty_rich_renderer(
    logger: Any, method_name: str, event_dict: Dict[str, Any]
) -> str:  # pragma: no cover
    """
    Final renderer for structlog -> RichHandler: "<icon> event  key=value ...",
    with the call-site keys (app, demo, dispatcher, target) leading.
    """
    event = str(event_dict.pop("event", method_name))
    level = str(event_dict.pop("level", "")).lower()
    level_icon, style = _LEVEL_STYLES.get(level, ("", "bold cyan"))
    icon = _ICONS.get(event) or level_icon or "•"

    parts = ["%s=%r" % (k, event_dict.pop(k)) for k in ("app", "demo", "dispatcher", "target") if k in event_dict]
    parts.extend("%s=%r" % (k, event_dict[k]) for k in sorted(event_dict))

    title = "[%s]%s %s[/%s]" % (style, icon, event, style)
    return "%s  %s" % (title, " ".join(parts)) if parts else title
