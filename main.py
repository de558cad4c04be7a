#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Mission Control - Entry Point

    python main.py serve [--host HOST] [--port PORT] [--reload]
    python main.py tasks [--month YYYY-MM] [--view all|active|completed]

Version: 1.0.0
Date: 2026-01-12
"""

import argparse
import logging
import sys
from typing import List, Optional

import uvicorn

from config import get_config
from dashboard.config import get_settings
from models.enums import TaskView
from models.task import Task
from services import ServiceManager
from utils.datetime_utils import month_key
from utils.logger import setup_logger
from utils.sorting import default_task_sort

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    settings = get_settings()

    parser = argparse.ArgumentParser(description="Mission Control task tracker")
    parser.add_argument("--log-level", default=None, help="Override LOG_LEVEL")
    subparsers = parser.add_subparsers(dest="command", required=True)

    serve = subparsers.add_parser("serve", help="Run the dashboard API")
    serve.add_argument("--host", default=settings.HOST, help="Bind host")
    serve.add_argument("--port", type=int, default=settings.PORT, help="Bind port")
    serve.add_argument("--reload", action="store_true", help="Reload on code changes")

    tasks = subparsers.add_parser("tasks", help="Print the projected task list")
    tasks.add_argument("--month", default=None, help="Only tasks due in YYYY-MM")
    tasks.add_argument("--view", choices=[v.value for v in TaskView], default=TaskView.ACTIVE.value)

    return parser


def format_task_line(task: Task, virtual: bool) -> str:
    marker = "~" if virtual else ("R" if task.is_recurring else ("T" if task.is_template else " "))
    done = "x" if task.is_completed else " "
    return (
        f"[{done}] {marker} {str(task.draft_due or '-'):<10} {str(task.final_due or '-'):<10} "
        f"{task.task_name} ({task.id[:8]})"
    )


def print_tasks(month: Optional[str], view: str) -> int:
    with ServiceManager(get_config()) as manager:
        service = manager.task_service
        if view == TaskView.ACTIVE.value:
            tasks = service.get_active_tasks()
        elif view == TaskView.COMPLETED.value:
            tasks = service.get_completed_tasks()
        else:
            tasks = service.get_tasks()

        if month:
            tasks = [t for t in tasks if month in (month_key(t.draft_due), month_key(t.final_due))]

        persisted_ids = {t.id for t in service.persisted_tasks}
        lines: List[str] = [format_task_line(t, t.id not in persisted_ids) for t in default_task_sort(tasks)]

    print("\n".join(lines) if lines else "No tasks")
    return 0


def serve(host: str, port: int, reload: bool) -> int:
    logger.info(f"🚀 Starting web server on http://{host}:{port}")
    uvicorn.run(
        "dashboard.app:create_app",
        factory=True,
        host=host,
        port=port,
        reload=reload,
        log_config=None,
    )
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logger(level=args.log_level)

    if args.command == "serve":
        return serve(args.host, args.port, args.reload)
    return print_tasks(args.month, args.view)


if __name__ == "__main__":
    try:
        sys.exit(main())
    except KeyboardInterrupt:
        logger.info("👋 Stopped by user")
    except Exception as e:
        logger.error(f"💥 Fatal error: {e}")
        sys.exit(1)
