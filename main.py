#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
StepHabit Scheduler - Entry Point
Database setup, demo data, one-off reminder dispatch and the API server

Author: StepHabit Team
Version: 1.2.0
Date: 2025-11-04
"""

import argparse
import json
import logging
import sys

import uvicorn

from config import config
from services import ServiceManager
from utils.logger import setup_from_config

logger = logging.getLogger(__name__)

DEMO_HABITS = [
    ("Morning Run", "health", "Easy 5k before work"),
    ("Read", "learning", "Twenty pages of a book"),
    ("Meditate", "health", "Ten minutes of breathing"),
]

# ===== COMMANDS =====

def cmd_init_db(args) -> int:
    with ServiceManager() as manager:
        if not manager.initialize_services(args.database_url):
            return 1
        logger.info(f"✅ Schema created at {manager.database.engine.url.render_as_string(hide_password=True)}")
    return 0


def cmd_seed(args) -> int:
    """Create a demo user with a few habits"""
    with ServiceManager() as manager:
        if not manager.initialize_services(args.database_url):
            return 1
        database = manager.database
        owner_id = database.create_user(name=args.name, email=args.email)
        habits = [database.create_habit(owner_id, title, category, description)
                  for title, category, description in DEMO_HABITS]
        if args.reminder_time:
            database.save_reminder_setting(owner_id, args.reminder_time, config.scheduling.timezone)

        print(json.dumps({
            "ownerId": owner_id,
            "habits": [habit.to_dict() for habit in habits],
        }, indent=2))
        logger.info(f"🌱 Seeded user {owner_id} with {len(habits)} habits")
    return 0


def cmd_remind(args) -> int:
    """Run a single reminder tick"""
    with ServiceManager() as manager:
        if not manager.initialize_services(args.database_url):
            return 1
        sent = manager.reminder_service.dispatch()
        logger.info(f"📧 Reminder tick finished: {sent} sent")
    return 0


def cmd_serve(args) -> int:
    logger.info(f"🚀 Starting API on http://{args.host}:{args.port}")
    try:
        uvicorn.run(
            "dashboard.app:app",
            host=args.host,
            port=args.port,
            reload=args.reload or config.server.debug_mode,
            log_level=config.log_level.value.lower(),
            access_log=False,
        )
    except KeyboardInterrupt:
        logger.info("👋 Server stopped by user")
    return 0

# ===== ARGUMENTS =====

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description='StepHabit availability and scheduling service')
    parser.add_argument('--database-url', default=None, help='SQLAlchemy URL (defaults to DATABASE_URL)')
    subparsers = parser.add_subparsers(dest='command', required=True)

    init_db = subparsers.add_parser('init-db', help='Create database tables')
    init_db.set_defaults(handler=cmd_init_db)

    seed = subparsers.add_parser('seed', help='Create a demo user and habits')
    seed.add_argument('--name', default='Demo User')
    seed.add_argument('--email', default='demo@example.com')
    seed.add_argument('--reminder-time', default=None, help='Daily reminder time HH:MM')
    seed.set_defaults(handler=cmd_seed)

    remind = subparsers.add_parser('remind', help='Dispatch due daily reminders once')
    remind.set_defaults(handler=cmd_remind)

    serve = subparsers.add_parser('serve', help='Run the HTTP API with uvicorn')
    serve.add_argument('--host', default=config.server.host)
    serve.add_argument('--port', type=int, default=config.server.port)
    serve.add_argument('--reload', action='store_true', help='Reload on code changes')
    serve.set_defaults(handler=cmd_serve)

    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    setup_from_config(config)
    logger.debug(f"Configuration: {config.to_dict()}")
    return args.handler(args)

# ===== ENTRY POINT =====

if __name__ == "__main__":
    try:
        sys.exit(main())
    except Exception as e:
        logger.error(f"💥 Fatal error: {e}")
        sys.exit(1)
