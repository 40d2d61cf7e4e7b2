"""
championpool.__main__ — Entry point for ``python -m championpool``
==================================================================

Commands::

    python -m championpool init-db
    python -m championpool add-team "Blue"
    python -m championpool add-champion 1 "Aria"
    python -m championpool seed-roster roster.yaml
    python -m championpool purge-sessions
    python -m championpool serve --port 8000

Every command loads ``.env`` (``DATABASE_URL``) and ``config.yaml``
(``CHAMPIONPOOL_CONFIG`` overrides the path).
"""

from __future__ import annotations

import argparse
import logging
import os
import sys
from pathlib import Path

import yaml
from dotenv import load_dotenv

from championpool.auth.sessions import SessionManager
from championpool.config import load_config
from championpool.database.engine import create_db_engine, init_db
from championpool.database.seed import seed_roster
from championpool.errors import ChampionPoolError
from championpool.services import roster_service

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s │ %(levelname)-8s │ %(name)s │ %(message)s",
    datefmt="%H:%M:%S",
)
logger = logging.getLogger("championpool")


def get_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="championpool", description="ChampionPool service")
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("init-db", help="Create tables and the pool row")

    team = sub.add_parser("add-team", help="Create a team")
    team.add_argument("name")

    champion = sub.add_parser("add-champion", help="Create a champion on a team")
    champion.add_argument("team_id", type=int)
    champion.add_argument("name")

    roster = sub.add_parser("seed-roster", help="Load teams/champions from YAML")
    roster.add_argument("path", type=Path)

    sub.add_parser("purge-sessions", help="Delete expired sessions")

    serve = sub.add_parser("serve", help="Run the HTTP API")
    serve.add_argument("--host", default="127.0.0.1")
    serve.add_argument("--port", type=int, default=8000)
    return parser


def _load_roster(path: Path) -> dict[str, list[str]]:
    """``{team: [champion, ...]}`` from a YAML mapping."""
    with open(path, encoding="utf-8") as fh:
        raw = yaml.safe_load(fh) or {}
    if not isinstance(raw, dict):
        raise ValueError(f"{path}: expected a mapping of team → champions")
    return {str(team): [str(c) for c in (names or [])] for team, names in raw.items()}


def main(argv: list[str] | None = None) -> int:
    args = get_parser().parse_args(argv)
    load_dotenv()

    if args.command == "serve":
        import uvicorn

        uvicorn.run("championpool.api.main:app", host=args.host, port=args.port)
        return 0

    cfg = load_config(os.getenv("CHAMPIONPOOL_CONFIG", "config.yaml"))
    engine = create_db_engine()

    try:
        if args.command == "init-db":
            init_db(engine, pool_capacity=cfg.pool_capacity)
        elif args.command == "add-team":
            team_id = roster_service.create_team(engine, args.name)
            print(team_id)
        elif args.command == "add-champion":
            champion_id = roster_service.create_champion(engine, args.team_id, args.name)
            print(champion_id)
        elif args.command == "seed-roster":
            seed_roster(engine, _load_roster(args.path))
        elif args.command == "purge-sessions":
            SessionManager(engine, max_age=cfg.session_max_age).purge_expired()
    except ChampionPoolError as exc:
        logger.error("%s failed: %s", args.command, exc)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
