from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import Any, Dict, List

REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from api.engine.errors import MalformedInputError, StoreUnavailableError
from api.engine.log_config import configure_logging
from api.engine.reconcile_engine_v1 import DeleteOutcome, ReconciliationEngine
from api.engine.snapshot_v1 import incident_to_record, parse_snapshot_payload, snapshot_to_record
from storage import open_stores

EXIT_OK = 0
EXIT_NOT_FOUND = 1
EXIT_MALFORMED = 2
EXIT_STORE_UNAVAILABLE = 3


def _emit(payload: Dict[str, Any]) -> None:
    sys.stdout.write(json.dumps(payload, indent=2, sort_keys=True, ensure_ascii=False) + "\n")


def _read_payload(path_arg: str | None) -> Any:
    if path_arg is None or path_arg == "-":
        text = sys.stdin.read()
    else:
        try:
            text = Path(path_arg).read_text(encoding="utf-8")
        except OSError as exc:
            raise MalformedInputError([f"cannot read payload file: {exc}"]) from exc
    try:
        return json.loads(text)
    except ValueError as exc:
        raise MalformedInputError([f"payload is not valid JSON: {exc}"]) from exc


def _cmd_submit(engine: ReconciliationEngine, args: argparse.Namespace) -> int:
    snapshot = parse_snapshot_payload(_read_payload(args.file))
    outcome = engine.submit(snapshot.player_id, snapshot)
    _emit(
        {
            "status": outcome.result.value,
            "message": outcome.message,
            "playerName": outcome.player_id,
            "reasons": list(outcome.reasons),
        }
    )
    return EXIT_OK


def _cmd_show(engine: ReconciliationEngine, args: argparse.Namespace) -> int:
    view = engine.get_player_view(args.player)
    if view is None:
        _emit({"status": DeleteOutcome.NOT_FOUND.value, "playerName": args.player})
        return EXIT_NOT_FOUND
    _emit(
        {
            "playerName": view.player_id,
            "log": snapshot_to_record(view.baseline) if view.baseline is not None else None,
            "dataloss": incident_to_record(view.incident) if view.incident is not None else None,
        }
    )
    return EXIT_OK


def _cmd_list(engine: ReconciliationEngine, args: argparse.Namespace) -> int:
    rows: List[Dict[str, Any]] = [
        {
            "name": row.player_id,
            "time": int(row.updated_at * 1000),
            "hasDataloss": row.has_dataloss,
        }
        for row in engine.list_players(dataloss=args.dataloss, query=args.query)
    ]
    _emit({"logs": rows})
    return EXIT_OK


def _cmd_delete(engine: ReconciliationEngine, args: argparse.Namespace) -> int:
    outcome = engine.delete_player(args.player)
    _emit({"status": outcome.value, "playerName": args.player})
    return EXIT_OK if outcome is DeleteOutcome.DELETED else EXIT_NOT_FOUND


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(description="Inspect and administer player progress logs")
    ap.add_argument("--backend", default=None, help="Store backend: json, sqlite or memory (default from env)")
    ap.add_argument("--location", default=None, help="Data directory (json) or database file (sqlite)")
    sub = ap.add_subparsers(dest="command", required=True)

    submit = sub.add_parser("submit", help="Submit one snapshot JSON payload")
    submit.add_argument("--file", default=None, help="Payload path, '-' or omitted for stdin")
    submit.set_defaults(handler=_cmd_submit)

    show = sub.add_parser("show", help="Show baseline and open incident for a player")
    show.add_argument("player")
    show.set_defaults(handler=_cmd_show)

    listing = sub.add_parser("list", help="List players, newest first")
    listing.add_argument("--dataloss", action="store_true", help="Only players with an open incident")
    listing.add_argument("--query", default=None, help="Case-insensitive player name filter")
    listing.set_defaults(handler=_cmd_list)

    delete = sub.add_parser("delete", help="Delete baseline and incident for a player")
    delete.add_argument("player")
    delete.set_defaults(handler=_cmd_delete)

    return ap


def main(argv: List[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging()

    try:
        baselines, incidents = open_stores(backend=args.backend, location=args.location)
        engine = ReconciliationEngine(baselines, incidents)
        return args.handler(engine, args)
    except MalformedInputError as exc:
        _emit(exc.to_payload())
        return EXIT_MALFORMED
    except StoreUnavailableError as exc:
        _emit(exc.to_payload())
        return EXIT_STORE_UNAVAILABLE


if __name__ == "__main__":
    raise SystemExit(main())
