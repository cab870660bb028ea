from __future__ import annotations

import argparse
import dataclasses
import sys
from typing import List, Optional

from docledger.config import load_node_config
from docledger.env import load_dotenv_if_present
from docledger.runtime.host import build_runtime


def _parse_args(argv: List[str]) -> argparse.Namespace:
    ap = argparse.ArgumentParser(prog="docledger", description="Run one docledger invocation against the configured ledger")
    ap.add_argument("--db", dest="db_path", default=None, help="SQLite ledger path (overrides DOCLEDGER_DB_PATH)")
    ap.add_argument("--ipfs-host", dest="ipfs_host", default=None)
    ap.add_argument("--ipfs-port", dest="ipfs_port", type=int, default=None)
    ap.add_argument("--no-pin", dest="no_pin", action="store_true", help="Add to IPFS without pinning")

    sub = ap.add_subparsers(dest="command", required=True)

    p_init = sub.add_parser("init", help="Store the initial key/value pair")
    p_init.add_argument("args", nargs="*")

    p_inv = sub.add_parser("invoke", help="Run set | get | set_addipfs | get_catipfs")
    p_inv.add_argument("function")
    p_inv.add_argument("args", nargs="*")

    return ap.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    load_dotenv_if_present()
    args = _parse_args(sys.argv[1:] if argv is None else argv)

    cfg = load_node_config()
    if args.db_path:
        cfg = dataclasses.replace(cfg, db_path=str(args.db_path))
    ipfs = cfg.ipfs
    if args.ipfs_host:
        ipfs = dataclasses.replace(ipfs, host=str(args.ipfs_host))
    if args.ipfs_port:
        ipfs = dataclasses.replace(ipfs, port=int(args.ipfs_port))
    if args.no_pin:
        ipfs = dataclasses.replace(ipfs, pin=False)
    cfg = dataclasses.replace(cfg, ipfs=ipfs)

    rt = build_runtime(cfg)

    if args.command == "init":
        resp = rt.init(list(args.args))
    else:
        resp = rt.invoke(str(args.function), list(args.args))

    if not resp.ok:
        print(f"ERROR: {resp.message}", file=sys.stderr)
        return 1
    if resp.payload:
        print(resp.payload.decode("utf-8", errors="replace"))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
