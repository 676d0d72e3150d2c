"""Command-line tooling: note generation and inspection, paths and roots.

    zkpool note new --amount 1000000000 [--save]
    zkpool note inspect <encoded>
    zkpool note list
    zkpool path --leaves leaves.json --commitment <hex>
    zkpool root --leaves leaves.json

Leaf files hold a JSON list of hex strings (or {"leaves": [...]}); "-" reads
stdin.
"""

import argparse
import json
import logging
import sys
from typing import Any, List, Optional

from pydantic import ValidationError

from zkpool.config import get_settings
from zkpool.core.commitment import compute_nullifier_hash
from zkpool.core.merkle_tree import compute_path, compute_root
from zkpool.core.note import decode_note, encode_note, generate_note
from zkpool.crypto.hasher import available_hashers, get_hasher
from zkpool.exceptions import ZKPoolException
from zkpool.models.schemas import LeafSnapshot
from zkpool.storage.database import get_note_store
from zkpool.utils.encoding import bytes_to_hex, hex_to_bytes

logger = logging.getLogger(__name__)


def _load_json_from_path(path: str) -> Any:
    if path == "-":
        return json.load(sys.stdin)
    with open(path, "r", encoding="utf-8") as f:
        return json.load(f)


def _load_leaves(path: str) -> List[bytes]:
    data = _load_json_from_path(path)
    if isinstance(data, list):
        data = {"leaves": data}
    try:
        return LeafSnapshot.model_validate(data).to_bytes()
    except ValidationError as e:
        raise ValueError(f"Invalid leaf file {path}: {e}") from e


def _print_json(payload: Any) -> None:
    print(json.dumps(payload, indent=2, sort_keys=True))


# ------------------------------ subcommands --------------------------------


def _cmd_note_new(args) -> int:
    hasher = get_hasher(args.hasher)
    note = generate_note(args.amount, hasher)
    encoded = encode_note(note, hasher)
    if args.save:
        settings = get_settings()
        store = get_note_store(settings.database_url, settings.note_encryption_key, hasher)
        store.save_note(note)
        logger.info(f"Saved note to {settings.database_url}")
    print(encoded)
    return 0


def _cmd_note_inspect(args) -> int:
    hasher = get_hasher(args.hasher)
    note = decode_note(args.encoded, hasher)
    _print_json(
        {
            "amount": note.amount,
            "commitment": bytes_to_hex(note.commitment),
            "precommitment": bytes_to_hex(note.precommitment),
            "nullifier_hash": bytes_to_hex(compute_nullifier_hash(note.nullifier_secret, hasher)),
            "settlement_ref": note.settlement_ref,
            "created_at": note.created_at.isoformat(),
        }
    )
    return 0


def _cmd_note_list(args) -> int:
    settings = get_settings()
    store = get_note_store(settings.database_url, settings.note_encryption_key, get_hasher(settings.hasher))
    for note in store.list_unspent():
        print(f"{bytes_to_hex(note.commitment)}  {note.amount}  {note.settlement_ref or '-'}")
    return 0


def _cmd_path(args) -> int:
    hasher = get_hasher(args.hasher)
    leaves = _load_leaves(args.leaves)
    path = compute_path(leaves, hex_to_bytes(args.commitment, 32), hasher, args.depth)
    _print_json(
        {
            "leaf_index": path.leaf_index,
            "root": bytes_to_hex(path.root),
            "siblings": [bytes_to_hex(s) for s in path.siblings],
            "path_indices": list(path.path_indices),
        }
    )
    return 0


def _cmd_root(args) -> int:
    hasher = get_hasher(args.hasher)
    leaves = _load_leaves(args.leaves)
    print(bytes_to_hex(compute_root(leaves, hasher, args.depth)))
    return 0


# ------------------------------ parser -------------------------------------


def build_parser() -> argparse.ArgumentParser:
    settings = get_settings()

    common = argparse.ArgumentParser(add_help=False)
    common.add_argument(
        "--hasher", choices=available_hashers(), default=settings.hasher,
        help="Hash primitive (default: %(default)s)",
    )
    common.add_argument(
        "--depth", type=int, default=settings.tree_depth,
        help="Merkle tree depth (default: %(default)s)",
    )

    parser = argparse.ArgumentParser(prog="zkpool", description="Privacy-pool note and path tooling")
    parser.add_argument("--log-level", default=settings.log_level, help="Logging level")
    sub = parser.add_subparsers(dest="command", required=True)

    note = sub.add_parser("note", help="Create and inspect deposit notes")
    note_sub = note.add_subparsers(dest="note_command", required=True)

    note_new = note_sub.add_parser("new", parents=[common], help="Generate a new note")
    note_new.add_argument("--amount", type=int, required=True, help="Amount in smallest units")
    note_new.add_argument("--save", action="store_true", help="Also store the note locally")
    note_new.set_defaults(func=_cmd_note_new)

    note_inspect = note_sub.add_parser("inspect", parents=[common], help="Decode and check a note")
    note_inspect.add_argument("encoded", help="Encoded note")
    note_inspect.set_defaults(func=_cmd_note_inspect)

    note_list = note_sub.add_parser("list", help="List unspent stored notes")
    note_list.set_defaults(func=_cmd_note_list)

    path = sub.add_parser("path", parents=[common], help="Compute a Merkle path")
    path.add_argument("--leaves", required=True, help="Leaf file (JSON) or '-' for stdin")
    path.add_argument("--commitment", required=True, help="Commitment hex")
    path.set_defaults(func=_cmd_path)

    root = sub.add_parser("root", parents=[common], help="Compute the tree root")
    root.add_argument("--leaves", required=True, help="Leaf file (JSON) or '-' for stdin")
    root.set_defaults(func=_cmd_root)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=getattr(logging, str(args.log_level).upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )

    try:
        return args.func(args)
    except (ZKPoolException, ValueError, OSError) as e:
        print(f"error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
