"""Command-line helpers for the client side of Paillier and Shamir operations."""

import argparse
import os
import sys
from pathlib import Path
from typing import List, Optional

from ledger_engine.config import load_engine_config
from ledger_engine.crypto import (
    HomomorphicAggregator,
    PrivateKey,
    PublicKey,
    ThresholdSecretManager,
    generate_keypair,
    shares_from_json,
    shares_to_json,
)
from ledger_engine.errors import LedgerEngineError
from ledger_engine.utils import configure_logging, get_logger

logger = get_logger("cli")


def _read_text(path: Path) -> str:
    return Path(path).read_text().strip()


def _write_private(path: Path, text: str) -> None:
    fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
    # O_CREAT keeps the mode of a file that already existed.
    os.fchmod(fd, 0o600)
    with os.fdopen(fd, "w") as handle:
        handle.write(text)


def cmd_keygen(args: argparse.Namespace) -> int:
    key_length = args.key_length or args.config.paillier.key_length
    pair = generate_keypair(key_length)
    args.output_dir.mkdir(parents=True, exist_ok=True)
    pk_path = args.output_dir / f"{args.name}_pk.txt"
    sk_path = args.output_dir / f"{args.name}_sk.txt"
    pk_path.write_text(pair.public_key.to_text() + "\n")
    _write_private(sk_path, pair.private_key.to_text() + "\n")
    logger.info("Generated %d-bit Paillier key pair %s", key_length, args.name)
    print(f"Public key:  {pk_path}")
    print(f"Private key: {sk_path}")
    return 0


def cmd_encrypt(args: argparse.Namespace) -> int:
    public_key = PublicKey.from_text(_read_text(args.public_key))
    print(args.aggregator.encrypt(public_key, args.value).to_text())
    return 0


def cmd_decrypt(args: argparse.Namespace) -> int:
    private_key = PrivateKey.from_text(_read_text(args.private_key))
    ciphertext = args.aggregator.load_text(private_key.public_key, args.ciphertext)
    print(args.aggregator.decrypt(private_key, ciphertext))
    return 0


def cmd_add(args: argparse.Namespace) -> int:
    public_key = PublicKey.from_text(_read_text(args.public_key))
    ciphertexts = [args.aggregator.load_text(public_key, text) for text in args.ciphertexts]
    print(args.aggregator.sum(public_key, ciphertexts).to_text())
    return 0


def cmd_split(args: argparse.Namespace) -> int:
    manager = ThresholdSecretManager(max_shares=args.config.shamir.max_shares)
    shares = manager.split(args.n, args.t, args.secret.encode("utf-8"))
    print(shares_to_json(shares))
    return 0


def cmd_recover(args: argparse.Namespace) -> int:
    text = _read_text(args.file) if args.file else args.shares
    if not text:
        raise LedgerEngineError("Provide shares as an argument or with --file")
    secret = ThresholdSecretManager().recover(shares_from_json(text))
    print(secret.hex() if args.hex else secret.decode("utf-8", errors="replace"))
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="ledger-engine", description="Paillier and Shamir client tools")
    parser.add_argument("--config-dir", type=Path, default=None, help="Directory holding config/engine-config.json")
    sub = parser.add_subparsers(dest="command", required=True)

    keygen = sub.add_parser("keygen", help="Generate a Paillier key pair")
    keygen.add_argument("--output-dir", type=Path, default=Path("config/keys"), help="Output directory (default: config/keys)")
    keygen.add_argument("--name", type=str, default="paillier", help="Key file prefix (default: paillier)")
    keygen.add_argument("--key-length", type=int, default=None, help="Modulus size in bits (default: from config)")
    keygen.set_defaults(handler=cmd_keygen)

    encrypt = sub.add_parser("encrypt", help="Encrypt an integer")
    encrypt.add_argument("--public-key", type=Path, required=True)
    encrypt.add_argument("value", type=int)
    encrypt.set_defaults(handler=cmd_encrypt)

    decrypt = sub.add_parser("decrypt", help="Decrypt a ciphertext")
    decrypt.add_argument("--private-key", type=Path, required=True)
    decrypt.add_argument("ciphertext", type=str)
    decrypt.set_defaults(handler=cmd_decrypt)

    add = sub.add_parser("add", help="Homomorphically add ciphertexts")
    add.add_argument("--public-key", type=Path, required=True)
    add.add_argument("ciphertexts", nargs="+")
    add.set_defaults(handler=cmd_add)

    split = sub.add_parser("split", help="Split a UTF-8 secret into shares")
    split.add_argument("-n", type=int, required=True, help="Number of shares")
    split.add_argument("-t", type=int, required=True, help="Threshold")
    split.add_argument("secret", type=str)
    split.set_defaults(handler=cmd_split)

    recover = sub.add_parser("recover", help="Recover a secret from a JSON share list")
    recover.add_argument("shares", nargs="?", default=None)
    recover.add_argument("--file", type=Path, default=None)
    recover.add_argument("--hex", action="store_true", help="Print the secret as hex")
    recover.set_defaults(handler=cmd_recover)
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    try:
        config, config_path = load_engine_config(args.config_dir)
    except ValueError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 2
    configure_logging(config.log_level, json_output=config.json_logs, stream=sys.stderr)
    logger.debug("Using engine config %s", config_path)
    args.config = config
    args.aggregator = HomomorphicAggregator(headroom_bits=config.paillier.headroom_bits)
    try:
        return args.handler(args)
    except (LedgerEngineError, ValueError) as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
