"""
Encrypter Command-line Entry Point
==================================

    encrypter encrypt FILE_OR_DIR... --key public.pem [-o OUT] [--framed]
    encrypter decrypt FILE --key private.pem [-o OUT] [--passphrase P]
    encrypter check-key public.pem
    encrypter inspect FILE
    encrypter keygen [--bits 2048] [--name key] [--dir .]
"""

from __future__ import annotations

import argparse
import getpass
import logging
import sys
from pathlib import Path
from typing import List, Optional

import encrypter
import folder
from messages import describe_error

logger = logging.getLogger("encrypter.cli")


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="encrypter", description="RSA-OAEP block file encryption"
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    sub = parser.add_subparsers(dest="cmd", required=True)

    p_enc = sub.add_parser("encrypt", help="Encrypt files (directories recursively)")
    p_enc.add_argument("paths", nargs="+", help="Files or directories to encrypt")
    p_enc.add_argument("--key", required=True, help="Recipient public key (PEM)")
    p_enc.add_argument("-o", "--output", help="Output path (single file only)")
    p_enc.add_argument("--framed", action="store_true", help="Write the v1 framed layout")
    p_enc.add_argument(
        "--hash", default="sha256", choices=list(encrypter.OAEP_HASHES), help="OAEP hash"
    )

    p_dec = sub.add_parser("decrypt", help="Decrypt a container file")
    p_dec.add_argument("path", help="Container file")
    p_dec.add_argument("--key", required=True, help="Private key (PEM)")
    p_dec.add_argument("-o", "--output", help="Output path")
    p_dec.add_argument("--passphrase", help="Private key passphrase (prompted if needed)")
    p_dec.add_argument(
        "--hash", default="sha256", choices=list(encrypter.OAEP_HASHES),
        help="OAEP hash for v0 containers",
    )

    p_chk = sub.add_parser("check-key", help="Validate a public key and print its fingerprint")
    p_chk.add_argument("path", help="Public key (PEM)")

    p_ins = sub.add_parser("inspect", help="Show the framing of a container")
    p_ins.add_argument("path", help="Container file")

    p_gen = sub.add_parser("keygen", help="Generate an RSA keypair")
    p_gen.add_argument("--bits", type=int, default=encrypter.DEFAULT_KEY_SIZE)
    p_gen.add_argument("--name", default="key", help="File name prefix")
    p_gen.add_argument("--dir", default=".", help="Output directory")
    p_gen.add_argument("--passphrase", help="Protect the private key (prompted if omitted)")
    p_gen.add_argument("--no-passphrase", action="store_true", help="Leave the private key unencrypted")

    return parser


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


def _cmd_encrypt(args: argparse.Namespace) -> int:
    public_key = encrypter.load_public_key(encrypter.read_key_file(args.key))
    fmt = encrypter.ContainerFormat.FRAMED if args.framed else encrypter.ContainerFormat.LEGACY
    codec = encrypter.BlockContainerCodec(encrypter.BlockSizePolicy.from_name(args.hash), fmt)

    if args.output:
        if len(args.paths) != 1 or Path(args.paths[0]).is_dir():
            print("--output needs exactly one source file.", file=sys.stderr)
            return 2
        codec.encode_file(args.paths[0], args.output, public_key)
        print(args.output)
        return 0

    root = folder.FolderNode(path="", expanded=True)
    root.subfolders = [
        folder.FolderNode(path=p, is_folder=Path(p).is_dir(), selected=True)
        for p in args.paths
    ]
    results = folder.encrypt_selection(root, public_key, codec=codec)
    for r in results:
        if r.ok:
            print(r.output)
        else:
            print(f"{r.source}: {describe_error(r.error)}", file=sys.stderr)
    return 0 if all(r.ok for r in results) else 1


def _cmd_decrypt(args: argparse.Namespace) -> int:
    pem = encrypter.read_key_file(args.key)
    passphrase = args.passphrase
    try:
        private_key = encrypter.load_private_key(pem, passphrase)
    except encrypter.WrongPassphraseError:
        if passphrase is not None or not sys.stdin.isatty():
            raise
        passphrase = getpass.getpass("Passphrase: ")
        private_key = encrypter.load_private_key(pem, passphrase)

    output = args.output or encrypter.default_decrypted_path(args.path)
    codec = encrypter.BlockContainerCodec(encrypter.BlockSizePolicy.from_name(args.hash))
    codec.decode_file(args.path, output, private_key)
    print(output)
    return 0


def _cmd_check_key(args: argparse.Namespace) -> int:
    handle = encrypter.load_public_key(encrypter.read_key_file(args.path))
    policy = encrypter.BlockSizePolicy()
    print(f"RSA public key, {handle.modulus_bits} bits")
    print(f"fingerprint: {handle.fingerprint}")
    print(f"block size:  {policy.chunk_size(handle.modulus_bits)} bytes (OAEP/{policy.hash_name})")
    return 0


def _cmd_inspect(args: argparse.Namespace) -> int:
    try:
        fin = open(args.path, "rb")
    except OSError as exc:
        raise encrypter.DecodeIOError(f"Cannot read {args.path}: {exc.strerror}") from exc
    with fin:
        info = encrypter.inspect_container(fin)
    print(f"format:  {info.container_format.name.lower()}")
    if info.hash_name:
        print(f"hash:    {info.hash_name}")
    print(f"blocks:  {info.block_count}")
    if info.cipher_lengths:
        print(f"block ciphertext: {min(info.cipher_lengths)}-{max(info.cipher_lengths)} bytes")
    return 0


def _cmd_keygen(args: argparse.Namespace) -> int:
    passphrase = args.passphrase
    if passphrase is None and not args.no_passphrase:
        passphrase = getpass.getpass("New passphrase: ")
        if passphrase != getpass.getpass("Repeat passphrase: "):
            print("Passphrases do not match.", file=sys.stderr)
            return 2
    private_pem, public_pem = encrypter.generate_keypair(args.bits, passphrase or None)

    out_dir = Path(args.dir)
    private_path = out_dir / f"{args.name}.private.pem"
    public_path = out_dir / f"{args.name}.public.pem"
    try:
        out_dir.mkdir(parents=True, exist_ok=True)
        private_path.write_bytes(private_pem)
        private_path.chmod(0o600)
        public_path.write_bytes(public_pem)
    except OSError as exc:
        print(f"Cannot write keys: {exc}", file=sys.stderr)
        return 1
    print(private_path)
    print(public_path)
    print(f"fingerprint: {encrypter.load_public_key(public_pem).fingerprint}")
    return 0


_COMMANDS = {
    "encrypt": _cmd_encrypt,
    "decrypt": _cmd_decrypt,
    "check-key": _cmd_check_key,
    "inspect": _cmd_inspect,
    "keygen": _cmd_keygen,
}


def main(argv: Optional[List[str]] = None) -> int:
    """Application entry point."""
    args = _build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )
    try:
        return _COMMANDS[args.cmd](args)
    except encrypter.EncrypterError as exc:
        logger.debug("%s failed", args.cmd, exc_info=True)
        print(describe_error(exc), file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
