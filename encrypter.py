"""
Encrypter Block Container Codec
===============================

Whole-file RSA-OAEP encryption with:
- PEM key loading and validation (PKCS#1, SubjectPublicKeyInfo, PKCS#8)
- Block size derived from the key actually in use (OAEP overhead)
- Streaming file encode / decode with atomic output

Uses the ``cryptography`` library exclusively.

Container layout (v0, little-endian)
------------------------------------
::

    u32 block_count
    repeated block_count times:
        u32 cipher_len
        u8[cipher_len] ciphertext

Every block holds at most ``modulus_bytes - 2 * hash_len - 2`` plaintext
bytes and is encrypted on its own.  Decoding concatenates the decrypted
blocks in order.

Framed layout (v1, opt-in)
--------------------------
::

    [HEADER: 16 bytes]
      0-7   Magic    b"ENCRYPTR"
      8     Version  0x01
      9     Hash ID  0x01=SHA-256 | 0x02=SHA-384 | 0x03=SHA-512 | 0x04=SHA-1
      10-15 Reserved (zeroed)

    [v0 body]
"""

from __future__ import annotations

import enum
import hashlib
import io
import logging
import os
import struct
import tempfile
from contextlib import contextmanager
from dataclasses import dataclass, field
from pathlib import Path
from typing import BinaryIO, Callable, Iterator, Optional, Tuple, Type, Union

from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import padding as asym_padding
from cryptography.hazmat.primitives.asymmetric import rsa
from cryptography.hazmat.primitives.asymmetric.rsa import (
    RSAPrivateKey,
    RSAPublicKey,
)

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

FRAMED_MAGIC: bytes = b"ENCRYPTR"
FRAMED_VERSION: int = 1
FRAMED_HEADER_SIZE: int = 16

LENGTH_FIELD = struct.Struct("<I")  # block_count and cipher_len
MAX_BLOCK_COUNT: int = 0xFFFFFFFF
_SKIP_PIECE: int = 64 * 1024  # read size when skipping ciphertext

MIN_KEY_SIZE: int = 1024
DEFAULT_KEY_SIZE: int = 2048
DEFAULT_OAEP_HASH = hashes.SHA256

ENCRYPTED_SUFFIX: str = "x"
DECRYPTED_PREFIX: str = "decrypted_"

OAEP_HASHES = {
    "sha256": hashes.SHA256,
    "sha384": hashes.SHA384,
    "sha512": hashes.SHA512,
    "sha1": hashes.SHA1,
}
_HASH_IDS = {"sha256": 1, "sha384": 2, "sha512": 3, "sha1": 4}

ProgressCallback = Callable[[int, int], None]
PathLike = Union[str, Path]

# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------


class EncrypterError(Exception):
    """Base exception for all Encrypter errors."""


class KeyFormatError(EncrypterError):
    """Key material is not a well-formed RSA key of the expected kind."""


class WrongPassphraseError(KeyFormatError):
    """The private key envelope could not be opened with the passphrase."""


class KeyRoleError(EncrypterError):
    """A public handle was given where a private one is needed, or vice versa."""


class EncodeError(EncrypterError):
    """Encoding a container failed."""


class EncodeIOError(EncodeError):
    """I/O on the source or destination failed, or the source overflows the block count."""


class KeyTooSmallError(EncodeError):
    """The modulus cannot hold the OAEP overhead plus one byte."""


class EncodeCryptoError(EncodeError):
    """The RSA backend rejected a block."""


class DecodeError(EncrypterError):
    """Decoding a container failed."""


class DecodeIOError(DecodeError):
    """Container unreadable or destination unwritable."""


class TruncatedContainerError(DecodeError):
    """The container ends before its declared last block."""


class DecodeCryptoError(DecodeError):
    """A block does not decrypt under this key."""


class MalformedContainerError(DecodeError):
    """Unrecognised header or bytes after the declared last block."""


# Single message for every block failure so callers cannot tell padding
# errors apart from wrong-key or oversized-block errors.
_OPAQUE_BLOCK_FAILURE = "Block decryption failed: wrong key or corrupted data."


# ---------------------------------------------------------------------------
# Key handles
# ---------------------------------------------------------------------------


class KeyRole(enum.Enum):
    PUBLIC = "public"
    PRIVATE = "private"


@dataclass(frozen=True)
class KeyHandle:
    """
    Immutable wrapper around a parsed RSA key.

    A handle is either public (encrypt-capable) or private
    (decrypt-capable).  The key object itself is left out of ``repr``.
    """

    role: KeyRole
    modulus_bits: int
    key: Union[RSAPublicKey, RSAPrivateKey] = field(repr=False, compare=False)

    def __post_init__(self) -> None:
        expected = RSAPublicKey if self.role is KeyRole.PUBLIC else RSAPrivateKey
        if not isinstance(self.key, expected):
            raise KeyRoleError(
                f"A {self.role.value} handle needs an {expected.__name__}."
            )

    @property
    def is_public(self) -> bool:
        return self.role is KeyRole.PUBLIC

    @property
    def fingerprint(self) -> str:
        """40-char hex SHA-1 of the DER SubjectPublicKeyInfo."""
        public = self.key if self.is_public else self.key.public_key()
        der = public.public_bytes(
            encoding=serialization.Encoding.DER,
            format=serialization.PublicFormat.SubjectPublicKeyInfo,
        )
        return hashlib.sha1(der).hexdigest()


# ---------------------------------------------------------------------------
# KeyCodec
# ---------------------------------------------------------------------------


class KeyCodec:
    """
    PEM key loading and validation.

    All methods are **static**; key material arrives as bytes so the
    codec does not care where keys are stored.
    """

    @staticmethod
    def load_public_key(pem: Union[bytes, str]) -> KeyHandle:
        """Load an RSA public key from PKCS#1 or SubjectPublicKeyInfo PEM."""
        data = _pem_bytes(pem)
        try:
            key = serialization.load_pem_public_key(data)
        except (ValueError, TypeError, UnsupportedAlgorithm) as exc:
            raise KeyFormatError("Not a well-formed PEM public key.") from exc
        if not isinstance(key, RSAPublicKey):
            raise KeyFormatError("PEM does not contain an RSA public key.")
        logger.debug("Loaded RSA public key (%d bits)", key.key_size)
        return KeyHandle(KeyRole.PUBLIC, key.key_size, key)

    @staticmethod
    def load_private_key(
        pem: Union[bytes, str],
        passphrase: Optional[Union[str, bytes]] = None,
    ) -> KeyHandle:
        """
        Load an RSA private key from PEM, opening its envelope if encrypted.

        Raises
        ------
        WrongPassphraseError
            The key is encrypted and the passphrase is missing or wrong.
        KeyFormatError
            The PEM is not an RSA private key.
        """
        data = _pem_bytes(pem)
        password = _passphrase_bytes(passphrase)
        encrypted = b"ENCRYPTED" in data
        if encrypted and password is None:
            raise WrongPassphraseError("Private key is encrypted; a passphrase is required.")

        try:
            key = serialization.load_pem_private_key(
                data, password=password if encrypted else None
            )
        except (ValueError, TypeError, UnsupportedAlgorithm) as exc:
            if encrypted:
                raise WrongPassphraseError(
                    "Cannot decrypt the private key: wrong passphrase or damaged key."
                ) from exc
            raise KeyFormatError("Not a well-formed PEM private key.") from exc
        if not isinstance(key, RSAPrivateKey):
            raise KeyFormatError("PEM does not contain an RSA private key.")
        logger.debug("Loaded RSA private key (%d bits)", key.key_size)
        return KeyHandle(KeyRole.PRIVATE, key.key_size, key)

    @staticmethod
    def validate_public_key(pem: Union[bytes, str]) -> None:
        """Raise :class:`KeyFormatError` unless *pem* is an RSA public key."""
        KeyCodec.load_public_key(pem)

    @staticmethod
    def generate_keypair(
        key_size: int = DEFAULT_KEY_SIZE,
        passphrase: Optional[Union[str, bytes]] = None,
    ) -> Tuple[bytes, bytes]:
        """
        Generate an RSA keypair and return ``(private_pem, public_pem)``.

        The private key is PKCS#8, encrypted when *passphrase* is given.
        """
        if key_size < MIN_KEY_SIZE:
            raise KeyFormatError(f"RSA key size must be at least {MIN_KEY_SIZE} bits.")
        private_key = rsa.generate_private_key(public_exponent=65537, key_size=key_size)
        password = _passphrase_bytes(passphrase)
        enc: serialization.KeySerializationEncryption
        if password:
            enc = serialization.BestAvailableEncryption(password)
        else:
            enc = serialization.NoEncryption()
        private_pem = private_key.private_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PrivateFormat.PKCS8,
            encryption_algorithm=enc,
        )
        public_pem = private_key.public_key().public_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PublicFormat.SubjectPublicKeyInfo,
        )
        return private_pem, public_pem

    @staticmethod
    def read_key_file(path: PathLike) -> bytes:
        """Read PEM bytes from *path*."""
        try:
            return Path(path).read_bytes()
        except OSError as exc:
            raise KeyFormatError(f"Cannot read key file {path}: {exc.strerror}") from exc


# ---------------------------------------------------------------------------
# Block size policy
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class BlockSizePolicy:
    """Derive per-block sizes from the key's modulus and the OAEP hash."""

    hash_algorithm: hashes.HashAlgorithm = field(default_factory=DEFAULT_OAEP_HASH)

    @property
    def hash_name(self) -> str:
        return self.hash_algorithm.name

    @staticmethod
    def cipher_size(modulus_bits: int) -> int:
        """Ciphertext bytes produced for one block."""
        return (modulus_bits + 7) // 8

    def chunk_size(self, modulus_bits: int) -> int:
        """Largest plaintext OAEP accepts for this modulus (may be < 1)."""
        return self.cipher_size(modulus_bits) - 2 * self.hash_algorithm.digest_size - 2

    def block_count(self, length: int, modulus_bits: int) -> int:
        size = self.chunk_size(modulus_bits)
        if size < 1:
            raise KeyTooSmallError(
                f"A {modulus_bits}-bit key cannot hold OAEP/{self.hash_name} padding."
            )
        return -(-length // size)

    def oaep(self) -> asym_padding.OAEP:
        return asym_padding.OAEP(
            mgf=asym_padding.MGF1(algorithm=self.hash_algorithm),
            algorithm=self.hash_algorithm,
            label=None,
        )

    @classmethod
    def from_name(cls, name: str) -> "BlockSizePolicy":
        try:
            return cls(OAEP_HASHES[name.lower()]())
        except KeyError:
            raise ValueError(
                f"Unsupported OAEP hash {name!r} (choose from {', '.join(OAEP_HASHES)})."
            ) from None


# ---------------------------------------------------------------------------
# Container framing
# ---------------------------------------------------------------------------


class ContainerFormat(enum.Enum):
    LEGACY = 0  # bare v0 layout
    FRAMED = 1  # v1 header + v0 body


@dataclass(frozen=True)
class ContainerStats:
    """Summary of one encode or decode call."""

    container_format: ContainerFormat
    block_count: int
    bytes_read: int
    bytes_written: int


@dataclass(frozen=True)
class ContainerInfo:
    """Framing of a container, read without a key."""

    container_format: ContainerFormat
    hash_name: Optional[str]
    block_count: int
    cipher_lengths: Tuple[int, ...]

    @property
    def size(self) -> int:
        header = FRAMED_HEADER_SIZE if self.container_format is ContainerFormat.FRAMED else 0
        return header + LENGTH_FIELD.size * (1 + self.block_count) + sum(self.cipher_lengths)


def _build_header(policy: BlockSizePolicy) -> bytes:
    """Build the 16-byte v1 header."""
    try:
        hash_id = _HASH_IDS[policy.hash_name]
    except KeyError:
        raise EncodeError(f"OAEP hash {policy.hash_name} cannot be framed.") from None
    header = bytearray(FRAMED_HEADER_SIZE)
    header[0:8] = FRAMED_MAGIC
    header[8] = FRAMED_VERSION
    header[9] = hash_id
    return bytes(header)


def _parse_header(header: bytes) -> BlockSizePolicy:
    """Validate a v1 header and return the policy it names."""
    if len(header) < FRAMED_HEADER_SIZE:
        raise TruncatedContainerError("Container ends inside its header.")
    if header[0:8] != FRAMED_MAGIC:
        raise MalformedContainerError("Unrecognised container header.")
    version = header[8]
    if version != FRAMED_VERSION:
        raise MalformedContainerError(
            f"Unsupported container version {version} (expected {FRAMED_VERSION})."
        )
    for name, hash_id in _HASH_IDS.items():
        if hash_id == header[9]:
            return BlockSizePolicy(OAEP_HASHES[name]())
    raise MalformedContainerError(f"Unknown OAEP hash id {header[9]}.")


# ---------------------------------------------------------------------------
# BlockContainerCodec
# ---------------------------------------------------------------------------


class BlockContainerCodec:
    """
    Encode plaintext into a block container and back.

    *policy* fixes the OAEP hash used when encoding (and when decoding a
    v0 container, which does not name its hash).  *container_format*
    selects the layout written by encode; decode recognises both.
    """

    def __init__(
        self,
        policy: Optional[BlockSizePolicy] = None,
        container_format: ContainerFormat = ContainerFormat.LEGACY,
    ):
        self.policy = policy or BlockSizePolicy()
        self.container_format = container_format

    # ------------------------------------------------------------------
    # Streams
    # ------------------------------------------------------------------

    def encode_stream(
        self,
        source: BinaryIO,
        sink: BinaryIO,
        public_key: KeyHandle,
        length: int,
        *,
        progress_callback: Optional[ProgressCallback] = None,
    ) -> ContainerStats:
        """
        Encrypt *length* bytes from *source* into *sink*.

        Reads exactly one chunk per block, so memory stays bounded by the
        chunk size whatever the source length.
        """
        _require_role(public_key, KeyRole.PUBLIC, "Encoding")
        policy = self.policy
        chunk_size = policy.chunk_size(public_key.modulus_bits)
        block_count = policy.block_count(length, public_key.modulus_bits)
        if block_count > MAX_BLOCK_COUNT:
            raise EncodeIOError(f"Source of {length} bytes needs more than 2**32-1 blocks.")
        oaep = policy.oaep()

        written = 0
        if self.container_format is ContainerFormat.FRAMED:
            written += _write(sink, _build_header(policy), EncodeIOError)
        written += _write(sink, LENGTH_FIELD.pack(block_count), EncodeIOError)
        logger.debug(
            "Encoding %d bytes: %d blocks of up to %d bytes (OAEP/%s)",
            length, block_count, chunk_size, policy.hash_name,
        )

        remaining = length
        for index in range(block_count):
            want = min(remaining, chunk_size)
            block = _read(source, want, EncodeIOError)
            if len(block) != want:
                raise EncodeIOError(
                    f"Source ended early at block {index} ({len(block)} of {want} bytes)."
                )
            try:
                ciphertext = public_key.key.encrypt(block, oaep)
            except ValueError as exc:
                raise EncodeCryptoError(
                    f"RSA encryption rejected block {index} ({want} bytes)."
                ) from exc
            written += _write(sink, LENGTH_FIELD.pack(len(ciphertext)) + ciphertext, EncodeIOError)
            remaining -= want
            logger.debug("block %d: %d -> %d bytes, %d left", index, want, len(ciphertext), remaining)
            if progress_callback:
                progress_callback(length - remaining, length)

        if _read(source, 1, EncodeIOError):
            raise EncodeIOError("Source grew while it was being encrypted.")

        return ContainerStats(self.container_format, block_count, length, written)

    def decode_stream(
        self,
        source: BinaryIO,
        sink: BinaryIO,
        private_key: KeyHandle,
        *,
        total: int = 0,
        progress_callback: Optional[ProgressCallback] = None,
    ) -> ContainerStats:
        """
        Decrypt the container in *source* into *sink*.

        *total* is only passed through to *progress_callback*.
        """
        _require_role(private_key, KeyRole.PRIVATE, "Decoding")
        container_format, policy, block_count, consumed = self._read_preamble(source)
        cipher_size = policy.cipher_size(private_key.modulus_bits)
        oaep = policy.oaep()
        logger.debug("Decoding %d blocks (OAEP/%s)", block_count, policy.hash_name)

        written = 0
        for index in range(block_count):
            raw_len = _read(source, LENGTH_FIELD.size, DecodeIOError)
            if len(raw_len) != LENGTH_FIELD.size:
                raise TruncatedContainerError(f"Container ends before block {index}.")
            (cipher_len,) = LENGTH_FIELD.unpack(raw_len)
            if cipher_len > cipher_size:
                raise DecodeCryptoError(_OPAQUE_BLOCK_FAILURE)

            ciphertext = _read(source, cipher_len, DecodeIOError)
            if len(ciphertext) != cipher_len:
                raise TruncatedContainerError(
                    f"Container ends inside block {index} "
                    f"({len(ciphertext)} of {cipher_len} bytes)."
                )
            try:
                plaintext = private_key.key.decrypt(ciphertext, oaep)
            except ValueError:
                plaintext = None
            # raised outside the handler: no padding-check detail leaves the codec
            if plaintext is None:
                raise DecodeCryptoError(_OPAQUE_BLOCK_FAILURE)

            written += _write(sink, plaintext, DecodeIOError)
            consumed += LENGTH_FIELD.size + cipher_len
            logger.debug("block %d: %d -> %d bytes", index, cipher_len, len(plaintext))
            if progress_callback:
                progress_callback(consumed, total)

        if _read(source, 1, DecodeIOError):
            raise MalformedContainerError("Unexpected data after the last block.")

        return ContainerStats(container_format, block_count, consumed, written)

    def _read_preamble(
        self, source: BinaryIO
    ) -> Tuple[ContainerFormat, BlockSizePolicy, int, int]:
        """Read the optional v1 header and the block count."""
        head = _read(source, LENGTH_FIELD.size, DecodeIOError)
        if len(head) != LENGTH_FIELD.size:
            raise TruncatedContainerError("Container is shorter than its block count.")

        # v0 block counts equal to the magic's first four bytes are reserved.
        if head != FRAMED_MAGIC[:LENGTH_FIELD.size]:
            return ContainerFormat.LEGACY, self.policy, LENGTH_FIELD.unpack(head)[0], len(head)

        header = head + _read(source, FRAMED_HEADER_SIZE - len(head), DecodeIOError)
        policy = _parse_header(header)
        raw_count = _read(source, LENGTH_FIELD.size, DecodeIOError)
        if len(raw_count) != LENGTH_FIELD.size:
            raise TruncatedContainerError("Container is shorter than its block count.")
        consumed = FRAMED_HEADER_SIZE + LENGTH_FIELD.size
        return ContainerFormat.FRAMED, policy, LENGTH_FIELD.unpack(raw_count)[0], consumed

    # ------------------------------------------------------------------
    # In-memory
    # ------------------------------------------------------------------

    def encode(self, plaintext: bytes, public_key: KeyHandle) -> bytes:
        """Encrypt *plaintext* and return the whole container."""
        out = io.BytesIO()
        self.encode_stream(io.BytesIO(plaintext), out, public_key, len(plaintext))
        return out.getvalue()

    def decode(self, container: bytes, private_key: KeyHandle) -> bytes:
        """Decrypt a container produced by :meth:`encode`."""
        out = io.BytesIO()
        self.decode_stream(io.BytesIO(container), out, private_key, total=len(container))
        return out.getvalue()

    def inspect(self, container: Union[bytes, BinaryIO]) -> ContainerInfo:
        """
        Read the framing of *container* without decrypting anything.

        Raises the same truncation and format errors as :meth:`decode`.
        """
        source = io.BytesIO(container) if isinstance(container, (bytes, bytearray)) else container
        container_format, policy, block_count, _ = self._read_preamble(source)
        lengths = []
        for index in range(block_count):
            raw_len = _read(source, LENGTH_FIELD.size, DecodeIOError)
            if len(raw_len) != LENGTH_FIELD.size:
                raise TruncatedContainerError(f"Container ends before block {index}.")
            (cipher_len,) = LENGTH_FIELD.unpack(raw_len)
            if _skip(source, cipher_len, DecodeIOError) != cipher_len:
                raise TruncatedContainerError(f"Container ends inside block {index}.")
            lengths.append(cipher_len)
        if _read(source, 1, DecodeIOError):
            raise MalformedContainerError("Unexpected data after the last block.")
        hash_name = policy.hash_name if container_format is ContainerFormat.FRAMED else None
        return ContainerInfo(container_format, hash_name, block_count, tuple(lengths))

    # ------------------------------------------------------------------
    # Files
    # ------------------------------------------------------------------

    def encode_file(
        self,
        input_path: PathLike,
        output_path: PathLike,
        public_key: KeyHandle,
        *,
        progress_callback: Optional[ProgressCallback] = None,
    ) -> ContainerStats:
        """
        Encrypt *input_path* into a container at *output_path*.

        The container is written beside *output_path* under a temporary
        name and renamed into place only once complete.
        """
        input_path = Path(input_path)
        output_path = Path(output_path)
        try:
            fin = open(input_path, "rb")
            total = os.fstat(fin.fileno()).st_size
        except OSError as exc:
            raise EncodeIOError(f"Cannot read {input_path}: {exc.strerror}") from exc

        with fin, _atomic_output(output_path, EncodeIOError) as fout:
            stats = self.encode_stream(
                fin, fout, public_key, total, progress_callback=progress_callback
            )
        logger.info(
            "Encrypted %s -> %s (%d blocks, %d bytes)",
            input_path, output_path, stats.block_count, stats.bytes_written,
        )
        return stats

    def decode_file(
        self,
        input_path: PathLike,
        output_path: PathLike,
        private_key: KeyHandle,
        *,
        progress_callback: Optional[ProgressCallback] = None,
    ) -> ContainerStats:
        """Decrypt a container file produced by :meth:`encode_file`."""
        input_path = Path(input_path)
        output_path = Path(output_path)
        try:
            fin = open(input_path, "rb")
            total = os.fstat(fin.fileno()).st_size
        except OSError as exc:
            raise DecodeIOError(f"Cannot read {input_path}: {exc.strerror}") from exc

        with fin, _atomic_output(output_path, DecodeIOError) as fout:
            stats = self.decode_stream(
                fin, fout, private_key, total=total, progress_callback=progress_callback
            )
        logger.info(
            "Decrypted %s -> %s (%d blocks, %d bytes)",
            input_path, output_path, stats.block_count, stats.bytes_written,
        )
        return stats


# ---------------------------------------------------------------------------
# Output naming
# ---------------------------------------------------------------------------


def default_encrypted_path(source: PathLike) -> Path:
    """``report.pdf`` -> ``report.pdfx``"""
    source = Path(source)
    return source.with_name(source.name + ENCRYPTED_SUFFIX)


def default_decrypted_path(source: PathLike) -> Path:
    """
    Strip the encrypted suffix if present, else prepend ``decrypted_``.
    """
    source = Path(source)
    name = source.name
    if name.endswith(ENCRYPTED_SUFFIX) and len(name) > len(ENCRYPTED_SUFFIX):
        return source.with_name(name[: -len(ENCRYPTED_SUFFIX)])
    return source.with_name(DECRYPTED_PREFIX + name)


# ---------------------------------------------------------------------------
# Helpers (module-private)
# ---------------------------------------------------------------------------


def _pem_bytes(pem: Union[bytes, bytearray, str]) -> bytes:
    if isinstance(pem, str):
        return pem.encode("utf-8")
    if isinstance(pem, (bytes, bytearray)):
        return bytes(pem)
    raise KeyFormatError("Key material must be PEM bytes or text.")


def _passphrase_bytes(passphrase: Optional[Union[str, bytes]]) -> Optional[bytes]:
    if not passphrase:
        return None
    if isinstance(passphrase, str):
        return passphrase.encode("utf-8")
    return bytes(passphrase)


def _require_role(handle: KeyHandle, role: KeyRole, action: str) -> None:
    if not isinstance(handle, KeyHandle):
        raise KeyRoleError(f"{action} needs a KeyHandle, got {type(handle).__name__}.")
    if handle.role is not role:
        raise KeyRoleError(f"{action} needs a {role.value} key, got a {handle.role.value} key.")


def _read(source: BinaryIO, size: int, error_cls: Type[EncrypterError]) -> bytes:
    """Read up to *size* bytes, looping over short reads until EOF."""
    buf = bytearray()
    try:
        while len(buf) < size:
            piece = source.read(size - len(buf))
            if not piece:
                break
            buf += piece
    except OSError as exc:
        raise error_cls(f"Read failed: {exc}") from exc
    return bytes(buf)


def _skip(source: BinaryIO, size: int, error_cls: Type[EncrypterError]) -> int:
    """Discard up to *size* bytes in bounded pieces; return how many were there."""
    skipped = 0
    while skipped < size:
        piece = _read(source, min(size - skipped, _SKIP_PIECE), error_cls)
        if not piece:
            break
        skipped += len(piece)
    return skipped


def _write(sink: BinaryIO, data: bytes, error_cls: Type[EncrypterError]) -> int:
    try:
        sink.write(data)
    except OSError as exc:
        raise error_cls(f"Write failed: {exc}") from exc
    return len(data)


@contextmanager
def _atomic_output(path: Path, error_cls: Type[EncrypterError]) -> Iterator[BinaryIO]:
    """Yield a temporary file beside *path*; rename it over *path* on success."""
    try:
        fd, tmp_name = tempfile.mkstemp(
            prefix=f".{path.name}.", suffix=".part", dir=path.parent
        )
    except OSError as exc:
        raise error_cls(f"Cannot write to {path.parent}: {exc.strerror}") from exc
    tmp = Path(tmp_name)
    try:
        with os.fdopen(fd, "wb") as fout:
            yield fout
        os.replace(tmp, path)
    except OSError as exc:
        _discard(tmp)
        raise error_cls(f"Cannot write {path}: {exc.strerror}") from exc
    except BaseException:
        _discard(tmp)
        raise


def _discard(path: Path) -> None:
    try:
        path.unlink()
    except OSError:
        pass


# ---------------------------------------------------------------------------
# Module-level convenience functions
# ---------------------------------------------------------------------------

_codec = BlockContainerCodec()

load_public_key = KeyCodec.load_public_key
load_private_key = KeyCodec.load_private_key
validate_public_key = KeyCodec.validate_public_key
generate_keypair = KeyCodec.generate_keypair
read_key_file = KeyCodec.read_key_file

encode = _codec.encode
decode = _codec.decode
encode_file = _codec.encode_file
decode_file = _codec.decode_file
inspect_container = _codec.inspect
