"""
Encrypter User Messages
=======================

Turns codec exceptions into the one-line text a window, status bar or
terminal shows.  Padding and wrong-key failures share one message.
"""

from __future__ import annotations

import encrypter
import folder


def describe_error(exc: BaseException) -> str:
    """One-line message suitable for a status bar or dialog."""
    if isinstance(exc, encrypter.WrongPassphraseError):
        return "Wrong passphrase for this private key."
    if isinstance(exc, encrypter.KeyFormatError):
        return f"Invalid key: {exc}"
    if isinstance(exc, encrypter.KeyRoleError):
        return f"Wrong kind of key: {exc}"
    if isinstance(exc, encrypter.KeyTooSmallError):
        return f"Key too small: {exc}"
    if isinstance(exc, encrypter.TruncatedContainerError):
        return f"Encrypted file is incomplete: {exc}"
    if isinstance(exc, encrypter.DecodeCryptoError):
        return "Cannot decrypt: this file was not encrypted for this key, or it was altered."
    if isinstance(exc, encrypter.MalformedContainerError):
        return f"Not a valid encrypted file: {exc}"
    if isinstance(exc, (encrypter.EncodeIOError, encrypter.DecodeIOError, folder.FolderError)):
        return f"File error: {exc}"
    if isinstance(exc, encrypter.EncrypterError):
        return str(exc)
    return f"Unexpected error: {exc}"
