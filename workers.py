"""
Encrypter Background Workers
============================

QThread-based workers that run one codec call (or one batch) off the UI
thread.  Emits signals for progress tracking, elapsed time, and
result/error reporting.

A started worker runs to completion or failure; the codec offers no
mid-stream abort.
"""

from __future__ import annotations

import time
from pathlib import Path
from typing import Optional

from PySide6.QtCore import QThread, Signal

import encrypter
import folder
from messages import describe_error

# Minimum interval between progress signal emissions (seconds)
_PROGRESS_THROTTLE = 0.05  # 50 ms -> max ~20 updates/sec


class _ThrottledProgress:
    """Progress callback that emits at most once per throttle interval."""

    def __init__(self, signal, t0: float):
        self._signal = signal
        self._t0 = t0
        self._last_emit = 0.0

    def __call__(self, done: int, total: int) -> None:
        now = time.perf_counter()
        if done >= total or now - self._last_emit >= _PROGRESS_THROTTLE:
            self._signal.emit(done, total, now - self._t0)
            self._last_emit = now


# ---------------------------------------------------------------------------
# Single-file workers
# ---------------------------------------------------------------------------


class FileEncodeWorker(QThread):
    """Encrypt one file in a background thread with progress reporting."""

    # object, not int: Qt's int is 32-bit and byte counts pass 2 GiB
    progress = Signal(object, object, float)  # (bytes_processed, total_bytes, elapsed_sec)
    finished = Signal(str, float)             # (output_path, elapsed_sec)
    error = Signal(str)

    def __init__(
        self,
        input_path: str,
        output_path: Optional[str],
        public_key: encrypter.KeyHandle,
        codec: Optional[encrypter.BlockContainerCodec] = None,
        parent=None,
    ):
        super().__init__(parent)
        self._input_path = input_path
        self._output_path = output_path or str(encrypter.default_encrypted_path(input_path))
        self._public_key = public_key
        self._codec = codec or encrypter.BlockContainerCodec()

    @property
    def output_path(self) -> str:
        return self._output_path

    def run(self) -> None:
        t0 = time.perf_counter()
        try:
            self._codec.encode_file(
                self._input_path,
                self._output_path,
                self._public_key,
                progress_callback=_ThrottledProgress(self.progress, t0),
            )
            self.finished.emit(self._output_path, time.perf_counter() - t0)
        except Exception as exc:
            self.error.emit(describe_error(exc))


class FileDecodeWorker(QThread):
    """Decrypt one container file in a background thread."""

    progress = Signal(object, object, float)
    finished = Signal(str, float)
    error = Signal(str)

    def __init__(
        self,
        input_path: str,
        output_path: Optional[str],
        private_key: encrypter.KeyHandle,
        codec: Optional[encrypter.BlockContainerCodec] = None,
        parent=None,
    ):
        super().__init__(parent)
        self._input_path = input_path
        self._output_path = output_path or str(encrypter.default_decrypted_path(input_path))
        self._private_key = private_key
        self._codec = codec or encrypter.BlockContainerCodec()

    @property
    def output_path(self) -> str:
        return self._output_path

    def run(self) -> None:
        t0 = time.perf_counter()
        try:
            self._codec.decode_file(
                self._input_path,
                self._output_path,
                self._private_key,
                progress_callback=_ThrottledProgress(self.progress, t0),
            )
            self.finished.emit(self._output_path, time.perf_counter() - t0)
        except Exception as exc:
            self.error.emit(describe_error(exc))


# ---------------------------------------------------------------------------
# Batch worker
# ---------------------------------------------------------------------------


class BatchEncodeWorker(QThread):
    """Encrypt every file selected in a folder tree."""

    file_started = Signal(int, int, str)  # (index, count, source_path)
    progress = Signal(object, object, float)  # per file: (bytes_processed, total_bytes, elapsed_sec)
    finished = Signal(list, float)        # ([(source, output, message_or_empty)], elapsed_sec)
    error = Signal(str)

    def __init__(
        self,
        root: folder.FolderNode,
        public_key: encrypter.KeyHandle,
        codec: Optional[encrypter.BlockContainerCodec] = None,
        parent=None,
    ):
        super().__init__(parent)
        self._root = root
        self._public_key = public_key
        self._codec = codec

    def _on_file(self, index: int, count: int, source: Path) -> None:
        self.file_started.emit(index, count, str(source))

    def run(self) -> None:
        t0 = time.perf_counter()
        try:
            results = folder.encrypt_selection(
                self._root,
                self._public_key,
                codec=self._codec,
                file_callback=self._on_file,
                progress_callback=_ThrottledProgress(self.progress, t0),
            )
        except Exception as exc:
            self.error.emit(describe_error(exc))
            return
        summary = [
            (str(r.source), str(r.output), "" if r.ok else describe_error(r.error))
            for r in results
        ]
        self.finished.emit(summary, time.perf_counter() - t0)
