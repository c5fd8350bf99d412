# camtickler/net/progress.py

from __future__ import annotations

from typing import Callable, TextIO

# (bytes transferred so far, total bytes or 0 when unknown)
ProgressCallback = Callable[[int, int], None]

# total value of the final event; distinct from 0, which means "unknown"
PROGRESS_COMPLETE = -1


def is_complete(total: int) -> bool:
    return total == PROGRESS_COMPLETE


def no_progress(amount: int, total: int) -> None:
    return None


def fixed_total(real_total: int, callback: ProgressCallback) -> ProgressCallback:
    # the FTP layer has no size; report the one learned elsewhere instead
    def _adapter(amount: int, total: int) -> None:
        if not is_complete(total):
            total = real_total
        callback(amount, total)

    return _adapter


def console_progress(message: str, stream: TextIO) -> ProgressCallback:
    def _show(amount: int, total: int) -> None:
        if is_complete(total):
            stream.write("\n")
            stream.flush()
            return
        line = f"\r{message}: {amount} bytes read"
        if total:
            line += f" ({amount * 100 // total}%)"
        stream.write(line)
        stream.flush()

    return _show
