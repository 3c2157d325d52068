# Overview: Scan input adapter; turns a stream of decoded codes into scan events.

"""
Scan Input Adapter

A decoder is any iterable of decoded strings: camera frames run through a
barcode library on the client, a keyboard-wedge USB scanner typing one code
per line, or a test fixture. ScanSession pulls from it and hands each
recognized code to `on_scan`.

- single mode: stop after the first code
- multi mode: keep scanning; the same code seen again within the cooldown
  window is dropped (a held scanner fires the same label many times a second)

Camera acquisition failures are mapped to a small set of categories with a
message the cashier can act on (classify_camera_error).
"""

from __future__ import annotations

import errno
import time
from typing import Callable, Iterable, TextIO

MODE_SINGLE = "single"
MODE_MULTI = "multi"
SCAN_MODES = (MODE_SINGLE, MODE_MULTI)

DEFAULT_COOLDOWN_SECONDS = 2.0

PERMISSION_DENIED = "permission_denied"
NO_CAMERA = "no_camera"
CAMERA_BUSY = "camera_busy"
INSECURE_CONTEXT = "insecure_context"
UNSUPPORTED = "unsupported"
UNKNOWN = "unknown"

CAMERA_ERROR_MESSAGES = {
    PERMISSION_DENIED: "Izin kamera ditolak. Klik ikon kamera di address bar browser untuk mengizinkan.",
    NO_CAMERA: "Kamera tidak ditemukan. Pastikan perangkat memiliki kamera.",
    CAMERA_BUSY: "Kamera sedang digunakan aplikasi lain. Tutup aplikasi tersebut dan coba lagi.",
    INSECURE_CONTEXT: "Akses kamera diblokir. Pastikan menggunakan HTTPS (https://).",
    UNSUPPORTED: "Browser tidak mendukung akses kamera. Gunakan browser modern seperti Chrome atau Firefox.",
    UNKNOWN: "Gagal mengakses kamera.",
}

# Browser DOMException names (getUserMedia) -> category
_ERROR_NAME_CATEGORIES = {
    "NotAllowedError": PERMISSION_DENIED,
    "PermissionDeniedError": PERMISSION_DENIED,
    "NotFoundError": NO_CAMERA,
    "DevicesNotFoundError": NO_CAMERA,
    "OverconstrainedError": NO_CAMERA,
    "NotReadableError": CAMERA_BUSY,
    "TrackStartError": CAMERA_BUSY,
    "AbortError": CAMERA_BUSY,
    "SecurityError": INSECURE_CONTEXT,
    "NotSupportedError": UNSUPPORTED,
    "TypeError": UNSUPPORTED,
}


class CameraError(Exception):
    """Camera could not be acquired. `category` is one of the constants above."""

    def __init__(self, category: str, message: str | None = None, detail: str | None = None):
        super().__init__(message or CAMERA_ERROR_MESSAGES.get(category, CAMERA_ERROR_MESSAGES[UNKNOWN]))
        self.category = category
        self.detail = detail

    def to_dict(self) -> dict:
        return {"category": self.category, "message": str(self), "detail": self.detail}


def classify_camera_error(error: BaseException | str, detail: str | None = None) -> CameraError:
    """
    Map a browser error name ("NotAllowedError") or a Python exception raised
    by a local capture device to a CameraError.
    """
    if isinstance(error, CameraError):
        return error

    if isinstance(error, str):
        category = _ERROR_NAME_CATEGORIES.get(error.strip(), UNKNOWN)
        if category == UNKNOWN and detail:
            return CameraError(UNKNOWN, f"Error: {detail}", detail=detail)
        return CameraError(category, detail=detail)

    detail = detail or str(error) or None
    if isinstance(error, PermissionError):
        return CameraError(PERMISSION_DENIED, detail=detail)
    if isinstance(error, FileNotFoundError):
        return CameraError(NO_CAMERA, detail=detail)
    if isinstance(error, OSError) and error.errno in (errno.EBUSY, errno.EAGAIN):
        return CameraError(CAMERA_BUSY, detail=detail)
    name = getattr(error, "name", None) or type(error).__name__
    return classify_camera_error(name, detail=detail)


def line_decoder(stream: TextIO) -> Iterable[str]:
    """Keyboard-wedge scanners type the code followed by Enter."""
    for line in stream:
        code = line.strip()
        if code:
            yield code


class ScanSession:
    def __init__(
        self,
        decoder: Iterable[str],
        on_scan: Callable[[str], None],
        *,
        mode: str = MODE_SINGLE,
        cooldown_seconds: float = DEFAULT_COOLDOWN_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ):
        if mode not in SCAN_MODES:
            raise ValueError(f"mode must be one of: {', '.join(SCAN_MODES)}")
        if cooldown_seconds < 0:
            raise ValueError("cooldown_seconds must be >= 0")
        self.decoder = decoder
        self.on_scan = on_scan
        self.mode = mode
        self.cooldown_seconds = cooldown_seconds
        self.clock = clock
        self.active = False
        self.emitted: list[str] = []
        self._last_code: str | None = None
        self._last_at: float | None = None

    def feed(self, raw: str | None) -> bool:
        """Offer one decoded value. Returns True when it was emitted."""
        if not self.active:
            return False
        code = (raw or "").strip()
        if not code:
            return False

        now = self.clock()
        if (
            self.mode == MODE_MULTI
            and code == self._last_code
            and self._last_at is not None
            and now - self._last_at < self.cooldown_seconds
        ):
            return False

        self._last_code = code
        self._last_at = now
        self.emitted.append(code)
        self.on_scan(code)

        if self.mode == MODE_SINGLE:
            self.stop()
        return True

    def run(self) -> list[str]:
        """
        Pull from the decoder until it is exhausted or the session stops.
        Device errors surface as CameraError.
        """
        self.active = True
        try:
            for raw in self.decoder:
                self.feed(raw)
                if not self.active:
                    break
        except CameraError:
            raise
        except OSError as exc:
            raise classify_camera_error(exc) from exc
        finally:
            self.active = False
        return self.emitted

    def stop(self) -> None:
        self.active = False
