"""
riskregister/utils/logger.py → logger aplikasi dengan 3 mode:

file (default): tulis ke logs/YYYY-MM/<module>.log, rotasi harian, retensi
(default 90 file), pindah direktori otomatis saat ganti bulan.

stdout: hanya ke console (rotasi diserahkan ke Docker/systemd).

socket: kirim record ke listener TCP terpisah (SocketHandler stdlib).

Konfigurasi lewat ENV prefix LOG_ atau app.config Quart (LOG_*).
"""

# riskregister/utils/logger.py
from __future__ import annotations

import logging
import os
import sys
import threading
import time
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Optional

from logging.handlers import SocketHandler, TimedRotatingFileHandler

from pydantic_settings import BaseSettings, SettingsConfigDict
from quart import current_app, has_app_context


def _detect_project_root() -> Path:
    """
    Cari akar proyek:
    - ENV PROJECT_ROOT
    - folder pertama ke atas yang punya pyproject.toml atau .git
    - fallback: dua level di atas file ini
    """
    env_root = os.getenv("PROJECT_ROOT")
    if env_root:
        return Path(env_root).resolve()

    here = Path(__file__).resolve()
    for p in here.parents:
        if (p / "pyproject.toml").exists() or (p / ".git").exists():
            return p
    return here.parents[2]


class RegisterLogSettings(BaseSettings):
    """
    Konfigurasi via ENV (prefix LOG_) / .env, di-overlay oleh app.config Quart.

      - LOG_MODE=file|stdout|socket
      - LOG_LEVEL=INFO|DEBUG|WARNING|ERROR
      - LOG_FORMAT="%(asctime)s %(levelname)s %(name)s: %(message)s"
      - LOG_RETENTION=90
      - LOG_ROOT_DIR=/path/proyek (opsional)
      - LOG_CONSOLE=true|false
      - LOG_SOCKET_HOST / LOG_SOCKET_PORT
    """

    model_config = SettingsConfigDict(
        env_prefix="LOG_",
        extra="ignore",
        env_file=".env",
        env_file_encoding="utf-8",
    )

    mode: str = "file"
    level: str = "INFO"
    format: str = "%(asctime)s %(levelname)s %(name)s: %(message)s"
    datefmt: str = "%Y-%m-%d %H:%M:%S"
    retention: int = 90
    root_dir: Optional[Path] = None
    console: bool = True
    console_level: Optional[str] = None
    month_format: str = "%Y-%m"
    use_utc: bool = False
    socket_host: str = "127.0.0.1"
    socket_port: int = 9020


_OVERLAY_KEYS = (
    "LOG_MODE",
    "LOG_LEVEL",
    "LOG_FORMAT",
    "LOG_RETENTION",
    "LOG_ROOT_DIR",
    "LOG_CONSOLE",
    "LOG_SOCKET_HOST",
    "LOG_SOCKET_PORT",
)


def _resolve_settings() -> RegisterLogSettings:
    """ENV/.env lalu overlay app.config (prioritas: app.config)."""
    settings = RegisterLogSettings()
    if not has_app_context():
        return settings

    cfg = current_app.config
    overrides = {
        key[4:].lower(): cfg[key]
        for key in _OVERLAY_KEYS
        if key in cfg and cfg[key] is not None
    }
    if not overrides:
        return settings
    return settings.model_copy(update=overrides)


def _to_level(level: str) -> int:
    return getattr(logging, str(level).upper(), logging.INFO)


def _monthly_dir_factory_for(s: RegisterLogSettings) -> Callable[[datetime], Path]:
    base = Path(s.root_dir or _detect_project_root()) / "logs"

    def _factory(dt: datetime) -> Path:
        p = base / dt.strftime(s.month_format)
        p.mkdir(parents=True, exist_ok=True)
        return p

    return _factory


class MonthAwareTimedRotatingFileHandler(TimedRotatingFileHandler):
    """
    Rotasi harian (midnight) dari stdlib; setelah rotasi file aktif
    dipindah ke direktori bulan berjalan.
    """

    def __init__(
        self,
        base_name: str,
        month_dir_factory: Callable[[datetime], Path],
        backupCount: int = 90,
        utc: bool = False,
    ):
        self._base_name = base_name
        self._month_dir_factory = month_dir_factory
        filename = month_dir_factory(self._now(utc)) / base_name
        super().__init__(
            filename=str(filename),
            when="midnight",
            backupCount=backupCount,
            encoding="utf-8",
            utc=utc,
        )

    @staticmethod
    def _now(utc: bool) -> datetime:
        return datetime.now(timezone.utc) if utc else datetime.now()

    def doRollover(self) -> None:
        # rotasi standar di direktori lama
        super().doRollover()

        new_dir = self._month_dir_factory(self._now(self.utc))
        new_path = str(new_dir / self._base_name)
        if new_path == self.baseFilename:
            return

        # pindahkan base ke direktori bulan terkini
        if self.stream:
            self.stream.close()
        self.baseFilename = new_path
        self.stream = self._open()

        current_time = int(time.time())
        rollover_at = self.computeRollover(current_time)
        while rollover_at <= current_time:
            rollover_at += self.interval
        self.rolloverAt = rollover_at


_init_lock = threading.Lock()
_inited_loggers: set[str] = set()


def get_logger(name: str) -> logging.Logger:
    """
    Logger per-modul (file/stdout/socket):
      - mode file: logs/YYYY-MM/<segmen-terakhir>.log
      - idempotent & thread-safe (handler tidak dobel)
      - overlay config dari app.config Quart bila ada app context
    """
    s = _resolve_settings()
    mode = (s.mode or "file").lower().strip()

    logger = logging.getLogger(name)
    logger.setLevel(_to_level(s.level))
    logger.propagate = False

    if name in _inited_loggers and logger.handlers:
        return logger

    with _init_lock:
        if name in _inited_loggers and logger.handlers:
            return logger

        formatter = logging.Formatter(fmt=s.format, datefmt=s.datefmt)
        console_level = _to_level(s.console_level or s.level)

        if mode == "socket":
            sh = SocketHandler(s.socket_host, int(s.socket_port))
            sh.setLevel(_to_level(s.level))
            sh.closeOnError = True
            logger.addHandler(sh)
        elif mode != "stdout":  # "file" (default); mode tak dikenal juga jatuh ke file
            last_segment = (name.rsplit(".", 1)[-1] or "app").replace(":", "_")
            fh = MonthAwareTimedRotatingFileHandler(
                base_name=f"{last_segment}.log",
                month_dir_factory=_monthly_dir_factory_for(s),
                backupCount=int(s.retention),
                utc=bool(s.use_utc),
            )
            fh.setLevel(_to_level(s.level))
            fh.setFormatter(formatter)
            logger.addHandler(fh)

        # stdout selalu pakai console; mode lain hanya jika LOG_CONSOLE=true
        if mode == "stdout" or s.console:
            ch = logging.StreamHandler(sys.stdout)
            ch.setLevel(console_level)
            ch.setFormatter(formatter)
            logger.addHandler(ch)

        _inited_loggers.add(name)

    return logger
