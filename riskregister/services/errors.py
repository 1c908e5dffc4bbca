# riskregister/services/errors.py
from __future__ import annotations

from typing import Dict


class RegisterError(Exception):
    """Base error untuk operasi risk register."""

    http_status = 500


class NotFoundError(RegisterError):
    http_status = 404


class RegisterValidationError(RegisterError):
    """Validasi domain gagal; ``errors`` berisi map field (camelCase) → pesan."""

    http_status = 400

    def __init__(self, errors: Dict[str, str]):
        self.errors = errors
        super().__init__("; ".join(f"{k}: {v}" for k, v in errors.items()))


class ImportFormatError(RegisterError):
    http_status = 400
