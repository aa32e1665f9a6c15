"""Uniform response envelope: {"success": bool, "data" | "error"}."""
from __future__ import annotations

from typing import Any

from flask import jsonify


def success_response(data: Any, status: int = 200, message: str | None = None):
    payload = {"success": True, "data": data}
    if message:
        payload["message"] = message
    return jsonify(payload), status


def error_response(message: str, status: int, details: dict | None = None):
    error = {"message": message}
    if details:
        error["details"] = details
    return jsonify({"success": False, "error": error}), status
