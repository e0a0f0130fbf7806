"""
Helper functions for common infrastructure operations.

This module provides domain-agnostic utility functions for:
- String hashing (idempotency fingerprints)
- HTTP request helpers (client IP and user agent extraction)

Usage:
    from core.helpers import hash_string, get_client_ip

    fingerprint = hash_string("order-id|full|...")
    ip = get_client_ip(request)
"""

from __future__ import annotations

import hashlib
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from django.http import HttpRequest


def hash_string(value: str, algorithm: str = "sha256") -> str:
    """
    Hash a string using the specified algorithm.

    Args:
        value: String to hash
        algorithm: Hash algorithm (sha256, sha512, etc.)

    Returns:
        Hexadecimal hash string
    """
    hasher = hashlib.new(algorithm)
    hasher.update(value.encode("utf-8"))
    return hasher.hexdigest()


def get_client_ip(request: HttpRequest) -> str:
    """
    Extract client IP from request, handling proxies.

    Checks X-Forwarded-For (first hop is the original client), then
    X-Real-IP, then the socket address.
    """
    x_forwarded_for = request.META.get("HTTP_X_FORWARDED_FOR")
    if x_forwarded_for:
        return x_forwarded_for.split(",")[0].strip()

    x_real_ip = request.META.get("HTTP_X_REAL_IP")
    if x_real_ip:
        return x_real_ip.strip()

    return request.META.get("REMOTE_ADDR", "")


def get_user_agent(request: HttpRequest) -> str:
    """Return the request's User-Agent header (empty string when absent)."""
    return request.META.get("HTTP_USER_AGENT", "")
