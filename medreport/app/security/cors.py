from __future__ import annotations


def cors_kwargs(origins: list[str]) -> dict:
    return {
        "allow_origins": origins,
        "allow_credentials": False,
        "allow_methods": ["GET", "POST", "OPTIONS"],
        "allow_headers": ["Content-Type", "X-Request-Id"],
        "expose_headers": ["X-Request-Id"],
    }
