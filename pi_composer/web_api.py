#!/usr/bin/env python3
"""Flask JSON API for Pi Composer.

This module exposes the composer over HTTP so a browser front-end (or any
other client) can request π melodies, pattern analysis and harmony voices
without running Python itself. The API is stateless: every request carries
all of its parameters and receives the complete result.

Routes
------
``GET /api/options``
    Supported scales, keys, limits and default control values.
``GET /api/csrf-token``
    Token that browser clients send back in the ``X-CSRFToken`` header.
``POST /api/compose``
    Map the digits of π onto notes and optionally enhance them.
``POST /api/enhance``
    Enhance a caller-supplied note sequence.

The application applies the following protections:

* **CSRF protection** – Flask-WTF's :class:`~flask_wtf.csrf.CSRFProtect`
  validates a token on every POST request.
* **WSGI-friendly entry point** – a :func:`create_app` factory builds and
  configures the application so production servers like Gunicorn can serve
  it directly.
* **Request size limiting** – ``MAX_CONTENT_LENGTH`` bounds the size of JSON
  bodies so oversized payloads are rejected early with ``413``.
* **Rate limiting** – a thread-safe in-memory per-IP throttle answers ``429``
  with a ``Retry-After`` header once a client exceeds its per-minute budget.
"""

from __future__ import annotations

import logging
import math
import os
import random
import secrets
from threading import Lock
from time import monotonic
from typing import Any, Dict, List, Mapping, Optional, Tuple

from flask import Flask, Response, current_app, jsonify, make_response, request
from flask_wtf.csrf import CSRFError, CSRFProtect, generate_csrf

from pi_composer import NOTES, note_frequency
from pi_composer.composer import CompositionOptions, enhance_composition
from pi_composer.note_utils import split_note
from pi_composer.pi_digits import (
    DEFAULT_BASE_OCTAVE,
    KEYS,
    MAX_PI_DIGITS,
    SCALES,
    generate_pi_melody,
)

# Logger used throughout the module for diagnostic messages.
logger = logging.getLogger(__name__)

# CSRF protection instance. ``init_app`` is invoked inside ``create_app`` so
# tests can control when protection is enabled.
csrf = CSRFProtect()

# Longest note sequence accepted by ``/api/enhance``.
MAX_NOTES = MAX_PI_DIGITS

# Default values for request fields that may be omitted.
_DEFAULTS: Dict[str, Any] = {
    "digits": 20,
    "scale": "major",
    "key": "D",
    "base_octave": DEFAULT_BASE_OCTAVE,
    "enhance": False,
    "complexity": 0.5,
    "variation": 0.3,
    "harmony": False,
}

# In-memory store tracking request counts per IP address. Each entry maps the
# client IP to a ``(window_start, count)`` tuple. Access is synchronized by
# ``REQUEST_LOCK`` because the development server handles requests on
# multiple threads.
REQUEST_LOG: Dict[str, Tuple[float, int]] = {}
REQUEST_LOCK = Lock()

# Duration of a single rate-limit window in seconds. ``monotonic`` timestamps
# keep the calculation independent of system clock adjustments.
RATE_LIMIT_WINDOW = 60.0


def rate_limit() -> Optional[Response]:
    """Enforce a naive per-IP request limit.

    Registered as a ``before_request`` hook. The limit comes from the
    ``RATE_LIMIT_PER_MINUTE`` configuration value; missing, non-numeric or
    non-positive values disable throttling. Stale entries are purged before
    each new request is recorded.

    Returns:
        Optional[Response]: ``429`` response when the limit is exceeded,
        otherwise ``None`` to let the request proceed.
    """

    limit_raw = current_app.config.get("RATE_LIMIT_PER_MINUTE")
    if limit_raw is None:
        return None

    try:
        limit = int(limit_raw)
    except (TypeError, ValueError):
        logger.warning(
            "Invalid RATE_LIMIT_PER_MINUTE %r; disabling rate limiting", limit_raw
        )
        return None

    if limit <= 0:
        # ``0`` means "disabled"; only negative values are worth a warning.
        if limit < 0:
            logger.warning(
                "RATE_LIMIT_PER_MINUTE must be positive; disabling rate limiting (received %r)",
                limit_raw,
            )
        return None

    now = monotonic()
    ip_addr = request.remote_addr or "unknown"

    with REQUEST_LOCK:
        expired = [
            ip for ip, (start, _) in REQUEST_LOG.items()
            if now - start >= RATE_LIMIT_WINDOW
        ]
        for ip in expired:
            del REQUEST_LOG[ip]

        window_start, count = REQUEST_LOG.get(ip_addr, (now, 0))

        if count >= limit:
            remaining = math.ceil(
                max(0.0, RATE_LIMIT_WINDOW - (now - window_start))
            )
            response = make_response(jsonify(error="Too many requests"), 429)
            response.headers["Retry-After"] = str(remaining)
            return response

        REQUEST_LOG[ip_addr] = (window_start, count + 1)

    return None


# ---------------------------------------------------------------------------
# Request parsing helpers
# ---------------------------------------------------------------------------


def _json_body() -> Dict[str, Any]:
    """Return the request's JSON object or raise ``ValueError``."""

    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise ValueError("Request body must be a JSON object.")
    return data


def _int_field(data: Mapping[str, Any], name: str) -> int:
    value = data.get(name, _DEFAULTS[name])
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"{name} must be an integer.")
    return value


def _unit_field(data: Mapping[str, Any], name: str) -> float:
    value = data.get(name, _DEFAULTS[name])
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValueError(f"{name} must be a number.")
    if not 0 <= value <= 1:
        raise ValueError(f"{name} must be between 0 and 1.")
    return float(value)


def _bool_field(data: Mapping[str, Any], name: str) -> bool:
    value = data.get(name, _DEFAULTS[name])
    if not isinstance(value, bool):
        raise ValueError(f"{name} must be true or false.")
    return value


def _str_field(data: Mapping[str, Any], name: str) -> str:
    value = data.get(name, _DEFAULTS[name])
    if not isinstance(value, str):
        raise ValueError(f"{name} must be a string.")
    return value


def _rng_from(data: Mapping[str, Any]) -> random.Random:
    seed = data.get("seed")
    if seed is not None and (isinstance(seed, bool) or not isinstance(seed, int)):
        raise ValueError("seed must be an integer.")
    return random.Random(seed)


def _notes_field(data: Mapping[str, Any]) -> List[str]:
    notes = data.get("notes")
    if not isinstance(notes, list):
        raise ValueError("notes must be a list of note names.")
    if len(notes) > MAX_NOTES:
        raise ValueError(f"notes may contain at most {MAX_NOTES} entries.")
    for note in notes:
        name, octave = (split_note(note) if isinstance(note, str) and note else ("", None))
        if octave is None or name not in NOTES:
            raise ValueError(f"Invalid note: {note!r}")
    return notes


def _bad_request(message: str) -> Tuple[Response, int]:
    logger.info("Rejected request: %s", message)
    return jsonify(error=message), 400


# ---------------------------------------------------------------------------
# Views
# ---------------------------------------------------------------------------


def options():
    """Describe the values accepted by the POST endpoints."""

    return jsonify(
        scales=sorted(SCALES.keys()),
        keys=list(KEYS.keys()),
        max_digits=MAX_PI_DIGITS,
        max_notes=MAX_NOTES,
        defaults=_DEFAULTS,
    )


def csrf_token():
    """Return a CSRF token for clients that post JSON from a browser."""

    return jsonify(csrf_token=generate_csrf())


def compose():
    """Map digits of π to notes and run the composer on them.

    The response contains the displayed value of π, the raw notes, their
    frequencies after enhancement and the composition result fields
    (``enhancedNotes``, ``patterns`` and ``harmonies``).
    """

    try:
        data = _json_body()
        digits = _int_field(data, "digits")
        if not 1 <= digits <= MAX_PI_DIGITS:
            raise ValueError(f"digits must be between 1 and {MAX_PI_DIGITS}.")
        scale = _str_field(data, "scale")
        key = _str_field(data, "key")
        base_octave = _int_field(data, "base_octave")
        enhance = _bool_field(data, "enhance")
        complexity = _unit_field(data, "complexity")
        variation = _unit_field(data, "variation")
        harmony = _bool_field(data, "harmony")
        rng = _rng_from(data)
        pi_text, notes = generate_pi_melody(digits, scale, key, base_octave)
    except ValueError as exc:
        return _bad_request(str(exc))

    result = enhance_composition(
        CompositionOptions(
            notes=notes,
            complexity=complexity if enhance else 0.0,
            harmony=harmony,
            variation=variation,
        ),
        rng,
    )
    payload: Dict[str, Any] = {
        "pi": pi_text,
        "notes": notes,
        "frequencies": [round(note_frequency(n), 2) for n in result.enhanced_notes],
    }
    payload.update(result.to_dict())
    return jsonify(payload)


def enhance():
    """Run the composer on a caller-supplied note sequence."""

    try:
        data = _json_body()
        notes = _notes_field(data)
        complexity = _unit_field(data, "complexity")
        variation = _unit_field(data, "variation")
        harmony = _bool_field(data, "harmony")
        rng = _rng_from(data)
    except ValueError as exc:
        return _bad_request(str(exc))

    result = enhance_composition(
        CompositionOptions(
            notes=notes, complexity=complexity, harmony=harmony, variation=variation
        ),
        rng,
    )
    return jsonify(result.to_dict())


def create_app() -> Flask:
    """Build and configure the Flask application instance.

    In production (non-debug) mode the factory requires ``FLASK_SECRET``; a
    missing value triggers a :class:`RuntimeError` after a ``CRITICAL`` log
    entry so the API never runs with an ephemeral signing key. Request size
    is bounded by ``MAX_UPLOAD_MB`` and clients may be throttled with
    ``RATE_LIMIT_PER_MINUTE``.

    Returns:
        Flask: Configured application ready for use by a WSGI server.
    Raises:
        RuntimeError: If ``FLASK_SECRET`` is absent when debug mode is
            disabled.
    """

    app = Flask(__name__)

    secret = os.environ.get("FLASK_SECRET")
    try:
        max_mb = int(os.environ.get("MAX_UPLOAD_MB", "1"))
    except ValueError:
        max_mb = 1
        logger.warning("Invalid MAX_UPLOAD_MB value; defaulting to 1 MB.")
    rate_limit_env = os.environ.get("RATE_LIMIT_PER_MINUTE")
    try:
        rate_limit_per_minute = int(rate_limit_env) if rate_limit_env else None
    except ValueError:
        logger.warning(
            "RATE_LIMIT_PER_MINUTE must be an integer. Disabling rate limiting."
        )
        rate_limit_per_minute = None

    if not app.debug and not secret:
        logger.critical("FLASK_SECRET environment variable must be set in production.")
        raise RuntimeError("Missing FLASK_SECRET")

    if not secret:
        secret = secrets.token_urlsafe(32)
        logger.warning(
            "FLASK_SECRET environment variable not set. "
            "Using a randomly generated key; CSRF tokens will not survive restarts."
        )
    app.secret_key = secret
    app.config["MAX_CONTENT_LENGTH"] = max_mb * 1024 * 1024
    app.config["RATE_LIMIT_PER_MINUTE"] = rate_limit_per_minute

    csrf.init_app(app)

    app.add_url_rule("/api/options", view_func=options, methods=["GET"])
    app.add_url_rule("/api/csrf-token", view_func=csrf_token, methods=["GET"])
    app.add_url_rule("/api/compose", view_func=compose, methods=["POST"])
    app.add_url_rule("/api/enhance", view_func=enhance, methods=["POST"])

    app.before_request(rate_limit)

    @app.errorhandler(CSRFError)
    def handle_csrf_error(err):
        """Report missing or invalid CSRF tokens as JSON."""
        return jsonify(error=err.description), 400

    @app.errorhandler(413)
    def handle_request_too_large(_err):
        """Return a concise message when the client uploads too much data."""
        return jsonify(error="Request exceeds configured size limit."), 413

    return app


# Instantiate a default application for ad-hoc scripts and tests while still
# exposing ``create_app`` for production WSGI servers.
app = create_app()


def run() -> None:  # pragma: no cover - manual usage
    """Serve the API with Flask's development server."""

    logging.basicConfig(level=logging.INFO, format="%(levelname)s: %(message)s")
    app.run(debug=os.environ.get("FLASK_DEBUG") == "1")


if __name__ == "__main__":  # pragma: no cover - manual usage
    run()
