"""OpenAPI customization utilities.

Enriches the generated OpenAPI schema with:
- Tags metadata
- A shared ``TooManyRequests`` response documenting the 429 error envelope
  and rate limit headers, attached to every rate limited operation

This keeps documentation concerns decoupled from the app factory.
"""

from __future__ import annotations

from typing import Any, Dict, Iterable

from fastapi import FastAPI

TAGS_METADATA = [
    {
        "name": "Profile",
        "description": "Clasificación del perfil de inversor a partir del cuestionario.",
    },
    {
        "name": "Rate limit",
        "description": "Consulta del cupo de solicitudes restante por endpoint.",
    },
    {
        "name": "Health",
        "description": "Liveness checks.",
    },
]

_RATE_LIMIT_HEADERS = {
    "Retry-After": "Seconds until the window resets.",
    "X-RateLimit-Limit": "Maximum requests per window.",
    "X-RateLimit-Remaining": "Requests left in the window.",
    "X-RateLimit-Reset": "UNIX time (seconds) when the window resets.",
}

TOO_MANY_REQUESTS_RESPONSE: Dict[str, Any] = {
    "description": "Rate limit exceeded.",
    "headers": {
        name: {"description": description, "schema": {"type": "string"}}
        for name, description in _RATE_LIMIT_HEADERS.items()
    },
    "content": {
        "application/json": {
            "example": {
                "error": {
                    "code": "rate_limit_exceeded",
                    "message": "Demasiados intentos. Intenta de nuevo en 42 segundos.",
                    "request_id": "3f0c2a1e-...",
                    "details": {"endpoint": "api", "limit": 100, "reset_ms": 41200, "retry_after": 42},
                }
            }
        }
    },
}


def apply_openapi_customizations(
    app: FastAPI, rate_limited_prefixes: Iterable[str] = ("/v1/profile",)
) -> None:
    """Patch FastAPI's OpenAPI generation to add tags and 429 docs.

    Args:
        app: Application whose schema is patched.
        rate_limited_prefixes: Path prefixes whose operations get the 429
            response documented.
    """

    original_openapi = app.openapi
    prefixes = tuple(rate_limited_prefixes)

    def custom_openapi() -> Dict[str, Any]:
        schema = original_openapi()

        components = schema.setdefault("components", {})
        components.setdefault("responses", {})["TooManyRequests"] = TOO_MANY_REQUESTS_RESPONSE

        tags = schema.setdefault("tags", [])
        existing_tag_names = {t.get("name") for t in tags}
        tags.extend(t for t in TAGS_METADATA if t["name"] not in existing_tag_names)

        for path, methods in schema.get("paths", {}).items():
            if not path.startswith(prefixes):
                continue
            for method_obj in methods.values():
                if isinstance(method_obj, dict):
                    method_obj.setdefault("responses", {})["429"] = {
                        "$ref": "#/components/responses/TooManyRequests"
                    }

        return schema

    app.openapi = custom_openapi  # type: ignore[assignment]
