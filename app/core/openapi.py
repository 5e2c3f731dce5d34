"""OpenAPI metadata and customization utilities.

Enriches the generated OpenAPI schema with:
- Tags metadata
- A shared ``RateLimitExceeded`` schema and a 429 response on every
  operation (the general tier applies to all routes)
"""

from __future__ import annotations

from typing import Any, Dict

from fastapi import FastAPI

_RATE_LIMIT_SCHEMA = {
    "type": "object",
    "properties": {
        "error": {"type": "string", "example": "Rate limit exceeded"},
        "remaining": {"type": "integer", "example": 0},
        "resetTime": {"type": "integer", "description": "Seconds until the window resets"},
    },
    "required": ["error", "remaining", "resetTime"],
}

_RATE_LIMIT_HEADERS = {
    "X-RateLimit-Remaining": {"schema": {"type": "integer"}},
    "X-RateLimit-Reset": {
        "schema": {"type": "integer"},
        "description": "Epoch second when the window resets",
    },
    "Retry-After": {"schema": {"type": "integer"}, "description": "Seconds to wait"},
}


def apply_openapi_customizations(app: FastAPI) -> None:
    """Patch FastAPI's OpenAPI generation to document rate limiting."""

    original_openapi = app.openapi

    def custom_openapi() -> Dict[str, Any]:
        schema = original_openapi()

        components = schema.setdefault("components", {})
        components.setdefault("schemas", {}).setdefault("RateLimitExceeded", _RATE_LIMIT_SCHEMA)

        tags = schema.setdefault("tags", [])
        existing_tag_names = {t.get("name") for t in tags}
        desired_tags = [
            {"name": "Tabs", "description": "Save, list, load and delete tablatures."},
            {"name": "Rate limit", "description": "Per-tier quota of the calling client."},
            {"name": "Health", "description": "Liveness check."},
        ]
        for tag in desired_tags:
            if tag["name"] not in existing_tag_names:
                tags.append(tag)

        for methods in schema.get("paths", {}).values():
            for method_obj in methods.values():
                if not isinstance(method_obj, dict):
                    continue
                method_obj.setdefault("responses", {}).setdefault(
                    "429",
                    {
                        "description": "Rate limit exceeded",
                        "headers": _RATE_LIMIT_HEADERS,
                        "content": {
                            "application/json": {
                                "schema": {"$ref": "#/components/schemas/RateLimitExceeded"}
                            }
                        },
                    },
                )

        return schema

    app.openapi = custom_openapi  # type: ignore[assignment]
