"""OpenAPI customization: tag descriptions and the admin key scheme.

Only the credential management operations are marked as requiring the
``X-Admin-Key`` header; search and health stay open.
"""

from __future__ import annotations

from typing import Any, Dict

from fastapi import FastAPI

TAGS_METADATA = [
    {
        "name": "Search",
        "description": "Deduplicated search aggregated across the credential pool.",
    },
    {
        "name": "Credentials",
        "description": "Register, list and remove upstream search credentials.",
    },
    {
        "name": "Health",
        "description": "Liveness checks.",
    },
]


def apply_openapi_customizations(app: FastAPI) -> None:
    """Wrap ``app.openapi`` to add tags and the admin key security scheme."""

    original_openapi = app.openapi

    def custom_openapi() -> Dict[str, Any]:
        schema = original_openapi()

        security_schemes = schema.setdefault("components", {}).setdefault("securitySchemes", {})
        security_schemes.setdefault(
            "AdminKeyAuth",
            {
                "type": "apiKey",
                "in": "header",
                "name": "X-Admin-Key",
                "description": "Required on credential routes when APP_ADMIN_KEY_REQUIRED=true.",
            },
        )

        tags = schema.setdefault("tags", [])
        known = {t.get("name") for t in tags}
        tags.extend(t for t in TAGS_METADATA if t["name"] not in known)

        for methods in schema.get("paths", {}).values():
            for operation in methods.values():
                if isinstance(operation, dict) and "Credentials" in operation.get("tags", []):
                    operation["security"] = [{"AdminKeyAuth": []}]

        return schema

    app.openapi = custom_openapi  # type: ignore[assignment]
