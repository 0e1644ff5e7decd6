"""OpenAPI metadata and customization utilities.

Enriches the generated schema with:
- Tags metadata
- A bearer security scheme applied only to the security-status operations

This keeps documentation concerns decoupled from the app factory.
"""

from __future__ import annotations

from typing import Any, Dict

from fastapi import FastAPI

ADMIN_PATH_SUFFIX = "/security-status"


def apply_openapi_customizations(app: FastAPI) -> None:
    """Patch FastAPI's OpenAPI generation to add tags and admin security."""

    original_openapi = app.openapi

    def custom_openapi() -> Dict[str, Any]:
        schema = original_openapi()

        components = schema.setdefault("components", {})
        security_schemes = components.setdefault("securitySchemes", {})
        security_schemes.setdefault(
            "AdminBearer",
            {
                "type": "http",
                "scheme": "bearer",
                "description": "Provide APP_SECURITY_STATUS_TOKEN as a bearer token.",
            },
        )

        tags = schema.setdefault("tags", [])
        existing_tag_names = {t.get("name") for t in tags}
        desired_tags = [
            {
                "name": "Submissions",
                "description": "Public application intake. Subject to the sensitive rate-limit profile.",
            },
            {
                "name": "Security",
                "description": "Admission-control snapshot and administrative block management.",
            },
            {
                "name": "Health",
                "description": "Liveness checks. Exempt from admission control.",
            },
        ]
        for tag in desired_tags:
            if tag["name"] not in existing_tag_names:
                tags.append(tag)

        # Only the admin operations require the bearer token
        for path, methods in schema.get("paths", {}).items():
            if not path.endswith(ADMIN_PATH_SUFFIX):
                continue
            for method_obj in methods.values():
                if isinstance(method_obj, dict):
                    method_obj["security"] = [{"AdminBearer": []}]

        return schema

    app.openapi = custom_openapi  # type: ignore[assignment]
