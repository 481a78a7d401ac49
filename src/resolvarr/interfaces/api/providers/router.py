"""Provider listing endpoint."""

from __future__ import annotations

from typing import cast

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from resolvarr.domain.entities import ContentDomain
from resolvarr.interfaces.app_state import AppState

router = APIRouter(tags=["providers"])


def _available_types() -> str:
    return ", ".join(d.name for d in ContentDomain)


@router.get("/providers")
async def list_providers(request: Request, type: str | None = None) -> JSONResponse:
    """List every registered provider of one content type.

    ``enabled`` tells whether the provider is part of the default attempt
    order.
    """
    if not type:
        return JSONResponse(
            {"message": f"Missing type. Available types: {_available_types()}"},
            status_code=400,
        )
    try:
        domain = ContentDomain.parse(type)
    except ValueError:
        return JSONResponse(
            {
                "message": (
                    f"Invalid type {type!r}. Available types: {_available_types()}"
                )
            },
            status_code=400,
        )

    state = cast(AppState, request.app.state)
    enabled = set(state.registry.default_order(domain))
    providers = [
        {"name": d.name, "enabled": d.name in enabled}
        for d in state.registry.providers(domain)
    ]
    return JSONResponse({"type": domain.name, "providers": providers})
