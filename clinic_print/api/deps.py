# FILE: clinic_print/api/deps.py
from __future__ import annotations

from functools import lru_cache
from typing import Optional

from fastapi import Depends, Header

from clinic_print.services.print_actions import PrintActions
from clinic_print.services.print_context import PrintContextClient
from clinic_print.services.print_sinks import ElementRegistry, PrintSinks, PrintSpool, TargetGuard


# =========================================================
# AUTH
# =========================================================
def _extract_bearer(authorization: Optional[str]) -> Optional[str]:
    if not authorization:
        return None
    parts = authorization.split()
    if len(parts) == 2 and parts[0].lower() == "bearer":
        return parts[1]
    return None


def get_bearer_token(authorization: Optional[str] = Header(None)) -> Optional[str]:
    """Forwarded as-is to the upstream clinic API; never decoded here."""
    return _extract_bearer(authorization)


# =========================================================
# PIPELINE (process-wide; overridden in tests)
# =========================================================
@lru_cache()
def get_print_sinks() -> PrintSinks:
    return PrintSinks(ElementRegistry(), PrintSpool(), TargetGuard())


@lru_cache()
def get_context_client() -> PrintContextClient:
    return PrintContextClient()


def get_print_actions(
    context_client: PrintContextClient = Depends(get_context_client),
    sinks: PrintSinks = Depends(get_print_sinks),
) -> PrintActions:
    return PrintActions(context_client, sinks)
