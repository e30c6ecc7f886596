"""
Integration API routes — OAuth connect, callbacks, disconnect, listing.

Route prefix: /api/v1/integrations

Every callback ends in a redirect to the dashboard's integrations page,
carrying either a success indicator or ``error=<code>``.
"""

from __future__ import annotations

import logging
from typing import Optional
from urllib.parse import urlencode

from fastapi import APIRouter, Depends, Query, Request, status
from fastapi.responses import JSONResponse, RedirectResponse
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from auth.dependencies import db_session, get_optional_user_id
from config.settings import Settings
from connectors.base import BaseConnector, ProviderFamily, StateBinding
from connectors.dependencies import get_app_settings, get_cipher, get_registry, get_state_store
from connectors.encryption import TokenCipher
from connectors.errors import CallbackFailure, CallbackReason, InvalidProviderError
from connectors.registry import ConnectorRegistry
from connectors.state import CookieStateStore, verify_user_state
from connectors.token_manager import disconnect, get_enabled_integrations, store_grant

logger = logging.getLogger(__name__)

router = APIRouter(tags=["integrations"])


class _LoginRequired(Exception):
    """No session on a route that needs one; answered with a login redirect."""


def _redirect(url: str) -> RedirectResponse:
    return RedirectResponse(url, status_code=status.HTTP_302_FOUND)


def _dashboard_url(settings: Settings, **params: str) -> str:
    return f"{settings.dashboard_url()}?{urlencode(params)}"


async def _safe_rollback(session: AsyncSession) -> None:
    try:
        await session.rollback()
    except SQLAlchemyError:
        logger.warning("Rollback after failed callback also failed", exc_info=True)


async def _exchange_and_store(
    connector: BaseConnector,
    code: str,
    user_id: str,
    session: AsyncSession,
    cipher: TokenCipher,
) -> None:
    """Validated → Exchanged → Persisted.  Unexpected errors become ``server_error``."""
    try:
        grant = await connector.exchange_code(code)
        await store_grant(session, cipher, user_id, connector.integration_types, grant)
    except CallbackFailure:
        raise
    except Exception:
        logger.exception("OAuth callback error for %s", connector.display_name)
        await _safe_rollback(session)
        raise CallbackFailure(CallbackReason.SERVER_ERROR) from None

    logger.info(
        "OAuth connected: user=%s provider=%s types=%s",
        user_id,
        connector.display_name,
        ",".join(t.value for t in connector.integration_types),
    )


async def _user_bound_callback(
    connector: BaseConnector,
    code: Optional[str],
    state: Optional[str],
    error: Optional[str],
    user_id: Optional[str],
    session: AsyncSession,
    cipher: TokenCipher,
) -> str:
    """Callback for families whose ``state`` is the user id.  Returns the success label."""
    if error:
        raise CallbackFailure(CallbackReason.PROVIDER_DENIED, error)
    if not code or not state:
        raise CallbackFailure(CallbackReason.MISSING_PARAMS)
    if not user_id:
        raise _LoginRequired()
    verify_user_state(state, user_id)

    await _exchange_and_store(connector, code, user_id, session, cipher)
    return connector.success_label(connector.integration_types[0])


async def _finish_user_bound(
    family: ProviderFamily,
    request: Request,
    code: Optional[str],
    state: Optional[str],
    error: Optional[str],
    user_id: Optional[str],
    session: AsyncSession,
) -> RedirectResponse:
    settings = get_app_settings(request)
    connector = get_registry(request).for_family(family)
    try:
        label = await _user_bound_callback(
            connector, code, state, error, user_id, session, get_cipher(request)
        )
    except _LoginRequired:
        return _redirect(settings.login_url())
    except CallbackFailure as failure:
        logger.info("%s callback failed: %s", connector.display_name, failure.reason.value)
        return _redirect(_dashboard_url(settings, error=failure.error_code))
    return _redirect(_dashboard_url(settings, connected=label))


# ── Routes ─────────────────────────────────────────────────────────────


@router.get("/providers")
async def list_providers(registry: ConnectorRegistry = Depends(get_registry)) -> list[dict]:
    """
    List all supported providers and whether they are configured.
    No auth required — used by the dashboard to render its grid.
    """
    return registry.list_providers()


@router.get("/connections")
async def list_connections(
    user_id: Optional[str] = Depends(get_optional_user_id),
    session: AsyncSession = Depends(db_session),
):
    """List the authenticated user's enabled integrations."""
    if not user_id:
        return JSONResponse({"error": "Unauthorized"}, status_code=status.HTTP_401_UNAUTHORIZED)
    return await get_enabled_integrations(session, user_id)


@router.get("/connect")
async def connect(
    provider: Optional[str] = Query(None),
    user_id: Optional[str] = Depends(get_optional_user_id),
    settings: Settings = Depends(get_app_settings),
    registry: ConnectorRegistry = Depends(get_registry),
    store: CookieStateStore = Depends(get_state_store),
):
    """
    Step 1 of OAuth: redirect the browser to the provider's consent page.

    Google and Notion carry the user id as ``state``; the generic family
    gets a random CSRF token kept in cookies.
    """
    if not user_id:
        return _redirect(settings.login_url())

    try:
        requested = registry.parse_provider(provider)
    except InvalidProviderError as exc:
        return JSONResponse({"error": str(exc)}, status_code=status.HTTP_400_BAD_REQUEST)

    connector = registry.resolve(requested.value)
    if not connector.is_configured():
        logger.error("Connect requested for unconfigured provider %s", connector.display_name)
        return JSONResponse(
            {"error": f"{connector.display_name} integration is not configured"},
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        )

    if connector.state_binding is StateBinding.USER_ID:
        return _redirect(connector.get_auth_url(user_id))

    pending = store.issue(requested)
    response = _redirect(connector.get_auth_url(pending.state))
    store.store(response, pending)
    return response


@router.get("/callback")
async def oauth_callback(
    request: Request,
    code: Optional[str] = Query(None),
    state: Optional[str] = Query(None),
    error: Optional[str] = Query(None),
    user_id: Optional[str] = Depends(get_optional_user_id),
    session: AsyncSession = Depends(db_session),
    store: CookieStateStore = Depends(get_state_store),
) -> RedirectResponse:
    """
    Callback for the generic family (CSRF-cookie state).

    The state cookies are cleared on every response from this route.
    """
    settings = get_app_settings(request)
    registry = get_registry(request)
    pending = store.read(request)

    try:
        if error:
            raise CallbackFailure(CallbackReason.PROVIDER_DENIED, error)
        if not code:
            raise CallbackFailure(CallbackReason.INVALID_STATE)
        provider = store.verify(pending, state)
        try:
            connector = registry.resolve(provider)
        except InvalidProviderError:
            raise CallbackFailure(CallbackReason.INVALID_STATE) from None
        if connector.family is not ProviderFamily.GENERIC:
            raise CallbackFailure(CallbackReason.INVALID_STATE)
        if not user_id:
            raise _LoginRequired()

        await _exchange_and_store(connector, code, user_id, session, get_cipher(request))
        response = _redirect(_dashboard_url(settings, success=provider))
    except _LoginRequired:
        response = _redirect(settings.login_url())
    except CallbackFailure as failure:
        logger.info("OAuth callback failed: %s", failure.reason.value)
        response = _redirect(_dashboard_url(settings, error=failure.error_code))

    store.clear(response)
    return response


@router.get("/google/callback")
async def google_callback(
    request: Request,
    code: Optional[str] = Query(None),
    state: Optional[str] = Query(None),
    error: Optional[str] = Query(None),
    user_id: Optional[str] = Depends(get_optional_user_id),
    session: AsyncSession = Depends(db_session),
) -> RedirectResponse:
    """Google callback: one grant is stored as ``gmail`` and ``google_calendar``."""
    return await _finish_user_bound(
        ProviderFamily.GOOGLE, request, code, state, error, user_id, session
    )


@router.get("/notion/callback")
async def notion_callback(
    request: Request,
    code: Optional[str] = Query(None),
    state: Optional[str] = Query(None),
    error: Optional[str] = Query(None),
    user_id: Optional[str] = Depends(get_optional_user_id),
    session: AsyncSession = Depends(db_session),
) -> RedirectResponse:
    """Notion callback: Basic-auth token exchange, workspace metadata kept in ``extra``."""
    return await _finish_user_bound(
        ProviderFamily.NOTION, request, code, state, error, user_id, session
    )


@router.post("/disconnect")
async def disconnect_integration(
    request: Request,
    user_id: Optional[str] = Depends(get_optional_user_id),
    session: AsyncSession = Depends(db_session),
) -> JSONResponse:
    """Disable an integration (``enabled=false``, tokens cleared).  Idempotent."""
    if not user_id:
        return JSONResponse({"error": "Unauthorized"}, status_code=status.HTTP_401_UNAUTHORIZED)

    try:
        body = await request.json()
    except ValueError:
        body = None
    provider = body.get("provider") if isinstance(body, dict) else None
    if not provider or not isinstance(provider, str):
        return JSONResponse({"error": "Missing provider"}, status_code=status.HTTP_400_BAD_REQUEST)

    try:
        await disconnect(session, user_id, provider)
    except SQLAlchemyError as exc:
        logger.error("Disconnect failed for %s/%s: %s", provider, user_id, exc)
        await _safe_rollback(session)
        return JSONResponse(
            {"error": str(exc)}, status_code=status.HTTP_500_INTERNAL_SERVER_ERROR
        )

    return JSONResponse({"success": True})
