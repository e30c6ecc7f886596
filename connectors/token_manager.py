"""
Token manager — store / disable / read per-user integration tokens.

Rows are keyed by ``(user_id, type)``: a reconnection overwrites the
existing row in place and a disconnect only clears it.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Iterable, Optional

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from connectors.base import IntegrationType, TokenGrant
from connectors.encryption import TokenCipher
from database.models import Integration

logger = logging.getLogger(__name__)


async def _upsert_integration(
    session: AsyncSession,
    user_id: str,
    integration_type: IntegrationType,
    values: dict,
) -> None:
    result = await session.execute(
        select(Integration).where(
            Integration.user_id == user_id,
            Integration.type == integration_type.value,
        )
    )
    existing = result.scalar_one_or_none()

    if existing:
        for key, value in values.items():
            setattr(existing, key, value)
        logger.info("Updated %s integration for user %s", integration_type.value, user_id)
    else:
        session.add(
            Integration(
                user_id=user_id,
                type=integration_type.value,
                created_at=values["updated_at"],
                **{"extra": {}, **values},
            )
        )
        logger.info("Created %s integration for user %s", integration_type.value, user_id)


async def store_grant(
    session: AsyncSession,
    cipher: TokenCipher,
    user_id: str,
    integration_types: Iterable[IntegrationType],
    grant: TokenGrant,
) -> None:
    """
    Encrypt a token grant and upsert one enabled row per integration type.

    All rows are committed in one transaction.  A unique-constraint
    conflict (a concurrent callback inserted the same row first) is
    rolled back and retried once, which then takes the update path.
    """
    types = list(integration_types)
    now = datetime.now(timezone.utc)

    values = {
        "oauth_token": cipher.encrypt(grant.access_token),
        "refresh_token": cipher.encrypt(grant.refresh_token) if grant.refresh_token else None,
        "token_expires_at": grant.expires_at(now),
        "enabled": True,
        "connected_at": now,
        "updated_at": now,
    }
    if grant.extra:
        values["extra"] = dict(grant.extra)

    for attempt in (1, 2):
        try:
            for integration_type in types:
                await _upsert_integration(session, user_id, integration_type, values)
            await session.commit()
            return
        except IntegrityError:
            await session.rollback()
            if attempt == 2:
                raise
            logger.info("Concurrent insert for user %s, retrying as update", user_id)


async def disconnect(session: AsyncSession, user_id: str, integration_type: str) -> int:
    """
    Disable an integration and clear its tokens.

    ``extra`` is left as-is and the row is kept.  Returns the number of
    rows touched; zero (never connected) is not an error.
    """
    result = await session.execute(
        update(Integration)
        .where(
            Integration.user_id == user_id,
            Integration.type == integration_type,
        )
        .values(
            enabled=False,
            oauth_token=None,
            refresh_token=None,
            token_expires_at=None,
            updated_at=datetime.now(timezone.utc),
        )
    )
    await session.commit()
    logger.info("Disconnected %s for user %s (%d rows)", integration_type, user_id, result.rowcount)
    return result.rowcount


async def get_enabled_integrations(session: AsyncSession, user_id: str) -> list[dict]:
    """Return the user's enabled integrations (no tokens exposed)."""
    result = await session.execute(
        select(Integration).where(
            Integration.user_id == user_id,
            Integration.enabled.is_(True),
        )
    )
    return [
        {
            "id": str(row.id),
            "type": row.type,
            "enabled": row.enabled,
            "connected_at": row.connected_at.isoformat() if row.connected_at else None,
            "last_used_at": row.last_used_at.isoformat() if row.last_used_at else None,
        }
        for row in result.scalars().all()
    ]


async def get_active_token(
    session: AsyncSession,
    cipher: TokenCipher,
    user_id: str,
    integration_type: IntegrationType,
) -> Optional[str]:
    """
    Return the decrypted access token for an enabled integration.

    ``None`` means nothing is stored.  A stored token that fails to
    decrypt raises ``TokenDecryptionError``; the caller should ask the
    user to reconnect rather than treat it as absent.  Updates
    ``last_used_at``.
    """
    result = await session.execute(
        select(Integration).where(
            Integration.user_id == user_id,
            Integration.type == integration_type.value,
            Integration.enabled.is_(True),
        )
    )
    row = result.scalar_one_or_none()
    if row is None or not row.oauth_token:
        return None

    token = cipher.decrypt(row.oauth_token)
    row.last_used_at = datetime.now(timezone.utc)
    await session.commit()
    return token
