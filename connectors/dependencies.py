"""
FastAPI dependencies exposing the process-wide objects built in
``create_app`` (settings, registry, cipher, state store).
"""

from __future__ import annotations

from fastapi import Request

from config.settings import Settings
from connectors.encryption import TokenCipher
from connectors.registry import ConnectorRegistry
from connectors.state import CookieStateStore


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_registry(request: Request) -> ConnectorRegistry:
    return request.app.state.registry


def get_cipher(request: Request) -> TokenCipher:
    return request.app.state.cipher


def get_state_store(request: Request) -> CookieStateStore:
    return request.app.state.state_store
