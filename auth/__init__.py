"""
auth — current-user lookup.

Provides:
  • signed session token creation & verification
  • ``get_optional_user_id`` FastAPI dependency
"""
