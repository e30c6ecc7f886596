"""
connectors — OAuth integration module for external services.

Handles, per provider family:
  • OAuth2 authorize-URL generation and state binding
  • Callback validation (denial, CSRF state / user-id state)
  • Code → token exchange with each provider's protocol
  • AES-256-GCM encryption of tokens at rest
  • Per-user integration upsert and disconnect

Each family (generic/GitHub, Google, Notion) is a subclass of BaseConnector.
"""
