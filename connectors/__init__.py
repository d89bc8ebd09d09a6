"""
connectors — OAuth integration module for external services.

Provides a generic connector framework that handles:
  • OAuth2 auth-URL generation with signed CSRF state
  • Callback handling (code → token exchange)
  • Per-user token storage & refresh on demand
  • Fernet encryption of tokens at rest
  • Disconnect

Each provider (Microsoft, Salesforce) is a subclass of BaseConnector.
"""
