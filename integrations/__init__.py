"""
integrations — stateless clients for the providers behind the connectors.

Credentials are passed on every call; nothing here holds tokens.
"""
