"""
auth — User authentication module.

Provides:
  • Signed session tokens and OAuth state tokens
  • Password hashing (bcrypt)
  • Register / Login API routes
  • ``get_current_user_id`` / ``get_optional_user_id`` FastAPI dependencies
"""
