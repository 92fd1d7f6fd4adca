"""
auth_service package

JWT authentication service: registration, login, token refresh, logout,
profile and password management on top of a users/sessions schema.
"""
