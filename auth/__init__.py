"""auth/ -- Credential verification and session identity for SessionAuth.

Layer rule: auth/ imports only stdlib + third-party libraries, plus core/.
It does NOT import from api/ or web/.
api/ and web/ import from auth/, not the other way around.
"""
