"""auth/ -- Session lifecycle core for SessionVault.

tokens.py         TokenCodec (access/refresh JWTs)
models.py         Role, Principal, claims, RefreshCredential
ports.py          CredentialStore / UserDirectory contracts + in-memory adapters
store.py          AuthStore (SQLAlchemy Core, async engine)
bearer.py         BearerAuthenticator (Authorization header -> AccessClaims)
sessions.py       SessionRotationService (login, refresh rotation, logout)
authorization.py  role gate
dependencies.py   FastAPI adapter
maintenance.py    expired-token sweep (in-process loop and CLI)

Layer rule: auth/ imports from core/, never the other way around.
Only dependencies.py imports fastapi.
"""
