"""auth/ -- Accounts, password hashing and server-side sessions.

Layer rule: auth/ imports only core/, stdlib and third-party libraries.
It does NOT import from api/, web/, or catalog/.
api/, web/ and catalog/ import from auth/, not the other way around.
"""
