"""auth/ -- Credential verification and token lifecycle for localauth.

Layer rule: auth/ imports only stdlib + third-party libraries (plus core/ for
settings types). It does NOT import from api/.
api/ imports from auth/, not the other way around.
"""
