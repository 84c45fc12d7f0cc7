"""auth/ -- Authentication and authorization package for Archilogic.

Token codec, credential/role stores, identity resolver, authentication gate,
authorization policy and the login/registration service.

Layer rule: auth/ imports only stdlib + third-party libraries.
It does NOT import from api/ or core/ -- settings values are injected.
api/ imports from auth/, not the other way around.
"""
