"""auth/ -- Authentication package for APIREST.

Layer rule: auth/ imports only stdlib, third-party libraries, core/ and the
users/ domain model. It does NOT import from api/.
api/ imports from auth/, not the other way around.
"""
