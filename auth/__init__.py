"""auth/ -- Authentication and authorization package for the agenda service.

Layer rule: auth/ imports only stdlib, third-party libraries, and core/.
It does NOT import from api/ or events/.
api/ imports from auth/, not the other way around.
"""
