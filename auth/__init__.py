"""auth/ -- Authentication and authorization package for the storefront admin API.

Layer rule: auth/ imports only core/, stdlib, and third-party libraries.
It does NOT import from api/, catalog/, or media/.
api/ imports from auth/, not the other way around.
"""
