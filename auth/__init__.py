"""auth/ -- Token, cookie and session authentication package for Whendy.

Layer rule: auth/ imports only stdlib + third-party libraries, plus
core.config (the kernel) in auth/factory.py. It does NOT import from api/.
api/ imports from auth/, not the other way around.
"""
