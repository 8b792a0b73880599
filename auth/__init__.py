"""auth/ -- Identity, role resolution, and authorization package for Taskflow.

Layer rule: auth/ imports only core/ + stdlib + third-party libraries.
It does NOT import from api/, tasks/, or services/.
api/, tasks/ and services/ import from auth/, not the other way around.
"""
