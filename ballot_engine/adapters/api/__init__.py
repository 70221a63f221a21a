# ballot_engine/adapters/api/__init__.py
"""
HTTP adapter (FastAPI).

Exposes the Ballot Service as the `/api/vote` action endpoint plus
health probes. Domain errors are rendered by the app-level handlers in
`main.py`; routers never format errors themselves.
"""
