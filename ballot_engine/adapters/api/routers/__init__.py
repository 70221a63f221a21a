# ballot_engine/adapters/api/routers/__init__.py
