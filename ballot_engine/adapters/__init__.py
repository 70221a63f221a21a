# ballot_engine/adapters/__init__.py
