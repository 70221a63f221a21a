# ballot_engine/core/__init__.py
